"""Custom exceptions for world generation."""

from typing import Any


class WorldgenError(Exception):
    """Base exception for world generation errors."""

    pass


class ConfigError(WorldgenError):
    """Raised when a configuration value is invalid.

    Attributes:
        field: Dotted path of the offending field (e.g. "island.cutoff").
    """

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class GenerationError(WorldgenError):
    """Raised when a generation stage cannot satisfy its invariants.

    Carries the seed and the parameters in effect so the failure can be
    reproduced.
    """

    def __init__(
        self,
        message: str,
        seed: int | None = None,
        parameters: dict[str, Any] | None = None,
    ):
        self.seed = seed
        self.parameters = dict(parameters or {})
        super().__init__(f"{message} (seed={seed})")


class IslandConvergenceError(GenerationError):
    """Raised when no cutoff yields a land fraction within bounds."""

    pass


class DropletBudgetError(GenerationError):
    """Raised when a droplet exceeds its step budget."""

    pass
