"""Procedural island world generation package.

This package generates bounded island worlds from a seed and a declarative
config: island silhouette, elevation, droplet-eroded rivers, biomes and
iso-elevation contours, packaged as an immutable bundle.
"""

from .biomes import Biome
from .bundle import HeightField, WorldBundle
from .config import WorldgenConfig, load_config, parse_config
from .exceptions import (
    ConfigError,
    DropletBudgetError,
    GenerationError,
    IslandConvergenceError,
    WorldgenError,
)
from .generator import (
    GenerationResult,
    WorldgenStage,
    generate_and_save_world,
    generate_terrain,
    generate_world,
)
from .noise import NoiseBank
from .persistence import load_world, save_world
from .rivers import RiverPath, RiverPoint, Termination
from .topography import Contour, ContourSet
from .validation import ValidationResult, validate_terrain

__all__ = [
    "Biome",
    "ConfigError",
    "Contour",
    "ContourSet",
    "DropletBudgetError",
    "GenerationError",
    "GenerationResult",
    "HeightField",
    "IslandConvergenceError",
    "NoiseBank",
    "RiverPath",
    "RiverPoint",
    "Termination",
    "ValidationResult",
    "WorldBundle",
    "WorldgenConfig",
    "WorldgenError",
    "WorldgenStage",
    "generate_and_save_world",
    "generate_terrain",
    "generate_world",
    "load_config",
    "load_world",
    "parse_config",
    "save_world",
    "validate_terrain",
]
