"""World generation configuration models and TOML loading."""

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .exceptions import ConfigError


class _Frozen(BaseModel):
    """Immutable model; unknown keys are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class FbmNoiseConfig(_Frozen):
    """Noise parameters for a single fBm channel."""

    frequency: float = Field(default=0.01, gt=0, description="Base frequency per cell")
    octaves: int = Field(default=5, ge=1, description="Number of octaves for fBm")
    persistence: float = Field(
        default=0.5, gt=0, le=1, description="Amplitude multiplier per octave"
    )
    lacunarity: float = Field(default=2.0, gt=0, description="Frequency multiplier per octave")


class NoiseConfig(_Frozen):
    """Per-channel noise settings."""

    island: FbmNoiseConfig = Field(
        default_factory=lambda: FbmNoiseConfig(frequency=0.004, octaves=5)
    )
    height: FbmNoiseConfig = Field(
        default_factory=lambda: FbmNoiseConfig(frequency=0.01, octaves=5)
    )
    height_warp: FbmNoiseConfig = Field(
        default_factory=lambda: FbmNoiseConfig(frequency=0.02, octaves=3)
    )
    biomes: FbmNoiseConfig = Field(
        default_factory=lambda: FbmNoiseConfig(frequency=0.02, octaves=4)
    )
    grass: FbmNoiseConfig = Field(
        default_factory=lambda: FbmNoiseConfig(frequency=0.08, octaves=3)
    )


class IslandConfig(_Frozen):
    """Island shaping parameters."""

    size: tuple[int, int] = Field(default=(512, 512), description="Grid size (width, height)")
    cutoff: float = Field(default=0.4, ge=0, le=1, description="Initial land threshold")
    reshape_margin: float = Field(
        default=0.25, ge=0, lt=0.5, description="Border margin for reshape centres"
    )
    reshape_radius: float = Field(
        default=0.5, gt=0, description="Falloff radius, fraction of map size"
    )
    reshape_alpha: float = Field(
        default=0.6, ge=0, le=1, description="Blend weight of the reshape falloff"
    )
    reshape_points: int = Field(default=16, ge=1, description="Number of reshape centres")
    min_island_area: float = Field(
        default=5e-4, ge=0, le=1, description="Smallest kept island, fraction of map"
    )
    min_total_area: float = Field(default=0.3, ge=0, le=1, description="Minimum land fraction")
    max_total_area: float = Field(default=0.5, ge=0, le=1, description="Maximum land fraction")
    zoom_steps: int = Field(default=2, ge=0, description="Random 2x zoom passes")
    border_width: int = Field(default=2, ge=0, description="Guaranteed ocean border width")
    max_attempts: int = Field(default=8, ge=1, description="Reshape attempts before failing")
    search_iterations: int = Field(
        default=24, ge=1, description="Cutoff evaluations per attempt"
    )

    @model_validator(mode="after")
    def check_areas(self) -> "IslandConfig":
        if self.min_total_area > self.max_total_area:
            raise ValueError("min_total_area must not exceed max_total_area")
        scale = 2**self.zoom_steps
        for extent in self.size:
            if extent <= 0:
                raise ValueError("size entries must be positive")
            if extent % scale != 0:
                raise ValueError(f"size entries must be divisible by {scale}")
        return self


class HeightConfig(_Frozen):
    """Height field synthesis parameters."""

    beach_size: float = Field(default=4.0, ge=0, description="Beach width in cells")
    land_height: float = Field(default=2.0, gt=0, description="Lowland elevation")
    peak_height: float = Field(default=100.0, gt=0, description="Mountain peak elevation")
    ocean_depth: float = Field(default=20.0, gt=0, description="Maximum ocean depth")
    warp_dist: float = Field(default=12.0, ge=0, description="Domain warp distance in cells")
    mountain_power: float = Field(
        default=2.5, gt=0, description="Exponent applied to mountain noise"
    )
    smoothing: float = Field(default=1.0, ge=0, description="Gaussian sigma, 0 disables")

    @model_validator(mode="after")
    def check_heights(self) -> "HeightConfig":
        if self.peak_height < self.land_height:
            raise ValueError("peak_height must not be below land_height")
        return self


class RiversConfig(_Frozen):
    """Droplet erosion parameters."""

    point_radius: float = Field(default=2.0, gt=0, description="Erosion brush radius in cells")
    inertia: float = Field(default=0.3, ge=0, le=1, description="Direction inertia")
    evaporation: float = Field(default=0.02, ge=0, le=1, description="Water loss per step")
    erosion: float = Field(default=0.3, ge=0, le=1, description="Erosion rate")
    deposition: float = Field(default=0.3, ge=0, le=1, description="Deposition rate")
    capacity: float = Field(default=4.0, gt=0, description="Sediment capacity factor")
    min_slope: float = Field(default=0.01, ge=0, description="Capacity slope floor")
    gravity: float = Field(default=4.0, ge=0, description="Speed gain per unit descent")
    friction: float = Field(default=0.05, ge=0, lt=1, description="Speed loss per step")
    min_speed: float = Field(default=0.05, ge=0, description="Stall speed threshold")
    stall_steps: int = Field(default=8, ge=1, description="Slow steps before stalling")
    min_water: float = Field(default=0.01, gt=0, description="Evaporation cutoff")
    droplet_count: int = Field(default=500, ge=0, description="Droplets to simulate")
    max_steps: int = Field(default=1000, ge=1, description="Step budget per droplet")
    spawn_policy: Literal["weighted_random", "local_maxima"] = Field(
        default="weighted_random", description="Droplet spawn selection"
    )
    river_threshold: float = Field(
        default=2.0, ge=0, description="Accumulated water that marks a river cell"
    )


class BiomesConfig(_Frozen):
    """Biome decision table thresholds."""

    policy: Literal["banded"] = Field(default="banded", description="Classification policy")
    coastal_distance: float = Field(
        default=3.0, ge=0, description="Cells from water that count as coastal"
    )
    highland: float = Field(default=0.45, ge=0, le=1, description="Forest line")
    alpine: float = Field(default=0.75, ge=0, le=1, description="Tree line")
    forest_noise: float = Field(
        default=0.55, ge=0, le=1, description="Biome noise above which lowland is forest"
    )
    band_jitter: float = Field(default=0.08, ge=0, description="Noise perturbation of bands")

    @model_validator(mode="after")
    def check_bands(self) -> "BiomesConfig":
        if self.highland > self.alpine:
            raise ValueError("highland must not exceed alpine")
        return self


class TopographyConfig(_Frozen):
    """Contour extraction parameters."""

    max_height: float = Field(default=80.0, ge=0, description="Highest iso-level")
    iso_step: float = Field(default=5.0, gt=0, description="Spacing between iso-levels")


class WorldgenConfig(_Frozen):
    """Complete world generation configuration."""

    noise: NoiseConfig = Field(default_factory=NoiseConfig)
    island: IslandConfig = Field(default_factory=IslandConfig)
    height: HeightConfig = Field(default_factory=HeightConfig)
    rivers: RiversConfig = Field(default_factory=RiversConfig)
    biomes: BiomesConfig = Field(default_factory=BiomesConfig)
    topography: TopographyConfig = Field(default_factory=TopographyConfig)


def parse_config(data: Mapping[str, Any]) -> WorldgenConfig:
    """Validate a config mapping.

    Args:
        data: Parsed config document.

    Returns:
        Validated WorldgenConfig.

    Raises:
        ConfigError: If any value violates its constraints.
    """
    try:
        return WorldgenConfig.model_validate(dict(data))
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "<root>"
        raise ConfigError(field, error["msg"]) from e


def load_config(config_path: Path) -> WorldgenConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML config file.

    Returns:
        Parsed WorldgenConfig.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        tomllib.TOMLDecodeError: If TOML is malformed.
        ConfigError: If a value is out of range.
    """
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return parse_config(data)
