"""Shared test fixtures for world generation tests."""

import pytest

from worldgen.config import WorldgenConfig, parse_config
from worldgen.generator import GenerationResult, generate_terrain
from worldgen.noise import NoiseBank


@pytest.fixture(scope="session")
def scenario_seed() -> int:
    """Seed of the reference scenario."""
    return 20240611


@pytest.fixture(scope="session")
def small_config() -> WorldgenConfig:
    """128x128 scenario config with a reduced droplet count."""
    return parse_config(
        {
            "island": {
                "size": [128, 128],
                "cutoff": 0.4,
                "min_total_area": 0.3,
                "max_total_area": 0.5,
            },
            "rivers": {"droplet_count": 100, "max_steps": 2000},
            "topography": {"iso_step": 5.0, "max_height": 80.0},
        }
    )


@pytest.fixture(scope="session")
def generated(small_config: WorldgenConfig, scenario_seed: int) -> GenerationResult:
    """One full generation run shared by the pipeline tests."""
    return generate_terrain(small_config, scenario_seed)


@pytest.fixture
def noise_bank(small_config: WorldgenConfig) -> NoiseBank:
    """Noise bank for seed 42."""
    return NoiseBank(42, small_config.noise)
