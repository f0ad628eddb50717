"""Biome classification and grass density."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum

import numpy as np
from numpy.typing import NDArray

from .coastal import compute_distance_to_water
from .config import BiomesConfig
from .noise import smoothstep

# Grass channel values mapped onto the 0..1 density ramp
GRASS_EDGES = (0.3, 0.7)


class Biome(IntEnum):
    """Biome ids as stored in the uint8 biome grid."""

    WATER = 0
    COASTAL = 1
    GRASSLAND = 2
    FOREST = 3
    ALPINE = 4


@dataclass
class BiomeInputs:
    """Everything a classification policy may look at."""

    height: NDArray[np.float32]
    land_mask: NDArray[np.bool_]
    river_mask: NDArray[np.bool_]
    biome_noise: NDArray[np.float32]  # [0, 1]


ClassificationPolicy = Callable[[BiomeInputs], NDArray[np.uint8]]


class BandedClassifier:
    """Ordered decision table over noise-perturbed elevation bands.

    First match wins:

    1. ocean -> WATER
    2. within ``coastal_distance`` of ocean or river -> COASTAL
    3. banded elevation >= ``alpine`` -> ALPINE
    4. banded elevation >= ``highland`` or noise > ``forest_noise`` -> FOREST
    5. otherwise GRASSLAND

    Banded elevation is height over the highest land height, shifted by
    ``(noise * 2 - 1) * band_jitter`` so band edges do not form rings.
    """

    def __init__(self, config: BiomesConfig):
        self.config = config

    def __call__(self, inputs: BiomeInputs) -> NDArray[np.uint8]:
        config = self.config
        land = inputs.land_mask
        noise = inputs.biome_noise

        distance = compute_distance_to_water(land, inputs.river_mask)
        max_land = float(inputs.height[land].max()) if land.any() else 1.0
        banded = inputs.height / max_land + (noise * 2.0 - 1.0) * config.band_jitter

        # Assigned lowest priority first so earlier rules overwrite later ones
        biomes = np.full(land.shape, Biome.GRASSLAND, dtype=np.uint8)
        biomes[(banded >= config.highland) | (noise > config.forest_noise)] = Biome.FOREST
        biomes[banded >= config.alpine] = Biome.ALPINE
        biomes[distance <= config.coastal_distance] = Biome.COASTAL
        biomes[~land] = Biome.WATER

        return biomes


CLASSIFICATION_POLICIES: dict[str, Callable[[BiomesConfig], ClassificationPolicy]] = {
    "banded": BandedClassifier,
}


def classify_biomes(inputs: BiomeInputs, config: BiomesConfig) -> NDArray[np.uint8]:
    """Classify every cell with the configured policy.

    Args:
        inputs: Height, masks and biome noise.
        config: Biome parameters, including the policy name.

    Returns:
        2D array of Biome values as uint8.
    """
    policy = CLASSIFICATION_POLICIES[config.policy](config)
    biomes = policy(inputs)

    # Ocean is water whatever the policy decides
    biomes[~inputs.land_mask] = Biome.WATER

    return biomes


def make_grass_density(
    grass_noise: NDArray[np.float32],
    biomes: NDArray[np.uint8],
) -> NDArray[np.float32]:
    """Grass density in [0, 1] on grassland and forest, 0 elsewhere."""
    grassy = (biomes == Biome.GRASSLAND) | (biomes == Biome.FOREST)
    density = smoothstep(GRASS_EDGES[0], GRASS_EDGES[1], grass_noise)
    return np.where(grassy, density, 0.0).astype(np.float32)
