"""Tests for biome classification."""

import numpy as np
import pytest

from worldgen.biomes import (
    CLASSIFICATION_POLICIES,
    BandedClassifier,
    Biome,
    BiomeInputs,
    classify_biomes,
    make_grass_density,
)
from worldgen.config import BiomesConfig


@pytest.fixture
def inputs() -> BiomeInputs:
    """40x40 map with a square island and hand-placed features.

    - lowland at height 10 everywhere on land
    - a highland block at height 50 around (10, 28)
    - an alpine block at height 100 around (20, 20)
    - a noisy block around (28, 12)
    - a river cell at (10, 10)
    """
    land_mask = np.zeros((40, 40), dtype=bool)
    land_mask[5:35, 5:35] = True

    height = np.where(land_mask, 10.0, -5.0).astype(np.float32)
    height[26:30, 8:12] = 50.0
    height[18:22, 18:22] = 100.0

    biome_noise = np.full((40, 40), 0.5, dtype=np.float32)
    biome_noise[10:14, 26:30] = 0.9
    biome_noise[~land_mask] = 1.0

    river_mask = np.zeros((40, 40), dtype=bool)
    river_mask[10, 10] = True

    return BiomeInputs(
        height=height,
        land_mask=land_mask,
        river_mask=river_mask,
        biome_noise=biome_noise,
    )


class TestBandedClassifier:
    """Tests for the ordered decision table."""

    def test_ocean_is_water(self, inputs: BiomeInputs) -> None:
        """Ocean is water regardless of noise."""
        biomes = classify_biomes(inputs, BiomesConfig())
        assert (biomes[~inputs.land_mask] == Biome.WATER).all()
        assert biomes.dtype == np.uint8

    def test_coast_is_coastal(self, inputs: BiomeInputs) -> None:
        """Land next to the ocean is coastal."""
        biomes = classify_biomes(inputs, BiomesConfig(coastal_distance=3))
        assert biomes[5, 20] == Biome.COASTAL
        assert biomes[7, 20] == Biome.COASTAL
        assert biomes[20, 8] == Biome.GRASSLAND

    def test_river_banks_are_coastal(self, inputs: BiomeInputs) -> None:
        """Cells near a river are coastal."""
        biomes = classify_biomes(inputs, BiomesConfig(coastal_distance=2))
        assert biomes[10, 10] == Biome.COASTAL
        assert biomes[10, 12] == Biome.COASTAL
        assert biomes[10, 14] == Biome.GRASSLAND

    def test_alpine_peak(self, inputs: BiomeInputs) -> None:
        """The highest block is alpine."""
        biomes = classify_biomes(inputs, BiomesConfig())
        assert (biomes[18:22, 18:22] == Biome.ALPINE).all()

    def test_highland_forest(self, inputs: BiomeInputs) -> None:
        """Mid elevations above the forest line are forest."""
        biomes = classify_biomes(inputs, BiomesConfig(highland=0.45, alpine=0.75))
        assert (biomes[26:30, 8:12] == Biome.FOREST).all()

    def test_noisy_lowland_forest(self, inputs: BiomeInputs) -> None:
        """High biome noise turns lowland into forest."""
        biomes = classify_biomes(inputs, BiomesConfig(forest_noise=0.55))
        assert (biomes[10:14, 26:30] == Biome.FOREST).all()
        assert biomes[20, 28] == Biome.GRASSLAND

    def test_jitter_moves_band_edge(self, inputs: BiomeInputs) -> None:
        """Noise shifts cells across the alpine line."""
        config = BiomesConfig(alpine=0.75, band_jitter=0.0)
        height = inputs.height.copy()
        height[24, 24] = 72.0
        noise = inputs.biome_noise.copy()
        noise[24, 24] = 1.0
        shifted = BiomeInputs(height, inputs.land_mask, inputs.river_mask, noise)

        assert classify_biomes(shifted, config)[24, 24] == Biome.FOREST
        jittered = BiomesConfig(alpine=0.75, band_jitter=0.1)
        assert classify_biomes(shifted, jittered)[24, 24] == Biome.ALPINE

    def test_policy_registry(self) -> None:
        """The banded policy is registered."""
        assert CLASSIFICATION_POLICIES["banded"] is BandedClassifier


class TestGrassDensity:
    """Tests for grass density."""

    def test_only_on_grass_and_forest(self) -> None:
        """Density is zero outside grassland and forest."""
        biomes = np.array(
            [[Biome.WATER, Biome.COASTAL, Biome.GRASSLAND, Biome.FOREST, Biome.ALPINE]],
            dtype=np.uint8,
        )
        noise = np.ones((1, 5), dtype=np.float32)
        density = make_grass_density(noise, biomes)

        np.testing.assert_allclose(density, [[0.0, 0.0, 1.0, 1.0, 0.0]])

    def test_follows_noise(self) -> None:
        """Density ramps with the grass channel."""
        biomes = np.full((1, 3), Biome.GRASSLAND, dtype=np.uint8)
        noise = np.array([[0.1, 0.5, 0.9]], dtype=np.float32)
        density = make_grass_density(noise, biomes)

        assert density[0, 0] == 0.0
        assert density[0, 1] == pytest.approx(0.5)
        assert density[0, 2] == 1.0
