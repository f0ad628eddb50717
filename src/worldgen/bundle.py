"""Immutable world bundle handed to downstream consumers."""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .coastal import IslandComponent
from .config import WorldgenConfig
from .grid import bilinear_sample, world_to_cell
from .rivers import RiverPath
from .topography import ContourSet


def freeze(array: NDArray) -> NDArray:
    """Return a read-only copy of an array."""
    frozen = np.array(array, copy=True)
    frozen.setflags(write=False)
    return frozen


class HeightField:
    """Read-only height grid with continuous sampling.

    Ocean cells are <= 0 and land cells are > 0.
    """

    def __init__(self, values: NDArray[np.float32]):
        self._values = freeze(values.astype(np.float32))

    @property
    def values(self) -> NDArray[np.float32]:
        return self._values

    @property
    def shape(self) -> tuple[int, int]:
        return self._values.shape

    def sample_cell(self, x: float, y: float) -> float:
        """Bilinear height at cell coordinates, clamped to the grid."""
        return bilinear_sample(self._values, x, y)

    def sample(self, world_x: float, world_y: float) -> float:
        """Bilinear height at world coordinates, clamped to the grid."""
        return self.sample_cell(*world_to_cell(world_x, world_y))


@dataclass(frozen=True)
class WorldBundle:
    """Everything a finished world generation run publishes."""

    seed: int
    config: WorldgenConfig
    height: HeightField
    biomes: NDArray[np.uint8]
    contours: ContourSet
    rivers: tuple[RiverPath, ...]
    river_map: NDArray[np.float32]
    shore_map: NDArray[np.float32]
    grass_density: NDArray[np.float32]
    islands: tuple[IslandComponent, ...]

    @property
    def size(self) -> tuple[int, int]:
        """Grid size as (width, height)."""
        rows, cols = self.height.shape
        return cols, rows

    @classmethod
    def build(
        cls,
        seed: int,
        config: WorldgenConfig,
        height: NDArray[np.float32],
        biomes: NDArray[np.uint8],
        contours: ContourSet,
        rivers: list[RiverPath],
        river_map: NDArray[np.float32],
        shore_map: NDArray[np.float32],
        grass_density: NDArray[np.float32],
        islands: list[IslandComponent],
    ) -> "WorldBundle":
        """Assemble a bundle, copying every array read-only.

        Contour sets are immutable on construction and are shared as is.
        """
        return cls(
            seed=seed,
            config=config,
            height=HeightField(height),
            biomes=freeze(biomes.astype(np.uint8)),
            contours=contours,
            rivers=tuple(rivers),
            river_map=freeze(river_map.astype(np.float32)),
            shore_map=freeze(shore_map.astype(np.float32)),
            grass_density=freeze(grass_density.astype(np.float32)),
            islands=tuple(islands),
        )
