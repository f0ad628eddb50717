"""Iso-elevation contour extraction with marching squares."""

import logging
import math
from collections.abc import Mapping
from concurrent import futures
from dataclasses import dataclass, field
from types import MappingProxyType

import numpy as np
from numpy.typing import NDArray
from skimage import measure

from .config import TopographyConfig

logger = logging.getLogger(__name__)

# Tolerance when matching a requested level against the traced ones
LEVEL_TOLERANCE = 1e-9


@dataclass(frozen=True)
class Contour:
    """One polyline at a single iso-level.

    Points are copied into a read-only array on construction.
    """

    level: float
    points: NDArray[np.float64]  # (N, 2) of (x, y) cell coordinates
    closed: bool

    def __post_init__(self) -> None:
        points = np.array(self.points, dtype=np.float64).reshape(-1, 2)
        points.setflags(write=False)
        object.__setattr__(self, "points", points)


@dataclass(frozen=True)
class ContourSet:
    """Contours grouped by iso-level, levels in ascending order.

    The per-level polylines are stored as tuples behind a read-only mapping,
    so a set can be shared between results without copying.
    """

    levels: tuple[float, ...]
    contours: Mapping[float, tuple[Contour, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "levels", tuple(self.levels))
        object.__setattr__(
            self,
            "contours",
            MappingProxyType({level: tuple(lines) for level, lines in self.contours.items()}),
        )

    def at(self, level: float) -> tuple[Contour, ...]:
        """Polylines at one level (empty if the level is flat or unknown).

        Levels match within a small tolerance, so ``at(0.3)`` finds the level
        computed as ``3 * 0.1``.
        """
        for key in self.contours:
            if math.isclose(key, level, rel_tol=LEVEL_TOLERANCE, abs_tol=LEVEL_TOLERANCE):
                return self.contours[key]
        return ()

    def __len__(self) -> int:
        return sum(len(lines) for lines in self.contours.values())


def iso_levels(config: TopographyConfig) -> list[float]:
    """Iso-values ``0, iso_step, ..., max_height``."""
    count = int(math.floor(config.max_height / config.iso_step + 1e-9)) + 1
    return [i * config.iso_step for i in range(count)]


def trace_level(height: NDArray[np.float32], level: float) -> list[Contour]:
    """Trace every polyline of one iso-level.

    Polylines are clipped at the grid edge and are closed when their first
    and last vertices coincide.

    Args:
        height: Height field.
        level: Iso-value.

    Returns:
        List of Contour objects, possibly empty.
    """
    contours = []
    for line in measure.find_contours(height, level):
        # find_contours returns (row, col) vertices
        points = np.ascontiguousarray(line[:, ::-1], dtype=np.float64)
        closed = len(points) > 2 and bool(np.array_equal(points[0], points[-1]))
        contours.append(Contour(level=level, points=points, closed=closed))
    return contours


def extract_contours(
    height: NDArray[np.float32],
    config: TopographyConfig,
    max_workers: int | None = None,
) -> ContourSet:
    """Extract contours for every iso-level in parallel.

    Levels are traced on a thread pool and collected in level order, so the
    result does not depend on scheduling.

    Args:
        height: Final height field, read only.
        config: Topography parameters.
        max_workers: Thread pool size, default from concurrent.futures.

    Returns:
        ContourSet with one entry per level.
    """
    levels = iso_levels(config)
    field64 = height.astype(np.float64)

    with futures.ThreadPoolExecutor(max_workers=max_workers) as pool:
        traced = list(pool.map(lambda level: trace_level(field64, level), levels))

    contours = dict(zip(levels, traced))
    result = ContourSet(levels=tuple(levels), contours=contours)

    logger.info(f"Extracted {len(result)} contours over {len(levels)} levels")

    return result
