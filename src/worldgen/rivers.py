"""River and erosion simulation with sequentially traced water droplets.

Droplets spawn on land, follow the inertia-blended downhill gradient of the
height field one cell per step, erode where they descend and deposit where
they are over capacity. Every stamp mutates the shared height field, so
droplets run strictly one after another in spawn order.
"""

import logging
import math
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

from .config import RiversConfig
from .exceptions import DropletBudgetError
from .grid import bilinear_sample, height_and_gradient, in_bounds
from .height import LAND_FLOOR
from .noise import RIVER_STREAM, seed_sequence

logger = logging.getLogger(__name__)

# Direction vectors shorter than this count as "no downhill direction"
MIN_DIRECTION = 1e-6


class Termination(Enum):
    """Why a droplet stopped."""

    OCEAN = "ocean"
    EDGE = "edge"
    PIT = "pit"
    STALLED = "stalled"
    EVAPORATED = "evaporated"


@dataclass(frozen=True)
class RiverPoint:
    """One recorded droplet sample."""

    x: float
    y: float
    elevation: float
    sediment: float
    water: float
    terminal_deposit: bool = False


@dataclass(frozen=True)
class RiverPath:
    """Ordered trace of a single droplet."""

    points: tuple[RiverPoint, ...]
    termination: Termination

    @property
    def reached_outlet(self) -> bool:
        return self.termination in (Termination.OCEAN, Termination.EDGE)


@dataclass
class RiverResult:
    """Output of the river simulation."""

    height: NDArray[np.float32]  # eroded
    paths: list[RiverPath]
    river_map: NDArray[np.float32]  # accumulated water per cell
    river_mask: NDArray[np.bool_]


SpawnPolicy = Callable[
    [NDArray[np.float32], NDArray[np.bool_], int, np.random.Generator],
    NDArray[np.float64],
]


def spawn_weighted_random(
    height: NDArray[np.float32],
    land_mask: NDArray[np.bool_],
    count: int,
    rng: np.random.Generator,
) -> NDArray[np.float64]:
    """Draw land cells with probability proportional to elevation squared.

    Positions are jittered within their cell.

    Returns:
        Array of shape (N, 2) with (x, y) spawn positions.
    """
    ys, xs = np.nonzero(land_mask)
    if count == 0 or len(xs) == 0:
        return np.empty((0, 2), dtype=np.float64)

    weights = height[ys, xs].astype(np.float64) ** 2
    total = weights.sum()
    p = weights / total if total > 0 else None

    picks = rng.choice(len(xs), size=count, replace=True, p=p)
    jitter = rng.uniform(-0.5, 0.5, size=(count, 2))

    points = np.column_stack([xs[picks], ys[picks]]).astype(np.float64) + jitter
    rows, cols = height.shape
    points[:, 0] = np.clip(points[:, 0], 0.0, cols - 1.0)
    points[:, 1] = np.clip(points[:, 1], 0.0, rows - 1.0)

    return points


def spawn_local_maxima(
    height: NDArray[np.float32],
    land_mask: NDArray[np.bool_],
    count: int,
    rng: np.random.Generator,
) -> NDArray[np.float64]:
    """Pick land cells that are the maximum of their 3x3 neighbourhood.

    The highest peaks come first; ties break by row then column.

    Returns:
        Array of shape (N, 2) with (x, y) spawn positions, N <= count.
    """
    neighbourhood_max = ndimage.maximum_filter(height, size=3, mode="nearest")
    peaks = (height >= neighbourhood_max) & land_mask

    ys, xs = np.nonzero(peaks)
    order = np.lexsort((xs, ys, -height[ys, xs]))[:count]

    return np.column_stack([xs[order], ys[order]]).astype(np.float64)


SPAWN_POLICIES: dict[str, SpawnPolicy] = {
    "weighted_random": spawn_weighted_random,
    "local_maxima": spawn_local_maxima,
}


class Brush:
    """Normalized radial stamp with weights ``max(0, radius - dist)``."""

    def __init__(self, radius: float):
        r = int(math.ceil(radius))
        dy, dx = np.mgrid[-r : r + 1, -r : r + 1]
        weights = np.maximum(0.0, radius - np.sqrt(dx**2 + dy**2))
        keep = weights > 0

        self.dy = dy[keep]
        self.dx = dx[keep]
        self.weights = weights[keep] / weights[keep].sum()

    def stamp(
        self,
        height: NDArray[np.float32],
        land_mask: NDArray[np.bool_],
        cx: int,
        cy: int,
        amount: float,
    ) -> None:
        """Add ``amount`` of material around a cell, in place.

        Weights outside the grid are dropped and the rest renormalized.
        Touched cells stay consistent with the land mask.
        """
        rows, cols = height.shape
        ys = cy + self.dy
        xs = cx + self.dx
        inside = (ys >= 0) & (ys < rows) & (xs >= 0) & (xs < cols)

        ys = ys[inside]
        xs = xs[inside]
        weights = self.weights[inside]
        weights = weights / weights.sum()

        values = height[ys, xs] + amount * weights
        height[ys, xs] = np.where(
            land_mask[ys, xs],
            np.maximum(values, LAND_FLOOR),
            np.minimum(values, 0.0),
        )


def nearest_cell(x: float, y: float) -> tuple[int, int]:
    """Cell containing a continuous position."""
    return int(math.floor(x + 0.5)), int(math.floor(y + 0.5))


def trace_droplet(
    height: NDArray[np.float32],
    land_mask: NDArray[np.bool_],
    start: tuple[float, float],
    brush: Brush,
    config: RiversConfig,
) -> RiverPath | None:
    """Run one droplet to termination, eroding ``height`` in place.

    Args:
        height: Height field, mutated by erosion and deposition.
        land_mask: Boolean mask where True = land.
        start: (x, y) spawn position.
        brush: Stamp used for erosion and deposition.
        config: River parameters.

    Returns:
        The droplet's RiverPath, or None if it exceeded ``max_steps``.
    """
    inertia = config.inertia
    x, y = start
    speed = 1.0
    water = 1.0
    sediment = 0.0
    slow_steps = 0

    h, grad_x, grad_y = height_and_gradient(height, x, y)
    # Start downhill so full inertia keeps the first slope
    dir_x, dir_y = -grad_x, -grad_y
    points = [RiverPoint(x, y, h, sediment, water)]

    def finish(termination: Termination, deposit: bool) -> RiverPath:
        if deposit:
            cx, cy = nearest_cell(points[-1].x, points[-1].y)
            if sediment > 0:
                brush.stamp(height, land_mask, cx, cy, sediment)
            last = points[-1]
            points[-1] = RiverPoint(
                last.x, last.y, last.elevation, 0.0, last.water, terminal_deposit=True
            )
        return RiverPath(points=tuple(points), termination=termination)

    for _ in range(config.max_steps):
        dir_x = dir_x * inertia - grad_x * (1.0 - inertia)
        dir_y = dir_y * inertia - grad_y * (1.0 - inertia)
        length = math.hypot(dir_x, dir_y)
        if length < MIN_DIRECTION:
            return finish(Termination.PIT, deposit=True)

        dir_x /= length
        dir_y /= length
        next_x = x + dir_x
        next_y = y + dir_y

        if not in_bounds(height, next_x, next_y):
            return finish(Termination.EDGE, deposit=False)

        next_h = bilinear_sample(height, next_x, next_y)
        dh = next_h - h
        if dh >= 0:
            return finish(Termination.PIT, deposit=True)

        cell_x, cell_y = nearest_cell(x, y)
        next_cell_x, next_cell_y = nearest_cell(next_x, next_y)

        if not land_mask[next_cell_y, next_cell_x]:
            # Drop the load on the shore before entering the sea
            path = finish(Termination.OCEAN, deposit=True)
            ocean_point = RiverPoint(next_x, next_y, next_h, 0.0, water, terminal_deposit=True)
            return RiverPath(points=path.points + (ocean_point,), termination=Termination.OCEAN)

        capacity = max(-dh, config.min_slope) * speed * water * config.capacity
        if sediment > capacity:
            amount = min((sediment - capacity) * config.deposition, -dh * 0.5)
            sediment -= amount
            brush.stamp(height, land_mask, cell_x, cell_y, amount)
        else:
            amount = min((capacity - sediment) * config.erosion, -dh)
            sediment += amount
            brush.stamp(height, land_mask, cell_x, cell_y, -amount)

        speed = math.sqrt(max(0.0, speed * speed - dh * config.gravity)) * (1.0 - config.friction)
        water *= 1.0 - config.evaporation
        x, y = next_x, next_y

        h, grad_x, grad_y = height_and_gradient(height, x, y)
        if h >= points[-1].elevation:
            # A stamp lifted the ground ahead
            return finish(Termination.PIT, deposit=True)

        points.append(RiverPoint(x, y, h, sediment, water))

        if water < config.min_water:
            return finish(Termination.EVAPORATED, deposit=False)

        if speed < config.min_speed:
            slow_steps += 1
            if slow_steps >= config.stall_steps:
                return finish(Termination.STALLED, deposit=True)
        else:
            slow_steps = 0

    return None


def accumulate_flow(
    paths: list[RiverPath],
    shape: tuple[int, int],
) -> NDArray[np.float32]:
    """Sum droplet water into the cells each path visits."""
    river_map = np.zeros(shape, dtype=np.float32)
    for path in paths:
        for point in path.points:
            cx, cy = nearest_cell(point.x, point.y)
            river_map[cy, cx] += point.water
    return river_map


def simulate_rivers(
    height: NDArray[np.float32],
    land_mask: NDArray[np.bool_],
    config: RiversConfig,
    seed: int,
) -> RiverResult:
    """Erode the height field with droplets and trace the river network.

    Args:
        height: Height field; not modified.
        land_mask: Boolean mask where True = land.
        config: River parameters.
        seed: World seed.

    Returns:
        RiverResult with the eroded height, droplet paths and flow maps.

    Raises:
        DropletBudgetError: If a droplet exceeds ``max_steps``.
    """
    rng = np.random.default_rng(seed_sequence(seed, RIVER_STREAM))
    eroded = height.astype(np.float32, copy=True)

    spawn = SPAWN_POLICIES[config.spawn_policy]
    starts = spawn(eroded, land_mask, config.droplet_count, rng)

    brush = Brush(config.point_radius)
    paths: list[RiverPath] = []

    for index, (x, y) in enumerate(starts):
        path = trace_droplet(eroded, land_mask, (float(x), float(y)), brush, config)
        if path is None:
            raise DropletBudgetError(
                f"Droplet {index} did not terminate within {config.max_steps} steps",
                seed=seed,
                parameters={"droplet": index, "start": (float(x), float(y))},
            )
        paths.append(path)

    river_map = accumulate_flow(paths, land_mask.shape)
    river_mask = (river_map >= config.river_threshold) & land_mask

    terminations = Counter(path.termination.value for path in paths)
    logger.info(
        f"Traced {len(paths)} droplets ({dict(sorted(terminations.items()))}), "
        f"{int(river_mask.sum()):,} river cells"
    )

    return RiverResult(
        height=eroded,
        paths=paths,
        river_map=river_map,
        river_mask=river_mask,
    )
