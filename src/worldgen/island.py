"""Island shaping: reshape falloff, random zoom, area-constrained cutoff search."""

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .coastal import (
    IslandComponent,
    describe_components,
    enforce_border_ocean,
    fill_holes,
    remove_small_components,
)
from .config import IslandConfig
from .exceptions import IslandConvergenceError
from .noise import ISLAND_STREAM, NoiseBank, seed_sequence

logger = logging.getLogger(__name__)


@dataclass
class IslandShape:
    """Result of island shaping."""

    mask: NDArray[np.bool_]  # full resolution, True = land
    field: NDArray[np.float32]  # coarse reshaped noise that was thresholded
    cutoff: float
    land_fraction: float
    attempts: int
    components: list[IslandComponent]


def reshape_centres(
    rng: np.random.Generator,
    width: int,
    height: int,
    config: IslandConfig,
) -> NDArray[np.float64]:
    """Pick the centres the island is pulled toward.

    The first centre is the map centre; the rest are uniform within the
    map shrunk by ``reshape_margin`` on every side.

    Returns:
        Array of shape (reshape_points, 2) with (x, y) coordinates.
    """
    margin = min(width, height) * config.reshape_margin

    points = np.empty((config.reshape_points, 2), dtype=np.float64)
    points[0] = (width / 2, height / 2)

    extra = config.reshape_points - 1
    points[1:, 0] = rng.uniform(margin, width - margin, size=extra)
    points[1:, 1] = rng.uniform(margin, height - margin, size=extra)

    return points


def apply_reshape(
    field: NDArray[np.float32],
    centres: NDArray[np.float64],
    config: IslandConfig,
) -> NDArray[np.float32]:
    """Blend a field toward land near the centres and toward ocean far away.

    Each cell's falloff is ``1 - d / (min(size) * reshape_radius)`` where
    ``d`` is the distance to the nearest centre; the result is
    ``field * (1 - alpha) + falloff * alpha``.

    Args:
        field: Island noise in [0, 1].
        centres: Reshape centres from ``reshape_centres``.
        config: Island shaping parameters.

    Returns:
        Reshaped field.
    """
    height, width = field.shape
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64) + 0.5

    sq_dist = np.full((height, width), np.inf)
    for cx, cy in centres:
        np.minimum(sq_dist, (xs - cx) ** 2 + (ys - cy) ** 2, out=sq_dist)

    falloff = 1.0 - np.sqrt(sq_dist) / (min(width, height) * config.reshape_radius)

    alpha = config.reshape_alpha
    return (field * (1.0 - alpha) + falloff * alpha).astype(np.float32)


def random_zoom(
    land_mask: NDArray[np.bool_],
    rng: np.random.Generator,
) -> NDArray[np.bool_]:
    """Double the mask resolution with stochastic edges.

    Each child cell is land with probability equal to the land share of its
    parent cell and the parent's in-bounds 4-neighbours.
    """
    values = np.pad(land_mask.astype(np.float32), 1)
    inside = np.pad(np.ones(land_mask.shape, dtype=np.float32), 1)

    total = (
        values[1:-1, 1:-1]
        + values[:-2, 1:-1]
        + values[2:, 1:-1]
        + values[1:-1, :-2]
        + values[1:-1, 2:]
    )
    count = (
        inside[1:-1, 1:-1]
        + inside[:-2, 1:-1]
        + inside[2:, 1:-1]
        + inside[1:-1, :-2]
        + inside[1:-1, 2:]
    )

    p = np.repeat(np.repeat(total / count, 2, axis=0), 2, axis=1)
    return rng.random(p.shape) < p


def shape_mask(
    field: NDArray[np.float32],
    cutoff: float,
    config: IslandConfig,
    zoom_seed: np.random.SeedSequence,
) -> tuple[NDArray[np.bool_], float]:
    """Build the full-resolution island mask for one cutoff.

    Pure function of its inputs: the zoom generator is rebuilt from
    ``zoom_seed`` on every call.

    Args:
        field: Coarse reshaped island field.
        cutoff: Land threshold.
        config: Island shaping parameters.
        zoom_seed: Seed for the random zoom passes.

    Returns:
        Tuple of (land mask, land fraction).
    """
    rng = np.random.default_rng(zoom_seed)

    mask = fill_holes(field > cutoff)
    for _ in range(config.zoom_steps):
        mask = random_zoom(mask, rng)

    mask = fill_holes(mask)
    mask = enforce_border_ocean(mask, config.border_width)
    mask = remove_small_components(mask, config.min_island_area)

    return mask, float(np.mean(mask))


def search_cutoff(
    evaluate: Callable[[float], float],
    initial: float,
    lo: float,
    hi: float,
    bounds: tuple[float, float],
    iterations: int,
) -> float | None:
    """Bisect for a cutoff whose land fraction lies within bounds.

    Land fraction is assumed to decrease as the cutoff rises. The initial
    cutoff is tried first.

    Args:
        evaluate: Maps a cutoff to a land fraction.
        initial: First cutoff to try.
        lo: Lowest cutoff considered.
        hi: Highest cutoff considered.
        bounds: Inclusive (min, max) land fraction.
        iterations: Maximum number of evaluations.

    Returns:
        A cutoff within bounds, or None if none was found.
    """
    min_fraction, max_fraction = bounds
    cutoff = min(max(initial, lo), hi)

    for i in range(iterations):
        fraction = evaluate(cutoff)
        logger.debug(f"Cutoff search {i}: cutoff={cutoff:.4f} land={fraction:.2%}")

        if min_fraction <= fraction <= max_fraction:
            return cutoff

        if fraction > max_fraction:
            lo = cutoff
        else:
            hi = cutoff
        cutoff = (lo + hi) / 2

    return None


def shape_island(noise_bank: NoiseBank, config: IslandConfig) -> IslandShape:
    """Shape the island mask within the configured land-area bounds.

    Each attempt draws new reshape centres and searches for a cutoff; the
    island noise itself is shared by all attempts.

    Args:
        noise_bank: Noise channels for this world.
        config: Island shaping parameters.

    Returns:
        IslandShape with the final mask and retained components.

    Raises:
        IslandConvergenceError: If no attempt reaches the area bounds.
    """
    width, height = config.size
    scale = 2**config.zoom_steps
    coarse_width, coarse_height = width // scale, height // scale

    # Coarse cells sample at the centre of the fine cells they cover
    noise = noise_bank.field_unit(
        "island",
        coarse_width,
        coarse_height,
        step=float(scale),
        origin=(scale - 1) / 2,
    )

    bounds = (config.min_total_area, config.max_total_area)

    for attempt in range(config.max_attempts):
        reshape_seed, zoom_seed = seed_sequence(
            noise_bank.seed, ISLAND_STREAM, attempt
        ).spawn(2)

        rng = np.random.default_rng(reshape_seed)
        centres = reshape_centres(rng, coarse_width, coarse_height, config)
        shaped = apply_reshape(noise, centres, config)

        evaluate = functools.partial(_land_fraction, shaped, config, zoom_seed)
        cutoff = search_cutoff(
            evaluate,
            config.cutoff,
            float(shaped.min()),
            float(shaped.max()),
            bounds,
            config.search_iterations,
        )

        if cutoff is None:
            logger.info(f"Island attempt {attempt + 1} missed area bounds, reshaping")
            continue

        mask, fraction = shape_mask(shaped, cutoff, config, zoom_seed)
        components = describe_components(mask)

        logger.info(
            f"Island cutoff: {cutoff:.3f}, land fraction: {fraction:.2%}, "
            f"{len(components)} islands"
        )

        return IslandShape(
            mask=mask,
            field=shaped,
            cutoff=cutoff,
            land_fraction=fraction,
            attempts=attempt + 1,
            components=components,
        )

    raise IslandConvergenceError(
        f"Land fraction never reached [{bounds[0]}, {bounds[1]}] "
        f"in {config.max_attempts} attempts",
        seed=noise_bank.seed,
        parameters=config.model_dump(),
    )


def _land_fraction(
    field: NDArray[np.float32],
    config: IslandConfig,
    zoom_seed: np.random.SeedSequence,
    cutoff: float,
) -> float:
    return shape_mask(field, cutoff, config, zoom_seed)[1]
