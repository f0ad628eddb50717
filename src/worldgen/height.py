"""Height field synthesis: shore distance, beach blend, warped mountains."""

import logging

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

from .coastal import signed_shore_distance
from .config import HeightConfig
from .noise import NoiseBank, domain_warp, smoothstep

logger = logging.getLogger(__name__)

# Lowest elevation a land cell may have; keeps land strictly above sea level
LAND_FLOOR = 1e-3

# Domain offset of the second warp sample, far enough to decorrelate it
WARP_OFFSET = 1000.0


def make_mountain_noise(
    noise_bank: NoiseBank,
    width: int,
    height: int,
    warp_dist: float,
) -> NDArray[np.float32]:
    """Height noise in [0, 1], domain-warped by the warp channel.

    Args:
        noise_bank: Noise channels for this world.
        width: Grid width in cells.
        height: Grid height in cells.
        warp_dist: Maximum warp displacement in cells, 0 disables.

    Returns:
        2D mountain noise array.
    """
    base = noise_bank.field_unit("height", width, height)
    if warp_dist == 0:
        return base

    warp_x = noise_bank.field("height_warp", width, height) * warp_dist
    warp_y = (
        noise_bank.field("height_warp", width, height, offset=(WARP_OFFSET, WARP_OFFSET))
        * warp_dist
    )

    return domain_warp(base, warp_x, warp_y)


def clamp_to_mask(
    heights: NDArray[np.float32],
    land_mask: NDArray[np.bool_],
) -> NDArray[np.float32]:
    """Force ocean cells to <= 0 and land cells to >= LAND_FLOOR."""
    return np.where(
        land_mask,
        np.maximum(heights, LAND_FLOOR),
        np.minimum(heights, 0.0),
    ).astype(np.float32)


def shape_heights(
    land_mask: NDArray[np.bool_],
    mountain_noise: NDArray[np.float32],
    config: HeightConfig,
) -> NDArray[np.float32]:
    """Combine shore distance and mountain noise into raw heights.

    Ocean deepens with distance offshore down to ``-ocean_depth``. Land rises
    from the shore through a beach blend toward
    ``land_height + (peak_height - land_height) * noise ** mountain_power``.

    Args:
        land_mask: Boolean mask where True = land.
        mountain_noise: Mountain noise in [0, 1].
        config: Height parameters.

    Returns:
        Unsmoothed height field.
    """
    distance = signed_shore_distance(land_mask)

    # Ocean: deeper offshore
    beach = max(config.beach_size, 1.0)
    ocean = -config.ocean_depth * np.clip(-distance / (2.0 * beach), 0.0, 1.0)

    # Land: mountains faded to zero at the shoreline
    mountain = config.land_height + (config.peak_height - config.land_height) * (
        mountain_noise**config.mountain_power
    )
    blend = smoothstep(0.0, config.beach_size, distance)

    return np.where(land_mask, blend * mountain, ocean).astype(np.float32)


def generate_height_map(
    noise_bank: NoiseBank,
    land_mask: NDArray[np.bool_],
    config: HeightConfig,
) -> NDArray[np.float32]:
    """Synthesize the elevation field for an island mask.

    Args:
        noise_bank: Noise channels for this world.
        land_mask: Boolean mask where True = land.
        config: Height parameters.

    Returns:
        Height field with ocean <= 0 and land >= LAND_FLOOR.
    """
    height, width = land_mask.shape

    mountain_noise = make_mountain_noise(noise_bank, width, height, config.warp_dist)
    heights = shape_heights(land_mask, mountain_noise, config)

    if config.smoothing > 0:
        heights = ndimage.gaussian_filter(heights, sigma=config.smoothing)

    heights = clamp_to_mask(heights, land_mask)

    if land_mask.any():
        logger.info(
            f"Height range: {heights.min():.2f} to {heights.max():.2f}, "
            f"mean land height {heights[land_mask].mean():.2f}"
        )

    return heights
