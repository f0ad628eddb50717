"""Coastal helpers: connected components, hole filling, distance fields."""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

# 4-connected neighbourhood
FOUR_CONNECTED = ndimage.generate_binary_structure(2, 1)


@dataclass(frozen=True)
class IslandComponent:
    """A retained connected land component."""

    label: int
    area: int  # cells
    area_fraction: float  # of all map cells
    centroid: tuple[float, float]  # (x, y) in cells
    bbox: tuple[int, int, int, int]  # (x0, y0, x1, y1), end-exclusive


def label_components(
    land_mask: NDArray[np.bool_],
) -> tuple[NDArray[np.int32], int]:
    """Label 4-connected land components.

    Args:
        land_mask: Boolean mask where True = land.

    Returns:
        Tuple of (label array, number of components). Label 0 is water.
    """
    labeled, num_features = ndimage.label(land_mask, structure=FOUR_CONNECTED)
    return labeled.astype(np.int32), int(num_features)


def remove_small_components(
    land_mask: NDArray[np.bool_],
    min_fraction: float,
) -> NDArray[np.bool_]:
    """Drop land components smaller than a fraction of the map.

    Args:
        land_mask: Boolean mask where True = land.
        min_fraction: Minimum component area as a fraction of all cells.

    Returns:
        Land mask with small components turned into water.
    """
    labeled, num_features = label_components(land_mask)

    if num_features == 0:
        return land_mask.copy()

    sizes = np.bincount(labeled.ravel(), minlength=num_features + 1)
    keep = sizes / land_mask.size >= min_fraction
    keep[0] = False

    return keep[labeled]


def fill_holes(land_mask: NDArray[np.bool_]) -> NDArray[np.bool_]:
    """Turn water regions enclosed by land into land.

    Water is only kept where it connects (4-connected) to the map border.
    """
    return ndimage.binary_fill_holes(land_mask, structure=FOUR_CONNECTED)


def enforce_border_ocean(
    land_mask: NDArray[np.bool_],
    border_width: int,
) -> NDArray[np.bool_]:
    """Force a water border around the edges.

    Args:
        land_mask: Boolean mask where True = land.
        border_width: Width of guaranteed water border.

    Returns:
        Land mask with forced water border.
    """
    result = land_mask.copy()
    if border_width <= 0:
        return result

    result[:border_width, :] = False
    result[-border_width:, :] = False
    result[:, :border_width] = False
    result[:, -border_width:] = False

    return result


def describe_components(land_mask: NDArray[np.bool_]) -> list[IslandComponent]:
    """Summarize each connected land component, largest first."""
    labeled, num_features = label_components(land_mask)
    if num_features == 0:
        return []

    index = range(1, num_features + 1)
    sizes = ndimage.sum(land_mask, labeled, index)
    centroids = ndimage.center_of_mass(land_mask, labeled, index)
    slices = ndimage.find_objects(labeled)

    components = []
    for label, size, (cy, cx), sl in zip(index, sizes, centroids, slices):
        rows, cols = sl
        components.append(
            IslandComponent(
                label=label,
                area=int(size),
                area_fraction=float(size) / land_mask.size,
                centroid=(float(cx), float(cy)),
                bbox=(cols.start, rows.start, cols.stop, rows.stop),
            )
        )

    components.sort(key=lambda c: (-c.area, c.label))
    return components


def compute_distance_to_water(
    land_mask: NDArray[np.bool_],
    river_mask: NDArray[np.bool_] | None = None,
) -> NDArray[np.float32]:
    """Compute distance from each land cell to nearest water.

    Args:
        land_mask: Boolean mask where True = land.
        river_mask: Optional river mask to treat as water.

    Returns:
        Distance field (0 on water, 1 on land next to water, increasing inland).
    """
    # Combined water mask: ocean + rivers
    water_mask = ~land_mask
    if river_mask is not None:
        water_mask = water_mask | river_mask

    distance = ndimage.distance_transform_edt(~water_mask).astype(np.float32)

    return distance


def compute_distance_to_land(
    land_mask: NDArray[np.bool_],
) -> NDArray[np.float32]:
    """Compute distance from each water cell to nearest land.

    Args:
        land_mask: Boolean mask where True = land.

    Returns:
        Distance field (0 on land, increasing into water).
    """
    distance = ndimage.distance_transform_edt(~land_mask).astype(np.float32)

    return distance


def signed_shore_distance(land_mask: NDArray[np.bool_]) -> NDArray[np.float32]:
    """Distance to the shoreline, positive on land and negative on water."""
    inland = compute_distance_to_water(land_mask)
    offshore = compute_distance_to_land(land_mask)
    return np.where(land_mask, inland, -offshore).astype(np.float32)


def generate_shore_map(
    land_mask: NDArray[np.bool_],
    river_map: NDArray[np.float32],
    shore_width: float = 3.0,
) -> NDArray[np.float32]:
    """Proximity-to-water mask for foliage and shading.

    Combines normalized river flow with a ramp that is 1 on water and fades
    to 0 ``shore_width`` cells inland, then blurs and saturates it.

    Args:
        land_mask: Boolean mask where True = land.
        river_map: Accumulated river flow per cell.
        shore_width: Width of the coastal ramp in cells.

    Returns:
        Shore map in [0, 1].
    """
    max_flow = float(river_map.max()) if river_map.size else 0.0
    rivers = river_map / max_flow if max_flow > 0 else np.zeros_like(river_map)

    inland = compute_distance_to_water(land_mask)
    coast = 1.0 - np.clip(inland / shore_width, 0.0, 1.0)

    shore = np.maximum(rivers, coast)
    shore = ndimage.gaussian_filter(shore, sigma=1.5)
    shore = np.minimum(shore / 0.1, 1.0)
    shore = ndimage.gaussian_filter(shore, sigma=1.0)

    return np.clip(shore, 0.0, 1.0).astype(np.float32)
