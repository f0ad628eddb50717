"""Post-generation validation of world invariants."""

import logging

import numpy as np
from numpy.typing import NDArray

from .coastal import label_components
from .config import WorldgenConfig
from .rivers import RiverPath
from .topography import ContourSet, iso_levels

logger = logging.getLogger(__name__)


class ValidationResult:
    """Result of world validation."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def validate_terrain(
    land_mask: NDArray[np.bool_],
    height: NDArray[np.float32],
    rivers: list[RiverPath],
    contours: ContourSet,
    config: WorldgenConfig,
) -> ValidationResult:
    """Validate generated terrain against its invariants.

    Args:
        land_mask: Final island mask.
        height: Final (eroded) height field.
        rivers: Droplet paths.
        contours: Extracted contours.
        config: Generation configuration.

    Returns:
        ValidationResult with any errors/warnings.
    """
    result = ValidationResult()

    _check_land_fraction(land_mask, config, result)
    _check_small_islands(land_mask, config.island.min_island_area, result)
    _check_border_water(land_mask, config.island.border_width, result)
    _check_height_consistency(land_mask, height, result)
    _check_river_descent(rivers, result)
    _check_contours(contours, config, result)

    if result.passed:
        logger.info("Terrain validation passed")
    else:
        logger.warning(f"Terrain validation failed with {len(result.errors)} errors")
        for error in result.errors:
            logger.error(f"  - {error}")

    for warning in result.warnings:
        logger.warning(f"  - {warning}")

    return result


def _check_land_fraction(
    land_mask: NDArray[np.bool_],
    config: WorldgenConfig,
    result: ValidationResult,
) -> None:
    """Check the land fraction lies within the configured bounds."""
    fraction = float(np.mean(land_mask))
    lo, hi = config.island.min_total_area, config.island.max_total_area

    if not lo <= fraction <= hi:
        result.add_error(f"Land fraction {fraction:.2%} outside [{lo:.2%}, {hi:.2%}]")


def _check_small_islands(
    land_mask: NDArray[np.bool_],
    min_island_area: float,
    result: ValidationResult,
) -> None:
    """Check no land component is below the minimum island area."""
    labeled, num_features = label_components(land_mask)
    if num_features == 0:
        result.add_warning("No land")
        return

    sizes = np.bincount(labeled.ravel())[1:]
    tiny = int(np.sum(sizes / land_mask.size < min_island_area))

    if tiny > 0:
        result.add_error(f"{tiny} islands smaller than {min_island_area:.2%} of the map")


def _check_border_water(
    land_mask: NDArray[np.bool_],
    border_width: int,
    result: ValidationResult,
) -> None:
    """Check that the border is water."""
    if border_width <= 0:
        return

    border = np.zeros_like(land_mask)
    border[:border_width, :] = True
    border[-border_width:, :] = True
    border[:, :border_width] = True
    border[:, -border_width:] = True

    non_water = int(np.sum(land_mask & border))
    if non_water > 0:
        result.add_error(f"Border has {non_water} land cells")


def _check_height_consistency(
    land_mask: NDArray[np.bool_],
    height: NDArray[np.float32],
    result: ValidationResult,
) -> None:
    """Check land is above sea level and ocean is not."""
    low_land = int(np.sum(land_mask & (height <= 0)))
    high_ocean = int(np.sum(~land_mask & (height > 0)))

    if low_land > 0:
        result.add_error(f"{low_land} land cells at or below sea level")
    if high_ocean > 0:
        result.add_error(f"{high_ocean} ocean cells above sea level")


def _check_river_descent(
    rivers: list[RiverPath],
    result: ValidationResult,
) -> None:
    """Check every river descends strictly, except at terminal deposits."""
    ascending = 0
    for path in rivers:
        for prev, point in zip(path.points, path.points[1:]):
            if point.elevation >= prev.elevation and not point.terminal_deposit:
                ascending += 1

    if ascending > 0:
        result.add_error(f"{ascending} river steps do not descend")

    if rivers and not any(path.reached_outlet for path in rivers):
        result.add_warning("No river reached the ocean or the map edge")


def _check_contours(
    contours: ContourSet,
    config: WorldgenConfig,
    result: ValidationResult,
) -> None:
    """Check every iso-level is present and polylines are well formed."""
    expected = iso_levels(config.topography)

    if list(contours.levels) != expected:
        result.add_error(
            f"Expected {len(expected)} contour levels, got {len(contours.levels)}"
        )

    degenerate = sum(
        1
        for lines in contours.contours.values()
        for contour in lines
        if len(contour.points) < 2
    )
    if degenerate > 0:
        result.add_warning(f"{degenerate} contours have fewer than two points")
