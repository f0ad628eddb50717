"""Grid helpers: bilinear sampling, gradients, cell/world conversion.

Grids are numpy arrays of shape (height, width), indexed ``grid[y, x]``,
with the origin at the top-left cell.
"""

import math

import numpy as np
from numpy.typing import NDArray

# World units per grid cell
WORLD_SCALE = 2.0


def cell_to_world(x: float, y: float) -> tuple[float, float]:
    """Convert cell coordinates to world coordinates."""
    return x * WORLD_SCALE, y * WORLD_SCALE


def world_to_cell(world_x: float, world_y: float) -> tuple[float, float]:
    """Convert world coordinates to (fractional) cell coordinates."""
    return world_x / WORLD_SCALE, world_y / WORLD_SCALE


def in_bounds(field: NDArray, x: float, y: float) -> bool:
    """Whether a continuous position lies inside the grid."""
    height, width = field.shape
    return 0.0 <= x <= width - 1 and 0.0 <= y <= height - 1


def bilinear_sample(field: NDArray[np.float32], x: float, y: float) -> float:
    """Sample a grid at a continuous position.

    Positions outside the grid are clamped to the nearest edge cell.

    Args:
        field: 2D grid.
        x: Column coordinate (cells).
        y: Row coordinate (cells).

    Returns:
        Interpolated value.
    """
    height, width = field.shape
    x = min(max(x, 0.0), width - 1.0)
    y = min(max(y, 0.0), height - 1.0)

    ix = min(int(x), width - 2) if width > 1 else 0
    iy = min(int(y), height - 2) if height > 1 else 0
    fx = x - ix
    fy = y - iy

    ix1 = min(ix + 1, width - 1)
    iy1 = min(iy + 1, height - 1)

    tl = float(field[iy, ix])
    tr = float(field[iy, ix1])
    bl = float(field[iy1, ix])
    br = float(field[iy1, ix1])

    top = tl + (tr - tl) * fx
    bottom = bl + (br - bl) * fx
    return top + (bottom - top) * fy


def height_and_gradient(
    field: NDArray[np.float32], x: float, y: float
) -> tuple[float, float, float]:
    """Bilinear height and gradient inside the cell containing (x, y).

    The gradient is the derivative of the bilinear patch spanned by the
    four surrounding cells.

    Returns:
        Tuple of (height, d/dx, d/dy).
    """
    height, width = field.shape
    x = min(max(x, 0.0), width - 1.0)
    y = min(max(y, 0.0), height - 1.0)

    ix = min(int(math.floor(x)), max(width - 2, 0))
    iy = min(int(math.floor(y)), max(height - 2, 0))
    fx = x - ix
    fy = y - iy

    ix1 = min(ix + 1, width - 1)
    iy1 = min(iy + 1, height - 1)

    h00 = float(field[iy, ix])
    h10 = float(field[iy, ix1])
    h01 = float(field[iy1, ix])
    h11 = float(field[iy1, ix1])

    grad_x = (h10 - h00) * (1.0 - fy) + (h11 - h01) * fy
    grad_y = (h01 - h00) * (1.0 - fx) + (h11 - h10) * fx
    value = (
        h00 * (1.0 - fx) * (1.0 - fy)
        + h10 * fx * (1.0 - fy)
        + h01 * (1.0 - fx) * fy
        + h11 * fx * fy
    )
    return value, grad_x, grad_y
