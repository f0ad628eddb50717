"""Tests for grid sampling helpers."""

import numpy as np
import pytest

from worldgen.grid import (
    WORLD_SCALE,
    bilinear_sample,
    cell_to_world,
    height_and_gradient,
    in_bounds,
    world_to_cell,
)


@pytest.fixture
def plane() -> np.ndarray:
    """16x16 plane rising 2 per column and 3 per row."""
    ys, xs = np.mgrid[0:16, 0:16]
    return (2.0 * xs + 3.0 * ys).astype(np.float32)


class TestCoordinates:
    """Tests for cell/world conversion."""

    def test_world_scale(self) -> None:
        """One cell spans WORLD_SCALE world units."""
        assert cell_to_world(3.0, 4.0) == (3.0 * WORLD_SCALE, 4.0 * WORLD_SCALE)
        assert world_to_cell(*cell_to_world(3.5, 7.25)) == (3.5, 7.25)

    def test_in_bounds(self, plane: np.ndarray) -> None:
        """Positions are in bounds up to the last cell centre."""
        assert in_bounds(plane, 0.0, 0.0)
        assert in_bounds(plane, 15.0, 15.0)
        assert not in_bounds(plane, 15.01, 3.0)
        assert not in_bounds(plane, 3.0, -0.01)


class TestSampling:
    """Tests for bilinear sampling and gradients."""

    def test_exact_on_cells(self, plane: np.ndarray) -> None:
        """Sampling at a cell returns its value."""
        assert bilinear_sample(plane, 5.0, 7.0) == pytest.approx(float(plane[7, 5]))

    def test_linear_between_cells(self, plane: np.ndarray) -> None:
        """A plane is reproduced exactly between cells."""
        assert bilinear_sample(plane, 4.25, 6.5) == pytest.approx(2.0 * 4.25 + 3.0 * 6.5)

    def test_clamped_outside(self, plane: np.ndarray) -> None:
        """Positions outside the grid clamp to the edge."""
        assert bilinear_sample(plane, -5.0, 0.0) == pytest.approx(0.0)
        assert bilinear_sample(plane, 40.0, 15.0) == pytest.approx(float(plane[15, 15]))

    def test_gradient_of_plane(self, plane: np.ndarray) -> None:
        """The gradient of a plane is its slope everywhere."""
        value, grad_x, grad_y = height_and_gradient(plane, 8.3, 2.6)

        assert value == pytest.approx(2.0 * 8.3 + 3.0 * 2.6, rel=1e-6)
        assert grad_x == pytest.approx(2.0)
        assert grad_y == pytest.approx(3.0)

    def test_gradient_at_last_cell(self, plane: np.ndarray) -> None:
        """The far edge uses the last full cell."""
        _, grad_x, grad_y = height_and_gradient(plane, 15.0, 15.0)
        assert grad_x == pytest.approx(2.0)
        assert grad_y == pytest.approx(3.0)
