"""Tests for droplet erosion and river tracing."""

import numpy as np
import pytest

from worldgen.config import RiversConfig
from worldgen.exceptions import DropletBudgetError
from worldgen.height import LAND_FLOOR
from worldgen.rivers import (
    SPAWN_POLICIES,
    Brush,
    RiverPath,
    RiverPoint,
    Termination,
    accumulate_flow,
    simulate_rivers,
    spawn_local_maxima,
    spawn_weighted_random,
    trace_droplet,
)


def _ramp(width: int = 64, height: int = 64) -> np.ndarray:
    """Plane rising toward +x."""
    xs = np.tile(np.arange(width, dtype=np.float32), (height, 1))
    return 1.0 + 0.5 * xs


def _is_descending(path: RiverPath) -> bool:
    return all(
        point.elevation < prev.elevation or point.terminal_deposit
        for prev, point in zip(path.points, path.points[1:])
    )


class TestBrush:
    """Tests for the radial erosion brush."""

    def test_weights_normalized(self) -> None:
        """Brush weights sum to one and peak at the centre."""
        brush = Brush(2.0)
        assert brush.weights.sum() == pytest.approx(1.0)
        centre = np.argmax(brush.weights)
        assert brush.dx[centre] == 0 and brush.dy[centre] == 0

    def test_stamp_conserves_material(self) -> None:
        """An interior stamp adds exactly the stamped amount."""
        height = np.full((20, 20), 10.0, dtype=np.float32)
        land_mask = np.ones((20, 20), dtype=bool)
        Brush(2.5).stamp(height, land_mask, 10, 10, 3.0)

        assert height.sum() == pytest.approx(400 * 10.0 + 3.0, rel=1e-5)

    def test_stamp_clipped_at_edge(self) -> None:
        """Stamps at the corner keep the full amount inside the grid."""
        height = np.full((10, 10), 10.0, dtype=np.float32)
        land_mask = np.ones((10, 10), dtype=bool)
        Brush(2.0).stamp(height, land_mask, 0, 0, 2.0)

        assert height.sum() == pytest.approx(100 * 10.0 + 2.0, rel=1e-5)

    def test_stamp_respects_mask(self) -> None:
        """Erosion never sinks land below the floor; deposits never raise ocean."""
        height = np.full((9, 9), 0.5, dtype=np.float32)
        land_mask = np.ones((9, 9), dtype=bool)
        land_mask[:, :4] = False
        height[~land_mask] = -0.1
        brush = Brush(3.0)

        brush.stamp(height, land_mask, 4, 4, -50.0)
        assert (height[land_mask] >= np.float32(LAND_FLOOR)).all()

        brush.stamp(height, land_mask, 4, 4, 50.0)
        assert (height[~land_mask] <= 0).all()


class TestSpawnPolicies:
    """Tests for droplet spawn selection."""

    def test_registry(self) -> None:
        """Both policies are registered by name."""
        assert SPAWN_POLICIES["weighted_random"] is spawn_weighted_random
        assert SPAWN_POLICIES["local_maxima"] is spawn_local_maxima

    def test_weighted_random_on_land(self) -> None:
        """Weighted spawns fall in land cells."""
        height = _ramp(32, 32)
        land_mask = np.zeros((32, 32), dtype=bool)
        land_mask[8:24, 8:24] = True
        points = spawn_weighted_random(height, land_mask, 50, np.random.default_rng(0))

        assert points.shape == (50, 2)
        cells = np.floor(points + 0.5).astype(int)
        assert land_mask[cells[:, 1], cells[:, 0]].all()

    def test_weighted_random_prefers_high_ground(self) -> None:
        """Higher cells are drawn more often."""
        height = _ramp(32, 32)
        land_mask = np.ones((32, 32), dtype=bool)
        points = spawn_weighted_random(height, land_mask, 400, np.random.default_rng(1))

        assert np.mean(points[:, 0]) > 16.0

    def test_weighted_random_no_land(self) -> None:
        """No land means no spawns."""
        height = _ramp(8, 8)
        points = spawn_weighted_random(
            height, np.zeros((8, 8), dtype=bool), 10, np.random.default_rng(0)
        )
        assert points.shape == (0, 2)

    def test_local_maxima_highest_first(self) -> None:
        """Peaks come out highest first."""
        height = np.zeros((20, 20), dtype=np.float32)
        height[5, 5] = 3.0
        height[12, 14] = 7.0
        land_mask = height > 0
        points = spawn_local_maxima(height, land_mask, 5, np.random.default_rng(0))

        np.testing.assert_array_equal(points, [[14.0, 12.0], [5.0, 5.0]])


class TestTraceDroplet:
    """Tests for a single droplet."""

    def test_runs_off_edge_descending(self) -> None:
        """A droplet on a slope descends until it leaves the map."""
        height = _ramp()
        land_mask = np.ones(height.shape, dtype=bool)
        path = trace_droplet(height, land_mask, (60.0, 32.0), Brush(2.0), RiversConfig())

        assert path is not None
        assert path.termination == Termination.EDGE
        assert path.reached_outlet
        assert len(path.points) > 50
        assert _is_descending(path)

    def test_full_inertia_runs_straight(self) -> None:
        """With inertia 1 the droplet keeps its first downhill heading."""
        height = _ramp()
        land_mask = np.ones(height.shape, dtype=bool)
        config = RiversConfig(inertia=1.0)
        path = trace_droplet(height, land_mask, (60.0, 32.0), Brush(2.0), config)

        assert path.termination == Termination.EDGE
        assert len(path.points) > 50
        assert all(point.y == 32.0 for point in path.points)

    def test_reaches_ocean(self) -> None:
        """A droplet running into the sea stops with a shore deposit."""
        height = _ramp()
        land_mask = np.ones(height.shape, dtype=bool)
        land_mask[:, :10] = False
        height[~land_mask] = -1.0
        path = trace_droplet(height, land_mask, (40.0, 32.0), Brush(2.0), RiversConfig())

        assert path.termination == Termination.OCEAN
        assert path.points[-1].terminal_deposit
        assert path.points[-1].x < 9.5
        assert _is_descending(path)

    def test_flat_ground_is_pit(self) -> None:
        """No downhill direction ends the droplet immediately."""
        height = np.full((16, 16), 5.0, dtype=np.float32)
        land_mask = np.ones((16, 16), dtype=bool)
        path = trace_droplet(height, land_mask, (8.0, 8.0), Brush(2.0), RiversConfig())

        assert path.termination == Termination.PIT
        assert len(path.points) == 1
        assert path.points[0].terminal_deposit

    def test_bowl_ends_in_basin(self) -> None:
        """A droplet in a bowl stops near the bottom with a deposit."""
        ys, xs = np.mgrid[0:64, 0:64]
        height = (1.0 + 0.01 * ((xs - 32) ** 2 + (ys - 32) ** 2)).astype(np.float32)
        land_mask = np.ones(height.shape, dtype=bool)
        path = trace_droplet(height, land_mask, (45.3, 32.0), Brush(2.0), RiversConfig())

        assert path.termination in (Termination.PIT, Termination.STALLED)
        assert path.points[-1].terminal_deposit
        assert abs(path.points[-1].x - 32.0) < 6.0
        assert _is_descending(path)

    def test_evaporates(self) -> None:
        """Heavy evaporation ends the droplet."""
        height = _ramp()
        land_mask = np.ones(height.shape, dtype=bool)
        config = RiversConfig(evaporation=0.5, min_water=0.1)
        path = trace_droplet(height, land_mask, (60.0, 32.0), Brush(2.0), config)

        assert path.termination == Termination.EVAPORATED
        assert path.points[-1].water < 0.1

    def test_budget_exhausted(self) -> None:
        """Running out of steps returns None."""
        height = _ramp()
        land_mask = np.ones(height.shape, dtype=bool)
        config = RiversConfig(max_steps=3)
        assert trace_droplet(height, land_mask, (60.0, 32.0), Brush(2.0), config) is None


class TestSimulateRivers:
    """Tests for the sequential droplet simulation."""

    @pytest.fixture
    def island(self) -> tuple[np.ndarray, np.ndarray]:
        """Cone-shaped island on a 64x64 grid."""
        ys, xs = np.mgrid[0:64, 0:64]
        dist = np.hypot(xs - 31.5, ys - 31.5)
        land_mask = dist <= 24
        height = np.where(land_mask, 30.0 * (1.0 - dist / 25.0), -5.0).astype(np.float32)
        return height, land_mask

    def test_rivers_reach_the_sea(self, island: tuple[np.ndarray, np.ndarray]) -> None:
        """Droplets on a cone run down to the ocean."""
        height, land_mask = island
        config = RiversConfig(droplet_count=20)
        result = simulate_rivers(height, land_mask, config, seed=5)

        assert len(result.paths) == 20
        assert any(path.termination == Termination.OCEAN for path in result.paths)
        assert all(_is_descending(path) for path in result.paths)

    def test_full_inertia_still_flows(self, island: tuple[np.ndarray, np.ndarray]) -> None:
        """Inertia 1 gives straight rivers rather than single-point pits."""
        height, land_mask = island
        config = RiversConfig(inertia=1.0, droplet_count=20)
        result = simulate_rivers(height, land_mask, config, seed=5)

        assert any(len(path.points) > 1 for path in result.paths)
        assert any(path.reached_outlet for path in result.paths)
        assert all(_is_descending(path) for path in result.paths)

    def test_input_not_modified(self, island: tuple[np.ndarray, np.ndarray]) -> None:
        """Erosion works on a copy of the height field."""
        height, land_mask = island
        original = height.copy()
        result = simulate_rivers(height, land_mask, RiversConfig(droplet_count=10), seed=5)

        np.testing.assert_array_equal(height, original)
        assert not np.array_equal(result.height, original)

    def test_eroded_height_consistent(self, island: tuple[np.ndarray, np.ndarray]) -> None:
        """Erosion keeps land above and ocean at or below sea level."""
        height, land_mask = island
        result = simulate_rivers(height, land_mask, RiversConfig(droplet_count=30), seed=6)

        assert (result.height[land_mask] > 0).all()
        assert (result.height[~land_mask] <= 0).all()
        assert not (result.river_mask & ~land_mask).any()

    def test_deterministic(self, island: tuple[np.ndarray, np.ndarray]) -> None:
        """Same seed gives identical paths and heights."""
        height, land_mask = island
        config = RiversConfig(droplet_count=15)
        a = simulate_rivers(height, land_mask, config, seed=7)
        b = simulate_rivers(height, land_mask, config, seed=7)

        assert a.paths == b.paths
        np.testing.assert_array_equal(a.height, b.height)

    def test_budget_error(
        self,
        island: tuple[np.ndarray, np.ndarray],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A droplet that runs out of steps aborts the simulation."""
        height, land_mask = island
        monkeypatch.setitem(
            SPAWN_POLICIES,
            "local_maxima",
            lambda h, m, count, rng: np.array([[31.0, 20.0]]),
        )
        config = RiversConfig(spawn_policy="local_maxima", max_steps=2)

        with pytest.raises(DropletBudgetError) as exc_info:
            simulate_rivers(height, land_mask, config, seed=8)

        assert exc_info.value.seed == 8
        assert exc_info.value.parameters["droplet"] == 0


class TestAccumulateFlow:
    """Tests for the river map."""

    def test_water_summed_per_cell(self) -> None:
        """Paths add their water to the cells they visit."""
        path = RiverPath(
            points=(
                RiverPoint(1.0, 1.0, 5.0, 0.0, 1.0),
                RiverPoint(2.2, 1.1, 4.0, 0.0, 0.5),
            ),
            termination=Termination.PIT,
        )
        river_map = accumulate_flow([path, path], (4, 4))

        assert river_map[1, 1] == pytest.approx(2.0)
        assert river_map[1, 2] == pytest.approx(1.0)
        assert river_map.sum() == pytest.approx(3.0)
