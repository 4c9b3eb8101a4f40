"""Unit tests for obstacle placement, avoidance and wrap-aware displacement."""

import numpy as np
import pytest

from flockwar.core.env import (
    AVOID_MARGIN,
    Obstacle,
    ObstacleField,
    ObstacleKind,
    displacement,
    fold,
)
from flockwar.core.state import BoundaryMode

pytestmark = pytest.mark.unit

BOUNDS = (0.0, 1000.0, 0.0, 1000.0)


def field_with(*obstacles):
    return ObstacleField(BOUNDS, obstacles=list(obstacles), rng=np.random.default_rng(0))


class TestAvoidance:
    def test_force_inside_margin(self):
        field = field_with(Obstacle((500, 500), 50))
        # 10 from the surface: 5 / 10 along the outward normal
        assert field.avoidance(np.array([560.0, 500.0])) == pytest.approx([0.5, 0.0])

    def test_no_force_at_margin_edge(self):
        field = field_with(Obstacle((500, 500), 50))
        assert np.allclose(field.avoidance(np.array([500.0 + 50 + AVOID_MARGIN, 500.0])), 0.0)

    def test_inside_obstacle_uses_unit_floor(self):
        field = field_with(Obstacle((500, 500), 50))
        assert field.avoidance(np.array([520.0, 500.0])) == pytest.approx([5.0, 0.0])

    def test_center_is_skipped(self):
        field = field_with(Obstacle((500, 500), 50))
        assert np.allclose(field.avoidance(np.array([500.0, 500.0])), 0.0)

    def test_forces_are_additive(self):
        left = Obstacle((440, 500), 30)
        right = Obstacle((560, 500), 30)
        both = field_with(left, right)
        pos = np.array([500.0, 520.0])
        total = field_with(left).avoidance(pos) + field_with(right).avoidance(pos)
        assert both.avoidance(pos) == pytest.approx(total)
        # the x components cancel, leaving a push along +y
        assert both.avoidance(pos)[0] == pytest.approx(0.0)
        assert both.avoidance(pos)[1] > 0


class TestPlacement:
    def test_populate_places_primary_and_minors(self):
        field = ObstacleField((0.0, 1200.0, 0.0, 800.0), minor_count=5, rng=np.random.default_rng(3))
        field.populate()
        primary = field.primary
        assert primary is not None
        assert primary.center == pytest.approx([300.0, 240.0])
        assert primary.radius == pytest.approx(96.0)
        minors = [o for o in field.obstacles if o.kind is ObstacleKind.MINOR]
        assert len(minors) == 5
        for obs in minors:
            assert 15.0 <= obs.radius <= 35.0
            assert obs.radius <= obs.center[0] <= 1200.0 - obs.radius
            assert obs.radius <= obs.center[1] <= 800.0 - obs.radius

    def test_randomize_keeps_primary(self):
        field = ObstacleField(BOUNDS, minor_count=4, rng=np.random.default_rng(5))
        field.populate()
        primary = field.primary
        before = [o for o in field.obstacles if o.kind is ObstacleKind.MINOR]
        field.randomize_minor()
        after = [o for o in field.obstacles if o.kind is ObstacleKind.MINOR]
        assert field.primary is primary
        assert len(after) == 4
        assert all(a is not b for a, b in zip(after, before))

    def test_randomize_without_primary_places_only_minors(self):
        stray = Obstacle((100, 100), 20)
        field = ObstacleField(BOUNDS, obstacles=[stray], minor_count=3, rng=np.random.default_rng(2))
        assert field.primary is None
        field.randomize_minor()
        assert stray not in field.obstacles
        assert len(field.obstacles) == 3
        assert all(o.kind is ObstacleKind.MINOR for o in field.obstacles)

    def test_zero_minor_count(self):
        field = ObstacleField(BOUNDS, minor_count=0, rng=np.random.default_rng(1))
        field.populate()
        assert len(field.obstacles) == 1


class TestDisplacement:
    def test_clamp_is_plain_difference(self):
        d = displacement([10, 500], [990, 500], BOUNDS, BoundaryMode.CLAMP)
        assert d == pytest.approx([980.0, 0.0])

    def test_wrap_takes_short_way(self):
        d = displacement([10, 20], [990, 980], BOUNDS, BoundaryMode.WRAP)
        assert d == pytest.approx([-20.0, -40.0])

    def test_fold_batch(self):
        d = fold(np.array([[600.0, -600.0], [100.0, -100.0]]), 1000.0, 1000.0)
        assert d == pytest.approx(np.array([[-400.0, 400.0], [100.0, -100.0]]))
