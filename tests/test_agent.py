"""Unit tests for Agent motion integration."""

import math

import numpy as np
import pytest

from flockwar.core.agent import HARD_MARGIN, MAX_FORCE, Agent
from flockwar.core.state import AgentState, BoundaryMode, Faction, FlockParams, HeroRole, Projectile

pytestmark = pytest.mark.unit

BOUNDS = (0.0, 1000.0, 0.0, 1000.0)


def make_agent(pos=(500.0, 500.0), vel=(1.5, 0.0), max_speed=2.0, hero=HeroRole.NONE, seed=0):
    st = AgentState(
        id=0,
        pos=np.array(pos, dtype=float),
        vel=np.array(vel, dtype=float),
        faction=Faction.BLUE,
        hero=hero,
    )
    return Agent(st, FlockParams(max_speed=max_speed), rng=np.random.default_rng(seed))


def step(agent, trail_length=10, dt=1.0):
    agent.integrate(dt, BOUNDS, BoundaryMode.CLAMP, trail_length)


class TestSpeedLimits:
    def test_speed_clamped_to_max(self):
        a = make_agent(vel=(10.0, 0.0))
        step(a)
        assert a.speed == pytest.approx(2.0)
        assert a.state.vel[1] == pytest.approx(0.0)

    def test_slow_agent_raised_to_floor_keeping_heading(self):
        a = make_agent(vel=(0.0, 0.1))
        step(a)
        assert a.speed == pytest.approx(1.2)
        assert a.heading == pytest.approx(math.pi / 2)

    def test_stalled_agent_gets_floor_speed(self):
        a = make_agent(vel=(0.0, 0.0))
        step(a)
        assert a.speed == pytest.approx(1.2)

    def test_force_is_clamped(self):
        a = make_agent(vel=(1.5, 0.0))
        a.apply_force(np.array([100.0, 0.0]))
        step(a)
        assert a.state.vel[0] == pytest.approx(1.5 + MAX_FORCE)

    def test_speed_band_holds_under_random_forces(self):
        rng = np.random.default_rng(7)
        for _ in range(200):
            a = make_agent(
                pos=rng.uniform(200, 800, size=2),
                vel=rng.uniform(-5, 5, size=2),
                seed=int(rng.integers(1000)),
            )
            a.apply_force(rng.uniform(-2, 2, size=2))
            step(a, dt=rng.uniform(0.1, 3.0))
            assert 1.2 - 1e-9 <= a.speed <= 2.0 + 1e-9

    def test_hero_flies_faster(self):
        a = make_agent(vel=(10.0, 0.0), hero=HeroRole.ELITE_BLUE)
        step(a)
        assert a.speed == pytest.approx(2.6)


class TestBoundaries:
    def test_hard_clamp_under_extreme_force(self):
        a = make_agent(pos=(990.0, 500.0), vel=(2.0, 0.0))
        for _ in range(50):
            a.apply_force(np.array([1e6, 0.0]))
            step(a, dt=3.0)
            assert HARD_MARGIN <= a.state.pos[0] <= 1000.0 - HARD_MARGIN
            assert HARD_MARGIN <= a.state.pos[1] <= 1000.0 - HARD_MARGIN

    def test_lower_edge_clamp(self):
        a = make_agent(pos=(3.0, 3.0), vel=(-2.0, -2.0))
        step(a, dt=3.0)
        assert a.state.pos[0] == pytest.approx(HARD_MARGIN)
        assert a.state.pos[1] == pytest.approx(HARD_MARGIN)

    def test_soft_steer_near_edge(self):
        a = make_agent(pos=(10.0, 500.0), vel=(-1.5, 0.0))
        step(a)
        x = 8.5
        assert a.state.pos[0] == pytest.approx(x)
        assert a.state.vel[0] == pytest.approx(-1.5 + 0.4 * (1 - x / 60.0))

    def test_wrap_mode_does_not_teleport(self):
        a = make_agent(pos=(999.0, 500.0), vel=(2.0, 0.0))
        a.integrate(1.0, BOUNDS, BoundaryMode.WRAP, 10)
        assert a.state.pos[0] == pytest.approx(1000.0 - HARD_MARGIN)


class TestTrailAndTimers:
    def test_trail_bounded_most_recent_first(self):
        a = make_agent()
        for _ in range(5):
            step(a, trail_length=3)
        assert len(a.state.trail) == 3
        assert a.state.trail[0] == pytest.approx(tuple(a.state.pos))

    def test_trail_cleared_when_length_zero(self):
        a = make_agent()
        for _ in range(4):
            step(a, trail_length=10)
        assert len(a.state.trail) == 4
        step(a, trail_length=0)
        assert len(a.state.trail) == 0

    def test_trail_shrinks_when_length_lowered(self):
        a = make_agent()
        for _ in range(8):
            step(a, trail_length=8)
        step(a, trail_length=2)
        assert len(a.state.trail) == 2

    def test_cooldown_counts_down_to_zero(self):
        a = make_agent()
        a.state.fire_cooldown = 2
        step(a)
        assert a.state.fire_cooldown == 1
        step(a)
        step(a)
        assert a.state.fire_cooldown == 0

    def test_projectile_expires(self):
        a = make_agent()
        a.state.projectile = Projectile(
            origin=np.array([500.0, 500.0]), direction=np.array([1.0, 0.0]),
            range=30.0, life=2, max_life=10, faction=Faction.BLUE,
        )
        step(a)
        assert a.state.projectile is not None
        assert a.state.projectile.life == 1
        step(a)
        assert a.state.projectile is None

    def test_acceleration_reset(self):
        a = make_agent()
        a.apply_force(np.array([0.05, 0.05]))
        step(a)
        assert np.allclose(a.state.acc, 0.0)
