"""Tests for aggregate swarm statistics."""

import numpy as np
import pytest

from flockwar.core.agent import Agent
from flockwar.core.metrics import average_neighbor_count, average_speed, swarm_stats
from flockwar.core.state import AgentState, Faction, FlockParams, Projectile

pytestmark = pytest.mark.unit


def make(vel, faction=Faction.BLUE, neighbors=0):
    st = AgentState(id=0, pos=np.zeros(2), vel=np.array(vel, dtype=float), faction=faction)
    st.neighbor_count = neighbors
    return Agent(st, FlockParams())


def test_empty_populations_are_zero():
    assert average_speed([]) == 0.0
    assert average_neighbor_count([]) == 0.0
    stats = swarm_stats({Faction.BLUE: [], Faction.RED: []})
    assert stats.population == {Faction.BLUE: 0, Faction.RED: 0}
    assert stats.avg_neighbors == 0.0
    assert stats.active_projectiles == 0


def test_per_faction_speed_and_neighbors():
    blue = [make((3, 4), neighbors=2), make((0, 1), neighbors=4)]
    red = [make((2, 0), Faction.RED, neighbors=0)]
    armed = blue[0]
    armed.state.projectile = Projectile(
        origin=np.zeros(2), direction=np.array([1.0, 0.0]), range=30.0, life=5, max_life=10, faction=Faction.BLUE
    )
    stats = swarm_stats({Faction.BLUE: blue, Faction.RED: red}, shots_fired=3)
    assert stats.avg_speed[Faction.BLUE] == pytest.approx(3.0)
    assert stats.avg_speed[Faction.RED] == pytest.approx(2.0)
    assert stats.avg_neighbors == pytest.approx(2.0)
    assert stats.active_projectiles == 1
    assert stats.shots_fired == 3
