"""Smoke test for the matplotlib viewer on a headless backend."""

import pytest

matplotlib = pytest.importorskip("matplotlib")
matplotlib.use("Agg")

from flockwar.core.simulator import Simulator  # noqa: E402
from flockwar.viz.render_2d import SwarmRenderer2D  # noqa: E402


def test_renders_battle_frames():
    sim = Simulator.from_dict({"mode": "dogfight", "seed": 5, "factions": {"blue": {"count": 8}, "red": {"count": 8}}})
    renderer = SwarmRenderer2D(bounds=sim.bounds, obstacles=sim.obstacles.obstacles)
    try:
        for _ in range(5):
            renderer.render(sim.step(1.0))
        sim.randomize_obstacles()
        renderer.render(sim.step(1.0))
        assert len(renderer.obstacle_patches) == len(sim.obstacles.obstacles)
        assert "blue" in renderer.ax.get_title()
    finally:
        renderer.close()
