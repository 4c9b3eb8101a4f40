import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
from matplotlib.collections import LineCollection
import numpy as np

from ..core.env import ObstacleKind
from ..core.state import Faction, SwarmSnapshot


TEAM_COLORS = {Faction.BLUE: "tab:blue", Faction.RED: "tab:red"}
BOLT_COLORS = {Faction.BLUE: "cyan", Faction.RED: "orangered"}


class SwarmRenderer2D:
    """Draws a SwarmSnapshot: obstacles, both factions, heroes, trails, bolts and explosions."""

    def __init__(self, bounds, obstacles=None):
        self.bounds = bounds
        self.fig, self.ax = plt.subplots(figsize=(9, 6))
        backend = plt.get_backend().lower()
        self._interactive = backend not in {"agg", "pdf", "svg"}
        if self._interactive:
            plt.ion()
        self.team_scatters = {}
        self.hero_scat = None
        self.explosion_scat = None
        self.obstacle_patches = []
        self.trail_lines = LineCollection([], linewidths=0.6, alpha=0.35, zorder=3)
        self.bolt_lines = LineCollection([], linewidths=2.0, zorder=6)
        self.ax.add_collection(self.trail_lines)
        self.ax.add_collection(self.bolt_lines)
        self.ax.set_xlim(bounds[0], bounds[1])
        self.ax.set_ylim(bounds[2], bounds[3])
        self.ax.set_aspect("equal")
        self.ax.set_facecolor("#0a0a0f")
        self.set_obstacles(obstacles or [])

    def set_obstacles(self, obstacles):
        for patch in self.obstacle_patches:
            patch.remove()
        self.obstacle_patches = []
        for obs in obstacles:
            primary = obs.kind is ObstacleKind.PRIMARY
            patch = mpatches.Circle(
                obs.center[:2],
                obs.radius,
                color="silver" if primary else "gray",
                alpha=0.5 if primary else 0.3,
                zorder=1,
            )
            self.ax.add_patch(patch)
            self.obstacle_patches.append(patch)
        self._obstacle_ids = [id(o) for o in obstacles]

    def render(self, snap: SwarmSnapshot):
        if [id(o) for o in snap.obstacles] != self._obstacle_ids:
            self.set_obstacles(snap.obstacles)

        for faction in Faction:
            positions = np.array([a.pos for a in snap.agents if a.faction is faction and not a.hero.is_hero])
            positions = positions.reshape(-1, 2)
            scat = self.team_scatters.get(faction)
            if scat is None:
                scat = self.ax.scatter(
                    positions[:, 0],
                    positions[:, 1],
                    c=TEAM_COLORS[faction],
                    s=14,
                    zorder=4,
                    alpha=0.9,
                    label=faction.name.lower(),
                )
                self.team_scatters[faction] = scat
            else:
                scat.set_offsets(positions)

        heroes = [a for a in snap.agents if a.hero.is_hero]
        hero_pos = np.array([a.pos for a in heroes]).reshape(-1, 2)
        hero_colors = [TEAM_COLORS[a.faction] for a in heroes]
        if self.hero_scat is None:
            self.hero_scat = self.ax.scatter(
                hero_pos[:, 0], hero_pos[:, 1], c=hero_colors or None, s=90, marker="*", zorder=5, edgecolors="white"
            )
        else:
            self.hero_scat.set_offsets(hero_pos)
            if hero_colors:
                self.hero_scat.set_color(hero_colors)

        self.trail_lines.set_segments([a.trail for a in snap.agents if len(a.trail) > 1])
        bolts = [a for a in snap.agents if a.bolt is not None]
        self.bolt_lines.set_segments([a.bolt for a in bolts])
        if bolts:
            self.bolt_lines.set_color([BOLT_COLORS[a.faction] for a in bolts])

        exp_pos = np.array([e.pos for e in snap.explosions]).reshape(-1, 2)
        exp_sizes = [200.0 * (1 - e.life / e.max_life) + 20 for e in snap.explosions]
        if self.explosion_scat is None:
            self.explosion_scat = self.ax.scatter(
                exp_pos[:, 0], exp_pos[:, 1], s=exp_sizes, c="gold", alpha=0.6, marker="o", zorder=7
            )
        else:
            self.explosion_scat.set_offsets(exp_pos)
            self.explosion_scat.set_sizes(exp_sizes)

        stats = snap.stats
        self.ax.set_title(
            f"t={snap.t:.0f} | blue {stats.population[Faction.BLUE]} red {stats.population[Faction.RED]}"
            f" | bolts {stats.active_projectiles}"
        )
        if self._interactive:
            plt.pause(0.001)

    def close(self):
        plt.close(self.fig)
