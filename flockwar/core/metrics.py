import numpy as np

from .state import Faction, SwarmStats


def average_speed(agents) -> float:
    """Mean speed over a population; 0.0 when empty."""
    if not agents:
        return 0.0
    vels = np.array([a.state.vel for a in agents])
    return float(np.linalg.norm(vels, axis=1).mean())


def average_neighbor_count(agents) -> float:
    if not agents:
        return 0.0
    return float(np.mean([a.state.neighbor_count for a in agents]))


def active_projectile_count(agents) -> int:
    return sum(1 for a in agents if a.state.projectile is not None)


def swarm_stats(flocks: dict[Faction, list], shots_fired: int = 0) -> SwarmStats:
    everyone = [a for agents in flocks.values() for a in agents]
    return SwarmStats(
        population={f: len(agents) for f, agents in flocks.items()},
        avg_speed={f: average_speed(agents) for f, agents in flocks.items()},
        avg_neighbors=average_neighbor_count(everyone),
        active_projectiles=active_projectile_count(everyone),
        shots_fired=shots_fired,
    )
