import numpy as np

from ..core.env import fold
from ..core.state import BoundaryMode

SEPARATION_DIST = 40.0
K_SEPARATION = 0.14
K_ALIGNMENT = 0.06
K_COHESION = 0.006
MIN_PAIR_DIST = 0.001

ORBIT_DOT = 0.4
ORBIT_PUSH = 0.06
ORBIT_MIN_NEIGHBORS = 2
LONE_MAX_NEIGHBORS = 3

MAX_FLOCK_SIZE = 4
SPLIT_PUSH = 0.15
SPLIT_JITTER = 0.12


def apply_flocking(agents, bounds, boundary_mode: BoundaryMode, rng=None):
    """
    Accumulate separation / alignment / cohesion forces for one faction.

    Heroes neither flock nor count as neighbours. O(n^2): every agent scans the
    whole faction, which is fine for a few dozen agents per side.
    """
    rng = rng if rng is not None else np.random.default_rng()
    flock = [a for a in agents if not a.is_hero]
    if not flock:
        return
    ps = np.array([a.state.pos for a in flock], dtype=float)
    vs = np.array([a.state.vel for a in flock], dtype=float)
    xmin, xmax, ymin, ymax = bounds

    for i, agent in enumerate(flock):
        params = agent.params
        p = ps[i]
        v = vs[i]

        d = ps - p
        if boundary_mode == BoundaryMode.WRAP:
            d = fold(d, xmax - xmin, ymax - ymin)
        dist = np.linalg.norm(d, axis=1)
        mask = (dist <= params.neighbor_radius) & (dist >= MIN_PAIR_DIST)
        mask[i] = False
        count = int(mask.sum())
        agent.state.neighbor_count = count
        if count == 0:
            continue

        nd = d[mask]
        ndist = dist[mask]

        # separation, inverse-distance urgency
        close = ndist < SEPARATION_DIST
        if close.any():
            cd = nd[close]
            cdist = ndist[close]
            urgency = SEPARATION_DIST / np.maximum(cdist, 1.0)
            sep = -(cd / cdist[:, None]) * urgency[:, None]
            agent.apply_force(sep.mean(axis=0) * params.separation_weight * K_SEPARATION)

        # alignment
        align = vs[mask].mean(axis=0) - v
        agent.apply_force(align * params.alignment_weight * K_ALIGNMENT)

        centroid = nd.mean(axis=0)
        gc_dist = float(np.linalg.norm(centroid))

        if gc_dist > 1.0:
            speed = float(np.linalg.norm(v))
            if speed > 0.1:
                to_center = float(v @ centroid) / (speed * gc_dist)
                # near-perpendicular to the centroid means circling the group
                if abs(to_center) < ORBIT_DOT and count > ORBIT_MIN_NEIGHBORS:
                    agent.apply_force(-(centroid / gc_dist) * ORBIT_PUSH)
            if count <= LONE_MAX_NEIGHBORS and gc_dist > SEPARATION_DIST:
                agent.apply_force(centroid * params.cohesion_weight * K_COHESION)

        if count > MAX_FLOCK_SIZE and gc_dist > 0.1:
            over = (count - MAX_FLOCK_SIZE) / MAX_FLOCK_SIZE
            outward = centroid / gc_dist
            agent.apply_force(-outward * over * SPLIT_PUSH)
            perp = np.array([-outward[1], outward[0]])
            jitter = (rng.random() - 0.5) * over * SPLIT_JITTER
            agent.apply_force(perp * jitter)
