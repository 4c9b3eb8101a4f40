import math

import numpy as np

from ..core.env import displacement
from ..core.state import BoundaryMode, Projectile

K_AGGRESSION = 0.03
K_EVASION = 0.05
EVASION_DIST = 30.0
EVASION_BAND = EVASION_DIST * 3
FIRING_CONE = math.radians(20)
FIRING_COOLDOWN = 60
BOLT_RANGE = 30.0
BOLT_LIFE = 10

HERO_AGGRESSION = 5.0
HERO_FIRING_RANGE = 150.0


def normalize_angle(a: float) -> float:
    """Wrap an angle into (-pi, pi]."""
    while a > math.pi:
        a -= 2 * math.pi
    while a <= -math.pi:
        a += 2 * math.pi
    return a


def nearest_enemy(agent, enemies, bounds, boundary_mode: BoundaryMode):
    best, best_d, best_vec = None, math.inf, None
    for enemy in enemies:
        vec = displacement(agent.state.pos, enemy.state.pos, bounds, boundary_mode)
        d = float(np.linalg.norm(vec))
        if d < best_d:
            best, best_d, best_vec = enemy, d, vec
    return best, best_d, best_vec


def in_firing_cone(heading: float, to_target) -> bool:
    bearing = math.atan2(to_target[1], to_target[0])
    return abs(normalize_angle(bearing - heading)) < FIRING_CONE


def apply_engagement(agent, enemies, aggression: float, evasion: float, firing_range: float,
                     can_fire: bool, bounds, boundary_mode: BoundaryMode) -> Projectile | None:
    """
    Pursue / evade the nearest enemy and fire when it sits inside the cone.

    The bolt travels along the firer's heading, not toward the target. Returns
    the new projectile, or None when nothing was fired.
    """
    target, dist, vec = nearest_enemy(agent, enemies, bounds, boundary_mode)
    if target is None:
        return None

    if dist > 0:
        unit = vec / dist
        if aggression > 0:
            agent.apply_force(unit * aggression * K_AGGRESSION)
        if evasion > 0 and dist < EVASION_BAND:
            strength = evasion * K_EVASION * (1 - dist / EVASION_BAND)
            agent.apply_force(-unit * strength)

    st = agent.state
    if not can_fire or dist >= firing_range or st.fire_cooldown > 0:
        return None
    heading = agent.heading
    if not in_firing_cone(heading, vec):
        return None

    st.projectile = Projectile(
        origin=st.pos.copy(),
        direction=np.array([math.cos(heading), math.sin(heading)]),
        range=BOLT_RANGE,
        life=BOLT_LIFE,
        max_life=BOLT_LIFE,
        faction=st.faction,
    )
    st.fire_cooldown = FIRING_COOLDOWN
    return st.projectile
