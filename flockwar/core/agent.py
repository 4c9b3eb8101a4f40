import math

import numpy as np

from .state import AgentState, BoundaryMode, FlockParams

MAX_FORCE = 0.15
MIN_SPEED_FRACTION = 0.6
STALL_SPEED = 0.01
EDGE_MARGIN = 60.0
EDGE_TURN = 0.4
HARD_MARGIN = 2.0
HERO_SPEED_FACTOR = 1.3


class Agent:
    def __init__(self, state: AgentState, params: FlockParams, rng: np.random.Generator | None = None):
        self.state = state
        self.params = params
        self.rng = rng if rng is not None else np.random.default_rng()

    @property
    def max_speed(self) -> float:
        if self.state.hero.is_hero:
            return self.params.max_speed * HERO_SPEED_FACTOR
        return self.params.max_speed

    @property
    def heading(self) -> float:
        return math.atan2(self.state.vel[1], self.state.vel[0])

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.state.vel))

    @property
    def is_hero(self) -> bool:
        return self.state.hero.is_hero

    def apply_force(self, force):
        self.state.acc += force

    def integrate(self, dt: float, bounds, boundary_mode: BoundaryMode, trail_length: int):
        """
        Advance one tick. `boundary_mode` only affects distance topology elsewhere;
        positions are always kept inside `bounds`.
        """
        st = self.state
        max_speed = self.max_speed

        a_mag = np.linalg.norm(st.acc)
        if a_mag > MAX_FORCE:
            st.acc = st.acc / a_mag * MAX_FORCE

        st.vel = st.vel + st.acc * dt

        speed = float(np.linalg.norm(st.vel))
        if speed > max_speed:
            st.vel = st.vel / speed * max_speed
        # anti-stall floor, checked against the pre-clamp speed
        min_speed = max_speed * MIN_SPEED_FRACTION
        if speed < min_speed:
            angle = self.heading if speed > STALL_SPEED else self.rng.uniform(0.0, 2 * math.pi)
            st.vel = np.array([math.cos(angle), math.sin(angle)]) * min_speed

        st.pos = st.pos + st.vel * dt
        self._steer_from_edges(bounds)

        if trail_length > 0:
            st.trail.appendleft((float(st.pos[0]), float(st.pos[1])))
            while len(st.trail) > trail_length:
                st.trail.pop()
        else:
            st.trail.clear()

        if st.fire_cooldown > 0:
            st.fire_cooldown -= 1

        if st.projectile is not None:
            st.projectile.life -= 1
            if st.projectile.life <= 0:
                st.projectile = None

        st.acc = np.zeros(2)

    def _steer_from_edges(self, bounds):
        xmin, xmax, ymin, ymax = bounds
        st = self.state
        x, y = st.pos
        if x < xmin + EDGE_MARGIN:
            st.vel[0] += EDGE_TURN * (1 - (x - xmin) / EDGE_MARGIN)
        if x > xmax - EDGE_MARGIN:
            st.vel[0] -= EDGE_TURN * (1 - (xmax - x) / EDGE_MARGIN)
        if y < ymin + EDGE_MARGIN:
            st.vel[1] += EDGE_TURN * (1 - (y - ymin) / EDGE_MARGIN)
        if y > ymax - EDGE_MARGIN:
            st.vel[1] -= EDGE_TURN * (1 - (ymax - y) / EDGE_MARGIN)
        # hard clamp, never escape
        st.pos[0] = min(max(st.pos[0], xmin + HARD_MARGIN), xmax - HARD_MARGIN)
        st.pos[1] = min(max(st.pos[1], ymin + HARD_MARGIN), ymax - HARD_MARGIN)
