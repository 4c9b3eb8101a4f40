import logging
from enum import Enum

import numpy as np

from .state import BoundaryMode

logger = logging.getLogger("flockwar.env")

PRIMARY_RADIUS_FRACTION = 0.12  # of the smaller area dimension
PRIMARY_ANCHOR = (0.25, 0.3)
AVOID_MARGIN = 40.0
AVOIDANCE_WEIGHT = 5.0
MINOR_COUNT = 5
MINOR_RADIUS_RANGE = (15.0, 35.0)
PLACEMENT_CLEARANCE = 30.0
PLACEMENT_ATTEMPTS = 200


def displacement(src, dst, bounds, boundary_mode: BoundaryMode):
    """Vector from src to dst; folded to the shorter way around in wrap mode."""
    d = np.asarray(dst, dtype=float) - np.asarray(src, dtype=float)
    if boundary_mode == BoundaryMode.WRAP:
        xmin, xmax, ymin, ymax = bounds
        d = fold(d, xmax - xmin, ymax - ymin)
    return d


def fold(d, width, height):
    """Fold displacement(s) of shape (2,) or (n, 2) into the toroidal shortest direction."""
    d = np.array(d, dtype=float)
    size = np.array([width, height], dtype=float)
    half = size / 2.0
    d = np.where(d > half, d - size, d)
    d = np.where(d < -half, d + size, d)
    return d


class ObstacleKind(str, Enum):
    PRIMARY = "primary"
    MINOR = "minor"


class Obstacle:
    def __init__(self, center, radius, kind: ObstacleKind = ObstacleKind.MINOR):
        self.center = np.array(center, dtype=float)
        self.radius = float(radius)
        self.kind = ObstacleKind(kind)

    def __repr__(self):
        return f"Obstacle({self.kind.value}, center={self.center.tolist()}, radius={self.radius:.1f})"


class ObstacleField:
    def __init__(self, bounds, obstacles=None, minor_count: int = MINOR_COUNT, rng=None):
        self.bounds = bounds  # [xmin, xmax, ymin, ymax]
        self.obstacles: list[Obstacle] = obstacles or []
        self.minor_count = minor_count
        self.rng = rng or np.random.default_rng()

    @property
    def primary(self) -> Obstacle | None:
        for obs in self.obstacles:
            if obs.kind is ObstacleKind.PRIMARY:
                return obs
        return None

    def populate(self):
        """Place the primary obstacle and a fresh set of minor ones."""
        xmin, xmax, ymin, ymax = self.bounds
        w, h = xmax - xmin, ymax - ymin
        center = [xmin + w * PRIMARY_ANCHOR[0], ymin + h * PRIMARY_ANCHOR[1]]
        self.obstacles = [Obstacle(center, min(w, h) * PRIMARY_RADIUS_FRACTION, ObstacleKind.PRIMARY)]
        self.randomize_minor()

    def randomize_minor(self):
        primary = self.primary
        self.obstacles = [] if primary is None else [primary]
        xmin, xmax, ymin, ymax = self.bounds
        lo, hi = MINOR_RADIUS_RANGE
        for _ in range(self.minor_count):
            r = self.rng.uniform(lo, hi)
            cand = None
            for _ in range(PLACEMENT_ATTEMPTS):
                cand = self.rng.uniform([xmin + r, ymin + r], [xmax - r, ymax - r])
                if all(np.linalg.norm(cand - o.center) >= o.radius + r + PLACEMENT_CLEARANCE for o in self.obstacles):
                    break
            else:
                logger.debug("No clear spot for minor obstacle r=%.1f, placing anyway", r)
            self.obstacles.append(Obstacle(cand, r, ObstacleKind.MINOR))
        logger.info("Placed %d minor obstacles", self.minor_count)

    def avoidance(self, pos) -> np.ndarray:
        """
        Sum of radial repulsions from every obstacle whose avoid zone contains pos.
        Not clamped: tight passages can stack several obstacles.
        """
        force = np.zeros(2)
        for obs in self.obstacles:
            vec = pos - obs.center
            dist = float(np.linalg.norm(vec))
            if dist <= 0.0 or dist >= obs.radius + AVOID_MARGIN:
                continue
            surface = dist - obs.radius
            force += vec / dist * (AVOIDANCE_WEIGHT / max(surface, 1.0))
        return force
