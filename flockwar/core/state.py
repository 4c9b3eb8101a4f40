from collections import deque
from dataclasses import dataclass, field
from enum import Enum, IntEnum

import numpy as np


class Faction(IntEnum):
    BLUE = 0
    RED = 1

    @property
    def opponent(self) -> "Faction":
        return Faction.RED if self is Faction.BLUE else Faction.BLUE

    @classmethod
    def parse(cls, value) -> "Faction":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown faction: {value!r}")


class HeroRole(Enum):
    NONE = "none"
    ELITE_BLUE = "elite_blue"
    ELITE_RED = "elite_red"

    @classmethod
    def for_faction(cls, faction: Faction) -> "HeroRole":
        return cls.ELITE_BLUE if faction is Faction.BLUE else cls.ELITE_RED

    @property
    def is_hero(self) -> bool:
        return self is not HeroRole.NONE


class InteractionMode(str, Enum):
    COEXIST = "coexist"
    HUNT = "hunt"
    DOGFIGHT = "dogfight"


class BoundaryMode(str, Enum):
    CLAMP = "clamp"
    WRAP = "wrap"  # toroidal distances only, positions are still clamped


class PointerMode(str, Enum):
    ATTRACT = "attract"
    REPEL = "repel"
    SPAWN = "spawn"


@dataclass
class FlockParams:
    """Per-faction flocking parameters, shared by reference with every agent of the faction."""

    separation_weight: float = 1.5
    alignment_weight: float = 1.5
    cohesion_weight: float = 1.5
    neighbor_radius: float = 60.0
    max_speed: float = 2.0

    def update(self, **kwargs):
        for k, v in kwargs.items():
            if not hasattr(self, k):
                raise AttributeError(f"FlockParams has no field {k!r}")
            setattr(self, k, float(v))


@dataclass
class EngagementParams:
    aggression: float = 1.0
    evasion: float = 1.0
    firing_range: float = 60.0


@dataclass
class Projectile:
    origin: np.ndarray     # shape (2,)
    direction: np.ndarray  # unit vector, firer heading at fire time
    range: float
    life: int
    max_life: int
    faction: Faction

    def head(self, bolt_length: float) -> np.ndarray:
        traveled = (1.0 - self.life / self.max_life) * self.range
        return self.origin + self.direction * (traveled + bolt_length)


@dataclass
class Explosion:
    pos: np.ndarray
    faction: Faction
    life: int
    max_life: int


@dataclass
class AgentState:
    id: int
    pos: np.ndarray      # shape (2,)
    vel: np.ndarray      # shape (2,)
    faction: Faction
    acc: np.ndarray = field(default_factory=lambda: np.zeros(2))
    hp: int = 2
    alive: bool = True
    hero: HeroRole = HeroRole.NONE
    fire_cooldown: int = 0
    projectile: Projectile | None = None
    trail: deque = field(default_factory=deque)
    neighbor_count: int = 0

    @property
    def immune(self) -> bool:
        return self.hero.is_hero


@dataclass
class AgentSnapshot:
    id: int
    faction: Faction
    hero: HeroRole
    pos: tuple[float, float]
    heading: float
    speed: float
    hp: int
    alive: bool
    trail: list[tuple[float, float]]
    bolt: tuple[tuple[float, float], tuple[float, float]] | None  # (tail, head)


@dataclass
class SwarmStats:
    population: dict[Faction, int]
    avg_speed: dict[Faction, float]
    avg_neighbors: float
    active_projectiles: int
    shots_fired: int


@dataclass
class SwarmSnapshot:
    tick: int
    t: float
    bounds: tuple[float, float, float, float]  # xmin, xmax, ymin, ymax
    agents: list[AgentSnapshot]
    explosions: list[Explosion]
    obstacles: list
    stats: SwarmStats
