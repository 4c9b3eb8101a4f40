import logging
from dataclasses import replace

import numpy as np

from .agent import HARD_MARGIN, Agent
from .env import ObstacleField
from .metrics import swarm_stats
from .state import (
    AgentSnapshot,
    AgentState,
    BoundaryMode,
    Explosion,
    Faction,
    HeroRole,
    InteractionMode,
    PointerMode,
    SwarmSnapshot,
)
from ..config import (
    PRESET_KEYS,
    SimConfig,
    check_config,
    clamp_count,
    engagement_from,
    flock_params_from,
    parse_enum,
    parse_faction,
    preset,
    to_number,
)
from ..policies.engagement import HERO_AGGRESSION, HERO_FIRING_RANGE, apply_engagement
from ..policies.flocking import apply_flocking

logger = logging.getLogger("flockwar.simulator")

FRAME_MS = 16.667
MAX_DT = 3.0
DEFAULT_HP = 2
HERO_HP = 999
HIT_RADIUS = 10.0
BOLT_LENGTH = 8.0
EXPLOSION_LIFE = 20
RESPAWN_DELAY = 60
EDGE_INSET = 5.0
EDGE_SPREAD = 0.3
POINTER_RADIUS = 80.0
POINTER_ATTRACT = 0.08
POINTER_REPEL = 0.15


class Simulator:
    """
    Owns the whole two-faction simulation state and advances it one tick at a time.

    Single-threaded: configuration setters are meant to be called between ticks
    and take effect on the next `step`.
    """

    def __init__(self, config: SimConfig | None = None, rng: np.random.Generator | None = None, populate: bool = True):
        self.config = config or SimConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.bounds = tuple(self.config.bounds)
        self.mode = self.config.mode
        self.hunt_predator = self.config.hunt_predator
        self.boundary_mode = self.config.boundary_mode
        self.trail_length = self.config.trail_length
        # one params object per faction, mutated in place so every agent sees updates
        self.params = {f: replace(self.config.flock.get(f, self.config.flock[Faction.BLUE])) for f in Faction}
        self.engagement = replace(self.config.engagement)
        self.targets = {f: self.config.counts.get(f, 0) for f in Faction}
        self.flocks: dict[Faction, list[Agent]] = {f: [] for f in Faction}
        self.obstacles = ObstacleField(self.bounds, minor_count=self.config.minor_obstacles, rng=self.rng)
        self.explosions: list[Explosion] = []
        self.respawn_timers = {f: 0 for f in Faction}
        self.losses = {f: 0 for f in Faction}
        self.pointer = None
        self.pointer_mode = PointerMode.ATTRACT
        self.paused = False
        self.tick = 0
        self.t = 0.0
        self.shots_fired = 0
        self._next_id = 0
        if populate:
            self.reset()

    # ------------------------------------------------------------------
    # population
    # ------------------------------------------------------------------
    def reset(self, seed: int | None = None):
        if seed is not None:
            self.rng = np.random.default_rng(seed)
            self.obstacles.rng = self.rng
        self._next_id = 0
        self.tick = 0
        self.t = 0.0
        self.explosions = []
        self.respawn_timers = {f: 0 for f in Faction}
        self.losses = {f: 0 for f in Faction}
        xmin, xmax, ymin, ymax = self.bounds
        for faction in Faction:
            self.flocks[faction] = []
            for _ in range(self.targets[faction]):
                pos = self.rng.uniform([xmin, ymin], [xmax, ymax])
                self.add_agent(faction, pos)
        self.obstacles.populate()
        self.spawn_heroes()
        logger.info(
            "Reset: %d blue, %d red, mode=%s",
            self.targets[Faction.BLUE], self.targets[Faction.RED], self.mode.value,
        )

    def add_agent(self, faction: Faction, pos, vel=None, hero: HeroRole = HeroRole.NONE) -> Agent:
        if vel is None:
            vel = self.rng.uniform(-1.0, 1.0, size=2)
        st = AgentState(
            id=self._next_id,
            pos=np.array(pos, dtype=float),
            vel=np.array(vel, dtype=float),
            faction=faction,
            hp=HERO_HP if hero.is_hero else DEFAULT_HP,
            hero=hero,
        )
        self._next_id += 1
        agent = Agent(st, self.params[faction], rng=self.rng)
        self.flocks[faction].append(agent)
        return agent

    def non_heroes(self, faction: Faction) -> list[Agent]:
        return [a for a in self.flocks[faction] if not a.is_hero]

    def heroes(self, faction: Faction) -> list[Agent]:
        return [a for a in self.flocks[faction] if a.is_hero]

    def spawn_heroes(self):
        """Add the elite unit of each faction unless it is already flying."""
        for faction in Faction:
            if self.heroes(faction):
                continue
            pos, direction = self._edge_entry()
            agent = self.add_agent(faction, pos, vel=np.zeros(2), hero=HeroRole.for_faction(faction))
            agent.state.vel = direction * agent.max_speed
            logger.debug("Hero %s entered at (%.0f, %.0f)", agent.state.hero.value, pos[0], pos[1])

    def _edge_entry(self):
        """A point on a random edge, inside the clamp margin, and an inward heading with some spread."""
        xmin, xmax, ymin, ymax = self.bounds
        m = HARD_MARGIN
        edge = int(self.rng.integers(4))
        lateral = (self.rng.random() - 0.5) * EDGE_SPREAD
        inward = 0.7 + self.rng.random() * 0.3
        if edge == 0:
            pos, vel = [self.rng.uniform(xmin + m, xmax - m), ymin + m], [lateral, inward]
        elif edge == 1:
            pos, vel = [self.rng.uniform(xmin + m, xmax - m), ymax - m], [lateral, -inward]
        elif edge == 2:
            pos, vel = [xmin + m, self.rng.uniform(ymin + m, ymax - m)], [inward, lateral]
        else:
            pos, vel = [xmax - m, self.rng.uniform(ymin + m, ymax - m)], [-inward, lateral]
        return np.array(pos, dtype=float), np.array(vel, dtype=float)

    def _edge_point(self):
        xmin, xmax, ymin, ymax = self.bounds
        edge = int(self.rng.integers(4))
        if edge == 0:
            return [self.rng.uniform(xmin, xmax), ymin + EDGE_INSET]
        if edge == 1:
            return [self.rng.uniform(xmin, xmax), ymax - EDGE_INSET]
        if edge == 2:
            return [xmin + EDGE_INSET, self.rng.uniform(ymin, ymax)]
        return [xmax - EDGE_INSET, self.rng.uniform(ymin, ymax)]

    def _adjust_count(self, faction: Faction):
        target = self.targets[faction]
        flock = self.flocks[faction]
        while len(self.non_heroes(faction)) > target:
            # drop the last non-hero; heroes are never removed here
            idx = max(i for i, a in enumerate(flock) if not a.is_hero)
            flock.pop(idx)
        xmin, xmax, ymin, ymax = self.bounds
        while len(self.non_heroes(faction)) < target:
            self.add_agent(faction, self.rng.uniform([xmin, ymin], [xmax, ymax]))

    # ------------------------------------------------------------------
    # configuration inputs
    # ------------------------------------------------------------------
    def set_population_target(self, faction, count: int):
        faction = parse_faction(faction)
        self.targets[faction] = clamp_count(count, f"{faction.name.lower()} count")
        self._adjust_count(faction)

    def set_flock_params(self, faction, **kwargs):
        faction = parse_faction(faction)
        checked = flock_params_from(kwargs, f"{faction.name.lower()}.flock")
        self.params[faction].update(**{k: getattr(checked, k) for k in kwargs})

    def set_engagement(self, **kwargs):
        checked = engagement_from(kwargs)
        for k in kwargs:
            setattr(self.engagement, k, getattr(checked, k))

    def set_interaction_mode(self, mode, predator=None):
        self.mode = parse_enum(InteractionMode, mode, "interaction mode")
        if predator is not None:
            self.hunt_predator = parse_faction(predator)
        logger.info("Interaction mode %s (predator=%s)", self.mode.value, self.hunt_predator.name.lower())

    def set_boundary_mode(self, mode):
        self.boundary_mode = parse_enum(BoundaryMode, mode, "boundary mode")

    def set_trail_length(self, n: int):
        self.trail_length = clamp_count(n, "trail_length")

    def randomize_obstacles(self):
        self.obstacles.randomize_minor()

    def set_pointer(self, pos, mode=None):
        if mode is not None:
            self.pointer_mode = parse_enum(PointerMode, mode, "pointer mode")
        self.pointer = None if pos is None else np.array(pos, dtype=float)

    def clear_pointer(self):
        self.pointer = None

    def spawn_at(self, faction, pos) -> Agent:
        faction = parse_faction(faction)
        agent = self.add_agent(faction, pos)
        self.targets[faction] = len(self.non_heroes(faction))
        return agent

    def apply_preset(self, name_or_cfg):
        if isinstance(name_or_cfg, str):
            cfg = preset(name_or_cfg)
        else:
            cfg = check_config(name_or_cfg, PRESET_KEYS)
        factions = cfg.get("factions", {})
        # validate every value before touching live state
        for name, fcfg in factions.items():
            flock_params_from(fcfg.get("flock"), f"factions.{name}.flock")
            if "count" in fcfg:
                to_number(fcfg["count"], f"factions.{name}.count", int)
        engagement_from(cfg.get("engagement"))
        if "trail_length" in cfg:
            to_number(cfg["trail_length"], "trail_length", int)
        if "mode" in cfg:
            parse_enum(InteractionMode, cfg["mode"], "interaction mode")
        if "hunt_predator" in cfg:
            parse_faction(cfg["hunt_predator"])
        for name, fcfg in factions.items():
            faction = parse_faction(name)
            if "flock" in fcfg:
                self.set_flock_params(faction, **fcfg["flock"])
            if "count" in fcfg:
                self.set_population_target(faction, fcfg["count"])
        if "engagement" in cfg:
            self.set_engagement(**cfg["engagement"])
        if "trail_length" in cfg:
            self.set_trail_length(cfg["trail_length"])
        if "mode" in cfg:
            self.set_interaction_mode(cfg["mode"], cfg.get("hunt_predator"))
        elif "hunt_predator" in cfg:
            self.hunt_predator = parse_faction(cfg["hunt_predator"])
        logger.info("Applied preset %s", name_or_cfg if isinstance(name_or_cfg, str) else "<custom>")

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        return self.paused

    # ------------------------------------------------------------------
    # stepping
    # ------------------------------------------------------------------
    def advance(self, elapsed_ms: float):
        """Frame-clock entry point: wall time -> clamped dt, skipped while paused."""
        if self.paused:
            return None
        dt = min(max(elapsed_ms, 0.0) / FRAME_MS, MAX_DT)
        return self.step(dt)

    def step(self, dt: float = 1.0) -> SwarmSnapshot:
        self.shots_fired = 0
        for faction in Faction:
            apply_flocking(self.flocks[faction], self.bounds, self.boundary_mode, rng=self.rng)
        self._apply_engagement()
        self._apply_obstacle_avoidance()
        self._apply_pointer()
        for agent in self.all_agents():
            agent.integrate(dt, self.bounds, self.boundary_mode, self.trail_length)
        self._resolve_hits()
        self._prune_dead()
        self._respawn()
        self._update_explosions()
        self.tick += 1
        self.t += dt
        return self.snapshot()

    def all_agents(self) -> list[Agent]:
        return [a for f in Faction for a in self.flocks[f]]

    def _engage(self, agent, aggression, evasion, firing_range, can_fire):
        enemies = self.flocks[agent.state.faction.opponent]
        shot = apply_engagement(
            agent, enemies, aggression, evasion, firing_range, can_fire, self.bounds, self.boundary_mode
        )
        if shot is not None:
            self.shots_fired += 1
            logger.debug("Agent %d fired", agent.state.id)

    def _apply_engagement(self):
        eng = self.engagement
        if self.mode is InteractionMode.DOGFIGHT:
            for agent in self.all_agents():
                if not agent.is_hero:
                    self._engage(agent, eng.aggression, eng.evasion, eng.firing_range, True)
        elif self.mode is InteractionMode.HUNT:
            predator = self.hunt_predator
            for agent in self.non_heroes(predator):
                self._engage(agent, eng.aggression, 0.0, eng.firing_range, True)
            for agent in self.non_heroes(predator.opponent):
                self._engage(agent, 0.0, eng.evasion, eng.firing_range, False)

        # heroes hunt regardless of mode
        hero_aggr = eng.aggression or HERO_AGGRESSION
        hero_range = eng.firing_range or HERO_FIRING_RANGE
        for faction in Faction:
            for agent in self.heroes(faction):
                self._engage(agent, hero_aggr, 0.0, hero_range, True)

    def _apply_obstacle_avoidance(self):
        for agent in self.all_agents():
            agent.apply_force(self.obstacles.avoidance(agent.state.pos))

    def _apply_pointer(self):
        if self.pointer is None or self.pointer_mode is PointerMode.SPAWN:
            return
        strength = POINTER_ATTRACT if self.pointer_mode is PointerMode.ATTRACT else -POINTER_REPEL
        for agent in self.all_agents():
            vec = self.pointer - agent.state.pos
            dist = float(np.linalg.norm(vec))
            if 1.0 < dist < POINTER_RADIUS:
                agent.apply_force(vec / dist * strength)

    def _resolve_hits(self):
        for agent in self.all_agents():
            bolt = agent.state.projectile
            if bolt is None:
                continue
            head = bolt.head(BOLT_LENGTH)
            for enemy in self.flocks[agent.state.faction.opponent]:
                est = enemy.state
                if not est.alive or est.immune:
                    continue
                if np.linalg.norm(head - est.pos) >= HIT_RADIUS:
                    continue
                est.hp -= 1
                agent.state.projectile = None
                if est.hp <= 0:
                    est.alive = False
                    self.losses[est.faction] += 1
                    self.explosions.append(
                        Explosion(pos=est.pos.copy(), faction=est.faction, life=EXPLOSION_LIFE, max_life=EXPLOSION_LIFE)
                    )
                    logger.debug("Agent %d destroyed agent %d", agent.state.id, est.id)
                break

    def _prune_dead(self):
        for faction in Faction:
            self.flocks[faction] = [a for a in self.flocks[faction] if a.state.alive]

    def _respawn(self):
        for faction in Faction:
            if len(self.non_heroes(faction)) < self.targets[faction]:
                self.respawn_timers[faction] += 1
                if self.respawn_timers[faction] >= RESPAWN_DELAY:
                    self.respawn_timers[faction] = 0
                    agent = self.add_agent(faction, self._edge_point())
                    logger.debug("Respawned %s agent %d", faction.name.lower(), agent.state.id)
            else:
                self.respawn_timers[faction] = 0

    def _update_explosions(self):
        for exp in self.explosions:
            exp.life -= 1
        self.explosions = [e for e in self.explosions if e.life > 0]

    # ------------------------------------------------------------------
    # outputs
    # ------------------------------------------------------------------
    def stats(self):
        return swarm_stats(self.flocks, self.shots_fired)

    def snapshot(self) -> SwarmSnapshot:
        agents = []
        for agent in self.all_agents():
            st = agent.state
            bolt = None
            if st.projectile is not None:
                head = st.projectile.head(BOLT_LENGTH)
                tail = head - st.projectile.direction * BOLT_LENGTH
                bolt = (tuple(map(float, tail)), tuple(map(float, head)))
            agents.append(
                AgentSnapshot(
                    id=st.id,
                    faction=st.faction,
                    hero=st.hero,
                    pos=(float(st.pos[0]), float(st.pos[1])),
                    heading=agent.heading,
                    speed=agent.speed,
                    hp=st.hp,
                    alive=st.alive,
                    trail=list(st.trail),
                    bolt=bolt,
                )
            )
        return SwarmSnapshot(
            tick=self.tick,
            t=self.t,
            bounds=self.bounds,
            agents=agents,
            explosions=[replace(e, pos=e.pos.copy()) for e in self.explosions],
            obstacles=list(self.obstacles.obstacles),
            stats=self.stats(),
        )

    @classmethod
    def from_dict(cls, cfg: dict, rng=None, populate: bool = True) -> "Simulator":
        return cls(SimConfig.from_dict(cfg), rng=rng, populate=populate)
