import copy
import logging
import pathlib
from dataclasses import dataclass, field

import yaml

from .core.state import BoundaryMode, EngagementParams, Faction, FlockParams, InteractionMode

logger = logging.getLogger("flockwar.config")


class ConfigError(ValueError):
    """Raised for configuration that cannot be applied."""


DEFAULT_CONFIG = {
    "dt": 1.0,
    "steps": 3000,
    "render_every": 2,
    "seed": None,
    "bounds": [0, 1200, 0, 800],
    "mode": "coexist",
    "hunt_predator": "blue",
    "boundary_mode": "wrap",
    "trail_length": 10,
    "factions": {
        "blue": {
            "count": 25,
            "flock": {
                "separation_weight": 1.5,
                "alignment_weight": 1.5,
                "cohesion_weight": 1.5,
                "neighbor_radius": 60,
                "max_speed": 2.0,
            },
        },
        "red": {
            "count": 25,
            "flock": {
                "separation_weight": 1.5,
                "alignment_weight": 1.5,
                "cohesion_weight": 1.5,
                "neighbor_radius": 60,
                "max_speed": 2.0,
            },
        },
    },
    "engagement": {"aggression": 1.0, "evasion": 1.0, "firing_range": 60},
    "obstacles": {"minor_count": 5},
}


FACTION_KEYS = ("count", "flock")
PRESET_KEYS = ("mode", "hunt_predator", "trail_length", "factions", "engagement")
PRESETS_PATH = pathlib.Path(__file__).with_name("presets.yaml")


def deep_update(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_update(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: pathlib.Path | None) -> dict:
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    cfg = yaml.safe_load(pathlib.Path(path).read_text())
    if cfg is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    if "inherits" in cfg:
        base_path = pathlib.Path(path).parent / cfg["inherits"]
        base_cfg = load_config(base_path)
        cfg = {k: v for k, v in cfg.items() if k != "inherits"}
        return deep_update(base_cfg, cfg)
    return deep_update(DEFAULT_CONFIG, cfg)


def parse_enum(enum_cls, value, what: str):
    try:
        return enum_cls(value)
    except ValueError:
        choices = [m.value for m in enum_cls]
        raise ConfigError(f"Unknown {what} {value!r}; choose from {choices}") from None


def parse_faction(value) -> Faction:
    try:
        return Faction.parse(value)
    except ValueError as e:
        raise ConfigError(str(e)) from None


def to_number(value, what: str, cast=float):
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{what} must be a number, got {value!r}") from None


def clamp_count(value, what: str) -> int:
    n = to_number(value, what, int)
    if n < 0:
        logger.warning("%s=%d is negative, clamping to 0", what, n)
        return 0
    return n


def _mapping(value, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{what} must be a mapping, got {value!r}")
    return value


def check_keys(d: dict, allowed, what: str):
    unknown = set(d) - set(allowed)
    if unknown:
        raise ConfigError(f"Unknown {what} keys: {sorted(unknown)}")


def check_config(cfg, allowed=None) -> dict:
    """
    Validate the shape of a user config or preset and return a cleaned copy.

    Unknown keys raise ConfigError. Null sections are dropped so the defaults
    they would override stay in place. Faction names are lower-cased.
    """
    cfg = _mapping(cfg, "config")
    check_keys(cfg, DEFAULT_CONFIG if allowed is None else allowed, "config")
    out = {}
    for k, v in cfg.items():
        if k == "factions":
            factions = {}
            for name, fcfg in _mapping(v, "factions").items():
                what = f"factions.{name}"
                fcfg = dict(_mapping(fcfg, what))
                check_keys(fcfg, FACTION_KEYS, what)
                if "flock" in fcfg:
                    fcfg["flock"] = _mapping(fcfg["flock"], f"{what}.flock")
                factions[parse_faction(name).name.lower()] = fcfg
            v = factions
        elif k in ("engagement", "obstacles"):
            v = _mapping(v, k)
            check_keys(v, DEFAULT_CONFIG[k], k)
        out[k] = v
    return out


def flock_params_from(d: dict, what: str = "flock") -> FlockParams:
    params = FlockParams()
    for k, v in (d or {}).items():
        if not hasattr(params, k):
            raise ConfigError(f"Unknown {what} parameter {k!r}")
        v = to_number(v, f"{what}.{k}")
        if v < 0:
            raise ConfigError(f"{what}.{k} must be non-negative, got {v}")
        setattr(params, k, v)
    return params


def engagement_from(d: dict) -> EngagementParams:
    eng = EngagementParams()
    for k, v in (d or {}).items():
        if not hasattr(eng, k):
            raise ConfigError(f"Unknown engagement parameter {k!r}")
        v = to_number(v, f"engagement.{k}")
        if v < 0:
            raise ConfigError(f"engagement.{k} must be non-negative, got {v}")
        setattr(eng, k, v)
    return eng


def load_presets(path: pathlib.Path = PRESETS_PATH) -> dict:
    raw = yaml.safe_load(pathlib.Path(path).read_text()) or {}
    return {name: check_config(body, PRESET_KEYS) for name, body in raw.items()}


PRESETS = load_presets()


def preset(name: str) -> dict:
    key = name.replace("-", "_").lower()
    if key not in PRESETS:
        raise ConfigError(f"Unknown preset {name!r}; choose from {sorted(PRESETS)}")
    return copy.deepcopy(PRESETS[key])


@dataclass
class SimConfig:
    bounds: tuple = (0.0, 1200.0, 0.0, 800.0)
    mode: InteractionMode = InteractionMode.COEXIST
    hunt_predator: Faction = Faction.BLUE
    boundary_mode: BoundaryMode = BoundaryMode.WRAP
    trail_length: int = 10
    counts: dict = field(default_factory=lambda: {Faction.BLUE: 25, Faction.RED: 25})
    flock: dict = field(default_factory=lambda: {Faction.BLUE: FlockParams(), Faction.RED: FlockParams()})
    engagement: EngagementParams = field(default_factory=EngagementParams)
    minor_obstacles: int = 5
    seed: int | None = None

    @classmethod
    def from_dict(cls, cfg: dict) -> "SimConfig":
        cfg = deep_update(DEFAULT_CONFIG, check_config(cfg))
        raw_bounds = cfg["bounds"]
        if not isinstance(raw_bounds, (list, tuple)) or len(raw_bounds) != 4:
            raise ConfigError(f"bounds must be [xmin, xmax, ymin, ymax], got {raw_bounds!r}")
        bounds = tuple(to_number(b, "bounds") for b in raw_bounds)
        if bounds[1] <= bounds[0] or bounds[3] <= bounds[2]:
            raise ConfigError(f"bounds must have positive extent, got {raw_bounds}")
        counts, flock = {}, {}
        for name, fcfg in cfg["factions"].items():
            faction = parse_faction(name)
            counts[faction] = clamp_count(fcfg.get("count", 0), f"factions.{name}.count")
            flock[faction] = flock_params_from(fcfg.get("flock", {}), f"factions.{name}.flock")
        seed = cfg["seed"]
        return cls(
            bounds=bounds,
            mode=parse_enum(InteractionMode, cfg["mode"], "interaction mode"),
            hunt_predator=parse_faction(cfg["hunt_predator"]),
            boundary_mode=parse_enum(BoundaryMode, cfg["boundary_mode"], "boundary mode"),
            trail_length=clamp_count(cfg["trail_length"], "trail_length"),
            counts=counts,
            flock=flock,
            engagement=engagement_from(cfg["engagement"]),
            minor_obstacles=clamp_count(cfg["obstacles"].get("minor_count", 5), "obstacles.minor_count"),
            seed=None if seed is None else to_number(seed, "seed", int),
        )
