import argparse
import logging
import pathlib
import sys

# Ensure repository root is on PYTHONPATH when running without installation.
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from flockwar.config import SimConfig, deep_update, load_config, preset
from flockwar.core.simulator import Simulator
from flockwar.core.state import Faction


def main():
    parser = argparse.ArgumentParser(description="Run the two-faction flocking battle.")
    parser.add_argument("--config", type=pathlib.Path, help="Path to YAML config.")
    parser.add_argument("--preset", help="Named preset (imperial_formation, rebel_scramble, battle_of_yavin).")
    parser.add_argument("--mode", choices=["coexist", "hunt", "dogfight"], help="Override interaction mode.")
    parser.add_argument("--no-render", action="store_true", help="Disable live rendering (headless).")
    parser.add_argument("--steps", type=int, help="Override total simulation steps.")
    parser.add_argument("--dt", type=float, help="Override simulation timestep (frames).")
    parser.add_argument("--seed", type=int, help="Seed the random generator.")
    parser.add_argument("--render-every", type=int, dest="render_every", help="Render every N steps.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(args.config)
    if args.preset:
        cfg = deep_update(cfg, preset(args.preset))
    if args.mode is not None:
        cfg["mode"] = args.mode
    if args.steps is not None:
        cfg["steps"] = args.steps
    if args.dt is not None:
        cfg["dt"] = args.dt
    if args.seed is not None:
        cfg["seed"] = args.seed
    if args.render_every is not None:
        cfg["render_every"] = args.render_every

    sim = Simulator(SimConfig.from_dict(cfg))
    renderer = None
    if not args.no_render:
        from flockwar.viz.render_2d import SwarmRenderer2D

        renderer = SwarmRenderer2D(bounds=sim.bounds, obstacles=sim.obstacles.obstacles)

    for step in range(cfg["steps"]):
        snap = sim.step(cfg["dt"])
        if renderer and step % cfg["render_every"] == 0:
            renderer.render(snap)

    stats = sim.stats()
    print(
        f"Finished {sim.tick} steps: blue={stats.population[Faction.BLUE]} red={stats.population[Faction.RED]} "
        f"avg speed blue={stats.avg_speed[Faction.BLUE]:.2f} red={stats.avg_speed[Faction.RED]:.2f} "
        f"avg neighbors={stats.avg_neighbors:.1f} "
        f"losses blue={sim.losses[Faction.BLUE]} red={sim.losses[Faction.RED]}"
    )


if __name__ == "__main__":
    main()
