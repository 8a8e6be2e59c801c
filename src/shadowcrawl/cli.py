from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .config import Settings
from .errors import ShadowcrawlError
from .game.actions import Action
from .game.engine import WorldState
from .game.entities import Enemy
from .game.session import GameSession
from .dungeon.generator import GenerationProgress
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="shadowcrawl", description="Turn-based dungeon crawler core")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    parser.add_argument("--debug", action="store_true", help="Shorthand for -vv")
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file overlaid on the defaults")
    parser.add_argument("--seed", default=None, help="Master seed (int or string)")
    parser.add_argument("--width", type=int, default=None, help="Map width override")
    parser.add_argument("--height", type=int, default=None, help="Map height override")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("generate", help="Generate a dungeon and print it as JSON")
    sim = sub.add_parser("simulate", help="Play a scripted list of actions and print the final state")
    sim.add_argument(
        "--actions",
        required=True,
        help="Comma separated actions, e.g. 'N,NE,WAIT,E'",
    )
    sim.add_argument("--god-mode", action="store_true", help="Enemy hits deal no damage")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.load(args.config)
    overrides: Dict[str, Any] = {}
    if args.seed is not None:
        overrides["seed"] = int(args.seed) if str(args.seed).isdigit() else args.seed
    if args.width is not None or args.height is not None:
        overrides["map"] = {
            "width": args.width if args.width is not None else settings.map.width,
            "height": args.height if args.height is not None else settings.map.height,
        }
    if getattr(args, "god_mode", False):
        overrides["debug"] = {"god_mode": True}
    if not overrides:
        return settings
    return Settings.from_dict(Settings._deep_merge(settings.to_dict(), overrides), source="command line")


def parse_actions(text: str) -> List[Action]:
    return [Action.parse(part) for part in text.split(",") if part.strip()]


def render_ascii(state: WorldState, enemies: Optional[Iterable[Enemy]] = None) -> List[str]:
    """ASCII view of a snapshot: '#' wall, '.' floor, '@' player, 'e' enemy.

    Only ``enemies`` are drawn when given; by default every enemy is.
    """
    rows = [list(row) for row in state.grid.to_ascii()]
    for enemy in state.enemies if enemies is None else enemies:
        rows[enemy.pos.y][enemy.pos.x] = "e"
    rows[state.player.pos.y][state.player.pos.x] = "@"
    return ["".join(row) for row in rows]


def _state_summary(session: GameSession) -> Dict[str, Any]:
    state = session.state
    seen = session.visible_enemies()
    return {
        "seed": session.seed,
        "turn": state.turn,
        "player": {"pos": list(state.player.pos), "health": state.player.display_health},
        "defeated": session.game_over,
        "enemies": [
            {"id": e.id, "pos": list(e.pos), "health": e.display_health, "state": e.state.value}
            for e in seen
        ],
        "enemy_count": len(state.enemies),
        "map": render_ascii(state, seen),
    }


def run_generate(settings: Settings) -> Dict[str, Any]:
    progress: List[Dict[str, Any]] = []

    def record(event: GenerationProgress) -> None:
        progress.append({"percent": event.percent, "message": event.message})

    session = GameSession.new(settings, on_progress=record)
    summary = _state_summary(session)
    summary["progress"] = progress
    return summary


def run_simulate(settings: Settings, actions: Sequence[Action]) -> Dict[str, Any]:
    session = GameSession.new(settings)
    for action in actions:
        if session.game_over:
            logger.info("Player defeated; ignoring remaining actions")
            break
        session.act(action)
    summary = _state_summary(session)
    summary["log"] = session.log.texts()
    return summary


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(2 if args.debug else args.verbose)

    try:
        settings = build_settings(args)
        if args.command == "generate":
            data = run_generate(settings)
        else:
            data = run_simulate(settings, parse_actions(args.actions))
    except ShadowcrawlError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(data, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
