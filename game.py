#!/usr/bin/env python3
"""Dicy - Main entry point.

Runs headless matches and tournaments between sandboxed agents on a
dice-conquest board.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from dicy.agent.registry import AgentRepository
from dicy.engine.levels import start_level
from dicy.engine.match import MatchEngine, MatchSettings
from dicy.engine.probability import precompute_tables
from dicy.engine.tournament import TOURNAMENT_MAX_TURNS, run_tournament
from dicy.models.level import parse_level
from dicy.sandbox.runner import AgentSandbox
from dicy.utils.constants import DEFAULT_DICE_SIDES, DEFAULT_MAX_DICE, GAME_MODES, MAP_STYLES
from dicy.utils.grid import parse_map_size
from dicy.utils.rng import GameRNG
from dicy.utils.serialization import save_match


def register_agent_files(repository: AgentRepository, paths: list[str]) -> list[str]:
    """Register each agent program file as a custom agent named after the file.

    Returns:
        The new agent ids, in order
    """
    ids = []
    for path in paths:
        source = Path(path)
        agent = repository.register(name=source.stem, code=source.read_text(), agent_id=source.stem)
        ids.append(agent.id)
    return ids


def build_settings(args, agent_ids: list[str]) -> MatchSettings:
    width, height = args.width, args.height
    if args.size:
        width, height = parse_map_size(args.size)
    return MatchSettings(
        width=width,
        height=height,
        humans=0,
        bots=args.bots,
        max_dice=args.max_dice,
        dice_sides=args.dice_sides,
        map_style=args.style,
        game_mode=args.mode,
        bot_agents=agent_ids,
    )


def print_summary(engine: MatchEngine):
    print("\n" + "=" * 60)
    if engine.winner is None:
        print(f"No winner after {engine.turn} turns")
    else:
        winner = engine.get_player(engine.winner)
        print(f"Winner: player {winner.id} ({winner.agent_id}) on turn {engine.turn}")
    print("=" * 60)
    for stats in engine.player_stats():
        print(
            f"  Player {stats['id']:>2} {stats['agentId'] or 'human':<12} "
            f"tiles={stats['tileCount']:<4} dice={stats['totalDice']:<4} region={stats['connectedTiles']}"
        )


async def play_single(args, repository: AgentRepository, sandbox: AgentSandbox, agent_ids: list[str]):
    engine = MatchEngine(rng=GameRNG(args.seed), sandbox=sandbox, repository=repository)

    if args.level:
        level = parse_level(json.loads(Path(args.level).read_text()))
        start_level(engine, level)
        if any(not p.is_bot for p in engine.players):
            print("Error: headless play needs a bot-only level")
            sys.exit(1)
    else:
        engine.start(build_settings(args, agent_ids))

    print(f"Playing {engine.board.width}x{engine.board.height} match with {len(engine.players)} bots...")
    await engine.run(max_turns=args.max_turns)
    print_summary(engine)
    return engine


async def play_tournament(args, repository: AgentRepository, sandbox: AgentSandbox, agent_ids: list[str]):
    settings = build_settings(args, agent_ids)

    def progress(index, engine):
        print(f"  Game {index + 1}/{args.games}: winner {engine.winner} after {engine.turn} turns")

    print(f"Running {args.games} games...")
    result = await run_tournament(
        settings,
        args.games,
        repository=repository,
        seed=args.seed,
        max_turns=args.max_turns,
        sandbox=sandbox,
        on_game=progress,
    )

    print("\n" + "=" * 60)
    print("Tournament results")
    print("=" * 60)
    for label, wins, percent in result.standings():
        print(f"  {label:<20} {wins:>5} wins  ({percent:.1f}%)")
    if result.draws:
        print(f"  Draws (turn limit): {result.draws}")
    if result.turns:
        print(f"  Average length: {sum(result.turns) / len(result.turns):.1f} turns")
    return result


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Dicy - dice conquest matches between sandboxed agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                       # 1v1 easy bots on a random 6x6 map
  %(prog)s --bots 4 --ai easy,hard --seed 42     # Four bots, alternating strategies
  %(prog)s --size 10x8 --style caves --mode madness
  %(prog)s --agent-file my_bot.py --bots 2 --ai easy   # Custom agent vs easy
  %(prog)s --games 100 --ai hard,adaptive        # Tournament
  %(prog)s --level levels/bridge.json --save result.json
        """,
    )

    parser.add_argument("--bots", type=int, default=2, help="Number of bot seats (default: 2)")
    parser.add_argument("--width", type=int, default=6, help="Board width (default: 6)")
    parser.add_argument("--height", type=int, default=6, help="Board height (default: 6)")
    parser.add_argument("--size", type=str, default=None, help="Board size as WxH, overrides --width/--height")
    parser.add_argument(
        "--style",
        choices=["random", *[s for s in MAP_STYLES if s != "preset"]],
        default="random",
        help="Map style (default: random)",
    )
    parser.add_argument("--mode", choices=list(GAME_MODES), default="classic", help="Game mode (default: classic)")
    parser.add_argument("--max-dice", type=int, default=DEFAULT_MAX_DICE, help="Dice cap per tile")
    parser.add_argument("--dice-sides", type=int, default=DEFAULT_DICE_SIDES, help="Faces per die")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (default: random)")
    parser.add_argument(
        "--ai",
        type=str,
        default="easy",
        help="Comma-separated agent ids, cycled over bot seats (default: easy)",
    )
    parser.add_argument(
        "--agent-file",
        action="append",
        default=[],
        metavar="FILE",
        help="Agent program to register (id = file stem); seats it before --ai agents",
    )
    parser.add_argument("--agents-db", type=str, default=None, metavar="FILE", help="Persistent agent repository")
    parser.add_argument("--games", type=int, default=1, help="Play a tournament of N games")
    parser.add_argument("--level", type=str, metavar="FILE", help="Start from a level JSON file")
    parser.add_argument("--max-turns", type=int, default=TOURNAMENT_MAX_TURNS, help="Turn limit per game")
    parser.add_argument("--timeout", type=float, default=None, help="Per-turn agent timeout in seconds")
    parser.add_argument("--save", type=str, metavar="FILE", help="Save the finished match to JSON")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    log_level = logging.DEBUG if args.debug else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="[%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    repository = AgentRepository(Path(args.agents_db) if args.agents_db else None)
    try:
        agent_ids = register_agent_files(repository, args.agent_file)
    except (OSError, ValueError) as e:
        print(f"Error loading agent file: {e}")
        sys.exit(1)
    agent_ids += [a.strip() for a in args.ai.split(",") if a.strip()]
    for agent_id in agent_ids:
        if repository.get(agent_id) is None:
            print(f"Error: unknown agent '{agent_id}'")
            sys.exit(1)

    precompute_tables()
    sandbox = AgentSandbox(repository, timeout=args.timeout)

    try:
        if args.games > 1:
            asyncio.run(play_tournament(args, repository, sandbox, agent_ids))
            return
        engine = asyncio.run(play_single(args, repository, sandbox, agent_ids))
    except (ValueError, ValidationError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user. Exiting...")
        sys.exit(0)

    if args.save:
        print(f"\nSaving match to {args.save}...")
        save_match(engine, args.save)
        print("Match saved successfully!")


if __name__ == "__main__":
    main()
