"""
Tabula CLI - Command-line interface for the engine.

Usage:
    tabula moves --dice 3 5            List legal sequences from the start
    tabula play --seed 7               Play a bot-vs-bot game
    tabula serve --port 8000           Run the HTTP API
"""

import argparse
import logging
import sys

from .config import Settings


def main(argv=None):
    """Main CLI entry point."""
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Tabula - Deterministic backgammon rules engine",
        prog="tabula",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Logging level (default: TABULA_LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Moves command
    moves_parser = subparsers.add_parser("moves", help="List legal sequences for a roll")
    moves_parser.add_argument("--dice", type=int, nargs=2, required=True, metavar="DIE")
    moves_parser.add_argument(
        "--black", action="store_true", help="Move for black instead of white"
    )

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a bot-vs-bot game")
    play_parser.add_argument("--seed", type=int, default=settings.dice_seed, help="Dice and bot seed")
    play_parser.add_argument("--max-turns", type=int, default=None, help="Stop after N turns")
    play_parser.add_argument("--quiet", action="store_true", help="Only print the result")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "moves":
        return cmd_moves(args)
    elif args.command == "play":
        return cmd_play(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_moves(args):
    """Print every legal sequence for a roll from the starting position."""
    from .engine_core import BoardState, MoveGenerator, RulesEngine, Side

    side = Side.BLACK if args.black else Side.WHITE
    state = BoardState.initial(active_player=side)
    rules = RulesEngine(state.topology)
    for value in args.dice:
        if not 1 <= value <= state.topology.die_faces:
            print(f"Error: die value {value} out of range")
            sys.exit(1)

    sequences = MoveGenerator(rules).legal_sequence_list(state, dice=args.dice)
    print(f"{side.name} rolls {args.dice[0]}-{args.dice[1]}: {len(sequences)} legal sequences")
    for sequence in sequences:
        print(f"  {sequence}")
    return 0


def cmd_play(args):
    """Play a full game between two random bots."""
    from .bots import RandomPolicy
    from .engine_core import RandomDice, Side
    from .session import Player, TurnController

    seed = args.seed
    white = Player("white", "White", Side.WHITE, RandomPolicy(seed=seed))
    black = Player(
        "black", "Black", Side.BLACK,
        RandomPolicy(seed=None if seed is None else seed + 1),
    )
    controller = TurnController([white, black], dice=RandomDice(seed=seed))

    winner = controller.play_game(max_turns=args.max_turns)
    if not args.quiet:
        for number, result in enumerate(controller.turn_log, start=1):
            print(f"{number:4d}. {result.describe()}")

    if winner is None:
        print(f"No winner after {len(controller.turn_log)} turns")
    else:
        print(f"{winner.name} wins after {len(controller.turn_log)} turns")
        for player in (white, black):
            stats = player.stats
            print(
                f"  {player.name}: {stats.moves_made} moves, {stats.pieces_hit} hits, "
                f"{stats.turns_skipped} skipped, pip count {controller.state.pip_count(player.side)}"
            )
    return 0


def cmd_serve(args):
    """Run the API app under uvicorn."""
    import uvicorn

    print(f"Serving Tabula API on http://{args.host}:{args.port}/api/docs")
    uvicorn.run("tabula.api.app:create_app", factory=True, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
