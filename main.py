#!/usr/bin/env python3
"""Story World Engine - a persistent, AI-narrated story world.

An interactive loop where each player input becomes a turn:
- The collaborator (a local Ollama model) narrates and proposes new entities
- The validation service admits or rejects each proposal
- The creation pipeline commits what was admitted, in arrival order

Usage:
    python main.py                       # Play, narrated by Ollama
    python main.py --offline             # Play without a collaborator
    python main.py --load saves/a.json   # Resume a saved session
    python main.py --status              # Print system status and exit
"""

import argparse
import json
import logging
import sys
import time

from storyworld.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

QUIT_COMMANDS = {"quit", "exit"}


def run_cli(
    load_path: str | None = None,
    save_path: str | None = None,
    offline: bool = False,
    status_only: bool = False,
) -> None:
    """Run the interactive story loop.

    Args:
        load_path: Save file to resume from.
        save_path: Where to save on exit (default saves directory if None).
        offline: Play without a collaborator (fallback narration only).
        status_only: Print system status and return.
    """
    from storyworld.services import ServiceContainer, WorldEngine
    from storyworld.settings import Settings

    t0 = time.perf_counter()
    settings = Settings.load()
    logger.info("Settings loaded in %.2fs", time.perf_counter() - t0)

    if offline:
        engine = WorldEngine(settings)
    else:
        engine = ServiceContainer(settings).engine

    if load_path:
        logger.info(f"Loading session from: {load_path}")
        try:
            engine.load_game(load_path)
        except FileNotFoundError as e:
            logger.error(f"Save file not found: {load_path}")
            print(f"Error: {e}")
            return

    if status_only:
        print(json.dumps(engine.get_system_status(), indent=2, default=str))
        return

    print(
        "Type what you do. 'go <location_id>' moves, 'status' shows the world, "
        "'save' saves, 'quit' exits."
    )
    while True:
        try:
            player_input = input("\n> ").strip()
        except EOFError:
            break
        if not player_input:
            continue
        command = player_input.lower()
        if command in QUIT_COMMANDS:
            break
        if command == "status":
            print(json.dumps(engine.get_world_summary(), indent=2, default=str))
            continue
        if command == "save":
            print(f"Saved to {engine.save_game(save_path)}")
            continue

        destination = None
        if command.startswith("go "):
            destination = player_input[3:].strip() or None
        result = engine.process_turn(player_input, destination=destination)
        print()
        print(result.narrative)
        if result.new_entities_count:
            print(f"\n[{result.new_entities_count} new entities entered the world]")
        if result.creation:
            for warning in result.creation.warnings:
                logger.debug(f"Creation warning: {warning}")

    filepath = engine.save_game(save_path)
    logger.info(f"Session saved to: {filepath}")
    print(f"Session saved to: {filepath}")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Story World Engine - persistent story world")
    parser.add_argument(
        "--load",
        type=str,
        metavar="PATH",
        help="Resume a saved session",
    )
    parser.add_argument(
        "--save",
        type=str,
        metavar="PATH",
        help="Where to save the session on exit (default: output/saves/gamestate.json)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Play without an Ollama collaborator",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Print system status and exit",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default="default",
        help="Log file path (default: logs/storyworld.log, use 'none' to disable)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Write log lines as JSON objects",
    )
    args = parser.parse_args()

    log_file = None if args.log_file.lower() == "none" else args.log_file
    setup_logging(level=args.log_level, log_file=log_file, json_format=args.log_json)
    logger.info("Story World Engine starting")

    try:
        run_cli(
            load_path=args.load,
            save_path=args.save,
            offline=args.offline,
            status_only=args.status,
        )
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        print("\nGoodbye.")
        sys.exit(0)


if __name__ == "__main__":
    main()
