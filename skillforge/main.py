"""
SkillForge - command line entry point
=====================================

Commands
--------
  python -m skillforge roadmap "Rust"     # Preview a generated roadmap
  python -m skillforge leaderboard -n 5   # Top learners
  python -m skillforge health             # Database, logging and config check
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from skillforge.core.config.config import Config
from skillforge.core.database.service import DatabaseService
from skillforge.core.exceptions import SkillForgeInfrastructureException, user_message_for
from skillforge.core.infra.application_context import ApplicationContext
from skillforge.core.logging.logger import get_logger, get_logging_health

logger = get_logger(__name__)


# ============================================================================
# Commands
# ============================================================================


async def cmd_roadmap(context: ApplicationContext, args: argparse.Namespace) -> int:
    try:
        modules = await context.learning.generate_roadmap_structure(args.topic)
    except SkillForgeInfrastructureException as exc:
        print(f"❌ {user_message_for(exc)}")
        return 1

    print(f"Roadmap: {args.topic}")
    for number, module in enumerate(modules, start=1):
        print(f"\n{number}. {module.title}")
        if module.description:
            print(f"   {module.description}")
        for subtopic in module.subtopics:
            print(f"   - {subtopic.title}")
    return 0


async def cmd_leaderboard(context: ApplicationContext, args: argparse.Namespace) -> int:
    entries = await context.leaderboard.top(args.limit)
    if not entries:
        print("No learners yet.")
        return 0
    for entry in entries:
        print(
            f"{entry.rank:>3}. {entry.avatar} {entry.name:<24} "
            f"{entry.points:>7} pts  Lv {entry.level}"
        )
    return 0


async def cmd_health(context: ApplicationContext, args: argparse.Namespace) -> int:
    healthy = await DatabaseService.health_check()
    print(f"{'✓' if healthy else '✗'} database ({Config.get_config_summary()['database_scheme']})")

    logging_health = get_logging_health()
    print(
        f"{'✓' if logging_health.initialized else '✗'} logging "
        f"(queue {logging_health.queue_size}/{logging_health.queue_max_size}, "
        f"dropped {logging_health.records_dropped}, "
        f"listener errors {logging_health.listener_errors})"
    )
    for key, value in Config.get_config_summary().items():
        print(f"  {key}: {value}")
    return 0 if healthy else 1


COMMANDS = {
    "roadmap": cmd_roadmap,
    "leaderboard": cmd_leaderboard,
    "health": cmd_health,
}


# ============================================================================
# Entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skillforge", description="SkillForge learning platform")
    sub = parser.add_subparsers(dest="command", required=True)

    roadmap = sub.add_parser("roadmap", help="Generate and print a roadmap for a topic")
    roadmap.add_argument("topic")

    board = sub.add_parser("leaderboard", help="Show the top learners")
    board.add_argument("-n", "--limit", type=int, default=None)

    sub.add_parser("health", help="Check the database and logging, and print the config summary")
    return parser


async def run(args: argparse.Namespace) -> int:
    context = ApplicationContext(with_generation=args.command == "roadmap")
    try:
        await context.initialize()
    except RuntimeError as exc:
        print(f"❌ Startup failed: {exc.__cause__ or exc}")
        return 1

    try:
        return await COMMANDS[args.command](context, args)
    finally:
        await context.shutdown()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Stopped via keyboard interrupt")
        return 130


if __name__ == "__main__":
    sys.exit(main())
