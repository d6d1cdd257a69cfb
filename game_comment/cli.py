"""
cli.py – Database initialisation for one project
================================================
Creates the shared admin table, the project's prefixed tables and rating
view, seeds the default ``admin`` account, and optionally inserts games.

Usage:
  game-comment-init                          # schema + admin only
  game-comment-init --sample-games           # also insert aaa / bbb / ccc
  game-comment-init --game snake="Snake" --game tetris="Tetris"

Settings come from the usual GAME_COMMENT_* environment variables.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from .auth.seed import seed_admin
from .config import get_settings
from .database import db_session, engine
from .store import add_game
from .tenancy import TenantSchema, init_schema

log = logging.getLogger("game_comment.cli")

SAMPLE_GAMES: List[Tuple[str, str]] = [
    ("aaa", "Sample Game A"),
    ("bbb", "Sample Game B"),
    ("ccc", "Sample Game C"),
]


def _parse_game(value: str) -> Tuple[str, str]:
    address, sep, title = value.partition("=")
    address, title = address.strip(), title.strip()
    if not sep or not address or not title:
        raise argparse.ArgumentTypeError(f"expected address=title, got {value!r}")
    if len(address) > 100 or len(title) > 200:
        raise argparse.ArgumentTypeError(f"address or title too long in {value!r}")
    return address, title


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="game-comment-init",
        description="Create tables, seed the admin account and optionally add games.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--sample-games", action="store_true", help="Insert the sample games aaa, bbb and ccc")
    parser.add_argument("--game", action="append", default=[], type=_parse_game,
                        metavar="ADDRESS=TITLE", help="Insert a game (repeatable)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    settings = get_settings()
    tenant = TenantSchema.for_prefix(settings.project_prefix)
    games = list(args.game)
    if args.sample_games:
        games = SAMPLE_GAMES + games

    try:
        init_schema(engine, tenant)
        if seed_admin(tenant, settings.admin_password):
            log.info("Admin account created for project %s", tenant.prefix)
        else:
            log.info("Admin account already exists for project %s, skipping", tenant.prefix)
        with db_session() as session:
            for address, title in games:
                if add_game(session, tenant, address, title):
                    log.info("Inserted game %s (%s)", address, title)
    except Exception:
        log.exception("Database initialisation failed for project %s", tenant.prefix)
        return 1

    log.info(
        "Database ready - project: %s, tables: %s, %s, %s, view: %s",
        tenant.prefix, tenant.games.name, tenant.comments.name, tenant.ratings.name,
        tenant.rating_stats_name,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
