# src/pulse_scoring/scripts/repair_scores.py
"""
Recompute drifted vote totals and presentation rollups.

Run this after changing the scoring formula or after a partial outage:
1. Reset every judge vote's totalScore to the raw sum of its ratings
2. Rebuild every presentation's judge total and spectator likes from its votes

Both passes are idempotent. Vote totals are always repaired before rollups.
"""
from __future__ import annotations

import argparse
import logging
import sys

from pulse_scoring.core.errors import StoreWriteError
from pulse_scoring.core.settings import settings
from pulse_scoring.db.session import SessionLocal
from pulse_scoring.repositories import SqlVoteStore
from pulse_scoring.services.repair import repair_presentation_rollups, repair_vote_totals


def say(msg: str) -> None:
    print(f"[repair] {msg}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Repair vote totals and presentation rollups")
    only = parser.add_mutually_exclusive_group()
    only.add_argument("--votes-only", action="store_true", help="Only repair vote totals.")
    only.add_argument(
        "--rollups-only",
        action="store_true",
        help="Only rebuild presentation rollups.",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.repair_batch_size,
        help=f"Writes per commit (default {settings.repair_batch_size}).",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=settings.repair_tolerance,
        help="Largest drift between stored total and rating sum left untouched.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing anything.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.log_level.upper())

    db = SessionLocal()
    store = SqlVoteStore(db)
    try:
        if not args.rollups_only:
            say("Repairing vote totals...")
            report = repair_vote_totals(
                store,
                batch_size=args.batch_size,
                tolerance=args.tolerance,
                dry_run=args.dry_run,
                progress=say,
            )
            say(report.describe())
        if not args.votes_only:
            say("Rebuilding presentation rollups...")
            report = repair_presentation_rollups(
                store,
                batch_size=args.batch_size,
                dry_run=args.dry_run,
                progress=say,
            )
            say(report.describe())
    except (StoreWriteError, ValueError) as exc:
        print(f"[repair] ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        db.close()

    say("Score repair completed")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
