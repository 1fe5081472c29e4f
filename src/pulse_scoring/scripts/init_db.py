# src/pulse_scoring/scripts/init_db.py
"""Create the schema and seed the default scoring categories."""
from __future__ import annotations

import argparse
import sys

from sqlalchemy.exc import SQLAlchemyError

from pulse_scoring.db.session import SessionLocal, create_tables, drop_tables
from pulse_scoring.services.registry import ScoringRegistry


def init_db(*, reset: bool = False) -> int:
    """Create all tables and insert missing default categories.

    Returns the number of categories added.
    """
    if reset:
        drop_tables()
        print("[init_db] dropped all tables")
    create_tables()

    db = SessionLocal()
    try:
        added = ScoringRegistry(db).seed_defaults()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()
    return added


def main() -> None:
    parser = argparse.ArgumentParser(description="Initialize the scoring database")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop every table before recreating the schema.",
    )
    args = parser.parse_args()

    try:
        added = init_db(reset=args.reset)
    except SQLAlchemyError as exc:
        print(f"[init_db] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"[init_db] database initialized, seeded {added} scoring categories")


if __name__ == "__main__":
    main()
