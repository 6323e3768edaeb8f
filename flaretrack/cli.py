"""CLI commands for FlareTrack."""

import argparse
import json
import sys
import uuid

from sqlalchemy.orm import Session

from flaretrack.database import SessionLocal
from flaretrack.api.patterns import correlation_to_dict
from flaretrack.services.entry_store import EntrySourceUnavailableError
from flaretrack.services.pattern_learning_service import PatternLearningService
from flaretrack.services.pattern_store import SqlPatternStore


def _parse_user_id(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        print(f"Error: '{value}' is not a valid user ID.")
        sys.exit(1)


def learn_patterns(user_id: str) -> None:
    """Run pattern learning for a user and print the summary."""
    parsed = _parse_user_id(user_id)
    db: Session = SessionLocal()

    try:
        summary = PatternLearningService(db).learn_patterns(parsed)
    except EntrySourceUnavailableError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()

    print(json.dumps(summary.to_dict(), indent=2))


def show_patterns(user_id: str, current_only: bool = False) -> None:
    """Print a user's persisted patterns."""
    parsed = _parse_user_id(user_id)
    db: Session = SessionLocal()

    try:
        correlations = SqlPatternStore(db).list_patterns(parsed, current_only=current_only)
        rows = [correlation_to_dict(c) for c in correlations]
    finally:
        db.close()

    if not rows:
        print("No patterns found.")
        return

    print(json.dumps(rows, indent=2))


def main():
    parser = argparse.ArgumentParser(description="FlareTrack CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # learn-patterns command
    learn_parser = subparsers.add_parser(
        "learn-patterns", help="Mine a user's history for trigger patterns"
    )
    learn_parser.add_argument("--user-id", required=True, help="User ID (UUID)")

    # show-patterns command
    show_parser = subparsers.add_parser(
        "show-patterns", help="Show a user's persisted patterns"
    )
    show_parser.add_argument("--user-id", required=True, help="User ID (UUID)")
    show_parser.add_argument(
        "--current-only",
        action="store_true",
        help="Only patterns reconfirmed by the latest run",
    )

    args = parser.parse_args()

    if args.command == "learn-patterns":
        learn_patterns(args.user_id)
    elif args.command == "show-patterns":
        show_patterns(args.user_id, args.current_only)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
