"""Command-line entry point for access code administration.

This module generates batches of one-time access codes offline, purges
expired records, and reports how many codes are available or claimed.

Usage:
    python src/main.py generate --count 100 --notes "Workshop batch"
    python src/main.py purge
    python src/main.py stats
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from core.database import SessionLocal
from core.exceptions import (
    ExhaustedKeyspaceError,
    InvalidFormatError,
    StoreUnavailableError,
)
from core.logging_config import setup_logging
from utils.code_generator import CodeGenerator
from utils.code_store import CodeStore
from utils.converters import epoch_to_iso, now_epoch

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Access code administration.")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Create a batch of access codes.")
    gen.add_argument("--count", type=int, default=100, help="Number of codes to create.")
    gen.add_argument("--prefix", default=None, help="Prefix for every code.")
    gen.add_argument("--length", type=int, default=None, help="Random symbols per code.")
    gen.add_argument("--notes", default=None, help="Batch label stored with each code.")

    sub.add_parser("purge", help="Delete claimed codes past their retention window.")
    sub.add_parser("stats", help="Count codes by status.")
    return parser


def cmd_generate(store: CodeStore, args: argparse.Namespace) -> int:
    generator = CodeGenerator(store)
    try:
        codes = generator.generate(
            count=args.count,
            prefix=args.prefix,
            length=args.length,
            notes=args.notes,
        )
    except InvalidFormatError as e:
        print(f"Invalid options: {e}", file=sys.stderr)
        return 2
    except (ExhaustedKeyspaceError, StoreUnavailableError) as e:
        for code in e.created:
            print(code)
        print(f"Generation stopped: {e}", file=sys.stderr)
        return 1

    for code in codes:
        print(code)
    print(f"Created {len(codes)} codes", file=sys.stderr)
    return 0


def cmd_purge(store: CodeStore) -> int:
    now = now_epoch()
    purged = store.purge_expired(now)
    print(f"Purged {purged} codes expired before {epoch_to_iso(now)}")
    return 0


def cmd_stats(store: CodeStore) -> int:
    for status, count in store.count_by_status().items():
        print(f"{status}: {count}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    setup_logging()
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    with SessionLocal() as db:
        store = CodeStore(db)
        try:
            if args.command == "generate":
                return cmd_generate(store, args)
            if args.command == "purge":
                return cmd_purge(store)
            return cmd_stats(store)
        except StoreUnavailableError as e:
            logger.error("Command %s failed: %s", args.command, e)
            return 1


if __name__ == "__main__":
    sys.exit(main())
