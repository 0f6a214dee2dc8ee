"""
RepackHub — Card JSON Import Script

Bulk-inserts cards from a JSON array of
{"box_name", "display_name", "card_code", "image_filename"} objects for one
user, in a single insert.

Usage:
    python scripts/import_cards.py --file cards.json --user-id U1
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Resolve project root so this script can be run from any working directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from repackhub.accessors.cards import CardsCollection
from repackhub.errors import InvalidPayloadError
from repackhub.identity import Identity, IdentityProvider
from repackhub.main import create_db_engine
from repackhub.schemas.card import load_card_json
from repackhub.store.sql import SqlStore


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import cards from a JSON file into the configured database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/import_cards.py --file cards.json --user-id U1
  DATABASE_URL=postgresql+asyncpg://... python scripts/import_cards.py --file box.json --user-id U2
""",
    )
    parser.add_argument(
        "--file",
        type=Path,
        required=True,
        help="Path to a JSON array of card entries.",
    )
    parser.add_argument(
        "--user-id",
        type=str,
        required=True,
        help="Owner of the imported cards.",
    )
    return parser.parse_args()


async def import_cards(path: Path, user_id: str) -> int:
    """
    Parse `path` and insert its cards for `user_id`.

    Returns:
        Number of cards inserted.

    Raises:
        InvalidPayloadError: if the file is not a valid card array.
        RuntimeError: if the insert failed.
    """
    entries = load_card_json(path.read_text(encoding="utf-8"))

    engine, session_factory = await create_db_engine()
    try:
        identity = IdentityProvider(Identity.authenticated(user_id))
        cards = CardsCollection(SqlStore(session_factory), identity)
        await cards.settle()
        inserted = await cards.upload_json(entries)
        cards.close()
        if inserted is None:
            raise RuntimeError(cards.error or "card upload failed")
        return len(inserted)
    finally:
        await engine.dispose()


async def main() -> None:
    args = parse_args()

    print(f"Importing cards: file={args.file}, user_id={args.user_id}")

    try:
        count = await import_cards(args.file, args.user_id)
    except (InvalidPayloadError, RuntimeError, OSError) as e:
        print(f"Failed to import cards: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Imported {count} card(s).")


if __name__ == "__main__":
    asyncio.run(main())
