from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from sqlalchemy import select

from artdex_api.db.models import Artist
from artdex_api.db.session import create_schema, create_sessionmaker
from artdex_api.domain.artist_names import normalize_name
from artdex_api.domain.artists import ArtistChanges, create_artist, update_artist
from artdex_api.settings import get_settings
from artdex_api.time import utcnow


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or update artists from a JSON file.")
    parser.add_argument(
        "path",
        nargs="?",
        default=str(Path(__file__).resolve().parents[3] / "data" / "seed" / "artists.json"),
        help="JSON array of {name, other_names?, group_name?, urls?} objects.",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create tables directly instead of relying on migrations.",
    )
    return parser.parse_args()


def _changes(row: dict) -> ArtistChanges:
    if not isinstance(row, dict) or not row.get("name"):
        raise ValueError(f"Seed rows need a name: {row!r}")
    return ArtistChanges(
        name=row["name"],
        other_names=row.get("other_names"),
        group_name=row.get("group_name"),
        url_string=row.get("urls"),
    )


async def main() -> None:
    args = parse_args()
    settings = get_settings()
    if args.create_schema:
        await create_schema(settings.database_url)

    rows = json.loads(Path(args.path).read_text(encoding="utf-8"))
    sessionmaker = create_sessionmaker(settings.database_url)
    created = updated = 0
    async with sessionmaker() as db:
        for row in rows:
            changes = _changes(row)
            existing_id = await db.scalar(
                select(Artist.id).where(Artist.name == normalize_name(changes.name or ""))
            )
            if existing_id is None:
                await create_artist(db=db, changes=changes, updater_id=None, now=utcnow())
                created += 1
            else:
                await update_artist(
                    db=db, artist_id=existing_id, changes=changes, updater_id=None, now=utcnow()
                )
                updated += 1

    print(f"Seeded artists: {created} created, {updated} updated.")


if __name__ == "__main__":
    asyncio.run(main())
