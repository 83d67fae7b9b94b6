from __future__ import annotations

import argparse
import asyncio

from artdex_api.db.bootstrap import ensure_database, upgrade_schema
from artdex_api.observability.logging import configure_logging
from artdex_api.settings import get_settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create the artdex Postgres database if needed and apply migrations."
    )
    parser.add_argument(
        "--skip-migrations",
        action="store_true",
        help="Only create the database.",
    )
    parser.add_argument("--revision", default="head", help="Alembic revision to upgrade to.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()
    created = asyncio.run(ensure_database(get_settings().database_url))
    print("Created database." if created else "Database already present.")
    if not args.skip_migrations:
        upgrade_schema(args.revision)
        print(f"Schema upgraded to {args.revision}.")


if __name__ == "__main__":
    main()
