"""Create the database schema and seed the exercise catalog."""
import argparse
import logging
from pathlib import Path

from hybridcoach.config import get_settings
from hybridcoach.database import run_migrations, session_scope
from hybridcoach.logging_config import configure_logging
from hybridcoach.services.catalog_loader import load_catalog


logger = logging.getLogger("initial_setup")


def main(catalog_path: Path | None = None) -> dict[str, int]:
    configure_logging()
    run_migrations()

    with session_scope() as db:
        counts = load_catalog(db, catalog_path)

    logger.info("Catalog loaded into %s: %s", get_settings().database_url, counts)
    print("Database initialised at", get_settings().database_url)
    for table, count in counts.items():
        print(f"  {table}: {count}")
    return counts


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Migrate the database and load the exercise catalog")
    parser.add_argument("--catalog", type=Path, default=None, help="YAML catalog to load (default: bundled catalog)")
    args = parser.parse_args()
    main(args.catalog)
