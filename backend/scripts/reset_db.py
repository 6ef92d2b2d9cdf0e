"""Drop and recreate every planner table for the configured database.

Reads `DATABASE_URL` (and the rest of the settings) from the environment.
Intended for local development; all rows are deleted.
"""

import os
import sys

# Ensure backend folder is on sys.path so `planner` can be imported without installing
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from planner.config import Settings  # noqa: E402
from planner.database import build_engine, create_db_and_tables, drop_db_and_tables  # noqa: E402


def run():
    settings = Settings()
    print("Using database:", settings.DATABASE_URL)
    engine = build_engine(settings)
    drop_db_and_tables(engine)
    print("Dropped all tables.")
    create_db_and_tables(engine)
    print("Tables created.")
    engine.dispose()


if __name__ == "__main__":
    run()
