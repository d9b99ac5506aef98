"""
Create (or upgrade) the UEMS tables and verify they exist.

Run once before starting the gateway:

    python -m uems.database.init_db

The schema uses IF NOT EXISTS everywhere, so re-running is harmless.
"""

import sys
from pathlib import Path
from typing import List

from uems.database.db_connection import get_db

SCHEMA_PATH = Path(__file__).with_name("schema.sql")
REQUIRED_TABLES = ["users", "events", "registrations", "notifications", "event_analytics"]


def apply_schema(conn) -> None:
    """Execute schema.sql on the given connection (caller commits)."""
    sql = SCHEMA_PATH.read_text(encoding="utf-8")
    with conn.cursor() as cur:
        cur.execute(sql)


def missing_tables(conn) -> List[str]:
    """Return the names of required tables that are not present."""
    missing = []
    with conn.cursor() as cur:
        for table in REQUIRED_TABLES:
            cur.execute("SELECT to_regclass(%s);", (table,))
            if cur.fetchone()[0] is None:
                missing.append(table)
    return missing


def main() -> int:
    print("--- Initializing UEMS database ---")
    conn = get_db()
    try:
        with conn:
            apply_schema(conn)

        missing = missing_tables(conn)
        for table in REQUIRED_TABLES:
            print(f" - {table}: {'MISSING' if table in missing else 'Found'}")

        if missing:
            print("\nSchema check FAILED.")
            return 1
    finally:
        conn.close()

    print("\nSchema applied successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
