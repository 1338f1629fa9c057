"""
Create the analytics schema on rollback.duckdb, or run an extra SQL file on it.

Usage:
    python tools/run_migration.py                 # schema only
    python tools/run_migration.py <sql_file>      # schema, then the SQL file
"""

import os
import sys
from pathlib import Path
import duckdb

sys.path.insert(0, str(Path(__file__).parent.parent))

from rct_core.schema import ensure_schema


def run_migration(sql_file: str = None, db_path: str = None):
    """Ensure the schema exists and optionally apply a SQL migration file."""
    db_path = Path(db_path or os.getenv("RCT_DB_PATH", "rollback.duckdb"))

    sql = None
    if sql_file:
        sql_path = Path(sql_file)
        if not sql_path.exists():
            print(f"❌ Migration file not found: {sql_file}")
            sys.exit(1)
        sql = sql_path.read_text()
        print(f"Running migration: {sql_path.name}")

    print(f"Database: {db_path}")

    conn = duckdb.connect(str(db_path))

    try:
        ensure_schema(conn)
        if sql:
            conn.execute(sql)
        print("✅ Migration successful")

        tables = conn.execute(
            "SELECT table_name FROM information_schema.tables WHERE table_schema = 'analytics'"
        ).fetchall()
        print(f"\nCurrent tables: {[t[0] for t in tables]}")

    except duckdb.Error as e:
        print(f"❌ Migration failed: {e}")
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    if len(sys.argv) > 2:
        print("Usage: python tools/run_migration.py [sql_file]")
        sys.exit(1)

    run_migration(sys.argv[1] if len(sys.argv) == 2 else None)
