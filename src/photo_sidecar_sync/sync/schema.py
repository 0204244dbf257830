"""DuckDB schema definition for the sync state database."""

import duckdb


def ensure_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Create tables if they do not exist."""
    # One watermark per forward-sync target (e.g. "inbox")
    conn.execute("""
        CREATE TABLE IF NOT EXISTS sync_cursors (
            name        VARCHAR PRIMARY KEY,
            cursor_at   TIMESTAMP NOT NULL,
            updated_at  TIMESTAMP DEFAULT current_timestamp
        )
    """)

    conn.execute("CREATE SEQUENCE IF NOT EXISTS sync_runs_id_seq START 1")
    conn.execute("""
        CREATE TABLE IF NOT EXISTS sync_runs (
            id          INTEGER PRIMARY KEY DEFAULT nextval('sync_runs_id_seq'),
            kind        VARCHAR NOT NULL,
            root        VARCHAR NOT NULL,
            started_at  TIMESTAMP NOT NULL,
            finished_at TIMESTAMP,
            dry_run     BOOLEAN NOT NULL DEFAULT false,
            cancelled   BOOLEAN NOT NULL DEFAULT false,
            counts      JSON
        )
    """)
    conn.execute("CREATE INDEX IF NOT EXISTS idx_sync_runs_kind ON sync_runs(kind)")
