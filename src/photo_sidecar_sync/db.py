"""Shared DuckDB connection factory for the sync state database."""

import duckdb

from photo_sidecar_sync.config import STATE_DB_PATH


def get_connection(db_path: str | None = None) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection. Defaults to the project-root state DB file."""
    path = db_path or str(STATE_DB_PATH)
    conn = duckdb.connect(path)

    from photo_sidecar_sync.sync.schema import ensure_schema

    ensure_schema(conn)
    return conn
