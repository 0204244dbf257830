"""Persistence of sync cursors and run history in DuckDB."""

import json
from datetime import UTC, datetime

import duckdb

from photo_sidecar_sync.models import SyncRun

INBOX_CURSOR = "inbox"


def _to_db(value: datetime | None) -> datetime | None:
    """Aware datetimes are stored as naive UTC."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def _from_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(tzinfo=UTC)


def get_cursor(conn: duckdb.DuckDBPyConnection, name: str = INBOX_CURSOR) -> datetime | None:
    """Return the stored watermark, or None when no pass has completed yet."""
    row = conn.execute("SELECT cursor_at FROM sync_cursors WHERE name = ?", [name]).fetchone()
    if row is None:
        return None
    return _from_db(row[0])


def set_cursor(
    conn: duckdb.DuckDBPyConnection, cursor_at: datetime, name: str = INBOX_CURSOR
) -> None:
    """Insert or move the watermark."""
    conn.execute(
        """
        INSERT INTO sync_cursors (name, cursor_at)
        VALUES (?, ?)
        ON CONFLICT (name) DO UPDATE SET
            cursor_at = EXCLUDED.cursor_at,
            updated_at = current_timestamp
        """,
        [name, _to_db(cursor_at)],
    )


def reset_cursor(conn: duckdb.DuckDBPyConnection, name: str = INBOX_CURSOR) -> None:
    conn.execute("DELETE FROM sync_cursors WHERE name = ?", [name])


def record_run(conn: duckdb.DuckDBPyConnection, run: SyncRun) -> int:
    """Insert a run record and return its id."""
    row = conn.execute(
        """
        INSERT INTO sync_runs (kind, root, started_at, finished_at, dry_run, cancelled, counts)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        RETURNING id
        """,
        [
            run.kind,
            run.root,
            _to_db(run.started_at),
            _to_db(run.finished_at),
            run.dry_run,
            run.cancelled,
            json.dumps(run.counts),
        ],
    ).fetchone()
    return row[0]


def list_runs(
    conn: duckdb.DuckDBPyConnection, kind: str | None = None, limit: int = 20
) -> list[SyncRun]:
    """Most recent runs first."""
    query = "SELECT * FROM sync_runs WHERE 1=1"
    params: list = []
    if kind is not None:
        query += " AND kind = ?"
        params.append(kind)
    query += " ORDER BY started_at DESC, id DESC LIMIT ?"
    params.append(limit)
    rows = conn.execute(query, params).fetchall()
    return [_row_to_run(row) for row in rows]


def _row_to_run(row: tuple) -> SyncRun:
    """Convert a DB row tuple to SyncRun.

    Column order matches schema.py DDL:
    0:id, 1:kind, 2:root, 3:started_at, 4:finished_at,
    5:dry_run, 6:cancelled, 7:counts
    """
    counts = row[7]
    if isinstance(counts, str):
        counts = json.loads(counts)
    return SyncRun(
        id=row[0],
        kind=row[1],
        root=row[2],
        started_at=_from_db(row[3]),
        finished_at=_from_db(row[4]),
        dry_run=row[5],
        cancelled=row[6],
        counts=counts or {},
    )
