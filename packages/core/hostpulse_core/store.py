"""SQLite retention store for per-tick network usage rows."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Any

from hostpulse_telemetry.models import NetworkUsageRow


class RetentionStoreError(RuntimeError):
    """The retention store could not be read or written."""


_SCHEMA = """
CREATE TABLE IF NOT EXISTS network_usage_samples (
  at INTEGER PRIMARY KEY,
  ts TEXT NOT NULL,
  inbound_bytes_total INTEGER,
  outbound_bytes_total INTEGER,
  inbound_bytes_delta INTEGER,
  outbound_bytes_delta INTEGER
)
"""

_UPSERT = """
INSERT INTO network_usage_samples (at, ts, inbound_bytes_total, outbound_bytes_total, inbound_bytes_delta, outbound_bytes_delta)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(at) DO UPDATE SET
  ts=excluded.ts,
  inbound_bytes_total=excluded.inbound_bytes_total,
  outbound_bytes_total=excluded.outbound_bytes_total,
  inbound_bytes_delta=excluded.inbound_bytes_delta,
  outbound_bytes_delta=excluded.outbound_bytes_delta
"""

_SUMMARY = """
SELECT count(*) AS sample_count, min(at) AS first_at, max(at) AS last_at,
  sum(coalesce(inbound_bytes_delta, 0)) AS total_inbound_bytes,
  sum(coalesce(outbound_bytes_delta, 0)) AS total_outbound_bytes
FROM network_usage_samples WHERE at >= ?
"""

_DAILY = """
SELECT substr(ts, 1, 10) AS day, count(*) AS sample_count,
  sum(coalesce(inbound_bytes_delta, 0)) AS total_inbound_bytes,
  sum(coalesce(outbound_bytes_delta, 0)) AS total_outbound_bytes
FROM network_usage_samples WHERE at >= ? GROUP BY day ORDER BY day ASC
"""

_COLUMNS = "at, ts, inbound_bytes_total, outbound_bytes_total, inbound_bytes_delta, outbound_bytes_delta"


def _row_from_record(record: sqlite3.Row) -> NetworkUsageRow:
    return NetworkUsageRow(
        at_ms=int(record["at"]),
        taken_at_iso=str(record["ts"]),
        inbound_bytes_total=record["inbound_bytes_total"],
        outbound_bytes_total=record["outbound_bytes_total"],
        inbound_bytes_delta=record["inbound_bytes_delta"],
        outbound_bytes_delta=record["outbound_bytes_delta"],
    )


class RetentionStore:
    """Upsert-only time series keyed by sample time in milliseconds.

    A single connection is shared between the sampler thread and query callers,
    so every statement runs under ``self._lock``.
    """

    def __init__(self, path: str | Path = ":memory:") -> None:
        self.path = str(path)
        self._lock = threading.Lock()
        try:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            if self.path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL;")
                self._conn.execute("PRAGMA synchronous=NORMAL;")
            with self._conn:
                self._conn.execute(_SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            raise RetentionStoreError(f"cannot open retention store at {self.path}: {exc}") from exc

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                with self._conn:
                    return self._conn.execute(sql, params)
            except sqlite3.Error as exc:
                raise RetentionStoreError(str(exc)) from exc

    def _fetchone(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as exc:
                raise RetentionStoreError(str(exc)) from exc

    def _fetchall(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise RetentionStoreError(str(exc)) from exc

    def upsert(self, row: NetworkUsageRow) -> None:
        self._execute(
            _UPSERT,
            (
                row.at_ms,
                row.taken_at_iso,
                row.inbound_bytes_total,
                row.outbound_bytes_total,
                row.inbound_bytes_delta,
                row.outbound_bytes_delta,
            ),
        )

    def prune(self, cutoff_ms: int) -> int:
        """Delete rows sampled before ``cutoff_ms``; returns how many went."""
        cursor = self._execute("DELETE FROM network_usage_samples WHERE at < ?", (cutoff_ms,))
        return max(0, cursor.rowcount)

    def get(self, at_ms: int) -> NetworkUsageRow | None:
        record = self._fetchone(f"SELECT {_COLUMNS} FROM network_usage_samples WHERE at = ?", (at_ms,))
        return _row_from_record(record) if record is not None else None

    def count(self) -> int:
        record = self._fetchone("SELECT count(*) AS n FROM network_usage_samples")
        return int(record["n"]) if record is not None else 0

    def summary(self, cutoff_ms: int) -> dict[str, Any]:
        record = self._fetchone(_SUMMARY, (cutoff_ms,))
        return dict(record) if record is not None else {}

    def daily(self, cutoff_ms: int) -> list[dict[str, Any]]:
        return [dict(r) for r in self._fetchall(_DAILY, (cutoff_ms,))]

    def latest(self, cutoff_ms: int) -> NetworkUsageRow | None:
        record = self._fetchone(
            f"SELECT {_COLUMNS} FROM network_usage_samples WHERE at >= ? ORDER BY at DESC LIMIT 1",
            (cutoff_ms,),
        )
        return _row_from_record(record) if record is not None else None

    def rows_since(self, cutoff_ms: int) -> list[NetworkUsageRow]:
        records = self._fetchall(
            f"SELECT {_COLUMNS} FROM network_usage_samples WHERE at >= ? ORDER BY at ASC",
            (cutoff_ms,),
        )
        return [_row_from_record(r) for r in records]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
