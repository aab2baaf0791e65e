from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import duckdb

from telemetry.sql import (
    CREATE_CALLS_TABLE_SQL,
    INSERT_CALLS_SQL,
    SUMMARY_SQL_TEMPLATE,
)

logger = logging.getLogger(__name__)


def _safe_float(v) -> float | None:
    if v is None:
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


@dataclass
class TelemetryStore:
    """
    Per-call statistics in DuckDB, written by a single background thread.

    `record()` never blocks a request: events are queued and flushed in batches.
    """

    path: Path
    conn: duckdb.DuckDBPyConnection
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _q: "queue.Queue[dict[str, Any]]" = field(default_factory=queue.Queue, repr=False)
    _stop: threading.Event = field(default_factory=threading.Event, repr=False)
    _worker: threading.Thread | None = field(default=None, repr=False)

    def ensure_schema(self) -> None:
        with self._lock:
            self.conn.execute(CREATE_CALLS_TABLE_SQL)

    def start(self) -> None:
        if self._worker is not None:
            return
        self._stop.clear()
        self._worker = threading.Thread(
            target=self._run, name="telemetry-writer", daemon=True
        )
        self._worker.start()

    def stop(self, *, timeout_s: float = 2.0) -> None:
        self._stop.set()
        w = self._worker
        if w is not None and w.is_alive():
            w.join(timeout=timeout_s)
        self._worker = None

    def record(
        self,
        *,
        rpc: str,
        outcome: str,
        requests: int,
        responses: int,
        elapsed_ms: float,
    ) -> None:
        self.start()
        try:
            self._q.put_nowait(
                {
                    "ts_ms": int(time.time() * 1000),
                    "rpc": str(rpc),
                    "outcome": str(outcome),
                    "requests": int(requests),
                    "responses": int(responses),
                    "elapsed_ms": float(elapsed_ms),
                }
            )
        except queue.Full:
            logger.debug("telemetry queue full, dropping %s event", rpc)

    def flush(self, *, timeout_s: float = 2.0) -> None:
        """
        Wait until queued events are written (used by tests).
        """
        if self._worker is None:
            return
        deadline = time.time() + timeout_s
        while time.time() < deadline:
            if self._q.unfinished_tasks == 0:
                break
            time.sleep(0.01)

    def query(self, sql: str, params: list[Any] | None = None) -> list[tuple]:
        with self._lock:
            if params:
                return self.conn.execute(sql, params).fetchall()
            return self.conn.execute(sql).fetchall()

    def summary(self, *, rpc: str | None = None) -> list[dict[str, Any]]:
        where = []
        params: list[Any] = []
        if rpc:
            where.append("rpc = ?")
            params.append(rpc)
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        rows = self.query(SUMMARY_SQL_TEMPLATE.format(where_sql=where_sql), params)

        out: list[dict[str, Any]] = []
        for rpc_v, outcome, n, avg_ms, p50, p95, requests, responses in rows:
            out.append(
                {
                    "rpc": rpc_v,
                    "outcome": outcome,
                    "n": int(n),
                    "avgMs": _safe_float(avg_ms),
                    "p50Ms": _safe_float(p50),
                    "p95Ms": _safe_float(p95),
                    "requests": int(requests or 0),
                    "responses": int(responses or 0),
                }
            )
        return out

    def reset(self) -> None:
        # Stop the writer first so it can't write to a closed connection.
        self.stop(timeout_s=2.0)
        with self._lock:
            self.conn.close()
            self.path.unlink(missing_ok=True)

    def _run(self) -> None:
        self.ensure_schema()
        batch: list[dict[str, Any]] = []

        def flush_batch() -> None:
            nonlocal batch
            if not batch:
                return
            with self._lock:
                self.conn.executemany(
                    INSERT_CALLS_SQL,
                    [
                        (
                            e["ts_ms"],
                            e["rpc"],
                            e["outcome"],
                            e["requests"],
                            e["responses"],
                            e["elapsed_ms"],
                        )
                        for e in batch
                    ],
                )
            for _ in batch:
                self._q.task_done()
            batch = []

        last_flush = time.time()
        while not self._stop.is_set():
            try:
                batch.append(self._q.get(timeout=0.1))
            except queue.Empty:
                pass

            # Flush on size, on time, or as soon as the queue runs dry.
            now = time.time()
            if batch and (
                len(batch) >= 250 or self._q.empty() or (now - last_flush) >= 0.5
            ):
                flush_batch()
                last_flush = now

        while True:
            try:
                batch.append(self._q.get_nowait())
            except queue.Empty:
                break
        flush_batch()
