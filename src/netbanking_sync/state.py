from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence


logger = logging.getLogger(__name__)


class RunLedger:
    """
    Local SQLite ledger of job runs and in-flight payout batches.

    A payout batch ties a generated CSV to the Mongo ids it contains, so a retry that
    reuses a leftover CSV can still mark the right payouts as queued.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = self._open()
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._ensure_schema()

    def close(self) -> None:
        self._conn.close()

    def _open(self) -> sqlite3.Connection:
        if self.db_path.exists():
            conn = sqlite3.connect(self.db_path)
            try:
                row = conn.execute("PRAGMA quick_check;").fetchone()
                reason = "" if row and row[0] == "ok" else f"quick_check={row[0] if row else None!r}"
            except sqlite3.DatabaseError as e:
                reason = str(e)
            if not reason:
                return conn
            conn.close()
            logger.warning("Run ledger appears corrupted; starting a fresh one. (%s)", reason)
            self._quarantine()
        return sqlite3.connect(self.db_path)

    def _quarantine(self) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        for p in (self.db_path, Path(str(self.db_path) + "-wal"), Path(str(self.db_path) + "-shm")):
            try:
                if p.exists():
                    p.replace(p.with_name(p.name + f".corrupt-{stamp}"))
            except OSError:
                logger.debug("Failed to quarantine path=%s", p, exc_info=True)

    def _ensure_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS runs (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              job TEXT NOT NULL,
              started_at TEXT NOT NULL,
              finished_at TEXT,
              ok INTEGER,
              step TEXT,
              message TEXT
            );
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS payout_batches (
              file_name TEXT PRIMARY KEY,
              payout_ids TEXT NOT NULL,
              created_at TEXT NOT NULL
            );
            """
        )
        self._conn.commit()

    def record_run_start(self, job: str) -> int:
        now = datetime.now(timezone.utc).isoformat()
        cur = self._conn.execute("INSERT INTO runs(job, started_at) VALUES (?, ?);", (job, now))
        self._conn.commit()
        return int(cur.lastrowid)

    def record_run_finish(
        self,
        run_id: int,
        *,
        ok: bool,
        step: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self._conn.execute(
            "UPDATE runs SET finished_at = ?, ok = ?, step = ?, message = ? WHERE id = ?;",
            (now, 1 if ok else 0, step, message, run_id),
        )
        self._conn.commit()

    def get_run(self, run_id: int) -> Optional[dict]:
        row = self._conn.execute(
            "SELECT id, job, started_at, finished_at, ok, step, message FROM runs WHERE id = ?;",
            (run_id,),
        ).fetchone()
        if not row:
            return None
        keys = ("id", "job", "started_at", "finished_at", "ok", "step", "message")
        return dict(zip(keys, row))

    def save_payout_batch(self, file_name: str, payout_ids: Sequence[Any]) -> None:
        # Mongo ObjectIds are stored as strings; PayoutRepository callers convert back.
        now = datetime.now(timezone.utc).isoformat()
        self._conn.execute(
            "INSERT OR REPLACE INTO payout_batches(file_name, payout_ids, created_at) VALUES (?, ?, ?);",
            (file_name, json.dumps([str(i) for i in payout_ids]), now),
        )
        self._conn.commit()

    def get_payout_batch(self, file_name: str) -> Optional[list[str]]:
        row = self._conn.execute(
            "SELECT payout_ids FROM payout_batches WHERE file_name = ?;",
            (file_name,),
        ).fetchone()
        if not row:
            return None
        return list(json.loads(row[0]))

    def delete_payout_batch(self, file_name: str) -> None:
        self._conn.execute("DELETE FROM payout_batches WHERE file_name = ?;", (file_name,))
        self._conn.commit()
