"""
SQLite-backed append-only action log.
Every audit pass, remediation decision and outcome is recorded with a UTC timestamp.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger("tag_governance.audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ActionLog:
    """
    Persistent action log backed by SQLite.
      - `runs`: one row per invocation (audit or remediate)
      - `actions`: one row per logged event; rows are only ever inserted
    """

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with sqlite3.connect(str(self.db_path)) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS runs (
                    run_id TEXT PRIMARY KEY,
                    command TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    status TEXT DEFAULT 'running',
                    summary TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS actions (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    action TEXT NOT NULL,
                    boundary_id TEXT,
                    resource_id TEXT,
                    tag_key TEXT,
                    tag_value TEXT,
                    status TEXT,
                    message TEXT
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_actions_run
                ON actions(run_id)
            """)
            conn.commit()

    def start_run(self, run_id: str, command: str):
        """Record the start of a run."""
        with sqlite3.connect(str(self.db_path)) as conn:
            conn.execute(
                "INSERT INTO runs (run_id, command, started_at, status) VALUES (?, ?, ?, 'running')",
                (run_id, command, _now()),
            )
            conn.commit()
        self.record(run_id, "run_started", message=command)

    def record(
        self,
        run_id: str,
        action: str,
        boundary_id: str = "",
        resource_id: str = "",
        tag_key: str = "",
        tag_value: str = "",
        status: str = "",
        message: str = "",
    ):
        """Append one entry."""
        with sqlite3.connect(str(self.db_path)) as conn:
            conn.execute(
                """
                INSERT INTO actions
                    (run_id, timestamp, action, boundary_id, resource_id,
                     tag_key, tag_value, status, message)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (run_id, _now(), action, boundary_id, resource_id,
                 tag_key, tag_value, status, message),
            )
            conn.commit()
        logger.debug(f"[{run_id}] {action} {resource_id} {tag_key} {status} {message}".rstrip())

    def complete_run(self, run_id: str, status: str = "completed", summary: Optional[dict] = None):
        """Record run completion with its summary counters."""
        self.record(run_id, "run_completed", status=status, message=json.dumps(summary or {}))
        with sqlite3.connect(str(self.db_path)) as conn:
            conn.execute(
                "UPDATE runs SET completed_at = ?, status = ?, summary = ? WHERE run_id = ?",
                (_now(), status, json.dumps(summary or {}), run_id),
            )
            conn.commit()

    def history(self, limit: int = 10) -> list[dict]:
        """Most recent runs first."""
        with sqlite3.connect(str(self.db_path)) as conn:
            rows = conn.execute(
                """
                SELECT run_id, command, started_at, completed_at, status, summary
                FROM runs ORDER BY started_at DESC LIMIT ?
                """,
                (limit,),
            ).fetchall()

        return [
            {
                "run_id": r[0],
                "command": r[1],
                "started_at": r[2],
                "completed_at": r[3],
                "status": r[4],
                "summary": json.loads(r[5]) if r[5] else {},
            }
            for r in rows
        ]

    def entries(self, run_id: str) -> list[dict[str, Any]]:
        """All entries of one run, in insertion order."""
        with sqlite3.connect(str(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT * FROM actions WHERE run_id = ? ORDER BY seq",
                (run_id,),
            ).fetchall()
        return [dict(r) for r in rows]
