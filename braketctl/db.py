"""
braketctl.db
------------
Lightweight SQLite wrapper for task history.
"""

from __future__ import annotations

import json
import logging
import pathlib
import sqlite3
from typing import Any, Dict, List, Optional

from .config import get_config

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id", "device", "shots", "status", "submitted", "completed",
    "gate_count", "depth", "qubits", "model_path", "error_message",
    "result_summary", "counts_json", "s3_uri",
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,  -- Braket task ARN, or local task UUID
    device TEXT,
    shots INTEGER,
    status TEXT,          -- e.g., 'CREATED', 'QUEUED', 'COMPLETED', 'FAILED'
    submitted TEXT,       -- ISO timestamp
    completed TEXT,       -- ISO timestamp of completion or failure
    gate_count INTEGER,
    depth INTEGER,
    qubits INTEGER,
    model_path TEXT,
    error_message TEXT,
    result_summary TEXT,
    counts_json TEXT,     -- full measurement counts, JSON
    s3_uri TEXT           -- where the counts were saved, if anywhere
)
"""


def db_path() -> pathlib.Path:
    return pathlib.Path(get_config().paths.db)


def _conn() -> sqlite3.Connection:
    path = db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(path, check_same_thread=False, timeout=10)
    con.execute(_SCHEMA)
    return con


def insert_task(rec: Dict[str, Any]) -> None:
    """
    Inserts a new task record. Missing columns are stored as NULL;
    'status' defaults to 'CREATED'.
    """
    row = {col: rec.get(col) for col in _COLUMNS}
    row["status"] = row["status"] or "CREATED"
    placeholders = ", ".join(f":{c}" for c in _COLUMNS)
    con = _conn()
    try:
        with con:
            con.execute(f"INSERT INTO tasks ({', '.join(_COLUMNS)}) VALUES ({placeholders})", row)
    finally:
        con.close()


def update_task(task_id: str, **fields: Any) -> None:
    """
    Updates specified fields for a given task_id.
    Example: update_task(task_id, status="COMPLETED", completed="timestamp", result_summary="...")
    """
    if not fields:
        return
    unknown = set(fields) - set(_COLUMNS[1:])
    if unknown:
        raise ValueError(f"Unknown task column(s): {', '.join(sorted(unknown))}")
    if "counts_json" in fields and not isinstance(fields["counts_json"], (str, type(None))):
        fields["counts_json"] = json.dumps(fields["counts_json"])

    cols = ", ".join(f"{k}=:{k}" for k in fields)
    fields["id"] = task_id
    con = _conn()
    try:
        with con:
            con.execute(f"UPDATE tasks SET {cols} WHERE id=:id", fields)
    finally:
        con.close()


def get_task(task_id: str) -> Optional[Dict[str, Any]]:
    """Fetches a single task by its ID."""
    con = _conn()
    try:
        con.row_factory = sqlite3.Row
        row = con.execute("SELECT * FROM tasks WHERE id=?", (task_id,)).fetchone()
        return dict(row) if row else None
    finally:
        con.close()


def list_tasks(limit: int = 20) -> List[Dict[str, Any]]:
    """Lists recent tasks, newest first."""
    con = _conn()
    try:
        con.row_factory = sqlite3.Row
        cur = con.execute(
            """
            SELECT id, device, shots, status, submitted, completed,
                   model_path, error_message, result_summary, s3_uri
            FROM tasks ORDER BY submitted DESC, rowid DESC LIMIT ?
            """,
            (limit,),
        )
        return [dict(r) for r in cur.fetchall()]
    finally:
        con.close()
