"""
braketctl.monitoring.logger
---------------------------
Process-wide logging setup, plus one JSON log file per task with a
simple pretty-printer.
"""

from __future__ import annotations

import json
import logging
import pathlib
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..config import get_config
from ..errors import TaskNotFoundError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Route ``braketctl.*`` loggers to stderr; DEBUG when ``verbose``."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("braketctl").setLevel(level)


def log_dir() -> pathlib.Path:
    path = pathlib.Path(get_config().paths.logs)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _path(task_id: str) -> pathlib.Path:
    # Task ARNs contain ':' and '/', neither of which belongs in a file name.
    safe = task_id.replace(":", "_").replace("/", "_")
    return log_dir() / f"{safe}.json"


def _stamp() -> datetime:
    return datetime.now(timezone.utc)


def _write(task_id: str, data: Dict[str, Any]) -> None:
    _path(task_id).write_text(json.dumps(data, indent=2, default=str))


# ── public API ──────────────────────────────────────────────────────────── #

def log_submit(
    task_id: str,
    device: str,
    circuit_qasm: str,
    metrics: Dict[str, Any],
    model_name: Optional[str] = None,
    shots: Optional[int] = None,
) -> None:
    """Create a new log file at submit-time."""
    _write(task_id, {
        "task": task_id,
        "device": device,
        "submitted": _stamp().isoformat(),
        "model_name": model_name if model_name else "N/A",
        "shots": shots,
        "circuit": circuit_qasm,
        **metrics,
        "status": "submitted",
    })


def log_complete(
    task_id: str,
    counts: Dict[str, int],
    submitted_iso_timestamp: Optional[str],
    completion_time: Optional[datetime] = None,
) -> None:
    """Add completion timestamp, elapsed_ms, and counts to the log."""
    path = _path(task_id)
    t1 = completion_time or _stamp()
    if path.exists():
        data = json.loads(path.read_text())
    else:
        logger.warning("Log file for task %s not found for completion update.", task_id)
        data = {"task": task_id, "error": "Submit log missing, completion recorded."}

    data["completed"] = t1.isoformat()
    data["status"] = "completed"
    data["counts"] = counts
    if submitted_iso_timestamp:
        try:
            t0 = datetime.fromisoformat(submitted_iso_timestamp)
            data["elapsed_ms"] = int((t1 - t0).total_seconds() * 1000)
        except (ValueError, TypeError):
            logger.warning("Invalid submitted timestamp %r for task %s", submitted_iso_timestamp, task_id)
    _write(task_id, data)


def log_error(
    task_id: str,
    error_message: str,
    submitted_iso_timestamp: Optional[str],
    error_time: Optional[datetime] = None,
) -> None:
    """Log an error for a task."""
    path = _path(task_id)
    t_error = error_time or _stamp()
    if path.exists():
        data = json.loads(path.read_text())
    else:
        logger.warning("Log file for task %s not found for error update.", task_id)
        data = {"task": task_id}

    data["error_time"] = t_error.isoformat()
    data["status"] = "failed"
    data["error_message"] = error_message
    if submitted_iso_timestamp:
        try:
            t0 = datetime.fromisoformat(submitted_iso_timestamp)
            data["elapsed_ms_until_error"] = int((t_error - t0).total_seconds() * 1000)
        except (ValueError, TypeError):
            logger.warning("Invalid submitted timestamp %r for task %s", submitted_iso_timestamp, task_id)
    _write(task_id, data)


def read(task_id: str) -> Dict[str, Any]:
    path = _path(task_id)
    if not path.exists():
        raise TaskNotFoundError(f"Log file for task ID '{task_id}' not found.")
    return json.loads(path.read_text())
