# braketctl_api/main.py
from __future__ import annotations

import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Path as FastApiPath, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from braketctl import __version__
from braketctl.api import core
from braketctl.errors import BraketCtlError, TaskNotFoundError, TaskPendingError

logger = logging.getLogger(__name__)

# ────────────────────────── CONFIG ────────────────────────── #

# Comma-separated origins that may call the API
ALLOWED_ORIGINS = [o for o in os.getenv("BRAKETCTL_API_ORIGINS", "http://localhost:3000").split(",") if o]

# ───────────────────────────── FASTAPI APP ───────────────────────────── #

app = FastAPI(
    title="braketctl API",
    description="Submit and track Amazon Braket quantum tasks",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ──────────────────────── Pydantic Schemas ───────────────────────────── #


class TaskRequest(BaseModel):
    circuit_json: str
    device: str = "local"
    shots: Optional[int] = Field(None, ge=1)
    params: Optional[Dict[str, float]] = None
    retries: int = Field(3, ge=0)
    debias: Optional[bool] = None


class CompileResponse(BaseModel):
    qasm: Optional[str] = None
    error: Optional[str] = None


class RunResponse(BaseModel):
    task_id: Optional[str] = None
    qasm: Optional[str] = None
    counts: Optional[Dict[str, int]] = None
    error: Optional[str] = None


class DispatchResponse(BaseModel):
    task_id: str
    message: str
    qasm: Optional[str] = None


class TaskStatusData(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    device: Optional[str] = None
    shots: Optional[int] = None
    status: Optional[str] = None
    submitted: Optional[str] = None
    completed: Optional[str] = None
    error_message: Optional[str] = None
    result_summary: Optional[str] = None
    model_path: Optional[str] = None
    gate_count: Optional[int] = None
    depth: Optional[int] = None
    qubits: Optional[int] = None
    s3_uri: Optional[str] = None


class TaskStatusResponse(BaseModel):
    task_id: str
    status_data: TaskStatusData

# ───────────────────────────── Helpers ───────────────────────────────── #

TEMP_DIR = Path(tempfile.gettempdir()) / "braketctl_circuits"


def _write_temp_model(contents: str) -> Path:
    TEMP_DIR.mkdir(parents=True, exist_ok=True)
    path = TEMP_DIR / f"temp_{uuid.uuid4()}.json"
    path.write_text(contents)
    return path


def _safe_unlink(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as err:
        logger.warning("Could not delete %s: %s", path, err)

# ─────────────────────────── API Routes ──────────────────────────────── #


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "braketctl API up"}


@app.post("/api/compile", response_model=CompileResponse)
def compile_model(payload: TaskRequest):
    tmp = _write_temp_model(payload.circuit_json)
    try:
        return CompileResponse(qasm=core.compile(tmp, inputs=payload.params))
    except BraketCtlError as err:
        return CompileResponse(error=str(err))
    finally:
        _safe_unlink(tmp)


@app.post("/api/run", response_model=RunResponse)
def run_model(payload: TaskRequest):
    tmp = _write_temp_model(payload.circuit_json)
    try:
        qasm = core.compile(tmp, inputs=payload.params)
        outcome = core.run_task(
            tmp,
            payload.device,
            shots=payload.shots,
            inputs=payload.params,
            max_retries=payload.retries,
            debias=payload.debias,
        )
        return RunResponse(task_id=outcome.task_id, qasm=qasm, counts=outcome.counts)
    except (BraketCtlError, ValueError, TimeoutError) as err:
        logger.exception("Run failed")
        return RunResponse(error=str(err))
    finally:
        _safe_unlink(tmp)


@app.post("/api/dispatch", response_model=DispatchResponse)
def dispatch_model(payload: TaskRequest):
    tmp = _write_temp_model(payload.circuit_json)
    try:
        qasm = core.compile(tmp, inputs=payload.params)
        task_id = core.dispatch(
            tmp,
            payload.device,
            shots=payload.shots,
            inputs=payload.params,
            max_retries=payload.retries,
            debias=payload.debias,
        )
        return DispatchResponse(task_id=task_id, message="Task dispatched", qasm=qasm)
    except (BraketCtlError, ValueError) as err:
        raise HTTPException(400, str(err))
    finally:
        _safe_unlink(tmp)


@app.get("/api/tasks", response_model=List[TaskStatusData])
def list_tasks(limit: int = Query(10, ge=1, le=500)):
    return [TaskStatusData(**row) for row in core.tasks(limit=limit)]


@app.get("/api/tasks/{task_id:path}/result", response_model=Dict[str, int])
def task_result(task_id: str = FastApiPath(...)):
    try:
        return core.result(task_id)
    except TaskNotFoundError as err:
        raise HTTPException(404, str(err))
    except TaskPendingError as err:
        raise HTTPException(409, str(err))
    except BraketCtlError as err:
        raise HTTPException(502, str(err))


@app.get("/api/tasks/{task_id:path}", response_model=TaskStatusResponse)
def task_status(task_id: str = FastApiPath(...)):
    try:
        data_db = core.get_task(task_id)
    except TaskNotFoundError as err:
        raise HTTPException(404, str(err))
    data_db.pop("counts_json", None)
    try:
        data_log: Dict[str, Any] = core.logs(task_id)
    except TaskNotFoundError:
        data_log = {}
    data_log.pop("circuit", None)
    merged = {**data_log, **data_db}
    return TaskStatusResponse(task_id=task_id, status_data=TaskStatusData(**merged))


@app.get("/api/devices", response_model=List[str])
def devices():
    return [d["name"] for d in core.devices()]

# ─────────────────────────────────────────────────────────────────────── #
#   Run locally with:   uvicorn braketctl_api.main:app --reload --port 8000
