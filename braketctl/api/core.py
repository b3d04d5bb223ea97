"""
braketctl.api.core
------------------
Public façade for compile/dispatch/run/status/result with smart path
resolution, metrics capture, submission retries, SQLite task history and
optional S3 persistence.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from braket.circuits import Circuit

from .. import db
from .. import devices as device_registry
from ..compiler import circuit_gen, parser
from ..config import get_config
from ..devices import ARN_PREFIX, TaskDevice
from ..devices.braket_device import TERMINAL_STATES, aws_errors, is_transient
from ..errors import TaskFailedError, TaskNotFoundError, TaskPendingError
from ..hybrid import cost as hybrid_cost
from ..hybrid.optimizer import OptimizationResult, minimize
from ..monitoring import logger as task_log
from ..monitoring import metrics
from ..noise import error_mitigation_parameters
from ..storage import ResultStore

logger = logging.getLogger(__name__)

_PACKAGE_ROOT = Path(__file__).resolve().parent.parent
_PROJECT_ROOT = _PACKAGE_ROOT.parent


def _resolve_path(path_like: Union[str, Path]) -> Path:
    """
    Resolves a string or Path object to an absolute file Path.
    Searches in CWD, then project root, then package root.
    """
    p = Path(path_like)

    if p.is_absolute():
        if p.exists():
            return p.resolve()
        raise FileNotFoundError(f"Absolute model file path not found: {p}")

    for base in (Path.cwd(), _PROJECT_ROOT, _PACKAGE_ROOT):
        candidate = base / p
        if candidate.exists():
            return candidate.resolve()

    raise FileNotFoundError(
        f"Model file not found: {path_like}. "
        f"Tried relative to: CWD ({Path.cwd()}), Project Root ({_PROJECT_ROOT}), Package Root ({_PACKAGE_ROOT})."
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _is_managed(task_id: str) -> bool:
    return task_id.startswith(ARN_PREFIX)


def _submit_with_retries(
    device: TaskDevice,
    compiled: Circuit,
    shots: int,
    device_parameters: Optional[Dict[str, Any]],
    max_retries: int,
):
    attempt = 0
    while True:
        try:
            return device.submit(compiled, shots, device_parameters)
        except Exception as e:
            if not is_transient(e):
                raise
            attempt += 1
            if attempt > max_retries:
                logger.error("Submission to %s failed after %d attempts: %s", device.name, attempt, e)
                raise
            backoff_duration = 2 ** (attempt - 1)  # Exponential backoff: 1s, 2s, 4s, ...
            logger.warning(
                "Submission attempt %d to %s failed (%s). Retrying in %ss.",
                attempt, device.name, e, backoff_duration,
            )
            time.sleep(backoff_duration)


def load_circuit(model_path: Union[str, Path], inputs: Optional[Mapping[str, float]] = None,
                 *, bind_parameters: bool = True) -> Tuple[parser.CircuitIR, Circuit]:
    """Parse a JSON circuit model and build the Braket circuit, binding ``inputs``."""
    ir = parser.parse(_resolve_path(model_path))
    circuit = circuit_gen.build(ir)
    if bind_parameters:
        circuit = circuit_gen.bind(circuit, inputs)
    return ir, circuit


def compile(model_path: Union[str, Path], *, inputs: Optional[Mapping[str, float]] = None) -> str:
    """
    Builds the circuit for a model and returns its OpenQASM 3 source.
    Free parameters stay symbolic unless ``inputs`` binds them.
    """
    _, circuit = load_circuit(model_path, inputs, bind_parameters=inputs is not None)
    return circuit_gen.to_openqasm(circuit)


def devices(
    *,
    remote: bool = False,
    statuses: Optional[Iterable[str]] = None,
    types: Optional[Iterable[str]] = None,
    providers: Optional[Iterable[str]] = None,
) -> List[Dict[str, Any]]:
    """Registered device names, or a Braket device search when ``remote``."""
    if remote:
        return device_registry.list_remote(statuses=statuses, types=types, provider_names=providers)
    return [{"name": name} for name in sorted(device_registry.DEVICE_REGISTRY)]


@dataclass
class _Submission:
    task_id: str
    device: TaskDevice
    task: Any
    submitted: str


def _dispatch(
    model_path: Union[str, Path],
    device: str,
    *,
    shots: Optional[int],
    inputs: Optional[Mapping[str, float]],
    max_retries: int,
    debias: Optional[bool],
) -> _Submission:
    cfg = get_config()
    resolved = _resolve_path(model_path)
    ir, circuit = load_circuit(resolved, inputs)

    dev = device_registry.select(device)
    compiled = dev.compile(circuit)

    shots = shots if shots is not None else (ir.shots or cfg.braket.shots)
    if shots < 1:
        raise ValueError(f"shots must be at least 1 to collect measurement counts, got {shots}.")

    metrics_dict = metrics.calculate(circuit)
    mitigation = debias if debias is not None else cfg.error_mitigation.debias
    device_parameters = None if dev.local else error_mitigation_parameters(mitigation, getattr(dev, "arn", None))

    with aws_errors(f"submit task to {dev.name}"):
        task = _submit_with_retries(dev, compiled, shots, device_parameters, max_retries)
    task_id = task.id
    submitted = _now().isoformat()

    db.insert_task({
        "id": task_id,
        "device": getattr(dev, "arn", None) or dev.name,
        "shots": shots,
        "status": "COMPLETED" if dev.local else "CREATED",
        "submitted": submitted,
        "gate_count": metrics_dict.get("gate_count"),
        "depth": metrics_dict.get("circuit_depth"),
        "qubits": metrics_dict.get("qubits"),
        "model_path": resolved.name,
    })
    task_log.log_submit(
        task_id, dev.name, circuit_gen.to_openqasm(circuit), metrics_dict,
        model_name=resolved.name, shots=shots,
    )
    logger.info("Dispatched %s as task %s on %s", resolved.name, task_id, dev.name)
    return _Submission(task_id, dev, task, submitted)


def _record_completion(task_id: str, counts: Dict[str, int], submitted: Optional[str]) -> None:
    t1 = _now()
    db.update_task(
        task_id,
        status="COMPLETED",
        completed=t1.isoformat(),
        result_summary=json.dumps(counts)[:200],
        counts_json=counts,
        error_message=None,
    )
    task_log.log_complete(task_id, counts, submitted, completion_time=t1)


def _record_failure(task_id: str, error: Exception, submitted: Optional[str]) -> None:
    t1 = _now()
    status = error.state if isinstance(error, TaskFailedError) else "FAILED"
    db.update_task(task_id, status=status, completed=t1.isoformat(), error_message=str(error))
    task_log.log_error(task_id, str(error), submitted, error_time=t1)


def _record_interruption(task_id: str, error: Exception) -> None:
    # Status is left untouched: the task may still be running on Braket.
    db.update_task(task_id, error_message=f"{type(error).__name__}: {error}")
    logger.warning("Stopped waiting for task %s: %s", task_id, error)


def dispatch(
    model_path: Union[str, Path],
    device: str = "local",
    *,
    shots: Optional[int] = None,
    inputs: Optional[Mapping[str, float]] = None,
    max_retries: int = 3,
    debias: Optional[bool] = None,
) -> str:
    """
    Builds a model, submits it to ``device`` and returns the task id without
    waiting. Local simulators finish during submission, so their counts are
    recorded immediately.
    """
    sub = _dispatch(model_path, device, shots=shots, inputs=inputs, max_retries=max_retries, debias=debias)
    if sub.device.local:
        _record_completion(sub.task_id, sub.device.counts(sub.task), sub.submitted)
    return sub.task_id


@dataclass
class TaskRun:
    task_id: str
    counts: Dict[str, int]


def run_task(
    model_path: Union[str, Path],
    device: str = "local",
    *,
    shots: Optional[int] = None,
    inputs: Optional[Mapping[str, float]] = None,
    max_retries: int = 3,
    debias: Optional[bool] = None,
    save: bool = False,
) -> TaskRun:
    """
    One-shot execution: submits, waits for completion and returns the task
    id together with its measurement counts.

    Terminal failures are recorded before being re-raised. When waiting on
    a managed task stops early (poll timeout, service error) only the error
    is noted; the task keeps its last known status. With ``save`` the counts
    are also written to the configured S3 bucket.
    """
    sub = _dispatch(model_path, device, shots=shots, inputs=inputs, max_retries=max_retries, debias=debias)
    try:
        counts = sub.device.counts(sub.task)
    except TaskFailedError as e:
        _record_failure(sub.task_id, e, sub.submitted)
        raise
    except Exception as e:
        if sub.device.local:
            _record_failure(sub.task_id, e, sub.submitted)
        else:
            _record_interruption(sub.task_id, e)
        raise
    _record_completion(sub.task_id, counts, sub.submitted)
    if save:
        save_result(sub.task_id)
    return TaskRun(sub.task_id, counts)


def run(
    model_path: Union[str, Path],
    device: str = "local",
    *,
    shots: Optional[int] = None,
    inputs: Optional[Mapping[str, float]] = None,
    max_retries: int = 3,
    debias: Optional[bool] = None,
    save: bool = False,
) -> Dict[str, int]:
    """Like :func:`run_task` but returns only the measurement counts."""
    return run_task(
        model_path, device, shots=shots, inputs=inputs,
        max_retries=max_retries, debias=debias, save=save,
    ).counts


def get_task(task_id: str) -> Dict[str, Any]:
    row = db.get_task(task_id)
    if row is None:
        raise TaskNotFoundError(f"Task ID '{task_id}' not found in task history.")
    return row


def tasks(limit: int = 10) -> List[Dict[str, Any]]:
    return db.list_tasks(limit=limit)


def status(task_id: str) -> str:
    """Current task state; managed tasks are refreshed from Braket."""
    row = db.get_task(task_id)
    if row is not None and (row.get("status") in TERMINAL_STATES or not _is_managed(task_id)):
        return row["status"]
    if not _is_managed(task_id):
        raise TaskNotFoundError(f"Task ID '{task_id}' not found in task history.")

    with aws_errors(f"query task {task_id}", task_id):
        state = device_registry.fetch_task(task_id).state()
    if row is not None and state != row.get("status"):
        db.update_task(task_id, status=state)
    return state


def result(task_id: str, *, wait: bool = False) -> Dict[str, int]:
    """
    Measurement counts for a task. Stored counts are served from the task
    history; managed tasks are otherwise fetched from Braket.
    """
    row = db.get_task(task_id)
    if row is not None and row.get("counts_json"):
        return json.loads(row["counts_json"])
    if not _is_managed(task_id):
        raise TaskNotFoundError(f"No stored result for task ID '{task_id}'.")

    with aws_errors(f"query task {task_id}", task_id):
        task = device_registry.fetch_task(task_id)
        state = task.state()
    if state not in TERMINAL_STATES and not wait:
        raise TaskPendingError(task_id, state)

    cfg = get_config().braket
    submitted = row.get("submitted") if row else None
    try:
        counts = device_registry.wait_for_counts(task, cfg.poll_timeout_seconds, cfg.poll_interval_seconds)
    except TaskFailedError as e:
        if row is not None:
            _record_failure(task_id, e, submitted)
        raise
    if row is not None:
        _record_completion(task_id, counts, submitted)
    return counts


def cancel(task_id: str) -> None:
    if not _is_managed(task_id):
        raise ValueError(f"Task '{task_id}' ran on a local simulator and cannot be cancelled.")
    with aws_errors(f"cancel task {task_id}", task_id):
        device_registry.fetch_task(task_id).cancel()
    if db.get_task(task_id) is not None:
        db.update_task(task_id, status="CANCELLING")


def logs(task_id: str) -> Dict[str, Any]:
    return task_log.read(task_id)


def save_result(task_id: str, store: Optional[ResultStore] = None) -> str:
    """Write a finished task's counts to S3 and return the object URI."""
    store = store or ResultStore.from_config()
    counts = result(task_id)
    row = db.get_task(task_id) or {}
    metadata = {k: row.get(k) for k in ("device", "shots", "submitted", "completed", "model_path") if row.get(k)}
    uri = store.save_counts(task_id, counts, metadata)
    if row:
        db.update_task(task_id, s3_uri=uri)
    return uri


def load_result(task_id: str, store: Optional[ResultStore] = None) -> Dict[str, int]:
    store = store or ResultStore.from_config()
    return store.load_counts(task_id)


def optimize(
    model_path: Union[str, Path],
    hamiltonian_path: Union[str, Path],
    device: str = "local",
    *,
    shots: Optional[int] = None,
    initial: Optional[Mapping[str, float]] = None,
    method: Optional[str] = None,
    maxiter: Optional[int] = None,
    seed: Optional[int] = None,
    debias: Optional[bool] = None,
) -> OptimizationResult:
    """Variationally minimise a cost Hamiltonian over a parametric model."""
    _, circuit = load_circuit(model_path, bind_parameters=False)
    hamiltonian = hybrid_cost.load(_resolve_path(hamiltonian_path))
    dev = device_registry.select(device)
    mitigation = debias if debias is not None else get_config().error_mitigation.debias
    device_parameters = None if dev.local else error_mitigation_parameters(mitigation, getattr(dev, "arn", None))
    return minimize(
        circuit,
        hamiltonian,
        dev,
        shots=shots,
        initial=initial,
        method=method,
        maxiter=maxiter,
        seed=seed,
        device_parameters=device_parameters,
    )
