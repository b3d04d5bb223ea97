# ~/braketctl_project/braketctl/devices/braket_device.py
"""
AWS Braket managed devices (on-demand simulators and QPUs)
----------------------------------------------------------
* Uses the standard AWS credential chain (env vars first); an optional
  ``aws.profile`` in the config selects a named profile instead.
* Task output goes to ``braket.s3_bucket``/``braket.s3_prefix`` when a
  bucket is configured, otherwise to Braket's default bucket.
* Every call into boto/Braket runs under :func:`aws_errors`, so callers only
  ever see :class:`~braketctl.errors.BraketCtlError` subclasses.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
)
from braket.aws import AwsDevice, AwsQuantumTask, AwsSession
from braket.circuits import Circuit

from ..config import get_config
from ..errors import BraketServiceError, CredentialsError, TaskFailedError, TaskNotFoundError
from .device import TaskDevice, register

logger = logging.getLogger(__name__)

TERMINAL_STATES = ("COMPLETED", "FAILED", "CANCELLED")

# Error codes worth retrying on submission
TRANSIENT_CODES = {
    "ThrottlingException",
    "TooManyRequestsException",
    "InternalServiceException",
    "RequestTimeout",
}
_NOT_FOUND_CODES = {"ResourceNotFoundException", "ValidationException"}

_NO_CREDENTIALS = (
    "AWS credentials not found. Make sure AWS_ACCESS_KEY_ID, "
    "AWS_SECRET_ACCESS_KEY and AWS_DEFAULT_REGION are set, or configure aws.profile."
)


def error_code(exc: BaseException) -> Optional[str]:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, BraketServiceError):
        return exc.transient
    if isinstance(exc, (EndpointConnectionError, ConnectionClosedError)):
        return True
    return error_code(exc) in TRANSIENT_CODES


@contextmanager
def aws_errors(action: str, task_arn: Optional[str] = None) -> Iterator[None]:
    """
    Translate boto/Braket failures raised inside the block.

    With ``task_arn`` set, a not-found or validation rejection becomes
    :class:`TaskNotFoundError`; anything else the service rejects becomes
    :class:`BraketServiceError`.
    """
    try:
        yield
    except NoCredentialsError as exc:
        raise CredentialsError(_NO_CREDENTIALS) from exc
    except ClientError as exc:
        code = error_code(exc)
        if task_arn and code in _NOT_FOUND_CODES:
            raise TaskNotFoundError(f"Braket task {task_arn} not found: {exc}") from exc
        raise BraketServiceError(
            f"Could not {action}: {exc}", code=code, transient=code in TRANSIENT_CODES
        ) from exc
    except BotoCoreError as exc:
        raise BraketServiceError(f"Could not {action}: {exc}", transient=is_transient(exc)) from exc


def aws_session() -> AwsSession:
    cfg = get_config().aws
    try:
        boto_sess = boto3.Session(region_name=cfg.region, profile_name=cfg.profile)
        return AwsSession(boto_session=boto_sess)
    except (NoCredentialsError, ProfileNotFound) as exc:
        raise CredentialsError(_NO_CREDENTIALS) from exc


def _describe(device: AwsDevice) -> Dict[str, Any]:
    paradigm = getattr(device.properties, "paradigm", None)
    return {
        "name": device.name,
        "arn": device.arn,
        "type": getattr(device.type, "value", str(device.type)),
        "provider": device.provider_name,
        "status": device.status,
        "qubits": getattr(paradigm, "qubitCount", None),
    }


@register
class BraketDevice(TaskDevice):
    name = "braket"
    max_qubits = 34

    def __init__(self, arn: Optional[str] = None, session: Optional[AwsSession] = None):
        cfg = get_config().braket
        self.arn = arn or cfg.device
        self.session = session or aws_session()
        self.poll_timeout_seconds = cfg.poll_timeout_seconds
        self.poll_interval_seconds = cfg.poll_interval_seconds
        self.s3_destination_folder = (cfg.s3_bucket, cfg.s3_prefix) if cfg.s3_bucket else None
        with aws_errors(f"load device {self.arn}"):
            self.device = AwsDevice(self.arn, aws_session=self.session)
        paradigm = getattr(self.device.properties, "paradigm", None)
        if getattr(paradigm, "qubitCount", None):
            self.max_qubits = paradigm.qubitCount

    # --------------------------------------------------------------------- #
    def submit(self, compiled: Circuit, shots: int, device_parameters: Optional[Dict[str, Any]] = None) -> AwsQuantumTask:
        kwargs: Dict[str, Any] = {
            "shots": shots,
            "poll_timeout_seconds": self.poll_timeout_seconds,
            "poll_interval_seconds": self.poll_interval_seconds,
        }
        if self.s3_destination_folder:
            kwargs["s3_destination_folder"] = self.s3_destination_folder
        if device_parameters:
            kwargs["device_parameters"] = device_parameters
        with aws_errors(f"submit task to {self.arn}"):
            task = self.device.run(compiled, **kwargs)
        logger.info("Submitted task %s to %s (%d shots)", task.id, self.arn, shots)
        return task

    # --------------------------------------------------------------------- #
    def counts(self, task: AwsQuantumTask) -> Dict[str, int]:
        return wait_for_counts(task, self.poll_timeout_seconds, self.poll_interval_seconds)

    def describe(self) -> Dict[str, Any]:
        return _describe(self.device)


def fetch_task(task_arn: str, session: Optional[AwsSession] = None) -> AwsQuantumTask:
    return AwsQuantumTask(task_arn, aws_session=session or aws_session())


def wait_for_counts(task: AwsQuantumTask, timeout: float, interval: float) -> Dict[str, int]:
    """
    Poll until the task is terminal and return measurement counts.
    Works with either a real QPU or an on-demand simulator ARN.
    """
    deadline = time.monotonic() + timeout
    with aws_errors(f"poll task {task.id}", task.id):
        while (state := task.state()) not in TERMINAL_STATES:
            if time.monotonic() > deadline:
                raise TimeoutError(f"Braket task {task.id} still {state} after {timeout}s")
            time.sleep(interval)

        if state != "COMPLETED":
            reason = task.metadata().get("failureReason")
            raise TaskFailedError(task.id, state, reason)

        return dict(task.result().measurement_counts)


def list_remote(
    statuses: Optional[Iterable[str]] = None,
    types: Optional[Iterable[str]] = None,
    provider_names: Optional[Iterable[str]] = None,
    session: Optional[AwsSession] = None,
) -> List[Dict[str, Any]]:
    """Search Braket for devices and return ``describe()``-style dicts."""
    kwargs: Dict[str, Any] = {"aws_session": session or aws_session()}
    if statuses:
        kwargs["statuses"] = [s.upper() for s in statuses]
    if types:
        kwargs["types"] = [t.upper() for t in types]
    if provider_names:
        kwargs["provider_names"] = list(provider_names)
    with aws_errors("search Braket devices"):
        devices = AwsDevice.get_devices(**kwargs)
    return [_describe(d) for d in devices]
