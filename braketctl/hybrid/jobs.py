"""
braketctl.hybrid.jobs
---------------------
Amazon Braket Hybrid Jobs: run an optimisation script on managed classical
compute with priority access to the chosen device.
"""

from __future__ import annotations

import logging
import random
import string
from typing import Any, Dict, Optional

from braket.aws import AwsQuantumJob

from ..devices.braket_device import aws_errors, aws_session

logger = logging.getLogger(__name__)


def _job_name() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=12))
    return f"braketctl-{suffix}"


def create_job(
    source_module: str,
    device: str,
    *,
    entry_point: Optional[str] = None,
    hyperparameters: Optional[Dict[str, Any]] = None,
    job_name: Optional[str] = None,
    wait: bool = False,
) -> AwsQuantumJob:
    """
    Upload ``source_module`` and start a hybrid job.

    ``device`` is a Braket device ARN (or ``local:<provider>/<simulator>``
    for the embedded simulator). Hyperparameter values are stringified,
    as the service requires.
    """
    kwargs: Dict[str, Any] = {
        "device": device,
        "source_module": source_module,
        "job_name": job_name or _job_name(),
        "wait_until_complete": wait,
        "aws_session": aws_session(),
    }
    if entry_point:
        kwargs["entry_point"] = entry_point
    if hyperparameters:
        kwargs["hyperparameters"] = {k: str(v) for k, v in hyperparameters.items()}
    with aws_errors("create a hybrid job"):
        job = AwsQuantumJob.create(**kwargs)
    logger.info("Created hybrid job %s on %s", job.arn, device)
    return job


def _attach(job_arn: str) -> AwsQuantumJob:
    return AwsQuantumJob(job_arn, aws_session=aws_session())


def job_state(job_arn: str) -> str:
    with aws_errors(f"query job {job_arn}"):
        return _attach(job_arn).state()


def job_result(job_arn: str) -> Dict[str, Any]:
    """Result dict saved by the job script with ``save_job_result``."""
    with aws_errors(f"fetch result of job {job_arn}"):
        return _attach(job_arn).result()
