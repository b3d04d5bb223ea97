"""Shared fixtures: isolated config, task history and sample models."""

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from braketctl.config import get_config


EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"

_ENV_VARS = (
    "BRAKETCTL_CONFIG",
    "BRAKETCTL_DEVICE",
    "BRAKETCTL_S3_BUCKET",
    "BRAKETCTL_DB",
    "BRAKETCTL_LOG_DIR",
    "AWS_DEFAULT_REGION",
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the task database and log directory at a temp dir."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BRAKETCTL_DB", str(tmp_path / "tasks.db"))
    monkeypatch.setenv("BRAKETCTL_LOG_DIR", str(tmp_path / "logs"))
    get_config.cache_clear()
    yield tmp_path
    get_config.cache_clear()


def write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def bell_model(tmp_path) -> Path:
    return write_json(tmp_path / "bell.json", {
        "name": "bell",
        "qubits": 2,
        "shots": 100,
        "gates": [
            {"op": "H", "target": 0},
            {"op": "CNOT", "control": 0, "target": 1},
        ],
    })


@pytest.fixture
def rotation_model(tmp_path) -> Path:
    """One qubit, one free parameter: RX(theta)|0>."""
    return write_json(tmp_path / "rotation.json", {
        "name": "rotation",
        "qubits": 1,
        "gates": [{"op": "RX", "target": 0, "params": {"theta": "theta"}}],
    })


@pytest.fixture
def z_hamiltonian(tmp_path) -> Path:
    return write_json(tmp_path / "z.json", {
        "qubits": 1,
        "terms": [{"coefficient": 1.0, "paulis": "Z"}],
    })


def make_aws_task(task_id: str, states, counts=None, failure_reason=None) -> MagicMock:
    """Stand-in for ``AwsQuantumTask`` walking through ``states``."""
    task = MagicMock()
    task.id = task_id
    task.state.side_effect = list(states) if not isinstance(states, str) else None
    if isinstance(states, str):
        task.state.return_value = states
    task.result.return_value = SimpleNamespace(measurement_counts=dict(counts or {}))
    task.metadata.return_value = {"failureReason": failure_reason} if failure_reason else {}
    return task
