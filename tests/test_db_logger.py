"""Tests for the SQLite task history and per-task JSON logs."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from braketctl import db
from braketctl.errors import TaskNotFoundError
from braketctl.monitoring import logger as task_log
from braketctl.monitoring import metrics
from braket.circuits import Circuit

TASK_ARN = "arn:aws:braket:us-east-1:123456789012:quantum-task/abc"


# ============================================================================
# Task history
# ============================================================================


class TestTaskHistory:

    def test_database_lives_under_configured_path(self, isolated_config):
        db.insert_task({"id": "t1"})

        assert (isolated_config / "tasks.db").exists()

    def test_insert_defaults_status(self):
        db.insert_task({"id": "t1", "device": "local", "shots": 10})

        row = db.get_task("t1")
        assert row["status"] == "CREATED"
        assert row["shots"] == 10
        assert row["completed"] is None

    def test_get_missing(self):
        assert db.get_task("nope") is None

    def test_update_serialises_counts(self):
        db.insert_task({"id": "t1"})

        db.update_task("t1", status="COMPLETED", counts_json={"00": 1})

        row = db.get_task("t1")
        assert row["status"] == "COMPLETED"
        assert json.loads(row["counts_json"]) == {"00": 1}

    def test_update_rejects_unknown_columns(self):
        db.insert_task({"id": "t1"})

        with pytest.raises(ValueError, match="backend"):
            db.update_task("t1", backend="x")

    def test_update_id_is_not_a_field(self):
        db.insert_task({"id": "t1"})

        with pytest.raises(ValueError):
            db.update_task("t1", id="t2")

    def test_list_newest_first(self):
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        for i in range(3):
            db.insert_task({"id": f"t{i}", "submitted": (base + timedelta(minutes=i)).isoformat()})

        assert [r["id"] for r in db.list_tasks(limit=2)] == ["t2", "t1"]

    def test_list_ties_broken_by_insertion_order(self):
        stamp = datetime(2025, 1, 1, tzinfo=timezone.utc).isoformat()
        db.insert_task({"id": "first", "submitted": stamp})
        db.insert_task({"id": "second", "submitted": stamp})

        assert db.list_tasks()[0]["id"] == "second"


# ============================================================================
# Task logs
# ============================================================================


class TestTaskLog:

    def test_submit_then_complete(self):
        submitted = datetime.now(timezone.utc)
        task_log.log_submit("t1", "local", "OPENQASM 3.0;", {"gate_count": 2}, model_name="bell.json", shots=10)

        task_log.log_complete("t1", {"00": 10}, submitted.isoformat(),
                              completion_time=submitted + timedelta(seconds=2))

        data = task_log.read("t1")
        assert data["status"] == "completed"
        assert data["model_name"] == "bell.json"
        assert data["gate_count"] == 2
        assert data["counts"] == {"00": 10}
        assert data["elapsed_ms"] == 2000

    def test_error(self):
        task_log.log_submit("t1", "local", "", {})

        task_log.log_error("t1", "boom", None)

        data = task_log.read("t1")
        assert data["status"] == "failed"
        assert data["error_message"] == "boom"
        assert data["model_name"] == "N/A"

    def test_complete_without_submit_log(self):
        task_log.log_complete("orphan", {"1": 1}, None)

        assert task_log.read("orphan")["counts"] == {"1": 1}

    def test_arn_is_a_safe_file_name(self, isolated_config):
        task_log.log_submit(TASK_ARN, "sv1", "", {})

        files = [p.name for p in (isolated_config / "logs").iterdir()]
        assert files == ["arn_aws_braket_us-east-1_123456789012_quantum-task_abc.json"]
        assert task_log.read(TASK_ARN)["task"] == TASK_ARN

    def test_read_missing(self):
        with pytest.raises(TaskNotFoundError):
            task_log.read("nope")


class TestMetrics:

    def test_calculate(self):
        circuit = Circuit().h(0).cnot(0, 1).cnot(1, 2)

        assert metrics.calculate(circuit) == {"gate_count": 3, "circuit_depth": 3, "qubits": 3}
