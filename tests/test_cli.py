"""Tests for the braketctl Typer CLI."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, NoCredentialsError
from braketctl.cli.cli import app
from typer.testing import CliRunner

runner = CliRunner()

TASK_ARN = "arn:aws:braket:us-east-1:123456789012:quantum-task/abc"


def _remote_task(error: Exception) -> MagicMock:
    task = MagicMock()
    task.state.side_effect = error
    task.cancel.side_effect = error
    return task


def _not_found() -> ClientError:
    return ClientError({"Error": {"Code": "ResourceNotFoundException", "Message": "no such task"}}, "GetQuantumTask")


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("braketctl.cli.cli.configure_logging"):
        yield


class TestRunCommands:

    def test_run_prints_counts(self, bell_model: Path):
        result = runner.invoke(app, ["run", str(bell_model), "--shots", "20"])

        assert result.exit_code == 0, result.output
        assert '"00"' in result.output or '"11"' in result.output

    def test_run_binds_parameters(self, rotation_model: Path):
        result = runner.invoke(app, ["run", str(rotation_model), "--param", "theta=0"])

        assert result.exit_code == 0, result.output
        assert '"0": 100' in result.output

    def test_bad_param_syntax(self, rotation_model: Path):
        result = runner.invoke(app, ["run", str(rotation_model), "--param", "theta"])

        assert result.exit_code != 0
        assert "NAME=VALUE" in result.output

    def test_run_model_error(self, rotation_model: Path):
        result = runner.invoke(app, ["run", str(rotation_model)])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_unknown_device(self, bell_model: Path):
        result = runner.invoke(app, ["run", str(bell_model), "--device", "qiskit"])

        assert result.exit_code == 1
        assert "Unknown device" in result.output

    def test_dispatch_then_inspect(self, bell_model: Path):
        from braketctl.api import core

        result = runner.invoke(app, ["dispatch", str(bell_model)])
        assert result.exit_code == 0, result.output
        task_id = core.tasks(limit=1)[0]["id"]
        assert task_id in result.output

        status = runner.invoke(app, ["status", task_id])
        assert status.exit_code == 0
        assert "COMPLETED" in status.output

        res = runner.invoke(app, ["result", task_id])
        assert res.exit_code == 0

        logs = runner.invoke(app, ["logs", task_id])
        assert logs.exit_code == 0
        assert "OPENQASM" in logs.output

        tasks = runner.invoke(app, ["tasks"])
        assert task_id in tasks.output

        detail = runner.invoke(app, ["tasks", task_id])
        assert '"model_path": "bell.json"' in detail.output

    def test_compile(self, bell_model: Path):
        result = runner.invoke(app, ["compile", str(bell_model)])

        assert result.exit_code == 0
        assert result.output.startswith("OPENQASM 3.0;")

    def test_missing_model_file(self, tmp_path: Path):
        result = runner.invoke(app, ["run", str(tmp_path / "nope.json")])

        assert result.exit_code == 2


class TestTaskCommands:

    def test_status_unknown(self):
        result = runner.invoke(app, ["status", "nope"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_logs_unknown(self):
        result = runner.invoke(app, ["logs", "nope"])

        assert result.exit_code == 1

    def test_tasks_empty(self):
        result = runner.invoke(app, ["tasks"])

        assert "No tasks found" in result.output

    def test_cancel_local(self, bell_model: Path):
        from braketctl.api import core

        task_id = core.dispatch(bell_model)
        result = runner.invoke(app, ["cancel", task_id])

        assert result.exit_code == 1
        assert "cannot be cancelled" in result.output


class TestAwsFailures:

    @pytest.mark.parametrize("command", ["status", "result", "cancel"])
    def test_unknown_arn(self, command):
        with patch("braketctl.api.core.device_registry.fetch_task", return_value=_remote_task(_not_found())):
            result = runner.invoke(app, [command, TASK_ARN])

        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "Error:" in result.output
        assert "not found" in result.output

    def test_missing_credentials(self):
        with patch("braketctl.api.core.device_registry.fetch_task", return_value=_remote_task(NoCredentialsError())):
            result = runner.invoke(app, ["status", TASK_ARN])

        assert result.exit_code == 1
        assert "credentials" in result.output


class TestInfoCommands:

    def test_devices(self):
        result = runner.invoke(app, ["devices"])

        assert result.exit_code == 0
        for name in ("local", "local_dm", "braket"):
            assert f"- {name}" in result.output

    def test_remote_devices(self):
        found = [{"name": "SV1", "status": "ONLINE", "type": "SIMULATOR", "provider": "Amazon Braket",
                  "qubits": 34, "arn": "arn:aws:braket:::device/quantum-simulator/amazon/sv1"}]
        with patch("braketctl.api.core.devices", return_value=found) as search:
            result = runner.invoke(app, ["devices", "--remote", "--status", "ONLINE"])

        assert result.exit_code == 0, result.output
        assert "SV1" in result.output
        assert search.call_args.kwargs["statuses"] == ["ONLINE"]

    def test_config(self):
        result = runner.invoke(app, ["config"])

        assert result.exit_code == 0
        assert "region: us-east-1" in result.output

    def test_commands(self):
        result = runner.invoke(app, ["commands"])

        assert result.exit_code == 0
        assert "run" in result.output
        assert "braketctl run examples/bell.json" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])

        assert "Usage" in result.output


class TestSubApps:

    def test_store_put_without_bucket(self, bell_model: Path):
        from braketctl.api import core

        task_id = core.dispatch(bell_model)
        result = runner.invoke(app, ["store", "put", task_id])

        assert result.exit_code == 1
        assert "No result bucket" in result.output

    def test_job_create(self):
        with patch("braketctl.hybrid.jobs.create_job") as create:
            create.return_value.arn = "arn:aws:braket:us-east-1:123:job/j"
            result = runner.invoke(app, [
                "job", "create", "examples/job_script.py",
                "--device", "arn:dev", "--hyperparameter", "shots=200",
            ])

        assert result.exit_code == 0, result.output
        assert "job/j" in result.output
        assert create.call_args.kwargs["hyperparameters"] == {"shots": "200"}

    def test_job_status(self):
        with patch("braketctl.hybrid.jobs.job_state", return_value="COMPLETED"):
            result = runner.invoke(app, ["job", "status", "arn:job"])

        assert "COMPLETED" in result.output
