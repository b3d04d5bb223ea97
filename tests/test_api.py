"""Tests for the FastAPI service."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from braketctl.api import core
from braketctl_api.main import app
from fastapi.testclient import TestClient

BELL = json.dumps({
    "name": "bell",
    "qubits": 2,
    "shots": 50,
    "gates": [{"op": "H", "target": 0}, {"op": "CNOT", "control": 0, "target": 1}],
})

TASK_ARN = "arn:aws:braket:us-east-1:123456789012:quantum-task/abc"


def _single_qubit(op: str) -> str:
    return json.dumps({"name": op.lower(), "qubits": 1, "shots": 10, "gates": [{"op": op, "target": 0}]})


@pytest.fixture
def client():
    return TestClient(app)


class TestRoutes:

    def test_root(self, client):
        assert client.get("/").json() == {"message": "braketctl API up"}

    def test_devices(self, client):
        assert "local" in client.get("/api/devices").json()

    def test_compile(self, client):
        body = client.post("/api/compile", json={"circuit_json": BELL}).json()

        assert body["qasm"].startswith("OPENQASM 3.0;")
        assert body["error"] is None

    def test_compile_invalid_model(self, client):
        bad = json.dumps({"name": "x", "qubits": 1, "gates": [{"op": "NOPE", "target": 0}]})

        body = client.post("/api/compile", json={"circuit_json": bad}).json()

        assert body["qasm"] is None
        assert "Unsupported gate" in body["error"]

    def test_run_then_query(self, client):
        body = client.post("/api/run", json={"circuit_json": BELL, "shots": 40}).json()

        assert body["error"] is None
        assert sum(body["counts"].values()) == 40
        task_id = body["task_id"]

        status = client.get(f"/api/tasks/{task_id}")
        assert status.status_code == 200
        data = status.json()["status_data"]
        assert data["status"] == "COMPLETED"
        assert data["shots"] == 40

        assert client.get(f"/api/tasks/{task_id}/result").json() == body["counts"]
        assert client.get("/api/tasks").json()[0]["id"] == task_id

    def test_run_reports_errors_in_body(self, client):
        body = client.post("/api/run", json={"circuit_json": BELL, "device": "nope"}).json()

        assert body["counts"] is None
        assert "Unknown device" in body["error"]

    def test_dispatch(self, client):
        response = client.post("/api/dispatch", json={"circuit_json": BELL})

        assert response.status_code == 200
        assert response.json()["message"] == "Task dispatched"

    def test_dispatch_bad_device(self, client):
        response = client.post("/api/dispatch", json={"circuit_json": BELL, "device": "nope"})

        assert response.status_code == 400

    def test_unknown_task(self, client):
        assert client.get("/api/tasks/nope").status_code == 404
        assert client.get("/api/tasks/nope/result").status_code == 404

    def test_invalid_shots_rejected(self, client):
        response = client.post("/api/run", json={"circuit_json": BELL, "shots": 0})

        assert response.status_code == 422

    def test_unknown_arn_result(self, client):
        task = MagicMock()
        task.state.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "no such task"}}, "GetQuantumTask",
        )

        with patch.object(core.device_registry, "fetch_task", return_value=task):
            response = client.get(f"/api/tasks/{TASK_ARN}/result")

        assert response.status_code == 404


class TestRunAttribution:

    def test_task_id_does_not_come_from_history(self, client):
        with patch.object(core, "tasks", return_value=[{"id": "someone-else"}]):
            body = client.post("/api/run", json={"circuit_json": BELL}).json()

        assert body["task_id"] != "someone-else"
        assert core.get_task(body["task_id"])["status"] == "COMPLETED"

    def test_concurrent_runs_get_their_own_task_ids(self):
        models = [_single_qubit("X"), _single_qubit("I")] * 4

        def post(model: str) -> dict:
            return TestClient(app).post("/api/run", json={"circuit_json": model}).json()

        with ThreadPoolExecutor(max_workers=4) as pool:
            bodies = list(pool.map(post, models))

        assert len({b["task_id"] for b in bodies}) == len(models)
        for model, body in zip(models, bodies):
            expected = "1" if '"X"' in model else "0"
            assert body["counts"] == {expected: 10}
            assert json.loads(core.get_task(body["task_id"])["counts_json"]) == body["counts"]
