"""Tests for braketctl.storage against a mocked S3 client."""

from __future__ import annotations

import io
import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from braketctl.errors import StorageError, TaskNotFoundError
from braketctl.storage import ResultStore, parse_s3_uri

TASK_ARN = "arn:aws:braket:us-east-1:123456789012:quantum-task/abc"


def _client_error(code: str, op: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, op)


def _body(payload) -> dict:
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    return {"Body": io.BytesIO(raw)}


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def store(client):
    return ResultStore("my-bucket", "results/", client=client)


class TestParseS3Uri:

    def test_bucket_and_key(self):
        assert parse_s3_uri("s3://b/some/key.json") == ("b", "some/key.json")

    def test_bucket_only(self):
        assert parse_s3_uri("s3://b") == ("b", "")

    @pytest.mark.parametrize("uri", ["https://b/key", "s3:///key", "b/key"])
    def test_invalid(self, uri):
        with pytest.raises(StorageError):
            parse_s3_uri(uri)


class TestKeys:

    def test_prefix_is_normalised(self, store):
        assert store.prefix == "results"
        assert store.key("/a.json") == "results/a.json"
        assert store.uri("a.json") == "s3://my-bucket/results/a.json"
        assert store.destination_folder() == ("my-bucket", "results")

    def test_empty_prefix(self, client):
        assert ResultStore("b", client=client).key("a.json") == "a.json"

    def test_bucket_required(self, client):
        with pytest.raises(StorageError):
            ResultStore("", client=client)


class TestFromConfig:

    def test_no_bucket_configured(self, client):
        with pytest.raises(StorageError, match="No result bucket"):
            ResultStore.from_config(client=client)

    def test_bucket_from_env(self, client, monkeypatch):
        monkeypatch.setenv("BRAKETCTL_S3_BUCKET", "env-bucket")

        store = ResultStore.from_config(client=client)

        assert store.bucket == "env-bucket"
        assert store.prefix == "results"


class TestObjects:

    def test_put_json(self, store, client):
        uri = store.put_json("x.json", {"a": 1})

        assert uri == "s3://my-bucket/results/x.json"
        _, kwargs = client.put_object.call_args
        assert kwargs["Bucket"] == "my-bucket"
        assert kwargs["Key"] == "results/x.json"
        assert json.loads(kwargs["Body"]) == {"a": 1}

    def test_put_failure(self, store, client):
        client.put_object.side_effect = _client_error("AccessDenied", "PutObject")

        with pytest.raises(StorageError, match="Failed to write"):
            store.put_json("x.json", {})

    def test_get_json(self, store, client):
        client.get_object.return_value = _body({"a": 1})

        assert store.get_json("x.json") == {"a": 1}
        client.get_object.assert_called_once_with(Bucket="my-bucket", Key="results/x.json")

    def test_get_missing_object(self, store, client):
        client.get_object.side_effect = _client_error("NoSuchKey")

        with pytest.raises(TaskNotFoundError):
            store.get_json("x.json")

    def test_get_access_denied(self, store, client):
        client.get_object.side_effect = _client_error("AccessDenied")

        with pytest.raises(StorageError, match="Failed to read"):
            store.get_json("x.json")

    def test_get_invalid_json(self, store, client):
        client.get_object.return_value = _body(b"{nope")

        with pytest.raises(StorageError, match="not valid JSON"):
            store.get_json("x.json")

    def test_list_keys_paginates(self, store, client):
        paginator = client.get_paginator.return_value
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "results/a/counts.json"}]},
            {"Contents": [{"Key": "results/b/counts.json"}]},
            {},
        ]

        keys = store.list_keys()

        assert keys == ["results/a/counts.json", "results/b/counts.json"]
        paginator.paginate.assert_called_once_with(Bucket="my-bucket", Prefix="results/")

    def test_delete(self, store, client):
        store.delete("a.json")

        client.delete_object.assert_called_once_with(Bucket="my-bucket", Key="results/a.json")


class TestCounts:

    def test_save_counts_flattens_arn(self, store, client):
        uri = store.save_counts(TASK_ARN, {"00": 6, "11": 4}, {"device": "sv1"})

        key = "results/arn_aws_braket_us-east-1_123456789012_quantum-task_abc/counts.json"
        assert uri == f"s3://my-bucket/{key}"
        _, kwargs = client.put_object.call_args
        payload = json.loads(kwargs["Body"])
        assert kwargs["Key"] == key
        assert payload["task"] == TASK_ARN
        assert payload["shots"] == 10
        assert payload["metadata"] == {"device": "sv1"}

    def test_load_counts(self, store, client):
        client.get_object.return_value = _body({"task": TASK_ARN, "counts": {"00": 6, "11": 4}})

        assert store.load_counts(TASK_ARN) == {"00": 6, "11": 4}

    def test_load_counts_without_counts_field(self, store, client):
        client.get_object.return_value = _body({"task": TASK_ARN})

        with pytest.raises(StorageError, match="no 'counts'"):
            store.load_counts(TASK_ARN)
