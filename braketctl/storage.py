"""
braketctl.storage
-----------------
S3 persistence for measurement results.

Layout::

    s3://<bucket>/<prefix>/<task id>/counts.json

Task ARNs are flattened (``:`` and ``/`` -> ``_``) to form the key segment.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import get_config
from .errors import StorageError, TaskNotFoundError

logger = logging.getLogger(__name__)

COUNTS_FILENAME = "counts.json"


def parse_s3_uri(uri: str) -> Tuple[str, str]:
    """Split ``s3://bucket/key`` into ``(bucket, key)``."""
    if not uri.startswith("s3://"):
        raise StorageError(f"Not an S3 URI: {uri!r}")
    bucket, _, key = uri[len("s3://"):].partition("/")
    if not bucket:
        raise StorageError(f"S3 URI has no bucket: {uri!r}")
    return bucket, key


def _safe_segment(task_id: str) -> str:
    return task_id.replace(":", "_").replace("/", "_")


class ResultStore:
    """JSON objects under one bucket/prefix."""

    def __init__(self, bucket: str, prefix: str = "", client: Any = None):
        if not bucket:
            raise StorageError("An S3 bucket name is required.")
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        if client is None:
            cfg = get_config().aws
            client = boto3.Session(region_name=cfg.region, profile_name=cfg.profile).client("s3")
        self.client = client

    @classmethod
    def from_config(cls, client: Any = None) -> ResultStore:
        cfg = get_config().storage
        if not cfg.bucket:
            raise StorageError(
                "No result bucket configured. Set storage.bucket in the config or BRAKETCTL_S3_BUCKET."
            )
        return cls(cfg.bucket, cfg.prefix, client=client)

    def destination_folder(self) -> Tuple[str, str]:
        """``(bucket, prefix)`` in the form ``AwsDevice.run(s3_destination_folder=...)`` takes."""
        return self.bucket, self.prefix

    def key(self, name: str) -> str:
        name = name.lstrip("/")
        return f"{self.prefix}/{name}" if self.prefix else name

    def uri(self, name: str) -> str:
        return f"s3://{self.bucket}/{self.key(name)}"

    # ── raw objects ────────────────────────────────────────────────────── #

    def put_json(self, name: str, payload: Any) -> str:
        key = self.key(name)
        body = json.dumps(payload, indent=2, default=str).encode("utf-8")
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType="application/json")
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to write s3://{self.bucket}/{key}: {e}") from e
        logger.info("Wrote s3://%s/%s", self.bucket, key)
        return f"s3://{self.bucket}/{key}"

    def get_json(self, name: str) -> Any:
        key = self.key(name)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            raw = response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise TaskNotFoundError(f"No object at s3://{self.bucket}/{key}") from e
            raise StorageError(f"Failed to read s3://{self.bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read s3://{self.bucket}/{key}: {e}") from e
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"Object s3://{self.bucket}/{key} is not valid JSON: {e}") from e

    def list_keys(self, name_prefix: str = "") -> List[str]:
        prefix = self.key(name_prefix) if name_prefix else (f"{self.prefix}/" if self.prefix else "")
        keys: List[str] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to list s3://{self.bucket}/{prefix}: {e}") from e
        return keys

    def delete(self, name: str) -> None:
        key = self.key(name)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete s3://{self.bucket}/{key}: {e}") from e

    # ── task results ───────────────────────────────────────────────────── #

    def save_counts(self, task_id: str, counts: Dict[str, int], metadata: Optional[Dict[str, Any]] = None) -> str:
        payload = {
            "task": task_id,
            "saved": datetime.now(timezone.utc).isoformat(),
            "shots": sum(counts.values()),
            "counts": counts,
            "metadata": metadata or {},
        }
        return self.put_json(f"{_safe_segment(task_id)}/{COUNTS_FILENAME}", payload)

    def load_counts(self, task_id: str) -> Dict[str, int]:
        payload = self.get_json(f"{_safe_segment(task_id)}/{COUNTS_FILENAME}")
        if not isinstance(payload, dict) or "counts" not in payload:
            raise StorageError(f"Stored result for task {task_id} has no 'counts' field.")
        return {str(k): int(v) for k, v in payload["counts"].items()}
