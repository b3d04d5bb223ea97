"""
braketctl.config
----------------
YAML configuration with environment overrides.

Load order:
    1. ``braketctl/config/default.yaml`` (shipped)
    2. file named by ``$BRAKETCTL_CONFIG`` (deep-merged)
    3. individual env vars (see ``_ENV_OVERRIDES``)

The merged mapping is validated by the pydantic ``Settings`` model.
"""

from __future__ import annotations

import copy
import functools
import os
import pathlib
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import ConfigError

DEFAULT_CONFIG_PATH = pathlib.Path(__file__).parent / "default.yaml"
ENV_CONFIG_FILE = "BRAKETCTL_CONFIG"

# env var -> dotted config key
_ENV_OVERRIDES = {
    "AWS_DEFAULT_REGION": "aws.region",
    "BRAKETCTL_DEVICE": "braket.device",
    "BRAKETCTL_S3_BUCKET": "storage.bucket",
    "BRAKETCTL_DB": "paths.db",
    "BRAKETCTL_LOG_DIR": "paths.logs",
}


class AwsSettings(BaseModel):
    region: str = "us-east-1"
    profile: Optional[str] = None

    model_config = {"extra": "forbid"}


class BraketSettings(BaseModel):
    device: str = "arn:aws:braket:::device/quantum-simulator/amazon/sv1"
    shots: int = Field(100, ge=1)
    poll_timeout_seconds: float = Field(432000, gt=0)
    poll_interval_seconds: float = Field(1.0, gt=0)
    s3_bucket: Optional[str] = None
    s3_prefix: str = "braketctl-tasks"

    model_config = {"extra": "forbid"}


class StorageSettings(BaseModel):
    bucket: Optional[str] = None
    prefix: str = "results"

    model_config = {"extra": "forbid"}


class NoiseSpec(BaseModel):
    model: str
    params: Dict[str, float] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}


class ErrorMitigationSettings(BaseModel):
    debias: bool = False

    model_config = {"extra": "forbid"}


class HybridSettings(BaseModel):
    method: str = "COBYLA"
    maxiter: int = Field(50, ge=1)
    tol: Optional[float] = None
    shots: int = Field(1000, ge=1)

    model_config = {"extra": "forbid"}


class PathSettings(BaseModel):
    db: pathlib.Path = pathlib.Path("braketctl_tasks.db")
    logs: pathlib.Path = pathlib.Path(".braketctl_logs")

    model_config = {"extra": "forbid"}


class Settings(BaseModel):
    aws: AwsSettings = Field(default_factory=AwsSettings)
    braket: BraketSettings = Field(default_factory=BraketSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    noise: Dict[str, List[NoiseSpec]] = Field(default_factory=dict)
    error_mitigation: ErrorMitigationSettings = Field(default_factory=ErrorMitigationSettings)
    hybrid: HybridSettings = Field(default_factory=HybridSettings)
    paths: PathSettings = Field(default_factory=PathSettings)

    model_config = {"extra": "forbid"}

    @field_validator("noise", mode="before")
    @classmethod
    def wrap_single_noise_spec(cls, v: Any) -> Any:
        # `noise.<device>` may be a single spec or a list of specs
        if v is None:
            return {}
        if isinstance(v, dict):
            return {k: (spec if isinstance(spec, list) else [spec]) for k, spec in v.items()}
        return v


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: pathlib.Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at top level.")
    return data


def _apply_env(data: Dict[str, Any]) -> Dict[str, Any]:
    for env_name, dotted in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if not value:
            continue
        section, key = dotted.split(".")
        data.setdefault(section, {})[key] = value
    return data


def load_config(path: Optional[pathlib.Path] = None) -> Settings:
    """Build a validated ``Settings`` from defaults, an optional file and env vars."""
    data = _read_yaml(DEFAULT_CONFIG_PATH)

    user_path = path or (pathlib.Path(os.environ[ENV_CONFIG_FILE]) if os.getenv(ENV_CONFIG_FILE) else None)
    if user_path is not None:
        data = _deep_merge(data, _read_yaml(pathlib.Path(user_path)))

    data = _apply_env(data)

    try:
        return Settings(**data)
    except ValidationError as e:
        error_messages = []
        for error in e.errors():
            loc_str = ".".join(map(str, error.get("loc", ())))
            error_messages.append(f"Field '{loc_str}': {error.get('msg', 'Unknown error')}")
        raise ConfigError("Invalid configuration:\n" + "\n".join(error_messages)) from e


@functools.lru_cache(maxsize=1)
def get_config() -> Settings:
    return load_config()


def reload_config() -> Settings:
    get_config.cache_clear()
    return get_config()


__all__ = [
    "Settings",
    "NoiseSpec",
    "load_config",
    "get_config",
    "reload_config",
    "DEFAULT_CONFIG_PATH",
]
