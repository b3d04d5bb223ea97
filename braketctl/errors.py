"""
braketctl.errors
----------------
Exception hierarchy. Every error also derives from the builtin it
specialises, so callers catching ``ValueError`` / ``LookupError`` /
``RuntimeError`` keep working.
"""

from __future__ import annotations

from typing import Optional


class BraketCtlError(Exception):
    """Base class for all braketctl errors."""


class ConfigError(BraketCtlError, ValueError):
    """Configuration file missing, unreadable or invalid."""


class ModelError(BraketCtlError, ValueError):
    """Circuit model or Hamiltonian failed to parse or validate."""


class DeviceNotFoundError(BraketCtlError, LookupError):
    """No registered device matches the requested name."""


class CredentialsError(BraketCtlError, RuntimeError):
    """AWS credentials could not be resolved."""


class TaskNotFoundError(BraketCtlError, LookupError):
    """Unknown task id, or no stored result for it."""


class TaskFailedError(BraketCtlError, RuntimeError):
    """A quantum task reached a terminal state other than COMPLETED."""

    def __init__(self, task_id: str, state: str, reason: Optional[str] = None):
        self.task_id = task_id
        self.state = state
        self.reason = reason
        msg = f"Braket task {task_id} finished with state {state}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StorageError(BraketCtlError, RuntimeError):
    """Object-store read or write failed."""


class BraketServiceError(BraketCtlError, RuntimeError):
    """A Braket API call was rejected or could not reach the service."""

    def __init__(self, message: str, code: Optional[str] = None, transient: bool = False):
        self.code = code
        self.transient = transient
        super().__init__(message)


class TaskPendingError(BraketCtlError, RuntimeError):
    """Result requested for a task that has not reached a terminal state."""

    def __init__(self, task_id: str, state: str):
        self.task_id = task_id
        self.state = state
        super().__init__(f"Braket task {task_id} is still {state}")
