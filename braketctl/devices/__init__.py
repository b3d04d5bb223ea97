"""
braketctl.devices package

Exposes DEVICE_REGISTRY and eagerly loads built-in back-ends.
"""

from ..errors import DeviceNotFoundError
from .device import DEVICE_REGISTRY, TaskDevice

# importing the modules runs their @register decorators
from .local_device import LocalDevice, LocalNoisyDevice  # noqa: F401
from .braket_device import BraketDevice, fetch_task, list_remote, wait_for_counts  # noqa: F401

ARN_PREFIX = "arn:aws:braket"


def select(name: str) -> TaskDevice:
    """Instantiate a device by registry name, or a managed device by ARN."""
    if name.startswith(ARN_PREFIX):
        return BraketDevice(arn=name)
    try:
        device_cls = DEVICE_REGISTRY[name.lower()]
    except KeyError:
        raise DeviceNotFoundError(
            f"Unknown device '{name}'. Available: {', '.join(sorted(DEVICE_REGISTRY))}, or a Braket device ARN."
        ) from None
    return device_cls()


__all__ = ["DEVICE_REGISTRY", "TaskDevice", "select", "list_remote", "fetch_task", "wait_for_counts", "ARN_PREFIX"]
