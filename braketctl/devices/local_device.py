# ~/braketctl_project/braketctl/devices/local_device.py
"""
Local Braket simulators.

``local``     state-vector simulator, noiseless
``local_dm``  density-matrix simulator with the configured noise channels
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from braket.circuits import Circuit
from braket.devices import LocalSimulator

from ..noise import NoiseModel
from .device import TaskDevice, register


@register
class LocalDevice(TaskDevice):
    name = "local"
    backend = "braket_sv"
    max_qubits = 26
    local = True

    def __init__(self):
        self._simulator = LocalSimulator(self.backend)

    def submit(self, compiled: Circuit, shots: int, device_parameters: Optional[Dict[str, Any]] = None):
        # Local simulators ignore device parameters such as error mitigation.
        return self._simulator.run(compiled, shots=shots)

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "arn": None,
            "type": "LOCAL_SIMULATOR",
            "provider": "Amazon Braket",
            "status": "ONLINE",
            "qubits": self.max_qubits,
        }


@register
class LocalNoisyDevice(LocalDevice):
    name = "local_dm"
    backend = "braket_dm"
    max_qubits = 13

    def __init__(self, noise: Optional[NoiseModel] = None):
        super().__init__()
        self.noise = noise if noise is not None else NoiseModel.for_device(self.name)

    def compile(self, circuit: Circuit) -> Circuit:
        circuit = super().compile(circuit)
        if self.noise is not None:
            circuit = self.noise.apply(circuit)
        return circuit

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info["noise"] = self.noise.describe() if self.noise else []
        return info
