from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

from braket.circuits import Circuit


class TaskDevice(ABC):
    """
    A place quantum tasks can be submitted to.

    ``submit`` returns the vendor task object (``LocalQuantumTask`` or
    ``AwsQuantumTask``); ``run`` blocks until counts are available.
    """
    name: str
    max_qubits: int
    # local devices finish a task before submit() returns
    local: bool = False

    def compile(self, circuit: Circuit) -> Circuit:
        if circuit.qubit_count > self.max_qubits:
            raise ValueError(
                f"Circuit needs {circuit.qubit_count} qubits but "
                f"{self.name} supports 1–{self.max_qubits}."
            )
        return circuit

    @abstractmethod
    def submit(self, compiled: Circuit, shots: int, device_parameters: Optional[Dict[str, Any]] = None):
        ...

    @abstractmethod
    def describe(self) -> Dict[str, Any]:
        ...

    def run(self, compiled: Circuit, shots: int, device_parameters: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
        task = self.submit(compiled, shots, device_parameters)
        return self.counts(task)

    def counts(self, task) -> Dict[str, int]:
        return dict(task.result().measurement_counts)

    def monitor(self, counts: Dict[str, int]) -> Dict[str, Any]:
        return {
            "shots": sum(counts.values()),
            "num_outcomes": len(counts),
            "counts": counts,
        }


DEVICE_REGISTRY: Dict[str, Type[TaskDevice]] = {}


def register(device_cls):
    DEVICE_REGISTRY[device_cls.name] = device_cls
    return device_cls
