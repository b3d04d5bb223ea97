"""
braketctl.monitoring.metrics
----------------------------
Stateless helpers for basic circuit metrics.

Called once per task *before* submission so we can persist the expected
properties even if the device rejects the task.
"""

from __future__ import annotations

from typing import Dict

from braket.circuits import Circuit


def calculate(circuit: Circuit) -> Dict[str, int]:
    """Return {gate_count, circuit_depth, qubits} for a Braket circuit."""
    return {
        "gate_count": len(circuit.instructions),
        "circuit_depth": circuit.depth,
        "qubits": circuit.qubit_count,
    }
