"""
braketctl.hybrid.optimizer
--------------------------
Classical outer loop around a parametric circuit.

Each cost evaluation binds the free parameters, submits one task to the
device and turns the returned counts into ``<H>``; ``scipy.optimize``
proposes the next point.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

import numpy as np
from braket.circuits import Circuit
from scipy.optimize import minimize as scipy_minimize

from ..compiler.circuit_gen import bind
from ..config import get_config
from ..devices.device import TaskDevice
from ..errors import ModelError
from .cost import Hamiltonian, expectation

logger = logging.getLogger(__name__)


@dataclass
class OptimizationResult:
    parameters: Dict[str, float]
    cost: float
    history: List[float] = field(default_factory=list)
    evaluations: int = 0
    task_ids: List[str] = field(default_factory=list)
    success: bool = False
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameters": self.parameters,
            "cost": self.cost,
            "history": self.history,
            "evaluations": self.evaluations,
            "task_ids": self.task_ids,
            "success": self.success,
            "message": self.message,
        }


def _initial_point(names: List[str], initial: Optional[Mapping[str, float]], seed: Optional[int]) -> np.ndarray:
    if initial is not None:
        missing = set(names) - set(initial)
        if missing:
            raise ModelError(f"Initial values missing for parameter(s): {', '.join(sorted(missing))}.")
        return np.array([float(initial[n]) for n in names])
    if seed is not None:
        return np.random.default_rng(seed).uniform(0, 2 * math.pi, len(names))
    return np.zeros(len(names))


def minimize(
    circuit: Circuit,
    hamiltonian: Hamiltonian,
    device: TaskDevice,
    *,
    shots: Optional[int] = None,
    initial: Optional[Mapping[str, float]] = None,
    method: Optional[str] = None,
    maxiter: Optional[int] = None,
    tol: Optional[float] = None,
    seed: Optional[int] = None,
    device_parameters: Optional[Dict[str, Any]] = None,
    callback: Optional[Callable[[int, Dict[str, float], float], None]] = None,
) -> OptimizationResult:
    """
    Minimise ``<H>`` over the free parameters of ``circuit``.

    Unset options fall back to the ``hybrid`` config section. ``callback``
    is called after every evaluation with ``(evaluation, parameters, cost)``.
    """
    cfg = get_config().hybrid
    shots = shots or cfg.shots
    method = method or cfg.method
    maxiter = maxiter or cfg.maxiter
    tol = tol if tol is not None else cfg.tol

    names = sorted(p.name for p in circuit.parameters)
    if not names:
        raise ModelError("Circuit has no free parameters to optimise.")

    result = OptimizationResult(parameters={}, cost=math.inf)

    def _cost(x: np.ndarray) -> float:
        values = dict(zip(names, map(float, x)))
        compiled = device.compile(bind(circuit, values))
        task = device.submit(compiled, shots, device_parameters)
        counts = device.counts(task)
        value = expectation(counts, hamiltonian)

        result.evaluations += 1
        result.history.append(value)
        result.task_ids.append(task.id)
        logger.info("Evaluation %d: cost=%.6f params=%s", result.evaluations, value, values)
        if callback is not None:
            callback(result.evaluations, values, value)
        return value

    x0 = _initial_point(names, initial, seed)
    res = scipy_minimize(_cost, x0, method=method, tol=tol, options={"maxiter": maxiter})

    result.parameters = dict(zip(names, map(float, np.atleast_1d(res.x))))
    result.cost = float(res.fun)
    result.success = bool(res.success)
    result.message = str(res.message)
    return result
