"""Hybrid classical/quantum optimisation."""

from .cost import Hamiltonian, expectation
from .optimizer import OptimizationResult, minimize

__all__ = ["Hamiltonian", "expectation", "OptimizationResult", "minimize"]
