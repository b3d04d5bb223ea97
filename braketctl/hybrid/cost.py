"""
braketctl.hybrid.cost
---------------------
Diagonal (Ising-type) cost Hamiltonians and their expectation values from
measurement counts.

A Hamiltonian is a weighted sum of Pauli strings over ``I`` and ``Z``::

    {"qubits": 3, "terms": [{"coefficient": 0.5, "paulis": "ZZI"}, ...]}

Character ``k`` of a Pauli string acts on qubit ``k``, matching Braket's
bit-string order (qubit 0 leftmost).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

import numpy as np
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..errors import ModelError


class Term(BaseModel):
    coefficient: float
    paulis: str

    model_config = {"extra": "forbid"}

    @field_validator("paulis", mode="before")
    @classmethod
    def validate_paulis(cls, v: Any) -> str:
        if not isinstance(v, str) or not v:
            raise ValueError("'paulis' must be a non-empty string.")
        v = v.upper()
        bad = set(v) - {"I", "Z"}
        if bad:
            raise ValueError(
                f"Only I and Z Pauli operators are supported, got {''.join(sorted(bad))} in '{v}'."
            )
        return v


class Hamiltonian(BaseModel):
    qubits: int = Field(..., gt=0)
    terms: List[Term] = Field(..., min_length=1)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def check_term_lengths(self) -> "Hamiltonian":
        for i, term in enumerate(self.terms):
            if len(term.paulis) != self.qubits:
                raise ValueError(
                    f"Term {i} '{term.paulis}' has length {len(term.paulis)}, expected {self.qubits}."
                )
        return self

    def _z_masks(self) -> np.ndarray:
        return np.array([[c == "Z" for c in t.paulis] for t in self.terms], dtype=bool)

    def _coefficients(self) -> np.ndarray:
        return np.array([t.coefficient for t in self.terms], dtype=float)

    def energy(self, bitstring: str) -> float:
        """Eigenvalue of the Hamiltonian on one computational basis state."""
        bits = np.array([b == "1" for b in bitstring], dtype=bool)
        parities = (self._z_masks() & bits).sum(axis=1) % 2
        return float(np.dot(self._coefficients(), 1 - 2 * parities))


def parse_dict(data: Any, source: str = "<payload>") -> Hamiltonian:
    if not isinstance(data, dict):
        raise ModelError(f"Hamiltonian from {source} must be a JSON object.")
    try:
        return Hamiltonian(**data)
    except ValidationError as e:
        details = "\n".join(
            f"Field '{' -> '.join(map(str, err.get('loc', ())))}': {err.get('msg')}" for err in e.errors()
        )
        raise ModelError(f"Invalid Hamiltonian in {source}:\n{details}") from e


def load(path: Union[str, Path]) -> Hamiltonian:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Hamiltonian JSON file not found at: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ModelError(f"Invalid JSON format in file {path}: {e}") from e
    return parse_dict(data, source=str(path))


def expectation(counts: Mapping[str, int], hamiltonian: Hamiltonian) -> float:
    """Shot-weighted estimate of <H> from measurement counts."""
    total = sum(counts.values())
    if total <= 0:
        raise ValueError("Cannot compute an expectation value from empty counts.")

    energies: Dict[str, float] = {}
    value = 0.0
    for bitstring, n in counts.items():
        if len(bitstring) != hamiltonian.qubits:
            raise ValueError(
                f"Bit-string '{bitstring}' has {len(bitstring)} bits, Hamiltonian acts on {hamiltonian.qubits} qubits."
            )
        if bitstring not in energies:
            energies[bitstring] = hamiltonian.energy(bitstring)
        value += energies[bitstring] * n
    return value / total
