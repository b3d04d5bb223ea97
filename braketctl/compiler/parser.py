# ~/braketctl_project/braketctl/compiler/parser.py
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

# For Pydantic V2
from pydantic import (
    BaseModel,
    Field,
    field_validator,
    model_validator,
    ValidationError
)

from ..errors import ModelError

# op -> (number of control qubits, number of target qubits, takes an angle)
# A target count of None means "one or more".
GATE_ARITY: Dict[str, Tuple[int, Optional[int], bool]] = {
    "I": (0, 1, False),
    "H": (0, 1, False),
    "X": (0, 1, False),
    "Y": (0, 1, False),
    "Z": (0, 1, False),
    "S": (0, 1, False),
    "SI": (0, 1, False),
    "T": (0, 1, False),
    "TI": (0, 1, False),
    "V": (0, 1, False),
    "VI": (0, 1, False),
    "RX": (0, 1, True),
    "RY": (0, 1, True),
    "RZ": (0, 1, True),
    "PHASESHIFT": (0, 1, True),
    "CNOT": (1, 1, False),
    "CY": (1, 1, False),
    "CZ": (1, 1, False),
    "CV": (1, 1, False),
    "CPHASESHIFT": (1, 1, True),
    "SWAP": (0, 2, False),
    "ISWAP": (0, 2, False),
    "XX": (0, 2, True),
    "YY": (0, 2, True),
    "ZZ": (0, 2, True),
    "CSWAP": (1, 2, False),
    "CCNOT": (2, 1, False),
    "MEASURE": (0, None, False),
}

SUPPORTED_GATES = set(GATE_ARITY)

ALIASES = {
    "CX": "CNOT",
    "TOFFOLI": "CCNOT",
    "CCX": "CCNOT",
    "SDG": "SI",
    "TDG": "TI",
    "P": "PHASESHIFT",
    "PHASE": "PHASESHIFT",
    "CP": "CPHASESHIFT",
    "CPHASE": "CPHASESHIFT",
    "FREDKIN": "CSWAP",
}

QubitSpec = Union[int, List[int]]


def _as_list(v: Optional[QubitSpec]) -> List[int]:
    if v is None:
        return []
    return [v] if isinstance(v, int) else list(v)


class Gate(BaseModel):
    """
    Pydantic model for a single quantum gate from the input JSON.

    ``target`` and ``control`` take an int or a list of ints. Two-qubit
    gates without a control (SWAP, XX, ...) list both qubits in ``target``.
    An angle is ``params.theta``: a number, or a string naming a free
    parameter to bind at submission time.
    """
    op: str
    target: QubitSpec
    control: Optional[QubitSpec] = None
    params: Optional[Dict[str, Union[float, str]]] = None

    model_config = {"extra": "forbid"}

    @field_validator("op", mode='before')
    @classmethod
    def validate_op_name_and_uppercase(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("Gate operation 'op' must be a string.")
        v_upper = v.upper()
        v_upper = ALIASES.get(v_upper, v_upper)

        if v_upper not in SUPPORTED_GATES:
            raise ValueError(
                f"Unsupported gate operation: '{v}'. Supported gates: "
                f"{', '.join(sorted(SUPPORTED_GATES))}"
            )
        return v_upper

    @field_validator('target', 'control')
    @classmethod
    def check_qubit_non_negative(cls, v: Optional[QubitSpec]) -> Optional[QubitSpec]:
        if any(q < 0 for q in _as_list(v)):
            raise ValueError("Qubit indices (target, control) must be non-negative.")
        return v

    @property
    def targets(self) -> List[int]:
        return _as_list(self.target)

    @property
    def controls(self) -> List[int]:
        return _as_list(self.control)

    @property
    def angle(self) -> Optional[Union[float, str]]:
        return (self.params or {}).get("theta")

    @model_validator(mode='after')
    def check_gate_specific_requirements(self) -> 'Gate':
        n_controls, n_targets, takes_angle = GATE_ARITY[self.op]

        if len(self.controls) != n_controls:
            raise ValueError(
                f"Gate '{self.op}' requires {n_controls} control qubit(s), got {len(self.controls)}."
            )
        if n_targets is None:
            if not self.targets:
                raise ValueError(f"Gate '{self.op}' requires at least one target qubit.")
        elif len(self.targets) != n_targets:
            raise ValueError(
                f"Gate '{self.op}' requires {n_targets} target qubit(s), got {len(self.targets)}."
            )

        qubits = self.controls + self.targets
        if len(set(qubits)) != len(qubits):
            raise ValueError(f"Gate '{self.op}' acts on repeated qubits {qubits}.")

        if takes_angle:
            theta = self.angle
            if theta is None:
                raise ValueError(f"Gate '{self.op}' requires parameter 'theta'.")
            if isinstance(theta, str) and not theta.isidentifier():
                raise ValueError(f"Free parameter name '{theta}' is not a valid identifier.")
        elif self.params:
            raise ValueError(f"Gate '{self.op}' takes no parameters, got {sorted(self.params)}.")

        return self


class CircuitIR(BaseModel):
    """
    Pydantic model for the overall circuit intermediate representation, parsed from JSON.
    """
    name: str
    qubits: int = Field(..., gt=0, description="Number of qubits in the circuit, must be positive.")
    shots: Optional[int] = Field(None, ge=1, description="Number of measurement shots, must be at least 1 if specified.")
    gates: List[Gate]

    model_config = {"extra": "forbid"}

    @model_validator(mode='after')
    def check_qubit_indices_in_range(self) -> 'CircuitIR':
        num_qubits = self.qubits
        for i, gate in enumerate(self.gates):
            for q in gate.controls + gate.targets:
                if not (0 <= q < num_qubits):
                    raise ValueError(
                        f"Gate {i} ('{gate.op}') qubit index {q} "
                        f"is out of range for {num_qubits} qubits (0 to {num_qubits-1})."
                    )
        return self


def _validation_message(source: str, e: ValidationError) -> str:
    error_messages = []
    for error in e.errors():
        loc_str = " -> ".join(map(str, error.get("loc", ())))
        msg = error.get("msg", "Unknown error")
        error_messages.append(f"Field '{loc_str}': {msg}. Input: {error.get('input')}")
    detailed_errors = "\n".join(error_messages)
    return f"Failed to validate circuit data from {source} against CircuitIR model.\nDetails:\n{detailed_errors}"


def parse_dict(data: Any, source: str = "<payload>") -> CircuitIR:
    if not isinstance(data, dict):
        raise ModelError(f"Circuit model from {source} must be a JSON object.")
    try:
        return CircuitIR(**data)
    except ValidationError as e:
        raise ModelError(_validation_message(source, e)) from e


def parse(path: Union[str, Path]) -> CircuitIR:
    resolved_path = Path(path)
    if not resolved_path.is_file():
        raise FileNotFoundError(f"Circuit JSON file not found at: {resolved_path}")

    with resolved_path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ModelError(f"Invalid JSON format in file {resolved_path}: {e}") from e

    return parse_dict(data, source=str(resolved_path))
