# ~/braketctl_project/braketctl/compiler/circuit_gen.py
"""
braketctl.compiler.circuit_gen
------------------------------
CircuitIR -> ``braket.circuits.Circuit``.

Each IR gate maps onto the Circuit builder method of the same (lower-case)
name. The builders take their qubit arguments controls-first, then targets,
then the angle, so one call shape covers every supported gate.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Union

from braket.circuits import Circuit, FreeParameter
from braket.circuits.serialization import IRType

from ..errors import ModelError
from .parser import GATE_ARITY, CircuitIR, Gate


def _angle(value: Union[float, str], free: Dict[str, FreeParameter]) -> Union[float, FreeParameter]:
    if isinstance(value, str):
        if value not in free:
            free[value] = FreeParameter(value)
        return free[value]
    return float(value)


def _emit_gate(circuit: Circuit, gate: Gate, free: Dict[str, FreeParameter]) -> None:
    """Append a single IR gate to ``circuit``."""
    if gate.op == "MEASURE":
        circuit.measure(gate.targets)
        return

    builder = getattr(circuit, gate.op.lower(), None)
    if builder is None:
        raise NotImplementedError(f"Braket Circuit has no builder for gate operation '{gate.op}'.")

    args: List[Union[int, float, FreeParameter]] = [*gate.controls, *gate.targets]
    if GATE_ARITY[gate.op][2]:
        args.append(_angle(gate.angle, free))
    builder(*args)


def build(ir: CircuitIR) -> Circuit:
    """
    Translate ``ir`` into a Circuit spanning all ``ir.qubits`` qubits.

    Braket measures only the qubits an instruction touches, so declared
    qubits the model never uses get an identity gate up front; results then
    always carry one bit per declared qubit.
    """
    circuit = Circuit()
    used = {q for g in ir.gates for q in (*g.controls, *g.targets)}
    for q in range(ir.qubits):
        if q not in used:
            circuit.i(q)

    free: Dict[str, FreeParameter] = {}
    for gate_obj in ir.gates:
        try:
            _emit_gate(circuit, gate_obj, free)
        except (ValueError, TypeError) as e:
            raise ModelError(
                f"Error building gate op='{gate_obj.op}', "
                f"target={gate_obj.target}, control={gate_obj.control}, params={gate_obj.params}: {e}"
            ) from e
    return circuit


def free_parameters(ir: CircuitIR) -> List[str]:
    names = {g.angle for g in ir.gates if isinstance(g.angle, str)}
    return sorted(names)


def bind(circuit: Circuit, values: Optional[Mapping[str, float]]) -> Circuit:
    """Return ``circuit`` with every free parameter fixed to ``values``."""
    names = {p.name for p in circuit.parameters}
    values = dict(values or {})
    if not names:
        if values:
            raise ModelError(f"Circuit has no free parameters, got values for {sorted(values)}.")
        return circuit

    missing = names - set(values)
    if missing:
        raise ModelError(f"Missing values for free parameter(s): {', '.join(sorted(missing))}.")
    unknown = set(values) - names
    if unknown:
        raise ModelError(f"Unknown free parameter(s): {', '.join(sorted(unknown))}.")

    return circuit.make_bound_circuit({k: float(v) for k, v in values.items()})


def to_openqasm(circuit: Circuit) -> str:
    return circuit.to_ir(IRType.OPENQASM).source
