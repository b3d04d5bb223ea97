# ~/braketctl_project/braketctl/noise.py
"""
braketctl.noise
---------------
Noise channels for density-matrix simulation and error-mitigation flags
for managed QPUs.

Reads the ``noise`` section of the config: ``noise.<device>`` is one spec
or a list of specs, each ``{model, params}``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from braket.circuits import Circuit, Noise
from braket.error_mitigation import Debias

from .config import NoiseSpec, get_config
from .errors import ConfigError

logger = logging.getLogger(__name__)

# model -> (noise factory, parameter name, applied as readout noise)
_CHANNELS: Dict[str, tuple[Callable[[float], Noise], str, bool]] = {
    "depolarizing": (lambda p: Noise.Depolarizing(probability=p), "p", False),
    "bit_flip": (lambda p: Noise.BitFlip(probability=p), "p", False),
    "phase_flip": (lambda p: Noise.PhaseFlip(probability=p), "p", False),
    "amplitude_damping": (lambda g: Noise.AmplitudeDamping(gamma=g), "gamma", False),
    "phase_damping": (lambda g: Noise.PhaseDamping(gamma=g), "gamma", False),
    "readout": (lambda p: Noise.BitFlip(probability=p), "p", True),
}


class NoiseModel:
    """
    Ordered list of noise channels applied to a circuit.
    """
    def __init__(self, specs: List[NoiseSpec]):
        for spec in specs:
            if spec.model not in _CHANNELS:
                raise ConfigError(
                    f"Unknown noise model '{spec.model}'. Supported: {', '.join(sorted(_CHANNELS))}"
                )
            param = _CHANNELS[spec.model][1]
            if param not in spec.params:
                raise ConfigError(f"Noise model '{spec.model}' requires parameter '{param}'.")
        self.specs = specs

    @staticmethod
    def for_device(device: str) -> Optional[NoiseModel]:
        specs = get_config().noise.get(device.lower())
        if specs:
            return NoiseModel(specs)
        return None

    def apply(self, circuit: Circuit) -> Circuit:
        """Return a copy of ``circuit`` with every configured channel applied."""
        noisy = circuit.copy()
        for spec in self.specs:
            factory, param, readout = _CHANNELS[spec.model]
            value = float(spec.params[param])
            if value <= 0:
                continue
            channel = factory(value)
            if readout:
                noisy.apply_readout_noise(channel)
            else:
                noisy.apply_gate_noise(channel)
            logger.debug("Applied %s noise (%s=%s)", spec.model, param, value)
        return noisy

    def describe(self) -> List[Dict[str, Any]]:
        return [spec.model_dump() for spec in self.specs]


def error_mitigation_parameters(enabled: bool, device_arn: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    ``device_parameters`` for ``AwsDevice.run`` turning on debiasing.

    Debias is an IonQ feature; for other providers the flag is dropped.
    """
    if not enabled:
        return None
    if device_arn is not None and "ionq" not in device_arn.lower():
        logger.warning("Error mitigation (debias) is only supported on IonQ devices; ignoring for %s", device_arn)
        return None
    return {"errorMitigation": Debias()}
