"""
Reference circuit simulation, DRT inversion and noise models used by the
synthetic dataset kinds.
"""

from .model import CircuitError, CircuitModel, CircuitParseError, FrequencyRange
from .drt import DrtError, calc_drt, calc_impedance, nyquist_distance
from .noise import RealisticNoise

__all__ = [
    "CircuitError",
    "CircuitModel",
    "CircuitParseError",
    "FrequencyRange",
    "DrtError",
    "calc_drt",
    "calc_impedance",
    "nyquist_distance",
    "RealisticNoise",
]
