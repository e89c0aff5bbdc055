"""
Measurement-like noise for synthetic spectra.

Synthetic sweeps are unrealistically clean. ``RealisticNoise`` perturbs a
normalized spectrum with the artefacts commonly seen on real potentiostats:
frequency dependent white noise, a slow drift across the sweep, a stray
inductive tail at high frequency and occasional outlier points.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class RealisticNoise:
    """
    Attributes:
        white: Std-dev of white noise relative to the spectrum magnitude
        low_frequency_gain: Extra white noise factor at the low-frequency end
        drift: Max relative drift applied linearly across the sweep
        inductive_tail: Max relative stray inductance contribution at the high end
        outlier_probability: Per-point probability of an outlier
        outlier_scale: Relative magnitude of outliers
    """
    white: float = 0.005
    low_frequency_gain: float = 3.0
    drift: float = 0.02
    inductive_tail: float = 0.05
    outlier_probability: float = 0.01
    outlier_scale: float = 0.05

    def add(self, impedance: np.ndarray, omega: np.ndarray,
            rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Return a noisy copy of ``impedance``."""
        if impedance.size == 0:
            return impedance.copy()
        rng = rng if rng is not None else np.random.default_rng()
        n = impedance.size
        magnitude = float(np.max(np.abs(impedance))) or 1.0

        # position in the sweep, 0 at the lowest frequency
        order = np.argsort(np.argsort(omega))
        position = order / max(1, n - 1)

        sigma = self.white * magnitude * (1.0 + (self.low_frequency_gain - 1.0) * (1.0 - position))
        out = impedance + rng.normal(0.0, 1.0, n) * sigma + 1j * rng.normal(0.0, 1.0, n) * sigma

        out = out * (1.0 + rng.uniform(-self.drift, self.drift) * position)

        tail = rng.uniform(0.0, self.inductive_tail) * magnitude
        out = out + 1j * tail * position ** 4

        outliers = rng.random(n) < self.outlier_probability
        if np.any(outliers):
            count = int(np.count_nonzero(outliers))
            out[outliers] += (rng.normal(0.0, self.outlier_scale, count)
                              + 1j * rng.normal(0.0, self.outlier_scale, count)) * magnitude

        return out
