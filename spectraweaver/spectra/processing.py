"""
Per-example spectrum transforms shared by every dataset kind.

All functions take and return ``(impedance, omega)`` numpy arrays so they can
be applied before a Spectrum is packaged.
"""

import logging
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Relative change between neighbouring points below which a region counts as flat
REGION_THRESHOLD = 0.01

Points = Tuple[np.ndarray, np.ndarray]


def _empty() -> Points:
    return np.zeros(0, dtype=np.complex128), np.zeros(0, dtype=np.float64)


def reduce_region(impedance: np.ndarray, omega: np.ndarray,
                  threshold: float = REGION_THRESHOLD) -> Points:
    """
    Drop the flat, uninteresting regions at both ends of a spectrum.

    A step between neighbouring points is considered flat when its distance
    in the complex plane is below ``threshold`` times the largest magnitude.
    """
    if impedance.size < 2:
        return _empty()

    scale = np.max(np.abs(impedance))
    if not np.isfinite(scale) or scale == 0:
        return _empty()

    steps = np.abs(np.diff(impedance)) / scale
    active = np.nonzero(steps > threshold)[0]
    if active.size == 0:
        return _empty()

    start = active[0]
    end = active[-1] + 2
    return impedance[start:end].copy(), omega[start:end].copy()


def rescale(impedance: np.ndarray, omega: np.ndarray, length: int) -> Points:
    """Resample to ``length`` points log-spaced over the covered frequency span."""
    if impedance.size == 0 or length <= 0:
        return _empty()
    if impedance.size == 1:
        return np.full(length, impedance[0]), np.full(length, omega[0])

    order = np.argsort(omega)
    log_omega = np.log10(omega[order])
    target = np.linspace(log_omega[0], log_omega[-1], length)
    real = np.interp(target, log_omega, impedance.real[order])
    imag = np.interp(target, log_omega, impedance.imag[order])
    new_omega = np.power(10.0, target)

    if order[0] != 0:
        # input ran from high to low frequency, keep that orientation
        real, imag, new_omega = real[::-1], imag[::-1], new_omega[::-1]

    return real + 1j * imag, new_omega


def filter_data(impedance: np.ndarray, omega: np.ndarray, output_size: int) -> Points:
    """
    Region-reduce then rescale to ``output_size // 2`` points.

    Returns empty arrays when the reduced series is shorter than
    ``output_size / 8``: such a sample is degenerate and carries no signal.
    """
    impedance, omega = reduce_region(impedance, omega)
    if impedance.size < output_size / 8:
        return _empty()
    return rescale(impedance, omega, output_size // 2)


def normalize(impedance: np.ndarray) -> np.ndarray:
    """Scale so the largest magnitude is 1."""
    scale = np.max(np.abs(impedance)) if impedance.size else 0.0
    if scale == 0:
        return impedance.copy()
    return impedance / scale


def add_noise(impedance: np.ndarray, amplitude: float,
              rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Gaussian noise on both components, relative to the largest magnitude."""
    if amplitude <= 0 or impedance.size == 0:
        return impedance
    rng = rng if rng is not None else np.random.default_rng()
    scale = amplitude * np.max(np.abs(impedance))
    noise = rng.normal(0.0, scale, impedance.size) + 1j * rng.normal(0.0, scale, impedance.size)
    return impedance + noise
