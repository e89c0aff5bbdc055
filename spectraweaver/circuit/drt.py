"""
Distribution of relaxation times (DRT) inversion.

The spectrum is modelled as a series resistance plus a sum of RC relaxations
with time constants tau_k = 1 / omega_k::

    Z(w) = R_inf + sum_k g_k / (1 + j w tau_k)

and g >= 0 is recovered by Tikhonov-regularized non-negative least squares.
"""

import logging
from typing import Tuple

import numpy as np
from scipy.optimize import nnls

logger = logging.getLogger(__name__)

DEFAULT_REGULARIZATION = 1e-3


class DrtError(RuntimeError):
    """Raised when a DRT cannot be computed for a spectrum."""
    pass


def _kernel(omega: np.ndarray, tau: np.ndarray) -> np.ndarray:
    wt = np.outer(omega, tau)
    return 1.0 / (1.0 + 1j * wt)


def calc_drt(impedance: np.ndarray, omega: np.ndarray, max_iter: int = 1000,
             regularization: float = DEFAULT_REGULARIZATION) -> Tuple[np.ndarray, float]:
    """
    Invert a spectrum into its DRT.

    Returns:
        (drt, r_series): one DRT value per input frequency (tau = 1 / omega)
        and the fitted series resistance.

    Raises:
        DrtError: for non-finite input or when the solver does not converge
    """
    impedance = np.asarray(impedance, dtype=np.complex128)
    omega = np.asarray(omega, dtype=np.float64)
    if impedance.size == 0 or impedance.size != omega.size:
        raise DrtError("Spectrum is empty or misshaped")
    if not np.all(np.isfinite(impedance)) or not np.all(np.isfinite(omega)):
        raise DrtError("Spectrum contains non-finite values")

    n = omega.size
    kernel = _kernel(omega, 1.0 / omega)
    scale = float(np.max(np.abs(impedance)))
    if scale == 0:
        raise DrtError("Spectrum is all zero")

    # unknowns: [R_inf, g_0 .. g_{n-1}]
    a_real = np.hstack([np.ones((n, 1)), kernel.real])
    a_imag = np.hstack([np.zeros((n, 1)), kernel.imag])
    penalty = np.hstack([np.zeros((n, 1)), np.sqrt(regularization) * np.eye(n)])
    a = np.vstack([a_real, a_imag, penalty])
    b = np.concatenate([impedance.real, impedance.imag, np.zeros(n)]) / scale

    try:
        solution, _ = nnls(a, b, maxiter=max_iter)
    except RuntimeError as e:
        raise DrtError(f"DRT solver did not converge: {e}") from e

    solution = solution * scale
    return solution[1:], float(solution[0])


def calc_impedance(drt: np.ndarray, r_series: float, omega: np.ndarray) -> np.ndarray:
    """Re-synthesize impedance from a DRT computed on the same frequencies."""
    omega = np.asarray(omega, dtype=np.float64)
    kernel = _kernel(omega, 1.0 / omega)
    return r_series + kernel @ np.asarray(drt, dtype=np.float64)


def nyquist_distance(a: np.ndarray, b: np.ndarray) -> float:
    """
    Distance between two curves in the Nyquist plane, in percent.

    For every point of ``a`` the closest point of ``b`` is taken; the mean of
    those distances is expressed relative to the largest magnitude of ``a``.
    """
    a = np.asarray(a, dtype=np.complex128)
    b = np.asarray(b, dtype=np.complex128)
    if a.size == 0 or b.size == 0:
        return float("inf")
    scale = np.max(np.abs(a))
    if scale == 0:
        return float("inf")
    distances = np.min(np.abs(a[:, None] - b[None, :]), axis=1)
    return float(100.0 * np.mean(distances) / scale)
