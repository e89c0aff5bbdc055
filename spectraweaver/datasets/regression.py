"""
Parameter regression dataset.

A single circuit model is swept; each example is labeled with the circuit
parameter values that produced it. In DRT mode the example carries the
distribution of relaxation times instead of the raw impedance, and examples
whose DRT does not describe the spectrum well are discarded.
"""

import logging
from typing import List, Optional

import numpy as np

from spectraweaver.circuit.drt import DrtError, calc_drt, calc_impedance, nyquist_distance
from spectraweaver.circuit.model import CircuitModel, CircuitParseError, FrequencyRange
from spectraweaver.spectra.processing import add_noise
from spectraweaver.spectra.spectrum import Spectrum

from .base import DatasetConstructionError, SpectraDataset, sample_rng
from .generator import DEFAULT_EXAMPLE_COUNT

logger = logging.getLogger(__name__)

DRT_EDGE_LIMIT = 0.001
DRT_MIN_PEAK = 0.001
DRT_MAX_DISTANCE = 2.0


class ParameterRegressionDataset(SpectraDataset):
    """
    Sweep of one circuit model labeled with its parameters.

    Example:
        dataset = ParameterRegressionDataset("r-rc", desired_size=1000, drt=True)
        spectrum = dataset.get(10)
        spectrum.labels  # {'r0p0': ..., 'r1p0': ..., 'c2p0': ...}
    """

    kind = "regression"

    def __init__(self,
                 model_str: str,
                 desired_size: int = DEFAULT_EXAMPLE_COUNT,
                 frequency_count: int = 50,
                 noise: float = 0.0,
                 drt: bool = False,
                 max_iterations: int = 1000,
                 omega: Optional[FrequencyRange] = None,
                 seed: int = 0):
        super().__init__(seed=seed)
        self.drt = drt
        self.noise = noise
        self.max_iterations = max_iterations

        # DRT examples carry one value per point instead of two
        output_size = frequency_count * 2
        self.omega = omega or FrequencyRange(1.0, 1e7, output_size if drt else output_size // 2)

        try:
            self.model = CircuitModel("".join(model_str.split()))
        except CircuitParseError as e:
            raise DatasetConstructionError(f"Invalid model string {model_str}: {e}") from e

        self.model.set_sweep_count_closest_total(desired_size)
        self.model.compile()
        logger.info(f"Regression dataset for {self.model.model_str} with "
                    f"{self.model.required_steps} examples, drt={drt}")

    def _drt_spectrum(self, impedance: np.ndarray, omega: np.ndarray, index: int) -> Spectrum:
        try:
            drt, r_series = calc_drt(impedance, omega, self.max_iterations)
        except DrtError as e:
            logger.debug(f"Could not calculate DRT for step {index}: {e}")
            return Spectrum.empty()

        if drt[0] > DRT_EDGE_LIMIT or drt[-1] > DRT_EDGE_LIMIT:
            logger.debug(f"Step {index} has a DRT that runs off the frequency range")
            return Spectrum.empty()
        if np.max(drt) < DRT_MIN_PEAK:
            logger.debug(f"Step {index} has a flat DRT")
            return Spectrum.empty()

        recovered = calc_impedance(drt, r_series, omega)
        distance = nyquist_distance(impedance, recovered)
        if distance > DRT_MAX_DISTANCE:
            logger.debug(f"Step {index} DRT does not fit the spectrum (distance {distance:.3f})")
            return Spectrum.empty()

        return Spectrum(impedance=drt + 0j, omega=omega)

    def _get_impl(self, index: int) -> Spectrum:
        omega = self.omega.values()
        impedance = self.model.execute_sweep(omega, index)

        if self.drt:
            spectrum = self._drt_spectrum(impedance, omega, index)
            if spectrum.is_empty:
                return spectrum
        else:
            if self.noise > 0:
                impedance = add_noise(impedance, self.noise, sample_rng(self.seed, index))
            spectrum = Spectrum(impedance=impedance, omega=omega)

        spectrum.model = self.model.model_str_with_params(index)
        spectrum.labels = dict(zip(self.model.parameter_names,
                                   self.model.flat_parameters(index)))
        spectrum.header = self.kind
        return spectrum

    def size(self) -> int:
        return self.model.required_steps

    def class_for_index(self, index: int) -> int:
        self._check_index(index)
        return 0

    def class_counts(self) -> List[int]:
        return [self.size()]

    def model_string_for_class(self, class_index: int) -> str:
        return self.model.model_str if class_index == 0 else "invalid"

    @property
    def output_names(self) -> List[str]:
        return self.model.parameter_names

    def description(self) -> str:
        return (f"{self.kind}(model={self.model.model_str}, drt={self.drt}, noise={self.noise}, "
                f"omega={self.omega.start:g}-{self.omega.end:g}x{self.omega.count})")
