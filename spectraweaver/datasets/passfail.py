"""
Pass/fail wrapper: turns any dataset into a binary good/bad measurement set.

The first half of the index space yields corrupted copies of the inner
examples (class Fail), the second half the untouched examples (class Pass).
"""

import logging
from typing import List

import numpy as np

from spectraweaver.spectra.processing import normalize
from spectraweaver.spectra.spectrum import Spectrum

from .base import SpectraDataset, sample_rng

logger = logging.getLogger(__name__)

FAIL = 0
PASS = 1
CLASS_NAMES = ("Fail", "Pass")


class PassFailDataset(SpectraDataset):
    """
    Example:
        inner = GeneratorDataset(["r-rc", "r-rp"], desired_size=500)
        dataset = PassFailDataset(inner)
        dataset.size() == 2 * inner.size()
    """

    kind = "passfail"

    def __init__(self, dataset: SpectraDataset, garbage_probability: float = 0.01,
                 max_distortion: float = 0.02, seed: int = 0):
        super().__init__(seed=seed)
        self.dataset = dataset
        self.garbage_probability = garbage_probability
        self.max_distortion = max_distortion

    def _corrupt(self, impedance: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        if rng.random() < self.garbage_probability:
            # pure noise in place of a measurement
            garbage = rng.uniform(-1.0, 1.0, impedance.size) + 1j * rng.uniform(-1.0, 1.0, impedance.size)
            return normalize(garbage)

        magnitude = rng.uniform(0.0, self.max_distortion) + 0.01
        out = impedance.copy()
        inner = slice(1, max(1, impedance.size - 1))
        count = out[inner].size
        out[inner] += (rng.uniform(-1.0, 1.0, count) + 1j * rng.uniform(-1.0, 1.0, count)) * magnitude
        return normalize(out)

    def _get_impl(self, index: int) -> Spectrum:
        inner_size = self.dataset.size()
        spectrum = self.dataset.get(index % inner_size)
        if spectrum.is_empty:
            return spectrum

        impedance = normalize(spectrum.impedance)
        if index < inner_size:
            impedance = self._corrupt(impedance, sample_rng(self.seed, index))

        class_index = self.class_for_index(index)
        return Spectrum(
            impedance=impedance,
            omega=spectrum.omega,
            model=CLASS_NAMES[class_index],
            labels=dict(spectrum.labels),
            class_index=class_index,
            header=self.kind,
        )

    def size(self) -> int:
        return self.dataset.size() * 2

    def class_for_index(self, index: int) -> int:
        self._check_index(index)
        return PASS if index >= self.dataset.size() else FAIL

    def class_counts(self) -> List[int]:
        inner_size = self.dataset.size()
        return [inner_size, inner_size]

    def model_string_for_class(self, class_index: int) -> str:
        if class_index in (FAIL, PASS):
            return CLASS_NAMES[class_index]
        return "invalid"

    def description(self) -> str:
        return f"{self.kind}({self.dataset.description()})"

    def _after_clone(self):
        self.dataset = self.dataset.clone()

    def close(self):
        self.dataset.close()
