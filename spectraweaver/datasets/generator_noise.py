"""
Generator producing measurement-like spectra.

Instead of walking the whole parameter sweep, each model contributes only its
recommended steps (spectra that differ visibly from one another) and every
example is a fresh noisy realization of one of them.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from spectraweaver.circuit.model import CircuitModel, CircuitParseError, FrequencyRange
from spectraweaver.circuit.noise import RealisticNoise
from spectraweaver.spectra.processing import add_noise, filter_data, normalize
from spectraweaver.spectra.registry import ModelRegistry
from spectraweaver.spectra.spectrum import Spectrum

from .base import DatasetConstructionError, SampleRejected, SpectraDataset, sample_rng
from .generator import DEFAULT_EXAMPLE_COUNT, MIN_EXAMPLES_PER_MODEL, read_circuits
from .indexing import resolve_index

logger = logging.getLogger(__name__)

RECOMMENDATION_THRESHOLD = 0.01
FALLBACK_MAX_EXAMPLES = 1000
WHITE_NOISE = 0.001


@dataclass
class NoisySubModel:
    model: CircuitModel
    indices: List[int]
    total_count: int
    class_index: int


class NoiseGeneratorDataset(SpectraDataset):
    """Noisy realizations of a few distinct sweep steps per circuit model."""

    kind = "gennoise"

    def __init__(self,
                 circuits: Iterable[str] = (),
                 desired_size: int = DEFAULT_EXAMPLE_COUNT,
                 frequency_count: int = 50,
                 noise_model: Optional[RealisticNoise] = None,
                 omega: Optional[FrequencyRange] = None,
                 registry: Optional[ModelRegistry] = None,
                 seed: int = 0):
        super().__init__(seed=seed)
        self.omega = omega or FrequencyRange(10.0, 1e6, frequency_count)
        self.noise_model = noise_model or RealisticNoise()
        self.registry = registry if registry is not None else ModelRegistry()
        self._models: List[NoisySubModel] = []
        self._counts: List[int] = []

        circuits = list(circuits)
        if circuits:
            self.add_models(circuits, desired_size)

    @classmethod
    def from_file(cls, path: Path, **kwargs) -> "NoiseGeneratorDataset":
        circuits = read_circuits(Path(path))
        if not circuits:
            raise DatasetConstructionError(f"File doesn't contain any circuits: {path}")
        return cls(circuits, **kwargs)

    @classmethod
    def from_string(cls, text: str, **kwargs) -> "NoiseGeneratorDataset":
        circuits = read_circuits(text)
        if not circuits:
            raise DatasetConstructionError("String contains no circuits")
        return cls(circuits, **kwargs)

    def add_models(self, circuits: List[str], desired_size: int):
        size_per_model = (desired_size // max(1, len(circuits))) * 3
        if size_per_model < MIN_EXAMPLES_PER_MODEL:
            size_per_model = MIN_EXAMPLES_PER_MODEL
            logger.warning(
                f"Desired size too small for dataset, adjusting to {size_per_model * len(circuits)}"
            )

        for circuit in circuits:
            circuit = "".join(circuit.split())
            try:
                model = CircuitModel(circuit)
            except CircuitParseError as e:
                logger.warning(f"Invalid model string {circuit}: {e}")
                continue
            model.compile()
            if model.swept_parameters:
                model.set_sweep_count_closest_total(size_per_model)
            self.add_model(model, size_per_model)

        if not self._models:
            raise DatasetConstructionError("No valid circuit models were given")
        logger.info(f"Noise dataset has {self.size()} examples from {len(self._models)} models")

    def add_model(self, model: CircuitModel, target_size: int):
        if not model.compiled:
            model.compile()

        total = target_size
        indices = self._recommended_indices(model)
        if not indices:
            logger.warning(f"Model {model.model_str} has no recommended sweep steps, "
                           f"using step 0 only")
            indices = [0]
            total = min(FALLBACK_MAX_EXAMPLES, target_size)

        class_index = self.registry.intern(model.model_str)
        self._models.append(NoisySubModel(model, indices, total, class_index))
        self._counts.append(total)
        logger.debug(f"Added {model.model_str} with {len(indices)} recommended steps "
                     f"and {total} examples")

    def _recommended_indices(self, model: CircuitModel) -> List[int]:
        if model.required_steps == 1:
            return [0]
        return model.recommended_indices(self.omega.values(), RECOMMENDATION_THRESHOLD)

    def _get_impl(self, index: int) -> Spectrum:
        model_index, offset = resolve_index(self._counts, index)
        sub = self._models[model_index]
        step = sub.indices[offset % len(sub.indices)]
        rng = sample_rng(self.seed, index)
        omega = self.omega.values()

        impedance = normalize(sub.model.execute_sweep(omega, step))
        impedance = self.noise_model.add(impedance, omega, rng)
        impedance = add_noise(impedance, WHITE_NOISE, rng)
        impedance, omega = filter_data(impedance, omega, self.omega.count * 2)
        if impedance.size != self.omega.count:
            raise SampleRejected(f"{sub.model.model_str} step {step} is uninteresting")

        return Spectrum(
            impedance=impedance,
            omega=omega,
            model=self.registry.label_for_class(sub.class_index),
            class_index=sub.class_index,
            header=self.kind,
        )

    def size(self) -> int:
        return sum(self._counts)

    def class_for_index(self, index: int) -> int:
        model_index, _ = resolve_index(self._counts, index)
        return self._models[model_index].class_index

    def class_counts(self) -> List[int]:
        counts = [0] * len(self.registry)
        for sub in self._models:
            counts[sub.class_index] += sub.total_count
        return counts

    def model_string_for_class(self, class_index: int) -> str:
        return self.registry.label_for_class(class_index)

    def description(self) -> str:
        return (f"{self.kind}(models={len(self._models)}, classes={len(self.registry)}, "
                f"omega={self.omega.start:g}-{self.omega.end:g}x{self.omega.count})")

    def set_omega_range(self, omega: FrequencyRange):
        """Change the sweep frequencies; recommended steps follow, per-model counts do not."""
        self.omega = omega
        for sub in self._models:
            sub.indices = self._recommended_indices(sub.model) or [0]
