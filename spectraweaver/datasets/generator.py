#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Synthetic dataset driven by a list of equivalent-circuit model strings.

Every accepted model becomes a sub-model contributing its sweep steps to the
dataset. Models without a parameter range contribute a single spectrum that
is computed once and memoized.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

from __future__ import annotations

import dataclasses
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, TextIO, Union

import numpy as np

from spectraweaver.circuit.model import CircuitModel, CircuitParseError, FrequencyRange
from spectraweaver.spectra.processing import add_noise, filter_data
from spectraweaver.spectra.registry import ModelRegistry
from spectraweaver.spectra.spectrum import Spectrum

from .base import DatasetConstructionError, SampleRejected, SpectraDataset, sample_rng
from .indexing import resolve_index

logger = logging.getLogger(__name__)

DEFAULT_EXAMPLE_COUNT = 100_000
MIN_EXAMPLES_PER_MODEL = 3
INDUCTIVITY_PREFIX = "l{5e-6}-"


def read_circuits(source: Union[str, Path, TextIO]) -> List[str]:
    """
    Read model strings, one per line, skipping blank lines and ``#`` comments.

    ``source`` may be an open text stream, a path, or a string holding the
    circuits themselves.
    """
    if isinstance(source, Path):
        try:
            with open(source, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise DatasetConstructionError(f"Can not open {source}: {e}") from e
    elif isinstance(source, str):
        text = source
    else:
        text = source.read()

    circuits = []
    for line in io.StringIO(text):
        line = line.strip()
        if line and not line.startswith("#"):
            circuits.append(line)
    return circuits


@dataclass
class SubModel:
    """
    One circuit tracked by a generator dataset.

    ``cache`` holds the memoized result of a single-sweep model for the
    current frequency range.
    """
    model: CircuitModel
    sweep_size: int
    class_index: int
    single_sweep: bool
    cache: Optional[np.ndarray] = None


class GeneratorDataset(SpectraDataset):
    """
    Spectra simulated from circuit models.

    Example:
        dataset = GeneratorDataset.from_file(Path("circuits.txt"), desired_size=10_000)
        spectrum = dataset.get(0)
    """

    kind = "gen"

    def __init__(self,
                 circuits: Iterable[str] = (),
                 desired_size: int = DEFAULT_EXAMPLE_COUNT,
                 frequency_count: int = 50,
                 noise: float = 0.0,
                 inductivity: bool = False,
                 omega: Optional[FrequencyRange] = None,
                 registry: Optional[ModelRegistry] = None,
                 seed: int = 0):
        """
        Args:
            circuits: Model strings; when empty, models are added later via add_model()
            desired_size: Total number of examples to aim for
            frequency_count: Points per output spectrum
            noise: Relative amplitude of gaussian noise added to each sample
            inductivity: Prefix every circuit with a small series inductance
            omega: Frequency range, default 10 to 1e6 rad/s
            registry: Shared model registry
            seed: Base seed for per-sample noise
        """
        super().__init__(seed=seed)
        self.omega = omega or FrequencyRange(10.0, 1e6, frequency_count)
        self.noise = noise
        self.inductivity = inductivity
        self.registry = registry if registry is not None else ModelRegistry()
        self._models: List[SubModel] = []
        self._counts: List[int] = []

        circuits = list(circuits)
        if circuits:
            self.add_models(circuits, desired_size)

    @classmethod
    def from_file(cls, path: Path, **kwargs) -> "GeneratorDataset":
        circuits = read_circuits(Path(path))
        if not circuits:
            raise DatasetConstructionError(f"File doesn't contain any circuits: {path}")
        return cls(circuits, **kwargs)

    @classmethod
    def from_string(cls, text: str, **kwargs) -> "GeneratorDataset":
        circuits = read_circuits(text)
        if not circuits:
            raise DatasetConstructionError("String contains no circuits")
        return cls(circuits, **kwargs)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_models(self, circuits: List[str], desired_size: int):
        size_per_model = desired_size // max(1, len(circuits))
        if size_per_model < MIN_EXAMPLES_PER_MODEL:
            size_per_model = MIN_EXAMPLES_PER_MODEL
            logger.warning(
                f"Desired size too small for dataset, adjusting to {size_per_model * len(circuits)}"
            )

        for circuit in circuits:
            circuit = "".join(circuit.split())
            if not circuit:
                continue
            if self.inductivity:
                circuit = INDUCTIVITY_PREFIX + circuit

            try:
                model = CircuitModel(circuit)
            except CircuitParseError as e:
                logger.warning(f"Invalid model string {circuit}: {e}")
                continue

            model.compile()
            if model.swept_parameters:
                model.set_sweep_count_closest_total(size_per_model)
            logger.debug(f"Adding model {circuit} with {model.required_steps} examples "
                         f"(asked for {size_per_model})")
            self.add_model(model)

        if not self._models:
            raise DatasetConstructionError("No valid circuit models were given")

        single = self.single_sweep_count()
        logger.info(f"Dataset now has {self.size()} examples from {single} single sweep models "
                    f"and {len(self._models) - single} regular models")

    def add_model(self, model: CircuitModel):
        if not model.compiled:
            model.compile()
        steps = model.required_steps
        class_index = self.registry.intern(model.model_str)
        self._models.append(SubModel(
            model=model,
            sweep_size=steps,
            class_index=class_index,
            single_sweep=steps == 1,
        ))
        self._counts.append(steps)

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def _impedance_for(self, sub: SubModel, offset: int, omega: np.ndarray) -> np.ndarray:
        if not sub.single_sweep:
            return sub.model.execute_sweep(omega, offset)
        if sub.cache is None:
            sub.cache = sub.model.execute_sweep(omega)
        return sub.cache

    def _get_impl(self, index: int) -> Spectrum:
        model_index, offset = resolve_index(self._counts, index)
        sub = self._models[model_index]
        omega = self.omega.values()

        impedance = self._impedance_for(sub, offset, omega)
        impedance, omega = filter_data(impedance, omega, self.omega.count * 2)
        if impedance.size != self.omega.count:
            raise SampleRejected(f"{sub.model.model_str} step {offset} is uninteresting")

        if self.noise > 0:
            impedance = add_noise(impedance, self.noise, sample_rng(self.seed, index))

        return Spectrum(
            impedance=impedance,
            omega=omega,
            model=self.registry.label_for_class(sub.class_index),
            class_index=sub.class_index,
            header=self.kind,
        )

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def size(self) -> int:
        return sum(self._counts)

    def class_for_index(self, index: int) -> int:
        model_index, _ = resolve_index(self._counts, index)
        return self._models[model_index].class_index

    def class_counts(self) -> List[int]:
        counts = [0] * len(self.registry)
        for sub in self._models:
            counts[sub.class_index] += sub.sweep_size
        return counts

    def model_string_for_class(self, class_index: int) -> str:
        return self.registry.label_for_class(class_index)

    def description(self) -> str:
        return (f"{self.kind}(models={len(self._models)}, classes={len(self.registry)}, "
                f"noise={self.noise}, inductivity={self.inductivity}, "
                f"omega={self.omega.start:g}-{self.omega.end:g}x{self.omega.count})")

    def set_omega_range(self, omega: FrequencyRange):
        self.omega = omega
        for sub in self._models:
            sub.cache = None

    def single_sweep_count(self) -> int:
        return sum(1 for sub in self._models if sub.single_sweep)

    @property
    def sub_models(self) -> List[SubModel]:
        return list(self._models)

    def _after_clone(self):
        self._models = [dataclasses.replace(sub) for sub in self._models]

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
