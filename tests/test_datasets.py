#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Tests for the dataset abstraction and the synthetic dataset kinds.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

import numpy as np
import pytest

from spectraweaver.circuit.model import FrequencyRange
from spectraweaver.datasets.base import (
    DatasetConstructionError,
    NoValidSampleError,
    SampleLoadError,
    SampleRejected,
    SpectraDataset,
)
from spectraweaver.datasets.generator import GeneratorDataset, read_circuits
from spectraweaver.datasets.generator_noise import RECOMMENDATION_THRESHOLD, NoiseGeneratorDataset
from spectraweaver.datasets.regression import ParameterRegressionDataset
from spectraweaver.spectra.spectrum import Spectrum

from conftest import make_spectrum

SWEPT_RC = "r{100}-r{100~1e4}c{1e-6}"
SWEPT_RP = "r{100}-r{100~1e4}p{1e-6,0.8}"


class ScriptedDataset(SpectraDataset):
    """Dataset with fixed classes that rejects a chosen set of indices."""

    kind = "scripted"

    def __init__(self, classes, reject=(), load_errors=(), empty=()):
        super().__init__()
        self.classes = list(classes)
        self.reject = set(reject)
        self.load_errors = set(load_errors)
        self.empty = set(empty)
        self.calls = []

    def _get_impl(self, index):
        self.calls.append(index)
        if index in self.load_errors:
            raise SampleLoadError(f"unreadable {index}")
        if index in self.reject:
            raise SampleRejected(f"rejected {index}")
        if index in self.empty:
            return Spectrum.empty()
        spectrum = make_spectrum("rc")
        spectrum.labels = {"index": float(index)}
        return spectrum

    def size(self):
        return len(self.classes)

    def class_for_index(self, index):
        self._check_index(index)
        return self.classes[index]


# ═══════════════════════════════════════════════════════════════════════
#  Central get() policy
# ═══════════════════════════════════════════════════════════════════════

class TestRetryPolicy:
    """Bounded same-class retry in SpectraDataset.get."""

    def test_plain_get(self):
        dataset = ScriptedDataset([0, 1, 0])
        spectrum = dataset.get(1)
        assert spectrum.class_index == 1
        assert dataset.calls == [1]

    def test_retry_skips_other_classes(self):
        dataset = ScriptedDataset([0, 0, 1, 0], reject={1})
        spectrum = dataset.get(1)
        assert dataset.calls == [1, 3]
        assert spectrum.labels["index"] == 3.0
        assert spectrum.class_index == 0

    def test_retry_wraps_around(self):
        dataset = ScriptedDataset([0, 1, 0], reject={2})
        spectrum = dataset.get(2)
        assert dataset.calls == [2, 0]
        assert spectrum.class_index == 0

    def test_load_errors_are_retried(self):
        dataset = ScriptedDataset([0, 0], load_errors={0})
        assert dataset.get(0).labels["index"] == 1.0

    def test_exhausted_class_raises_and_is_memoized(self):
        dataset = ScriptedDataset([0, 0, 1, 0], reject={0, 1, 3})
        with pytest.raises(NoValidSampleError):
            dataset.get(0)
        assert len(dataset.calls) <= dataset.size()

        dataset.calls.clear()
        with pytest.raises(NoValidSampleError):
            dataset.get(3)
        assert dataset.calls == []

        # other classes are unaffected
        assert dataset.get(2).class_index == 1

    def test_all_rejected_terminates(self):
        dataset = ScriptedDataset([0] * 50, reject=set(range(50)))
        with pytest.raises(NoValidSampleError):
            dataset.get(17)
        assert len(dataset.calls) == 50

    def test_empty_result_is_returned(self):
        dataset = ScriptedDataset([0, 0], empty={0})
        assert dataset.get(0).is_empty
        assert dataset.calls == [0]

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_out_of_range(self, index):
        dataset = ScriptedDataset([0, 1, 0])
        with pytest.raises(IndexError):
            dataset.get(index)

    def test_clone_resets_exhausted_classes(self):
        dataset = ScriptedDataset([0, 0], reject={0, 1})
        with pytest.raises(NoValidSampleError):
            dataset.get(0)
        twin = dataset.clone()
        twin.reject = set()
        assert not twin.get(0).is_empty

    def test_default_class_counts(self):
        dataset = ScriptedDataset([0, 2, 2, 0, 0])
        assert dataset.class_counts() == [3, 0, 2]
        assert sum(dataset.class_counts()) == dataset.size()
        assert len(dataset) == 5


# ═══════════════════════════════════════════════════════════════════════
#  Generator
# ═══════════════════════════════════════════════════════════════════════

class TestReadCircuits:
    """Circuit list parsing."""

    def test_comments_and_blank_lines(self):
        assert read_circuits("# a\n\nr-rc\n  r-rp  \n") == ["r-rc", "r-rp"]

    def test_from_path(self, circuit_file):
        assert len(read_circuits(circuit_file)) == 3

    def test_missing_path(self, temp_output_dir):
        with pytest.raises(DatasetConstructionError):
            read_circuits(temp_output_dir / "missing.txt")


class TestGeneratorDataset:
    """Synthetic sweeps over circuit models."""

    def test_from_file(self, circuit_file):
        dataset = GeneratorDataset.from_file(circuit_file, desired_size=40, frequency_count=20)
        assert len(dataset.sub_models) == 2
        # three lines count towards the split, one of them is invalid
        assert dataset.size() == 26
        assert dataset.class_counts() == [13, 13]
        assert [dataset.model_string_for_class(c) for c in range(2)] == ["rc", "rp"]

    def test_class_counts_sum_to_size(self, circuit_file):
        dataset = GeneratorDataset.from_file(circuit_file, desired_size=40, frequency_count=20)
        assert sum(dataset.class_counts()) == dataset.size()

    def test_class_is_consistent_with_get(self, circuit_file):
        dataset = GeneratorDataset.from_file(circuit_file, desired_size=30, frequency_count=20)
        for index in range(dataset.size()):
            before = dataset.class_for_index(index)
            spectrum = dataset.get(index)
            assert spectrum.class_index == before == dataset.class_for_index(index)
            assert len(spectrum) == 20
            assert spectrum.model == dataset.model_string_for_class(before)

    def test_single_sweep_is_memoized(self):
        dataset = GeneratorDataset.from_string("r{100}-r{1000}c{1e-6}", frequency_count=20)
        assert dataset.size() == 1
        assert dataset.single_sweep_count() == 1
        first = dataset.get(0)
        assert dataset.sub_models[0].cache is not None
        np.testing.assert_array_equal(dataset.get(0).impedance, first.impedance)

    def test_set_omega_range_clears_memo(self):
        dataset = GeneratorDataset.from_string("r{100}-r{1000}c{1e-6}", frequency_count=20)
        dataset.get(0)
        dataset.set_omega_range(FrequencyRange(1.0, 1e5, 20))
        assert dataset.sub_models[0].cache is None

    def test_clone_has_its_own_memo(self):
        dataset = GeneratorDataset.from_string("r{100}-r{1000}c{1e-6}", frequency_count=20)
        twin = dataset.clone()
        twin.get(0)
        assert twin.sub_models[0].cache is not None
        assert dataset.sub_models[0].cache is None
        assert twin.registry is dataset.registry

    def test_inductivity_prefix(self):
        dataset = GeneratorDataset.from_string("r-rc", inductivity=True)
        assert dataset.sub_models[0].model.model_str == "l-r-rc"
        assert dataset.model_string_for_class(0) == "l-rc"

    def test_small_desired_size_is_raised(self):
        dataset = GeneratorDataset([SWEPT_RC], desired_size=1)
        assert dataset.size() == 3

    def test_no_valid_models(self):
        with pytest.raises(DatasetConstructionError):
            GeneratorDataset(["x", "r-"])

    def test_empty_circuit_file(self, temp_output_dir):
        path = temp_output_dir / "empty.txt"
        path.write_text("# nothing\n")
        with pytest.raises(DatasetConstructionError):
            GeneratorDataset.from_file(path)

    def test_same_class_for_equivalent_models(self):
        dataset = GeneratorDataset(["r{10}-r{1000}c{1e-6}", "r{50}-r{2000}c{1e-6}"], desired_size=10)
        assert dataset.classes_count() == 1
        assert dataset.class_counts() == [2]

    def test_noise_depends_on_seed_and_index(self):
        a = GeneratorDataset([SWEPT_RC], desired_size=10, frequency_count=20, noise=0.01, seed=3)
        b = GeneratorDataset([SWEPT_RC], desired_size=10, frequency_count=20, noise=0.01, seed=3)
        c = GeneratorDataset([SWEPT_RC], desired_size=10, frequency_count=20, noise=0.01, seed=4)
        np.testing.assert_array_equal(a.get(5).impedance, b.get(5).impedance)
        assert not np.array_equal(a.get(5).impedance, c.get(5).impedance)


class TestNoiseGeneratorDataset:
    """Realistic noise generator."""

    def test_size_and_classes(self):
        dataset = NoiseGeneratorDataset([SWEPT_RC, SWEPT_RP], desired_size=10, frequency_count=20)
        assert dataset.size() == 30
        assert dataset.class_counts() == [15, 15]

    def test_examples(self):
        dataset = NoiseGeneratorDataset([SWEPT_RC], desired_size=4, frequency_count=20, seed=1)
        for index in range(dataset.size()):
            spectrum = dataset.get(index)
            assert len(spectrum) == 20
            assert spectrum.class_index == 0

    def test_reproducible(self):
        a = NoiseGeneratorDataset([SWEPT_RC], desired_size=4, frequency_count=20, seed=9)
        b = NoiseGeneratorDataset([SWEPT_RC], desired_size=4, frequency_count=20, seed=9)
        np.testing.assert_array_equal(a.get(2).impedance, b.get(2).impedance)

    def test_single_step_model_is_repeated(self):
        dataset = NoiseGeneratorDataset(["r{100}-r{1000}c{1e-6}"], desired_size=5, frequency_count=20)
        assert dataset.size() == 15
        assert not np.array_equal(dataset.get(0).impedance, dataset.get(1).impedance)

    def test_omega_change_recomputes_recommended_steps(self):
        dataset = NoiseGeneratorDataset([SWEPT_RC], desired_size=4, frequency_count=20)
        sub = dataset._models[0]
        omega = FrequencyRange(1.0, 1e4, 20)

        dataset.set_omega_range(omega)

        expected = sub.model.recommended_indices(omega.values(), RECOMMENDATION_THRESHOLD) or [0]
        assert sub.indices == expected
        assert dataset.size() == 12


class TestParameterRegressionDataset:
    """Parameter regression, with and without DRT."""

    def test_labels_are_parameters(self):
        dataset = ParameterRegressionDataset(SWEPT_RC, desired_size=50)
        assert dataset.size() == 50
        assert dataset.class_counts() == [50]
        assert dataset.output_names == ["r0p0", "r1p0", "c2p0"]

        spectrum = dataset.get(0)
        assert len(spectrum) == 50
        assert spectrum.labels == pytest.approx({"r0p0": 100.0, "r1p0": 100.0, "c2p0": 1e-6})
        assert dataset.get(49).labels["r1p0"] == pytest.approx(1e4)
        assert spectrum.class_index == 0

    def test_default_range(self):
        dataset = ParameterRegressionDataset(SWEPT_RC, desired_size=5)
        assert (dataset.omega.start, dataset.omega.end) == (1.0, 1e7)

    def test_drt_mode(self):
        dataset = ParameterRegressionDataset(SWEPT_RC, desired_size=6, frequency_count=25, drt=True)
        assert dataset.omega.count == 50
        for index in range(dataset.size()):
            spectrum = dataset.get(index)
            if spectrum.is_empty:
                continue
            assert len(spectrum) == 50
            assert np.all(spectrum.impedance.imag == 0)
            assert np.all(spectrum.impedance.real >= 0)

    def test_invalid_model(self):
        with pytest.raises(DatasetConstructionError):
            ParameterRegressionDataset("r-(", desired_size=5)

    def test_out_of_range(self):
        dataset = ParameterRegressionDataset(SWEPT_RC, desired_size=5)
        with pytest.raises(IndexError):
            dataset.class_for_index(5)

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
