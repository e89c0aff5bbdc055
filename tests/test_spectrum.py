"""
Tests for the Spectrum container, its text format and the per-example
transforms.
"""

import numpy as np
import pytest

from spectraweaver.spectra.processing import (
    add_noise,
    filter_data,
    normalize,
    reduce_region,
    rescale,
)
from spectraweaver.spectra.spectrum import Spectrum, SpectrumFormatError

from conftest import make_spectrum


class TestSpectrum:
    """Spectrum container."""

    def test_empty_sentinel(self):
        spectrum = Spectrum.empty()
        assert spectrum.is_empty
        assert len(spectrum) == 0

    def test_mismatched_lengths_rejected(self):
        with pytest.raises(ValueError):
            Spectrum(impedance=np.ones(3), omega=np.ones(2))

    def test_select_labels_orders_and_renames(self):
        spectrum = make_spectrum("rc", {"a": 1.0, "b": 2.0, "c": 3.0})
        spectrum.select_labels(["c", "a"], extra_inputs=["b"])
        assert list(spectrum.labels.items()) == [("c", 3.0), ("a", 1.0), ("exip_b", 2.0)]

    def test_select_missing_label_raises(self):
        spectrum = make_spectrum("rc", {"a": 1.0})
        with pytest.raises(KeyError):
            spectrum.select_labels(["missing"])

    def test_text_format_keeps_everything(self):
        spectrum = make_spectrum("rp", {"r0p0": 100.0, "temp": 21.5})
        spectrum.header = "measured"
        loaded = Spectrum.from_text(spectrum.to_text())

        assert loaded.model == spectrum.model
        assert loaded.header == "measured"
        assert loaded.labels == {"r0p0": 100.0, "temp": 21.5}
        np.testing.assert_allclose(loaded.impedance, spectrum.impedance, rtol=1e-8)
        np.testing.assert_allclose(loaded.omega, spectrum.omega, rtol=1e-8)

    def test_exclusive_save(self, temp_output_dir):
        spectrum = make_spectrum("rc")
        path = temp_output_dir / "a.csv"
        spectrum.save(path, exclusive=True)
        with pytest.raises(FileExistsError):
            spectrum.save(path, exclusive=True)

    @pytest.mark.parametrize("text", [
        "",
        "NOPE, 1\n\"rc\"\nomega, real, im\n",
        "EISF, 2\nrc\nomega, real, im\n1, 2, 3\n",
        "EISF, 2\n\"rc\"\nomega, real, im\n1, 2\n",
        "EISF, 2\n\"rc\"\nlabelsNames\na, b\nlabels\n1\nomega, real, im\n",
    ])
    def test_malformed_text(self, text):
        with pytest.raises(SpectrumFormatError):
            Spectrum.from_text(text)

    def test_non_utf8_bytes(self):
        with pytest.raises(SpectrumFormatError):
            Spectrum.from_bytes(b"\xff\xfe\xfa")


class TestProcessing:
    """Region reduction, rescaling and noise."""

    def test_flat_spectrum_reduces_to_nothing(self):
        omega = np.logspace(1, 6, 50)
        impedance, _ = reduce_region(np.full(50, 100 + 0j), omega)
        assert impedance.size == 0

    def test_reduce_region_drops_flat_ends(self):
        spectrum = make_spectrum("rc")
        impedance, omega = reduce_region(spectrum.impedance, spectrum.omega)
        assert 0 < impedance.size < spectrum.impedance.size
        assert omega.size == impedance.size

    def test_rescale_length_and_orientation(self):
        omega = np.logspace(6, 1, 20)
        impedance = omega * (1 + 1j)
        new_impedance, new_omega = rescale(impedance, omega, 7)
        assert new_impedance.size == 7
        assert new_omega[0] > new_omega[-1]
        np.testing.assert_allclose(new_omega[[0, -1]], [1e6, 10.0])

    def test_filter_data_output_size(self):
        spectrum = make_spectrum("rc")
        impedance, omega = filter_data(spectrum.impedance, spectrum.omega, 40)
        assert impedance.size == 20
        assert omega.size == 20

    def test_filter_data_degenerate(self):
        omega = np.logspace(1, 6, 50)
        impedance, omega = filter_data(np.full(50, 5 + 1j), omega, 100)
        assert impedance.size == 0

    def test_normalize(self):
        normalized = normalize(np.array([3 + 4j, 1 + 0j]))
        assert np.max(np.abs(normalized)) == pytest.approx(1.0)
        assert normalize(np.zeros(3, dtype=complex)).tolist() == [0, 0, 0]

    def test_add_noise_is_reproducible(self):
        spectrum = make_spectrum("rc")
        a = add_noise(spectrum.impedance, 0.01, np.random.default_rng(4))
        b = add_noise(spectrum.impedance, 0.01, np.random.default_rng(4))
        np.testing.assert_array_equal(a, b)
        assert not np.array_equal(a, spectrum.impedance)

    def test_zero_noise_is_identity(self):
        spectrum = make_spectrum("rc")
        assert add_noise(spectrum.impedance, 0.0) is spectrum.impedance
