#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Pytest configuration and shared fixtures.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

import io
import shutil
import tarfile
import tempfile
from pathlib import Path

import pytest

from spectraweaver.circuit.model import CircuitModel, FrequencyRange
from spectraweaver.spectra.spectrum import Spectrum


# Fixed circuits whose spectra have a clear semicircle inside 10..1e6 rad/s
CIRCUITS = {
    "rc": "r{100}-r{1000}c{1e-6}",
    "rp": "r{100}-r{1000}p{1e-6,0.8}",
    "rl": "r{100}-r{1000}c{1e-7}-l{1e-4}",
}


def make_spectrum(model_key="rc", labels=None, scale=1.0, points=50):
    """Spectrum of one of the CIRCUITS, optionally scaled."""
    model = CircuitModel(CIRCUITS[model_key])
    model.compile()
    omega = FrequencyRange(10.0, 1e6, points).values()
    return Spectrum(
        impedance=model.execute_sweep(omega) * scale,
        omega=omega,
        model=CIRCUITS[model_key],
        labels=dict(labels or {}),
    )


def write_spectra_dir(directory, class_sizes, labels=True):
    """Write ``{model_key: count}`` spectra as csv files and return the directory."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    number = 0
    for model_key, count in class_sizes.items():
        for i in range(count):
            spectrum_labels = {"r0p0": 100.0 + i, "temp": 20.0 + i} if labels else {}
            spectrum = make_spectrum(model_key, spectrum_labels, scale=1.0 + 0.01 * i)
            spectrum.save(directory / f"{number:05d}_{model_key}.csv")
            number += 1
    return directory


def write_spectra_archive(path, class_sizes, mode="w"):
    """Pack spectra like write_spectra_dir into a tar archive."""
    with tarfile.open(path, mode) as archive:
        number = 0
        for model_key, count in class_sizes.items():
            for i in range(count):
                spectrum = make_spectrum(model_key, {"r0p0": 100.0 + i, "temp": 20.0 + i},
                                         scale=1.0 + 0.01 * i)
                data = spectrum.to_text().encode("utf-8")
                info = tarfile.TarInfo(f"spectra/{number:05d}_{model_key}.csv")
                info.size = len(data)
                archive.addfile(info, io.BytesIO(data))
                number += 1
    return Path(path)


@pytest.fixture
def temp_output_dir():
    """Create temporary output directory for tests."""
    temp_dir = tempfile.mkdtemp(prefix="spectraweaver_test_")
    yield Path(temp_dir)
    # Cleanup after test
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def circuit_file(temp_output_dir):
    """Circuit list with comments, blank lines and one invalid model."""
    path = temp_output_dir / "circuits.txt"
    path.write_text(
        "# test circuits\n"
        "r{100}-r{100~1e4}c{1e-6}\n"
        "\n"
        "r{100}-r{100~1e4}p{1e-6,0.8}\n"
        "r{100}-x{5}\n"
    )
    return path


@pytest.fixture
def spectra_dir(temp_output_dir):
    """Directory with 3 classes of 12, 8 and 4 spectra."""
    return write_spectra_dir(temp_output_dir / "spectra", {"rc": 12, "rp": 8, "rl": 4})


@pytest.fixture
def spectra_archive(temp_output_dir):
    """Gzipped archive with the same layout as spectra_dir."""
    return write_spectra_archive(temp_output_dir / "spectra.tar.gz",
                                 {"rc": 12, "rp": 8, "rl": 4}, mode="w:gz")

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
