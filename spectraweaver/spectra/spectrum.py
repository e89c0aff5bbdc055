#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Spectrum container and the on-disk spectrum text format.

A spectrum is one labeled example: impedance points ordered by angular
frequency, the circuit model label that produced (or describes) them, a set
of named float labels and the class index assigned by the producing dataset.

File layout::

    EISF, 2
    "<model>", <header>
    labelsNames
    <name>, <name>, ...
    labels
    <value>, <value>, ...
    omega, real, im
    <omega>, <real>, <imag>
    ...

The ``labelsNames``/``labels`` pair is optional.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Union

import numpy as np

logger = logging.getLogger(__name__)

FORMAT_MAGIC = "EISF"
FORMAT_VERSION = 2


class SpectrumFormatError(Exception):
    """Raised when a spectrum file cannot be parsed."""
    pass


@dataclass
class Spectrum:
    """
    One labeled impedance spectrum.

    Attributes:
        impedance: Complex impedance per point
        omega: Angular frequency per point, same length and ordering as impedance
        model: Circuit model label
        labels: Ordered mapping of label name -> float value
        class_index: Class assigned by the producing dataset (-1 if unassigned)
        header: Free-form producer description
    """
    impedance: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.complex128))
    omega: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float64))
    model: str = ""
    labels: Dict[str, float] = field(default_factory=dict)
    class_index: int = -1
    header: str = ""

    def __post_init__(self):
        self.impedance = np.asarray(self.impedance, dtype=np.complex128)
        self.omega = np.asarray(self.omega, dtype=np.float64)
        if self.impedance.shape != self.omega.shape:
            raise ValueError(
                f"Impedance and omega must have the same length, got "
                f"{self.impedance.shape} and {self.omega.shape}"
            )

    @classmethod
    def empty(cls) -> "Spectrum":
        """The 'no valid example' sentinel."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.impedance.size == 0

    def __len__(self) -> int:
        return int(self.impedance.size)

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def has_label(self, name: str) -> bool:
        return name in self.labels

    def get_label(self, name: str) -> float:
        try:
            return self.labels[name]
        except KeyError:
            raise KeyError(f"Spectrum has no label '{name}'") from None

    def select_labels(self, keys: List[str], extra_inputs: Optional[List[str]] = None,
                      extra_prefix: str = "exip_") -> "Spectrum":
        """
        Replace the label set with exactly the requested subset.

        Selected labels keep their key. Extra inputs are renamed with
        ``extra_prefix`` so they can be told apart from learning targets.
        """
        selected: Dict[str, float] = {}
        for key in keys:
            selected[key] = self.get_label(key)
        for key in extra_inputs or []:
            selected[extra_prefix + key] = self.get_label(key)
        self.labels = selected
        return self

    def raw_bytes(self) -> bytes:
        """Raw point data, used for content-derived file names."""
        return (np.ascontiguousarray(self.impedance).tobytes()
                + np.ascontiguousarray(self.omega).tobytes())

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_text(self) -> str:
        out = io.StringIO()
        self.save_to_stream(out)
        return out.getvalue()

    def save_to_stream(self, stream: TextIO):
        stream.write(f"{FORMAT_MAGIC}, {FORMAT_VERSION}\n")
        model_line = f'"{self.model}"'
        if self.header:
            model_line += f", {self.header}"
        stream.write(model_line + "\n")
        if self.labels:
            stream.write("labelsNames\n")
            stream.write(", ".join(self.labels.keys()) + "\n")
            stream.write("labels\n")
            stream.write(", ".join(f"{v:.9e}" for v in self.labels.values()) + "\n")
        stream.write("omega, real, im\n")
        for omega, z in zip(self.omega, self.impedance):
            stream.write(f"{omega:.9e}, {z.real:.9e}, {z.imag:.9e}\n")

    def save(self, path: Union[str, Path], exclusive: bool = False):
        """Write to ``path``; with ``exclusive`` an existing file raises FileExistsError."""
        with open(path, "x" if exclusive else "w", encoding="utf-8") as f:
            self.save_to_stream(f)

    @classmethod
    def from_text(cls, text: str) -> "Spectrum":
        lines = [line.strip() for line in text.splitlines()]
        lines = [line for line in lines if line]
        if not lines or not lines[0].startswith(FORMAT_MAGIC):
            raise SpectrumFormatError("Missing EISF header")

        if len(lines) < 3:
            raise SpectrumFormatError("Truncated spectrum file")

        model_line = lines[1]
        if not model_line.startswith('"'):
            raise SpectrumFormatError(f"Malformed model line: {model_line!r}")
        end_quote = model_line.find('"', 1)
        if end_quote < 0:
            raise SpectrumFormatError(f"Unterminated model string: {model_line!r}")
        model = model_line[1:end_quote]
        header = model_line[end_quote + 1:].lstrip(", ").strip()

        labels: Dict[str, float] = {}
        cursor = 2
        if lines[cursor] == "labelsNames":
            if cursor + 3 >= len(lines) or lines[cursor + 2] != "labels":
                raise SpectrumFormatError("Incomplete label section")
            names = [name.strip() for name in lines[cursor + 1].split(",")]
            try:
                values = [float(v) for v in lines[cursor + 3].split(",")]
            except ValueError as e:
                raise SpectrumFormatError(f"Invalid label value: {e}") from e
            if len(names) != len(values):
                raise SpectrumFormatError(
                    f"{len(names)} label names but {len(values)} label values"
                )
            labels = dict(zip(names, values))
            cursor += 4

        if cursor >= len(lines) or not lines[cursor].startswith("omega"):
            raise SpectrumFormatError("Missing data header")
        cursor += 1

        rows = lines[cursor:]
        omega = np.empty(len(rows), dtype=np.float64)
        impedance = np.empty(len(rows), dtype=np.complex128)
        for i, row in enumerate(rows):
            fields = row.split(",")
            if len(fields) != 3:
                raise SpectrumFormatError(f"Malformed data row {i}: {row!r}")
            try:
                omega[i] = float(fields[0])
                impedance[i] = complex(float(fields[1]), float(fields[2]))
            except ValueError as e:
                raise SpectrumFormatError(f"Invalid number in data row {i}: {e}") from e

        return cls(impedance=impedance, omega=omega, model=model, labels=labels, header=header)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Spectrum":
        """Load a spectrum file; I/O problems surface as OSError."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_text(f.read())

    @classmethod
    def from_bytes(cls, payload: bytes) -> "Spectrum":
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SpectrumFormatError(f"Spectrum payload is not UTF-8: {e}") from e
        return cls.from_text(text)

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
