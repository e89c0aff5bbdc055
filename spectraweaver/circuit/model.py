#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Equivalent-circuit models: parsing, parameter sweeps and impedance evaluation.

Model strings use one letter per element::

    r  resistor            R
    c  capacitor           1 / (j w C)
    l  inductor            j w L
    w  Warburg element     sigma (1 - j) / sqrt(w)
    p  constant phase      1 / (Q (j w)^alpha)

Adjacent elements are in parallel, ``-`` joins elements in series and
parentheses group, e.g. ``r-r(r-c)``. Each element may carry parameters in
braces: ``r{1e3}`` is fixed, ``r{10~1e4}`` is swept over a range.

A compiled model is immutable and is evaluated with an explicit step index,
so one instance can be shared between export workers.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)


# ============================================================================
#                               ERRORS & TYPES
# ============================================================================

class CircuitParseError(ValueError):
    """Raised for model strings that do not describe a valid circuit."""
    pass


class CircuitError(RuntimeError):
    """Raised when a model is used in an invalid state."""
    pass


# element letter -> default parameter values
ELEMENT_DEFAULTS: Dict[str, Sequence[float]] = {
    "r": (100.0,),
    "c": (1e-6,),
    "l": (1e-6,),
    "w": (100.0,),
    "p": (1e-6, 0.9),
}


@dataclass
class FrequencyRange:
    """Angular frequency sweep, log spaced by default."""
    start: float = 10.0
    end: float = 1e6
    count: int = 50
    log: bool = True

    def __post_init__(self):
        if self.count < 1:
            raise ValueError(f"Frequency count must be at least 1, got {self.count}")
        if self.start <= 0 or self.end <= 0:
            raise ValueError(f"Frequencies must be positive, got {self.start} to {self.end}")

    def values(self) -> np.ndarray:
        if self.log:
            return np.logspace(np.log10(self.start), np.log10(self.end), self.count)
        return np.linspace(self.start, self.end, self.count)


@dataclass
class Parameter:
    """One element parameter, either fixed or swept between low and high."""
    low: float
    high: float
    steps: int = 1

    @property
    def swept(self) -> bool:
        return self.low != self.high

    def value_at(self, step: int) -> float:
        if self.steps <= 1 or not self.swept:
            return self.low
        fraction = step / (self.steps - 1)
        if self.low > 0 and self.high > 0:
            return float(self.low * (self.high / self.low) ** fraction)
        return float(self.low + (self.high - self.low) * fraction)


# ============================================================================
#                               CIRCUIT TREE
# ============================================================================

@dataclass
class _Element:
    kind: str
    params: List[Parameter]
    offset: int = 0

    def impedance(self, omega: np.ndarray, values: np.ndarray) -> np.ndarray:
        v = values[self.offset:self.offset + len(self.params)]
        with np.errstate(divide="ignore", invalid="ignore"):
            if self.kind == "r":
                return np.full(omega.shape, v[0], dtype=np.complex128)
            if self.kind == "c":
                return 1.0 / (1j * omega * v[0])
            if self.kind == "l":
                return 1j * omega * v[0]
            if self.kind == "w":
                return v[0] * (1 - 1j) / np.sqrt(omega)
            if self.kind == "p":
                return 1.0 / (v[0] * np.power(1j * omega, v[1]))
        raise CircuitError(f"Unknown element '{self.kind}'")

    def structure(self) -> str:
        return self.kind

    def with_values(self, values: np.ndarray) -> str:
        v = values[self.offset:self.offset + len(self.params)]
        return self.kind + "{" + ", ".join(f"{x:.6g}" for x in v) + "}"


@dataclass
class _Series:
    children: list

    def impedance(self, omega: np.ndarray, values: np.ndarray) -> np.ndarray:
        total = np.zeros(omega.shape, dtype=np.complex128)
        for child in self.children:
            total = total + child.impedance(omega, values)
        return total

    def structure(self) -> str:
        return "-".join(child.structure() for child in self.children)

    def with_values(self, values: np.ndarray) -> str:
        return "-".join(child.with_values(values) for child in self.children)


@dataclass
class _Parallel:
    children: list

    def impedance(self, omega: np.ndarray, values: np.ndarray) -> np.ndarray:
        admittance = np.zeros(omega.shape, dtype=np.complex128)
        with np.errstate(divide="ignore", invalid="ignore"):
            for child in self.children:
                admittance = admittance + 1.0 / child.impedance(omega, values)
            return 1.0 / admittance

    @staticmethod
    def _wrap(child, text: str) -> str:
        return f"({text})" if isinstance(child, _Series) else text

    def structure(self) -> str:
        return "".join(self._wrap(c, c.structure()) for c in self.children)

    def with_values(self, values: np.ndarray) -> str:
        return "".join(self._wrap(c, c.with_values(values)) for c in self.children)


_Node = Union[_Element, _Series, _Parallel]


class _Parser:
    """Recursive descent parser for model strings."""

    def __init__(self, text: str):
        self.text = "".join(text.split()).lower()
        self.pos = 0

    def _peek(self) -> Optional[str]:
        return self.text[self.pos] if self.pos < len(self.text) else None

    def _fail(self, message: str):
        raise CircuitParseError(f"{message} at position {self.pos} in '{self.text}'")

    def parse(self) -> _Node:
        if not self.text:
            raise CircuitParseError("Empty model string")
        node = self._series()
        if self.pos != len(self.text):
            self._fail(f"Unexpected '{self._peek()}'")
        return node

    def _series(self) -> _Node:
        children = [self._parallel()]
        while self._peek() == "-":
            self.pos += 1
            children.append(self._parallel())
        return children[0] if len(children) == 1 else _Series(children)

    def _parallel(self) -> _Node:
        children: list = []
        while self._peek() is not None and (self._peek() in ELEMENT_DEFAULTS or self._peek() == "("):
            child = self._factor()
            if isinstance(child, _Parallel):
                children.extend(child.children)
            else:
                children.append(child)
        if not children:
            self._fail("Expected element")
        return children[0] if len(children) == 1 else _Parallel(children)

    def _factor(self) -> _Node:
        if self._peek() == "(":
            self.pos += 1
            node = self._series()
            if self._peek() != ")":
                self._fail("Expected ')'")
            self.pos += 1
            return node

        kind = self._peek()
        self.pos += 1
        defaults = ELEMENT_DEFAULTS[kind]
        if self._peek() == "{":
            params = self._params(kind, len(defaults))
        else:
            params = [Parameter(v, v) for v in defaults]
        return _Element(kind, params)

    def _params(self, kind: str, expected: int) -> List[Parameter]:
        end = self.text.find("}", self.pos)
        if end < 0:
            self._fail("Unterminated '{'")
        body = self.text[self.pos + 1:end]
        self.pos = end + 1

        params = []
        for token in body.split(","):
            try:
                if "~" in token:
                    low, high = token.split("~", 1)
                    params.append(Parameter(float(low), float(high)))
                else:
                    value = float(token)
                    params.append(Parameter(value, value))
            except ValueError:
                self._fail(f"Invalid parameter '{token}' for element '{kind}'")
        if len(params) != expected:
            self._fail(f"Element '{kind}' takes {expected} parameter(s), got {len(params)}")
        return params


def _walk_elements(node: _Node) -> List[_Element]:
    if isinstance(node, _Element):
        return [node]
    elements = []
    for child in node.children:
        elements.extend(_walk_elements(child))
    return elements


# ============================================================================
#                               CIRCUIT MODEL
# ============================================================================

class CircuitModel:
    """
    A parsed circuit with an optional parameter sweep.

    Example:
        model = CircuitModel("r-r{10~1e4}c")
        model.set_sweep_count_closest_total(100)
        model.compile()
        z = model.execute_sweep(FrequencyRange().values(), step=42)
    """

    def __init__(self, model_str: str):
        self.source = model_str
        self._root = _Parser(model_str).parse()
        self._elements = _walk_elements(self._root)

        offset = 0
        for element in self._elements:
            element.offset = offset
            offset += len(element.params)

        self._params: List[Parameter] = [p for e in self._elements for p in e.params]
        self._strides: Optional[List[int]] = None

    # ------------------------------------------------------------------
    # Sweep configuration
    # ------------------------------------------------------------------

    @property
    def swept_parameters(self) -> List[Parameter]:
        return [p for p in self._params if p.swept]

    def set_sweep_count_closest_total(self, total: int):
        """Pick per-parameter step counts whose product is closest to ``total``."""
        swept = self.swept_parameters
        if not swept or total < 1:
            return
        k = len(swept)
        guess = max(2, int(round(total ** (1.0 / k))))
        candidates = [c for c in (guess - 1, guess, guess + 1) if c >= 2]
        steps = min(candidates, key=lambda c: abs(c ** k - total))
        for param in swept:
            param.steps = steps
        if self._strides is not None:
            self.compile()

    def compile(self) -> bool:
        """Freeze the sweep layout; must run before stepped execution."""
        strides = []
        stride = 1
        for param in self._params:
            strides.append(stride)
            if param.swept:
                stride *= max(1, param.steps)
        self._strides = strides
        return True

    @property
    def compiled(self) -> bool:
        return self._strides is not None

    @property
    def required_steps(self) -> int:
        total = 1
        for param in self.swept_parameters:
            total *= max(1, param.steps)
        return total

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def parameter_values(self, step: int = 0) -> np.ndarray:
        steps = self.required_steps
        if steps > 1 and not self.compiled:
            raise CircuitError(f"Model '{self.model_str}' must be compiled before stepped execution")
        if not 0 <= step < steps:
            raise IndexError(f"Sweep step {step} out of range for {steps} steps")

        values = np.empty(len(self._params), dtype=np.float64)
        for i, param in enumerate(self._params):
            if param.swept and param.steps > 1:
                digit = (step // self._strides[i]) % param.steps
                values[i] = param.value_at(digit)
            else:
                values[i] = param.low
        return values

    def execute_sweep(self, omega: np.ndarray, step: int = 0) -> np.ndarray:
        """Complex impedance at each angular frequency for sweep ``step``."""
        omega = np.asarray(omega, dtype=np.float64)
        return self._root.impedance(omega, self.parameter_values(step))

    # ------------------------------------------------------------------
    # Descriptions
    # ------------------------------------------------------------------

    @property
    def model_str(self) -> str:
        return self._root.structure()

    def model_str_with_params(self, step: int = 0) -> str:
        return self._root.with_values(self.parameter_values(step))

    @property
    def parameter_names(self) -> List[str]:
        names = []
        for index, element in enumerate(self._elements):
            for param_index in range(len(element.params)):
                names.append(f"{element.kind}{index}p{param_index}")
        return names

    def flat_parameters(self, step: int = 0) -> List[float]:
        return [float(v) for v in self.parameter_values(step)]

    def recommended_indices(self, omega: np.ndarray, threshold: float = 0.01,
                            max_candidates: int = 2048) -> List[int]:
        """
        Sweep steps whose normalized spectra are mutually distinct.

        A candidate is kept when its mean point distance to every previously
        kept spectrum exceeds ``threshold``. Steps producing non-finite or
        entirely flat spectra are never recommended.
        """
        steps = self.required_steps
        if steps <= 1:
            return [0]

        stride = max(1, steps // max_candidates)
        kept: List[int] = []
        kept_spectra: List[np.ndarray] = []
        for step in range(0, steps, stride):
            z = self.execute_sweep(omega, step)
            if not np.all(np.isfinite(z)):
                continue
            scale = np.max(np.abs(z))
            if scale == 0:
                continue
            z = z / scale
            if np.max(np.abs(np.diff(z))) < threshold:
                continue
            if kept_spectra:
                distances = np.mean(np.abs(np.vstack(kept_spectra) - z), axis=1)
                if np.min(distances) <= threshold:
                    continue
            kept.append(step)
            kept_spectra.append(z)
        return kept

    def __repr__(self) -> str:
        return f"CircuitModel('{self.model_str}', steps={self.required_steps})"

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
