#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Dataset abstraction shared by every backing source.

Concrete datasets implement ``_get_impl`` and the class bookkeeping methods.
The public ``get`` wraps ``_get_impl`` once, centrally, with bounds checking
and the rejection policy: a sample that cannot be produced is replaced by the
next index of the same class (wrapping around), and the search is bounded by
the dataset size.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

import numpy as np

from spectraweaver.spectra.spectrum import Spectrum

logger = logging.getLogger(__name__)


# ============================================================================
#                               ERRORS
# ============================================================================

class DatasetError(Exception):
    """Base class for dataset errors."""
    pass


class DatasetConstructionError(DatasetError):
    """The backing source is unusable: unreadable or without usable entries."""
    pass


class SampleRejected(DatasetError):
    """A single sample is unusable; the caller should try elsewhere."""
    pass


class SampleLoadError(SampleRejected):
    """A single sample could not be read from its backing storage."""
    pass


class NoValidSampleError(DatasetError):
    """No usable sample exists for the requested index's class."""
    pass


def sample_rng(seed: int, index: int) -> np.random.Generator:
    """Random generator that depends only on the dataset seed and the index."""
    return np.random.default_rng([seed & 0xFFFFFFFFFFFFFFFF, index])


# ============================================================================
#                               BASE CLASS
# ============================================================================

class SpectraDataset(ABC):
    """
    Indexed access to labeled spectra.

    Invariants:
        - ``sum(class_counts()) == size()``
        - ``class_for_index(i)`` is stable and equals ``get(i).class_index``
          whenever ``get(i)`` is non-empty
    """

    kind = "abstract"

    def __init__(self, seed: int = 0):
        self.seed = seed
        self._exhausted_classes: Set[int] = set()

    # ------------------------------------------------------------------
    # Capability interface
    # ------------------------------------------------------------------

    @abstractmethod
    def _get_impl(self, index: int) -> Spectrum:
        """
        Produce the sample at ``index``.

        Raise SampleRejected (or SampleLoadError) to have ``get`` move on to
        another index; return ``Spectrum.empty()`` to discard the sample.
        """

    @abstractmethod
    def size(self) -> int:
        """Number of addressable examples."""

    @abstractmethod
    def class_for_index(self, index: int) -> int:
        """Class index of the example at ``index``."""

    def model_string_for_class(self, class_index: int) -> str:
        return "Unknown"

    def class_counts(self) -> List[int]:
        counts: Dict[int, int] = {}
        for index in range(self.size()):
            class_index = self.class_for_index(index)
            counts[class_index] = counts.get(class_index, 0) + 1
        if not counts:
            return []
        out = [0] * (max(counts) + 1)
        for class_index, count in counts.items():
            out[class_index] = count
        return out

    def classes_count(self) -> int:
        return len(self.class_counts())

    def description(self) -> str:
        return self.kind

    # ------------------------------------------------------------------
    # Public access
    # ------------------------------------------------------------------

    def _check_index(self, index: int):
        size = self.size()
        if not 0 <= index < size:
            raise IndexError(f"Index {index} out of range for {self.kind} dataset of size {size}")

    def get(self, index: int) -> Spectrum:
        """
        Return the example at ``index``.

        Rejected samples are replaced by the next index of the same class,
        wrapping at the end. At most ``size()`` candidates are tried.

        Raises:
            IndexError: if ``index`` is outside ``[0, size())``
            NoValidSampleError: if no sample of this class can be produced
        """
        self._check_index(index)
        size = self.size()
        target_class = self.class_for_index(index)
        if target_class in self._exhausted_classes:
            raise NoValidSampleError(
                f"No producible sample for class {target_class} "
                f"({self.model_string_for_class(target_class)})"
            )

        candidate = index
        for _ in range(size):
            if candidate == index or self.class_for_index(candidate) == target_class:
                try:
                    spectrum = self._get_impl(candidate)
                except SampleLoadError as e:
                    logger.warning(f"{self.kind}: could not load index {candidate}: {e}")
                except SampleRejected as e:
                    logger.debug(f"{self.kind}: index {candidate} rejected: {e}")
                else:
                    if not spectrum.is_empty:
                        spectrum.class_index = target_class
                    return spectrum
            candidate = (candidate + 1) % size

        self._exhausted_classes.add(target_class)
        raise NoValidSampleError(
            f"No producible sample for class {target_class} "
            f"({self.model_string_for_class(target_class)}) after {size} attempts"
        )

    def __len__(self) -> int:
        return self.size()

    def __getitem__(self, index: int) -> Spectrum:
        return self.get(index)

    # ------------------------------------------------------------------
    # Worker handles
    # ------------------------------------------------------------------

    def clone(self) -> "SpectraDataset":
        """
        Independent handle for one export worker.

        Immutable state (registry, compiled models, file index) is shared;
        per-handle state is reset and stateful resources are reopened lazily.
        """
        twin = copy.copy(self)
        twin._exhausted_classes = set()
        twin._after_clone()
        return twin

    def _after_clone(self):
        """Hook for subclasses holding per-handle state."""
        pass

    def close(self):
        """Release per-handle resources."""
        pass

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
