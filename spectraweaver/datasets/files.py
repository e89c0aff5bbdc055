#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Common base for datasets backed by stored spectrum files.

Construction performs one sequential scan that validates every candidate and
builds an immutable index of (locator, class) entries. Samples are re-read
from their stored location on every access.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

import logging
import tarfile
from abc import abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from spectraweaver.spectra.processing import filter_data
from spectraweaver.spectra.registry import ModelRegistry
from spectraweaver.spectra.spectrum import Spectrum, SpectrumFormatError

from .base import DatasetConstructionError, SampleLoadError, SampleRejected, SpectraDataset

logger = logging.getLogger(__name__)

MIN_EXPECTED_ENTRIES = 20


@dataclass(frozen=True)
class FileEntry:
    """
    Location of one stored spectrum.

    Attributes:
        locator: File path or archive member name
        class_index: Class assigned at scan time
        offset: Payload offset inside an archive (-1 for plain files)
        length: Payload size inside an archive (-1 for plain files)
    """
    locator: str
    class_index: int
    offset: int = -1
    length: int = -1


class FileIndexedDataset(SpectraDataset):
    """Shared scan, label filtering and pruning for file-backed datasets."""

    # Errors raised while reading a stored spectrum
    LOAD_ERRORS = (OSError, SpectrumFormatError, ValueError, tarfile.TarError)

    def __init__(self,
                 source: str,
                 frequency_count: int = 50,
                 select_labels: Optional[Sequence[str]] = None,
                 extra_inputs: Optional[Sequence[str]] = None,
                 normalization: bool = True,
                 reject_negative_labels: bool = False,
                 model_override: Optional[str] = None,
                 registry: Optional[ModelRegistry] = None,
                 seed: int = 0):
        super().__init__(seed=seed)
        self.source = str(source)
        self.frequency_count = frequency_count
        self.select_labels = list(select_labels or [])
        self.extra_inputs = list(extra_inputs or [])
        self.normalization = normalization
        self.reject_negative_labels = reject_negative_labels
        self.model_override = model_override
        self.registry = registry if registry is not None else ModelRegistry()
        self._entries: List[FileEntry] = []

    # ------------------------------------------------------------------
    # Construction scan
    # ------------------------------------------------------------------

    def _accept(self, spectrum: Spectrum, locator: str) -> bool:
        """Validate a freshly scanned spectrum against the label requirements."""
        for key in self.select_labels + self.extra_inputs:
            if not spectrum.has_label(key):
                logger.warning(f"{locator} is missing label {key}, skipping")
                return False

        if self.reject_negative_labels:
            keys = self.select_labels or list(spectrum.labels)
            if any(spectrum.get_label(key) < 0 for key in keys):
                logger.debug(f"{locator} has negative labels, skipping")
                return False

        return True

    def _model_label(self, spectrum: Spectrum) -> str:
        return self.model_override if self.model_override else spectrum.model

    def _register(self, spectrum: Spectrum, locator: str, offset: int = -1,
                  length: int = -1) -> bool:
        if not self._accept(spectrum, locator):
            return False
        class_index = self.registry.intern(self._model_label(spectrum))
        self._entries.append(FileEntry(locator, class_index, offset, length))
        return True

    def _finish_scan(self):
        if not self._entries:
            raise DatasetConstructionError(f"No usable spectra found in {self.source}")
        if len(self._entries) < MIN_EXPECTED_ENTRIES:
            logger.warning(f"Found only {len(self._entries)} spectra in {self.source}")
        logger.info(f"Indexed {len(self._entries)} spectra in {len(self.registry)} classes "
                    f"from {self.source}")

    # ------------------------------------------------------------------
    # Pruning
    # ------------------------------------------------------------------

    def remove_less_than(self, min_count: int) -> int:
        """
        Drop every entry whose class has fewer than ``min_count`` members.

        Class indices are left unchanged, so pruned classes report a zero
        count. Must be called before the dataset is cloned for export.

        Returns:
            Number of removed entries
        """
        counts = self.class_counts()
        kept = [e for e in self._entries if counts[e.class_index] >= min_count]
        removed = len(self._entries) - len(kept)
        for class_index, count in enumerate(counts):
            if 0 < count < min_count:
                logger.info(f"Removing class {self.registry.label_for_class(class_index)} "
                            f"with {count} examples")
        self._entries = kept
        return removed

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    @abstractmethod
    def _load_entry(self, entry: FileEntry) -> Spectrum:
        """Read the stored spectrum for ``entry``."""

    def _get_impl(self, index: int) -> Spectrum:
        entry = self._entries[index]
        try:
            spectrum = self._load_entry(entry)
        except self.LOAD_ERRORS as e:
            raise SampleLoadError(f"{entry.locator}: {e}") from e

        if self.normalization:
            impedance, omega = filter_data(spectrum.impedance, spectrum.omega,
                                           self.frequency_count * 2)
            if impedance.size == 0:
                raise SampleRejected(f"{entry.locator} has no usable region")
            spectrum.impedance, spectrum.omega = impedance, omega

        if self.select_labels or self.extra_inputs:
            try:
                spectrum.select_labels(self.select_labels, self.extra_inputs)
            except KeyError as e:
                raise SampleLoadError(f"{entry.locator}: {e}") from e

        if self.model_override:
            spectrum.model = self.model_override
        spectrum.class_index = entry.class_index
        return spectrum

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def size(self) -> int:
        return len(self._entries)

    def class_for_index(self, index: int) -> int:
        self._check_index(index)
        return self._entries[index].class_index

    def class_counts(self) -> List[int]:
        counts = [0] * len(self.registry)
        for entry in self._entries:
            counts[entry.class_index] += 1
        return counts

    def model_string_for_class(self, class_index: int) -> str:
        return self.registry.label_for_class(class_index)

    @property
    def entries(self) -> List[FileEntry]:
        return list(self._entries)

    def description(self) -> str:
        return (f"{self.kind}(source={self.source}, entries={len(self._entries)}, "
                f"classes={len(self.registry)}, normalization={self.normalization})")

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
