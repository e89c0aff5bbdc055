#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Concurrent export of a dataset into train/test splits.

The index space is cut into contiguous ranges, one per worker thread. Every
worker iterates its range in order on its own dataset clone, routes each
example through the split and writes it to the shared sink. A failing worker
is isolated: the others finish and the failure is reported in the summary.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from spectraweaver.datasets.base import NoValidSampleError, SpectraDataset

from .sink import DatasetMetadata, SpectrumSink, open_sink
from .split import TEST, TRAIN, RandomSplit, StratifiedSplit

if TYPE_CHECKING:
    from spectraweaver.config.schema import ExportConfig

logger = logging.getLogger(__name__)

THREADS_PER_CPU = 1.5
PROGRESS_STEPS = 10


def default_thread_count(size: int, requested: Optional[int] = None) -> int:
    """Worker count: ``requested`` or 1.5 x CPU count, never more than ``size``."""
    if requested is None:
        requested = max(1, round((os.cpu_count() or 1) * THREADS_PER_CPU))
    return max(1, min(requested, size))


def partition(size: int, threads: int) -> List[Tuple[int, int]]:
    """
    Contiguous ``[start, end)`` ranges of ``size // threads`` indices; the
    last range absorbs the remainder.
    """
    if size <= 0:
        return []
    threads = max(1, min(threads, size))
    step = size // threads
    ranges = []
    for worker in range(threads):
        start = worker * step
        end = size if worker == threads - 1 else start + step
        ranges.append((start, end))
    return ranges


@dataclass
class WorkerStats:
    """Counters of one worker."""
    start: int
    end: int
    written: int = 0
    empty: int = 0
    invalid: int = 0
    size_mismatches: int = 0


@dataclass
class ExportSummary:
    """Outcome of an export run."""
    size: int = 0
    threads: int = 0
    written: Dict[str, int] = field(default_factory=dict)
    skipped_empty: int = 0
    skipped_invalid: int = 0
    size_mismatches: int = 0
    failed_ranges: List[Tuple[int, int, str]] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def partial(self) -> bool:
        return bool(self.failed_ranges)

    @property
    def total_written(self) -> int:
        return sum(self.written.values())

    def add(self, stats: WorkerStats):
        self.skipped_empty += stats.empty
        self.skipped_invalid += stats.invalid
        self.size_mismatches += stats.size_mismatches


class ExportCoordinator:
    """
    Drive the workers exporting ``dataset`` into ``sink``.

    Example:
        coordinator = ExportCoordinator(dataset, sink, StratifiedSplit(10.0, seed=1))
        summary = coordinator.run()
    """

    def __init__(self, dataset: SpectraDataset, sink: SpectrumSink, split: RandomSplit,
                 threads: Optional[int] = None):
        self.dataset = dataset
        self.sink = sink
        self.split = split
        self.requested_threads = threads

    def run(self) -> ExportSummary:
        size = self.dataset.size()
        threads = default_thread_count(size, self.requested_threads)
        ranges = partition(size, threads)
        summary = ExportSummary(size=size, threads=len(ranges))
        started = time.time()

        if not ranges:
            logger.warning("Dataset is empty, nothing to export")
        else:
            self._run_workers(ranges, summary)

        for role in self.sink.roles:
            summary.written[role] = self.sink.total_written(role)
        summary.elapsed = time.time() - started
        logger.info(f"Exported {summary.total_written} examples in {summary.elapsed:.1f}s "
                    f"({summary.skipped_empty} empty, {summary.skipped_invalid} without valid sample)")
        return summary

    def _run_workers(self, ranges: List[Tuple[int, int]], summary: ExportSummary):
        logger.info(f"Exporting {summary.size} examples using {len(ranges)} threads")
        with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
            future_to_range = {
                executor.submit(self._work, worker, start, end): (start, end)
                for worker, (start, end) in enumerate(ranges)
            }

            for future in as_completed(future_to_range):
                start, end = future_to_range[future]
                try:
                    summary.add(future.result())
                except Exception as e:
                    logger.error(f"Worker for indices {start}-{end} failed: {e}", exc_info=True)
                    summary.failed_ranges.append((start, end, str(e)))

    def _work(self, worker: int, start: int, end: int) -> WorkerStats:
        stats = WorkerStats(start, end)
        dataset = self.dataset.clone()
        length = end - start
        progress_every = max(1, length // PROGRESS_STEPS)
        expected_points: Optional[int] = None

        try:
            for done, index in enumerate(range(start, end), 1):
                try:
                    spectrum = dataset.get(index)
                except NoValidSampleError as e:
                    logger.warning(f"Skipping index {index}: {e}")
                    stats.invalid += 1
                    continue

                if spectrum.is_empty:
                    logger.warning(f"Skipping index {index}: empty spectrum")
                    stats.empty += 1
                    continue

                if expected_points is None:
                    expected_points = len(spectrum)
                elif len(spectrum) != expected_points:
                    logger.warning(f"Index {index} has {len(spectrum)} points, "
                                   f"expected {expected_points}")
                    stats.size_mismatches += 1

                role = self.split.role(index, spectrum.class_index)
                self.sink.write(spectrum, role if role in self.sink.roles else TRAIN)
                stats.written += 1

                if done % progress_every == 0:
                    logger.info(f"Thread {worker}: {done}/{length} "
                                f"({100 * done // length}%)")
        finally:
            dataset.close()

        return stats


def build_metadata(dataset: SpectraDataset, sink: SpectrumSink, role: str,
                   configuration: str, seed: int) -> DatasetMetadata:
    classes = dataset.classes_count()
    written = sink.written(role)
    return DatasetMetadata(
        dataset_type=dataset.kind,
        configuration=configuration,
        size=sum(written.values()),
        role=role,
        seed=seed,
        class_names=[dataset.model_string_for_class(c) for c in range(classes)],
        class_counts=[written.get(c, 0) for c in range(classes)],
        description=dataset.description(),
    )


def run_export(dataset: SpectraDataset, config: "ExportConfig") -> ExportSummary:
    """
    Export ``dataset`` as described by ``config`` and write the metadata.

    Raises:
        SinkOpenError: if an output split can not be prepared
    """
    roles = [TRAIN, TEST] if config.test_percent > 0 else [TRAIN]
    sink = open_sink(Path(config.output), roles, archive=config.archive,
                     compress=config.compress, images=config.images)

    split_cls = StratifiedSplit if config.split == 'stratified' else RandomSplit
    split = split_cls(config.test_percent, seed=config.seed)

    try:
        summary = ExportCoordinator(dataset, sink, split, threads=config.threads).run()
    finally:
        metadata = {
            role: build_metadata(dataset, sink, role, config.to_option_string(), config.seed)
            for role in roles
        }
        sink.finalize(metadata)

    return summary

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
