"""
Concurrent export pipeline: train/test routing, deduplicated sinks and the
coordinating worker pool.
"""

from .split import TEST, TRAIN, ClassCounters, RandomSplit, StratifiedSplit
from .sink import (
    ArchiveSink,
    DatasetMetadata,
    DirectorySink,
    FilenameRegistry,
    SinkOpenError,
    SpectrumSink,
    content_hash,
    open_sink,
)
from .coordinator import (
    ExportCoordinator,
    ExportSummary,
    default_thread_count,
    partition,
    run_export,
)

__all__ = [
    "TEST",
    "TRAIN",
    "ClassCounters",
    "RandomSplit",
    "StratifiedSplit",
    "ArchiveSink",
    "DatasetMetadata",
    "DirectorySink",
    "FilenameRegistry",
    "SinkOpenError",
    "SpectrumSink",
    "content_hash",
    "open_sink",
    "ExportCoordinator",
    "ExportSummary",
    "default_thread_count",
    "partition",
    "run_export",
]
