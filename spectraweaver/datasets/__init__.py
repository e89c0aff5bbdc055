"""
Dataset virtualization: uniform indexed access to labeled spectra over
synthetic, directory and archive sources.
"""

from .base import (
    DatasetConstructionError,
    DatasetError,
    NoValidSampleError,
    SampleLoadError,
    SampleRejected,
    SpectraDataset,
    sample_rng,
)
from .indexing import resolve_index
from .options import DatasetKind, describe_dataset_kind, parse_dataset_options
from .generator import GeneratorDataset, read_circuits
from .generator_noise import NoiseGeneratorDataset
from .regression import ParameterRegressionDataset
from .files import FileEntry, FileIndexedDataset
from .directory import DirectoryDataset
from .archive import ArchiveDataset
from .passfail import PassFailDataset
from .repeating import RepeatingDataset
from .factory import create_dataset

__all__ = [
    "DatasetConstructionError",
    "DatasetError",
    "NoValidSampleError",
    "SampleLoadError",
    "SampleRejected",
    "SpectraDataset",
    "sample_rng",
    "resolve_index",
    "DatasetKind",
    "describe_dataset_kind",
    "parse_dataset_options",
    "GeneratorDataset",
    "read_circuits",
    "NoiseGeneratorDataset",
    "ParameterRegressionDataset",
    "FileEntry",
    "FileIndexedDataset",
    "DirectoryDataset",
    "ArchiveDataset",
    "PassFailDataset",
    "RepeatingDataset",
    "create_dataset",
]
