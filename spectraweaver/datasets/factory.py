"""
Build the dataset described by an export configuration.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from spectraweaver.circuit.model import FrequencyRange

from .archive import ArchiveDataset
from .base import DatasetConstructionError, SpectraDataset
from .directory import DirectoryDataset
from .files import FileIndexedDataset
from .generator import GeneratorDataset
from .generator_noise import NoiseGeneratorDataset
from .options import DatasetKind
from .passfail import PassFailDataset
from .regression import ParameterRegressionDataset
from .repeating import RepeatingDataset

if TYPE_CHECKING:
    from spectraweaver.config.schema import ExportConfig

logger = logging.getLogger(__name__)


def _omega(config: "ExportConfig", count: int) -> Optional[FrequencyRange]:
    if not config.omega_range:
        return None
    start, end = config.omega_range
    return FrequencyRange(float(start), float(end), count)


def _generator(cls, config: "ExportConfig", **kwargs) -> SpectraDataset:
    source = config.source
    if Path(source).is_file():
        return cls.from_file(Path(source), **kwargs)
    return cls.from_string(source, **kwargs)


def create_dataset(config: "ExportConfig") -> SpectraDataset:
    """
    Construct, prune and wrap the dataset for ``config``.

    Raises:
        DatasetConstructionError: if the source can not be used
        ValueError: for invalid per-kind options
    """
    options = config.dataset_options
    kind = config.kind
    count = config.frequency_count

    if kind == DatasetKind.GEN:
        dataset = _generator(GeneratorDataset, config,
                             desired_size=config.size,
                             frequency_count=count,
                             noise=options['noise'],
                             inductivity=options['inductivity'],
                             omega=_omega(config, count),
                             seed=config.seed)
    elif kind == DatasetKind.GEN_NOISE:
        dataset = _generator(NoiseGeneratorDataset, config,
                             desired_size=config.size,
                             frequency_count=count,
                             omega=_omega(config, count),
                             seed=config.seed)
    elif kind == DatasetKind.PASSFAIL:
        inner = _generator(GeneratorDataset, config,
                           desired_size=max(1, config.size // 2),
                           frequency_count=count,
                           noise=options['noise'],
                           inductivity=options['inductivity'],
                           omega=_omega(config, count),
                           seed=config.seed)
        dataset = PassFailDataset(inner,
                                  garbage_probability=options['garbage'],
                                  max_distortion=options['distortion'],
                                  seed=config.seed)
    elif kind == DatasetKind.REGRESSION:
        drt = options['drt']
        dataset = ParameterRegressionDataset(config.source,
                                             desired_size=config.size,
                                             frequency_count=count,
                                             noise=options['noise'],
                                             drt=drt,
                                             max_iterations=options['max_iterations'],
                                             omega=_omega(config, count * 2 if drt else count),
                                             seed=config.seed)
    else:
        cls = DirectoryDataset if kind == DatasetKind.DIR else ArchiveDataset
        dataset = cls(config.source,
                      frequency_count=count,
                      select_labels=config.select_labels,
                      extra_inputs=config.extra_inputs,
                      normalization=config.normalization,
                      reject_negative_labels=config.reject_negative_labels,
                      model_override=config.model_override,
                      seed=config.seed)

    if config.min_class_count > 0:
        if isinstance(dataset, FileIndexedDataset):
            removed = dataset.remove_less_than(config.min_class_count)
            logger.info(f"Removed {removed} examples in classes with fewer than "
                        f"{config.min_class_count} examples")
            if dataset.size() == 0:
                raise DatasetConstructionError(
                    f"No examples left after removing classes with fewer than "
                    f"{config.min_class_count} examples")
        else:
            logger.warning(f"Minimum class count is only supported for file datasets, "
                           f"ignoring it for {kind.value}")

    if options['balance'] or options['repeat']:
        dataset = RepeatingDataset(dataset, config.size, balance=options['balance'])

    logger.info(f"Dataset {dataset.description()} has {dataset.size()} examples "
                f"in {dataset.classes_count()} classes")
    return dataset
