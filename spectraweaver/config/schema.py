#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Configuration schema for SpectraWeaver exports.

Defines all available configuration parameters with defaults and validation.
A YAML file mirrors DEFAULT_CONFIG; command line options override it.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from spectraweaver.datasets.options import DatasetKind, parse_dataset_options


class ConfigValidationError(Exception):
    """Raised when a configuration file can not be used."""
    pass


SPLIT_MODES = ("stratified", "random")

# Default configuration values
DEFAULT_CONFIG = {
    # ========================================================================
    # Dataset source
    # ========================================================================
    'dataset': {
        'kind': 'gen',                      # gen, gennoise, passfail, regression, dir, tar
        'source': None,                     # circuit file, model string, directory or archive
        'size': 10000,                      # desired number of examples
        'frequency_count': 50,              # points per exported spectrum
        'omega_range': None,                # [start, end] in rad/s, None = kind default
        'options': '',                      # per-kind options, key=value,key2=value2
        'normalization': True,              # region reduce and rescale loaded spectra
        'select_labels': [],                # labels to keep, others are dropped
        'extra_inputs': [],                 # labels kept as exip_<name> inputs
        'reject_negative_labels': False,
        'model_override': None,             # force this model label on loaded spectra
        'min_class_count': 0,               # prune classes with fewer examples
    },

    # ========================================================================
    # Export output
    # ========================================================================
    'export': {
        'output': None,                     # output directory or archive prefix
        'archive': False,                   # write <output>_train.tar / <output>_test.tar
        'compress': False,                  # gzip the archives
        'test_percent': 0.0,                # share of examples routed to the test split
        'split': 'stratified',              # stratified or random
        'images': False,                    # Nyquist plot per example
    },

    # ========================================================================
    # Execution
    # ========================================================================
    'execution': {
        'threads': None,                    # None = 1.5 x CPU count
        'seed': 0,
    },
}


@dataclass
class ExportConfig:
    """
    Flat, validated view of an export configuration.

    Attributes:
        kind: Dataset kind
        source: Circuit file, model string, directory or archive path
        output: Output directory, or archive prefix when ``archive`` is set
        size: Desired number of examples
        frequency_count: Points per exported spectrum
        omega_range: Optional (start, end) angular frequency range
        options: Per-kind option string
        test_percent: Percentage of examples routed to the test split
        split: 'stratified' or 'random'
        threads: Worker count, None for 1.5 x CPU count
    """
    kind: DatasetKind
    source: str
    output: str
    size: int = 10000
    frequency_count: int = 50
    omega_range: Optional[List[float]] = None
    options: str = ''
    normalization: bool = True
    select_labels: List[str] = field(default_factory=list)
    extra_inputs: List[str] = field(default_factory=list)
    reject_negative_labels: bool = False
    model_override: Optional[str] = None
    min_class_count: int = 0
    archive: bool = False
    compress: bool = False
    test_percent: float = 0.0
    split: str = 'stratified'
    images: bool = False
    threads: Optional[int] = None
    seed: int = 0

    def __post_init__(self):
        """Validate configuration parameters."""
        if isinstance(self.kind, str):
            try:
                self.kind = DatasetKind(self.kind)
            except ValueError:
                valid = ", ".join(k.value for k in DatasetKind)
                raise ValueError(f"Dataset kind must be one of {valid}, got {self.kind}") from None
        if not self.source:
            raise ValueError("Dataset source must be given")
        if not self.output:
            raise ValueError("Output path must be given")
        if self.size < 1:
            raise ValueError(f"Size must be at least 1, got {self.size}")
        if self.frequency_count < 2:
            raise ValueError(f"Frequency count must be at least 2, got {self.frequency_count}")
        if self.omega_range is not None:
            if len(self.omega_range) != 2:
                raise ValueError(f"Omega range must be [start, end], got {self.omega_range}")
            start, end = self.omega_range
            if start <= 0 or end <= start:
                raise ValueError(f"Omega range must satisfy 0 < start < end, got {self.omega_range}")
        if not 0.0 <= self.test_percent < 100.0:
            raise ValueError(f"Test percent must be in [0, 100), got {self.test_percent}")
        if self.split not in SPLIT_MODES:
            raise ValueError(f"Split must be one of {', '.join(SPLIT_MODES)}, got {self.split}")
        if self.threads is not None and self.threads < 1:
            raise ValueError(f"Threads must be at least 1, got {self.threads}")
        if self.min_class_count < 0:
            raise ValueError(f"Minimum class count must not be negative, got {self.min_class_count}")
        if self.compress and not self.archive:
            raise ValueError("Compression requires archive output")
        self.select_labels = list(self.select_labels or [])
        self.extra_inputs = list(self.extra_inputs or [])

    @property
    def dataset_options(self) -> Dict[str, Any]:
        return parse_dataset_options(self.kind, self.options)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "ExportConfig":
        """Build from a nested configuration dictionary shaped like DEFAULT_CONFIG."""
        dataset = config.get('dataset', {})
        export = config.get('export', {})
        execution = config.get('execution', {})
        return cls(
            kind=dataset.get('kind', 'gen'),
            source=dataset.get('source'),
            output=export.get('output'),
            size=dataset.get('size', 10000),
            frequency_count=dataset.get('frequency_count', 50),
            omega_range=dataset.get('omega_range'),
            options=dataset.get('options') or '',
            normalization=dataset.get('normalization', True),
            select_labels=dataset.get('select_labels') or [],
            extra_inputs=dataset.get('extra_inputs') or [],
            reject_negative_labels=dataset.get('reject_negative_labels', False),
            model_override=dataset.get('model_override'),
            min_class_count=dataset.get('min_class_count', 0),
            archive=export.get('archive', False),
            compress=export.get('compress', False),
            test_percent=export.get('test_percent', 0.0),
            split=export.get('split', 'stratified'),
            images=export.get('images', False),
            threads=execution.get('threads'),
            seed=execution.get('seed', 0),
        )

    def to_option_string(self) -> str:
        """Compact description stored in the export metadata."""
        parts = [f"source={self.source}", f"size={self.size}",
                 f"frequency_count={self.frequency_count}"]
        if self.omega_range:
            parts.append(f"omega={self.omega_range[0]:g}-{self.omega_range[1]:g}")
        if self.options:
            parts.append(f"options={self.options}")
        if self.select_labels:
            parts.append(f"labels={','.join(self.select_labels)}")
        if self.extra_inputs:
            parts.append(f"extra_inputs={','.join(self.extra_inputs)}")
        if self.model_override:
            parts.append(f"model_override={self.model_override}")
        if self.min_class_count:
            parts.append(f"min_class_count={self.min_class_count}")
        parts.append(f"split={self.split}")
        return "; ".join(parts)


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from file or return defaults.

    Args:
        config_path: Path to YAML config file (None = use defaults)

    Returns:
        Configuration dictionary

    Raises:
        ConfigValidationError: if the file is missing or not valid YAML
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigValidationError(f"Configuration file not found: {config_path}")
        try:
            with open(config_path) as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Invalid YAML in config file {config_path}: {e}") from e

        if user_config:
            if not isinstance(user_config, dict):
                raise ConfigValidationError(f"Config file {config_path} must contain a mapping")
            config = _deep_merge(config, user_config)

    return config


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def save_config_template(output_path: Path, template: str = 'default'):
    """
    Save a configuration template to file.

    Args:
        output_path: Output file path
        template: Template type ('default', 'directory', 'archive', 'regression')
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if template == 'directory':
        config['dataset']['kind'] = 'dir'
        config['dataset']['min_class_count'] = 20
        config['export']['test_percent'] = 10.0
    elif template == 'archive':
        config['dataset']['kind'] = 'tar'
        config['export']['archive'] = True
        config['export']['compress'] = True
        config['export']['test_percent'] = 10.0
    elif template == 'regression':
        config['dataset']['kind'] = 'regression'
        config['dataset']['options'] = 'drt'
    elif template != 'default':
        raise ValueError(f"Unknown config template: {template}")

    with open(output_path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration dictionary.

    Args:
        config: Configuration to validate

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    for section in config:
        if section not in DEFAULT_CONFIG:
            errors.append(f"Unknown config section: {section}")
    for section, defaults in DEFAULT_CONFIG.items():
        for key in config.get(section) or {}:
            if key not in defaults:
                errors.append(f"Unknown config key: {section}.{key}")

    try:
        export_config = ExportConfig.from_dict(config)
    except (ValueError, TypeError) as e:
        errors.append(str(e))
        return errors

    try:
        export_config.dataset_options
    except ValueError as e:
        errors.append(str(e))

    return errors

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
