#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Tests for the configuration schema, YAML loading and per-kind options.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

import pytest
import yaml

from spectraweaver.config.schema import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    ExportConfig,
    load_config,
    save_config_template,
    validate_config,
)
from spectraweaver.datasets.base import DatasetConstructionError
from spectraweaver.datasets.factory import create_dataset
from spectraweaver.datasets.options import DatasetKind, describe_dataset_kind, parse_dataset_options
from spectraweaver.datasets.passfail import PassFailDataset
from spectraweaver.datasets.repeating import RepeatingDataset


# ═══════════════════════════════════════════════════════════════════════
#  ExportConfig
# ═══════════════════════════════════════════════════════════════════════

class TestExportConfig:
    """Validation in ExportConfig.__post_init__."""

    def test_minimal(self):
        config = ExportConfig(kind="gen", source="r-rc", output="out")
        assert config.kind == DatasetKind.GEN
        assert config.split == "stratified"
        assert config.threads is None

    @pytest.mark.parametrize("overrides", [
        {"kind": "nope"},
        {"source": ""},
        {"output": None},
        {"size": 0},
        {"frequency_count": 1},
        {"omega_range": [10.0, 1.0]},
        {"omega_range": [0.0, 1.0]},
        {"omega_range": [1.0]},
        {"test_percent": 100.0},
        {"test_percent": -1.0},
        {"split": "sideways"},
        {"threads": 0},
        {"min_class_count": -1},
        {"compress": True},
    ])
    def test_invalid(self, overrides):
        params = dict(kind="gen", source="r-rc", output="out")
        params.update(overrides)
        with pytest.raises(ValueError):
            ExportConfig(**params)

    def test_from_dict(self):
        config = load_config()
        config['dataset'].update(kind='dir', source='spectra', select_labels=['a'],
                                 extra_inputs=['b'])
        config['export'].update(output='out', test_percent=10.0, archive=True, compress=True)
        config['execution']['threads'] = 3

        export_config = ExportConfig.from_dict(config)
        assert export_config.kind == DatasetKind.DIR
        assert export_config.select_labels == ['a']
        assert export_config.compress
        assert export_config.threads == 3

    def test_option_string(self):
        config = ExportConfig(kind="gen", source="r-rc", output="out", size=50,
                              omega_range=[1.0, 1e5], options="noise=0.1")
        text = config.to_option_string()
        assert "source=r-rc" in text
        assert "omega=1-100000" in text
        assert "options=noise=0.1" in text


# ═══════════════════════════════════════════════════════════════════════
#  YAML files
# ═══════════════════════════════════════════════════════════════════════

class TestConfigFiles:
    """Loading, merging and templates."""

    def test_defaults_are_copied(self):
        config = load_config()
        config['dataset']['size'] = 1
        assert DEFAULT_CONFIG['dataset']['size'] == 10000

    def test_partial_file_is_merged(self, temp_output_dir):
        path = temp_output_dir / "partial.yaml"
        path.write_text("dataset:\n  kind: tar\n  size: 77\n")
        config = load_config(path)
        assert config['dataset']['size'] == 77
        assert config['dataset']['frequency_count'] == 50
        assert config['export']['split'] == 'stratified'

    def test_missing_file(self, temp_output_dir):
        with pytest.raises(ConfigValidationError):
            load_config(temp_output_dir / "missing.yaml")

    def test_invalid_yaml(self, temp_output_dir):
        path = temp_output_dir / "bad.yaml"
        path.write_text("dataset: [unclosed\n")
        with pytest.raises(ConfigValidationError):
            load_config(path)

    def test_non_mapping(self, temp_output_dir):
        path = temp_output_dir / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigValidationError):
            load_config(path)

    @pytest.mark.parametrize("template,kind", [
        ("default", "gen"),
        ("directory", "dir"),
        ("archive", "tar"),
        ("regression", "regression"),
    ])
    def test_templates(self, temp_output_dir, template, kind):
        path = temp_output_dir / f"{template}.yaml"
        save_config_template(path, template=template)
        with open(path) as f:
            config = yaml.safe_load(f)
        assert config['dataset']['kind'] == kind
        assert set(config) == set(DEFAULT_CONFIG)

    def test_unknown_template(self, temp_output_dir):
        with pytest.raises(ValueError):
            save_config_template(temp_output_dir / "x.yaml", template="fancy")

    def test_validate(self):
        config = load_config()
        config['dataset']['source'] = 'r-rc'
        config['export']['output'] = 'out'
        assert validate_config(config) == []

        config['dataset']['colour'] = 'blue'
        config['extra'] = {}
        errors = validate_config(config)
        assert "Unknown config key: dataset.colour" in errors
        assert "Unknown config section: extra" in errors

    def test_validate_reports_bad_values(self):
        config = load_config()
        config['dataset']['source'] = 'r-rc'
        config['export']['output'] = 'out'
        config['dataset']['options'] = 'bogus=1'
        assert len(validate_config(config)) == 1

        config['export']['test_percent'] = 150
        assert any("Test percent" in error for error in validate_config(config))


# ═══════════════════════════════════════════════════════════════════════
#  Per-kind options and dataset construction
# ═══════════════════════════════════════════════════════════════════════

class TestDatasetOptions:
    """Option strings."""

    def test_defaults(self):
        options = parse_dataset_options(DatasetKind.GEN)
        assert options == {"noise": 0.0, "inductivity": False, "repeat": False, "balance": False}

    def test_values_and_bare_flags(self):
        options = parse_dataset_options(DatasetKind.PASSFAIL, "noise=0.05, inductivity, garbage=0.5")
        assert options["noise"] == 0.05
        assert options["inductivity"] is True
        assert options["garbage"] == 0.5
        assert options["distortion"] == 0.02

    def test_explicit_booleans(self):
        assert parse_dataset_options(DatasetKind.DIR, "balance=no")["balance"] is False
        assert parse_dataset_options(DatasetKind.DIR, "balance=1")["balance"] is True

    @pytest.mark.parametrize("kind,text", [
        (DatasetKind.DIR, "noise=0.1"),
        (DatasetKind.GEN, "noise"),
        (DatasetKind.GEN, "noise=loud"),
        (DatasetKind.REGRESSION, "max_iterations=1.5"),
        (DatasetKind.TAR, "balance=maybe"),
    ])
    def test_invalid(self, kind, text):
        with pytest.raises(ValueError):
            parse_dataset_options(kind, text)

    def test_describe(self):
        text = describe_dataset_kind(DatasetKind.REGRESSION)
        assert text.startswith("regression:")
        assert "max_iterations" in text


class TestCreateDataset:
    """Dataset construction from an ExportConfig."""

    def test_generator_from_model_string(self):
        config = ExportConfig(kind="gen", source="r{100}-r{100~1e4}c{1e-6}", output="out",
                              size=20, frequency_count=20)
        dataset = create_dataset(config)
        assert dataset.kind == "gen"
        assert dataset.size() == 20

    def test_generator_from_file_with_omega(self, circuit_file):
        config = ExportConfig(kind="gen", source=str(circuit_file), output="out",
                              size=30, frequency_count=20, omega_range=[1.0, 1e5])
        dataset = create_dataset(config)
        assert dataset.classes_count() == 2
        assert dataset.omega.start == 1.0
        assert len(dataset.get(0)) == 20

    def test_passfail(self):
        config = ExportConfig(kind="passfail", source="r{100}-r{100~1e4}c{1e-6}", output="out",
                              size=20, frequency_count=20)
        dataset = create_dataset(config)
        assert isinstance(dataset, PassFailDataset)
        assert dataset.size() == 20

    def test_regression_drt_doubles_points(self):
        config = ExportConfig(kind="regression", source="r{100}-r{100~1e4}c{1e-6}", output="out",
                              size=5, frequency_count=10, omega_range=[1.0, 1e6], options="drt")
        dataset = create_dataset(config)
        assert dataset.omega.count == 20

    def test_directory_with_pruning_and_balance(self, spectra_dir):
        config = ExportConfig(kind="dir", source=str(spectra_dir), output="out",
                              size=10, frequency_count=20, min_class_count=5,
                              options="balance")
        dataset = create_dataset(config)
        assert isinstance(dataset, RepeatingDataset)
        assert dataset.class_counts() == [12, 12, 0]

    def test_archive(self, spectra_archive):
        config = ExportConfig(kind="tar", source=str(spectra_archive), output="out",
                              frequency_count=20, select_labels=["temp"])
        dataset = create_dataset(config)
        assert dataset.size() == 24
        assert list(dataset.get(0).labels) == ["temp"]
        dataset.close()

    def test_pruning_every_class_fails(self, spectra_dir):
        config = ExportConfig(kind="dir", source=str(spectra_dir), output="out",
                              frequency_count=20, min_class_count=13)
        with pytest.raises(DatasetConstructionError):
            create_dataset(config)

    def test_extra_inputs_without_label_selection(self, spectra_archive):
        config = ExportConfig(kind="tar", source=str(spectra_archive), output="out",
                              frequency_count=20, extra_inputs=["temp"])
        dataset = create_dataset(config)
        assert list(dataset.get(0).labels) == ["exip_temp"]
        dataset.close()
