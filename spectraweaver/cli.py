#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Command-line interface for SpectraWeaver.

This module provides the main CLI entry point and all subcommands for
building machine-learning datasets from impedance spectra.
"""

import logging
import sys
from pathlib import Path

import click
import yaml

from .version import __version__
from .config.schema import (
    ConfigValidationError,
    ExportConfig,
    load_config,
    save_config_template,
    validate_config,
)
from .datasets import (
    DatasetConstructionError,
    DatasetKind,
    create_dataset,
    describe_dataset_kind,
)
from .export import TEST, SinkOpenError, run_export

logger = logging.getLogger(__name__)

# Exit codes
EXIT_OK = 0
EXIT_BAD_ARGUMENT = 1
EXIT_OUTPUT_UNAVAILABLE = 3
EXIT_TEST_OUTPUT_UNAVAILABLE = 4
EXIT_DATASET_ERROR = 5
EXIT_PARTIAL = 6

KIND_CHOICES = [kind.value for kind in DatasetKind]

# CLI parameter -> (config section, config key)
_OVERRIDES = {
    'kind': ('dataset', 'kind'),
    'source': ('dataset', 'source'),
    'size': ('dataset', 'size'),
    'frequency_count': ('dataset', 'frequency_count'),
    'omega_range': ('dataset', 'omega_range'),
    'options': ('dataset', 'options'),
    'labels': ('dataset', 'select_labels'),
    'extra_inputs': ('dataset', 'extra_inputs'),
    'reject_negative': ('dataset', 'reject_negative_labels'),
    'model_override': ('dataset', 'model_override'),
    'min_class_count': ('dataset', 'min_class_count'),
    'output': ('export', 'output'),
    'archive': ('export', 'archive'),
    'compress': ('export', 'compress'),
    'test_percent': ('export', 'test_percent'),
    'split': ('export', 'split'),
    'images': ('export', 'images'),
    'threads': ('execution', 'threads'),
    'seed': ('execution', 'seed'),
}

_FLAGS = {'reject_negative', 'archive', 'compress', 'images'}


def _split_list(value):
    if value is None:
        return None
    return [item.strip() for item in value.split(',') if item.strip()]


def _build_config(config_file, params) -> ExportConfig:
    """Merge YAML configuration and command line overrides into an ExportConfig."""
    config = load_config(Path(config_file) if config_file else None)

    for param, value in params.items():
        if param not in _OVERRIDES or value is None or value == ():
            continue
        # flags only ever switch a setting on
        if param in _FLAGS and not value:
            continue
        if param in ('labels', 'extra_inputs'):
            value = _split_list(value)
        elif param == 'omega_range':
            value = list(value)
        section, key = _OVERRIDES[param]
        config[section][key] = value

    if params.get('no_normalization'):
        config['dataset']['normalization'] = False

    export_config = ExportConfig.from_dict(config)
    # fail early on bad per-kind options
    export_config.dataset_options
    return export_config


def dataset_options(f):
    """Options describing the dataset source, shared by export and summary."""
    options = [
        click.option('--config', '-c', 'config_file', type=click.Path(exists=True),
                     help='Configuration file (YAML)'),
        click.option('--kind', '-k', type=click.Choice(KIND_CHOICES), default=None,
                     help='Dataset kind (see "spectraweaver describe")'),
        click.option('--source', '-s', default=None,
                     help='Circuit file, model string, spectra directory or archive'),
        click.option('--size', '-n', type=int, default=None,
                     help='Desired number of examples'),
        click.option('--frequency-count', '-f', type=int, default=None,
                     help='Points per exported spectrum'),
        click.option('--omega-range', type=float, nargs=2, default=None,
                     help='Angular frequency range START END in rad/s'),
        click.option('--options', '-O', default=None,
                     help='Per-kind options, e.g. "noise=0.01,inductivity"'),
        click.option('--no-normalization', 'no_normalization', is_flag=True,
                     help='Export loaded spectra without region reduction and rescaling'),
        click.option('--labels', '-l', default=None,
                     help='Comma separated labels to keep'),
        click.option('--extra-inputs', default=None,
                     help='Comma separated labels exported as extra inputs'),
        click.option('--reject-negative', is_flag=True,
                     help='Skip spectra with negative labels'),
        click.option('--model-override', default=None,
                     help='Use this model label for every loaded spectrum'),
        click.option('--min-class-count', type=int, default=None,
                     help='Drop classes with fewer examples'),
        click.option('--seed', type=int, default=None,
                     help='Random seed'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _fail(ctx, message, code):
    click.echo(f"✗ {message}", err=True)
    ctx.exit(code)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, verbose, quiet):
    """
    SpectraWeaver: impedance spectra dataset builder

    Generates or loads electrochemical impedance spectra and exports them as
    balanced, deduplicated train/test datasets for machine learning.
    """
    ctx.ensure_object(dict)
    ctx.obj['VERBOSE'] = verbose
    ctx.obj['QUIET'] = quiet

    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logging.getLogger().setLevel(level)


# ============================================================================
# Configuration Management Commands
# ============================================================================

@main.group()
def config():
    """Configuration management commands."""
    pass


@config.command('init')
@click.option('--output', '-o', type=click.Path(), default='spectraweaver_config.yaml',
              help='Output configuration file path')
@click.option('--template', '-t',
              type=click.Choice(['default', 'directory', 'archive', 'regression']),
              default='default', help='Configuration template type')
@click.pass_context
def config_init(ctx, output, template):
    """Generate a template configuration file with all available parameters."""
    click.echo(f"Generating {template} configuration template: {output}")

    try:
        save_config_template(Path(output), template=template)
    except OSError as e:
        _fail(ctx, f"Error creating configuration: {e}", EXIT_OUTPUT_UNAVAILABLE)
    click.echo(f"✓ Configuration file created: {output}")
    click.echo("\nEdit dataset.source and export.output, then run:")
    click.echo(f"  spectraweaver export --config {output}")


@config.command('validate')
@click.argument('config_file', type=click.Path(exists=True))
@click.pass_context
def config_validate(ctx, config_file):
    """Validate a configuration file."""
    click.echo(f"Validating configuration file: {config_file}")

    try:
        config = load_config(Path(config_file))
    except ConfigValidationError as e:
        _fail(ctx, str(e), EXIT_BAD_ARGUMENT)

    errors = validate_config(config)
    if errors:
        click.echo("\n✗ Configuration validation failed:")
        for error in errors:
            click.echo(f"  • {error}", err=True)
        ctx.exit(EXIT_BAD_ARGUMENT)

    click.echo("✓ Configuration is valid")
    click.echo(f"  Dataset: {config['dataset']['kind']} from {config['dataset']['source']}")
    click.echo(f"  Output: {config['export']['output']}")


@config.command('show')
@click.argument('config_file', type=click.Path(exists=True))
@click.pass_context
def config_show(ctx, config_file):
    """Display the merged configuration."""
    try:
        config = load_config(Path(config_file))
    except ConfigValidationError as e:
        _fail(ctx, str(e), EXIT_BAD_ARGUMENT)
    click.echo(yaml.dump(config, default_flow_style=False, sort_keys=False))


# ============================================================================
# Dataset Commands
# ============================================================================

@main.command()
@dataset_options
@click.option('--output', '-o', default=None, type=click.Path(),
              help='Output directory, or archive prefix with --archive')
@click.option('--archive', is_flag=True,
              help='Write <output>_train.tar and <output>_test.tar')
@click.option('--compress', is_flag=True,
              help='Gzip the archives (requires --archive)')
@click.option('--test-percent', '-p', type=float, default=None,
              help='Percentage of examples in the test split')
@click.option('--split', type=click.Choice(['stratified', 'random']), default=None,
              help='Split strategy (default: stratified)')
@click.option('--images', is_flag=True,
              help='Also write a Nyquist plot for every example')
@click.option('--threads', '-t', type=int, default=None,
              help='Number of worker threads (default: 1.5 x CPUs)')
@click.pass_context
def export(ctx, config_file, **params):
    """Export a dataset to train/test directories or archives."""
    try:
        export_config = _build_config(config_file, params)
    except (ConfigValidationError, ValueError, TypeError) as e:
        _fail(ctx, f"Invalid configuration: {e}", EXIT_BAD_ARGUMENT)

    try:
        dataset = create_dataset(export_config)
    except DatasetConstructionError as e:
        _fail(ctx, f"Could not build dataset: {e}", EXIT_DATASET_ERROR)
    except ValueError as e:
        _fail(ctx, f"Invalid dataset options: {e}", EXIT_BAD_ARGUMENT)

    try:
        summary = run_export(dataset, export_config)
    except SinkOpenError as e:
        code = EXIT_TEST_OUTPUT_UNAVAILABLE if e.role == TEST else EXIT_OUTPUT_UNAVAILABLE
        _fail(ctx, f"Could not prepare output: {e}", code)
    finally:
        dataset.close()

    written = ", ".join(f"{role}: {count}" for role, count in summary.written.items())
    click.echo(f"✓ Exported {summary.total_written} of {summary.size} examples ({written})")
    if summary.skipped_empty or summary.skipped_invalid:
        click.echo(f"  Skipped {summary.skipped_empty} empty and "
                   f"{summary.skipped_invalid} unproducible examples")
    if summary.partial:
        for start, end, error in summary.failed_ranges:
            click.echo(f"✗ Indices {start}-{end} failed: {error}", err=True)
        ctx.exit(EXIT_PARTIAL)


@main.command()
@dataset_options
@click.pass_context
def summary(ctx, config_file, **params):
    """Print the classes of a dataset and their example counts."""
    # the output location is irrelevant here
    params['output'] = params.get('output') or '-'
    try:
        export_config = _build_config(config_file, params)
    except (ConfigValidationError, ValueError, TypeError) as e:
        _fail(ctx, f"Invalid configuration: {e}", EXIT_BAD_ARGUMENT)

    try:
        dataset = create_dataset(export_config)
    except DatasetConstructionError as e:
        _fail(ctx, f"Could not build dataset: {e}", EXIT_DATASET_ERROR)
    except ValueError as e:
        _fail(ctx, f"Invalid dataset options: {e}", EXIT_BAD_ARGUMENT)

    try:
        counts = dataset.class_counts()
        click.echo(f"{dataset.description()}")
        click.echo(f"Examples: {dataset.size()}  Classes: {len(counts)}")
        click.echo("=" * 60)
        for class_index, count in enumerate(counts):
            click.echo(f"{class_index:>5}  {count:>10}  {dataset.model_string_for_class(class_index)}")
    finally:
        dataset.close()


@main.command()
@click.argument('kind', required=False, type=click.Choice(KIND_CHOICES))
def describe(kind):
    """Describe the dataset kinds and their options."""
    kinds = [DatasetKind(kind)] if kind else list(DatasetKind)
    for i, dataset_kind in enumerate(kinds):
        if i:
            click.echo("")
        click.echo(describe_dataset_kind(dataset_kind))


# ============================================================================
# Utility Commands
# ============================================================================

@main.command()
def version():
    """Show version information."""
    click.echo(f"SpectraWeaver v{__version__}")
    click.echo("\nDependencies:")

    import numpy
    import scipy
    click.echo(f"  NumPy: {numpy.__version__}")
    click.echo(f"  SciPy: {scipy.__version__}")

    try:
        import matplotlib
        click.echo(f"  matplotlib: {matplotlib.__version__}")
    except ImportError:
        click.echo("  matplotlib: not installed (optional for --images)")


if __name__ == '__main__':
    sys.exit(main())
