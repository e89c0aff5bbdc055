"""
SpectraWeaver v0.1.0

Configuration management for SpectraWeaver.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

from .schema import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    ExportConfig,
    load_config,
    save_config_template,
    validate_config,
)

__all__ = [
    "DEFAULT_CONFIG",
    "ConfigValidationError",
    "ExportConfig",
    "load_config",
    "save_config_template",
    "validate_config",
]
