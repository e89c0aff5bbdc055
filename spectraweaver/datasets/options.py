"""
Per-kind dataset options.

Every dataset kind declares the options it understands. Users pass them as a
single ``key=value,key2=value2`` string; a bare key sets a boolean option.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List


class DatasetKind(Enum):
    """Supported dataset kinds."""
    GEN = "gen"
    GEN_NOISE = "gennoise"
    PASSFAIL = "passfail"
    REGRESSION = "regression"
    DIR = "dir"
    TAR = "tar"


@dataclass(frozen=True)
class DatasetOption:
    name: str
    type: type
    default: Any
    help: str


_COMMON_OPTIONS = [
    DatasetOption("repeat", bool, False,
                  "repeat the dataset when the desired size is more than twice its natural size"),
    DatasetOption("balance", bool, False,
                  "oversample smaller classes up to the size of the largest one"),
]

_GENERATOR_OPTIONS = [
    DatasetOption("noise", float, 0.0, "relative amplitude of gaussian noise added to each example"),
    DatasetOption("inductivity", bool, False, "add a small series inductance to every circuit"),
]

DATASET_OPTIONS: Dict[DatasetKind, List[DatasetOption]] = {
    DatasetKind.GEN: _GENERATOR_OPTIONS + _COMMON_OPTIONS,
    DatasetKind.GEN_NOISE: list(_COMMON_OPTIONS),
    DatasetKind.PASSFAIL: _GENERATOR_OPTIONS + [
        DatasetOption("garbage", float, 0.01, "probability a failing example is pure noise"),
        DatasetOption("distortion", float, 0.02, "maximum extra distortion of failing examples"),
    ] + _COMMON_OPTIONS,
    DatasetKind.REGRESSION: [
        DatasetOption("noise", float, 0.0, "relative amplitude of gaussian noise added to each example"),
        DatasetOption("drt", bool, False, "emit the distribution of relaxation times instead of impedance"),
        DatasetOption("max_iterations", int, 1000, "iteration limit of the DRT solver"),
    ] + _COMMON_OPTIONS,
    DatasetKind.DIR: list(_COMMON_OPTIONS),
    DatasetKind.TAR: list(_COMMON_OPTIONS),
}

DATASET_DESCRIPTIONS: Dict[DatasetKind, str] = {
    DatasetKind.GEN: ("Simulates spectra from equivalent circuit models. The source is a file "
                      "with one model per line, or a model string."),
    DatasetKind.GEN_NOISE: ("Simulates measurement-like spectra: a few distinct sweep steps per "
                            "model, each example a new realistic noise realization."),
    DatasetKind.PASSFAIL: ("Pass/fail classification built on the generator: half the examples "
                           "are distorted (Fail), half untouched (Pass)."),
    DatasetKind.REGRESSION: ("Sweeps one circuit model and labels every example with its "
                             "parameter values."),
    DatasetKind.DIR: "Loads every *.csv spectrum file in a directory.",
    DatasetKind.TAR: "Loads every spectrum file in a .tar or .tar.gz archive.",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _convert(option: DatasetOption, value: str) -> Any:
    if option.type is bool:
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"Option {option.name} expects a boolean, got '{value}'")
    try:
        return option.type(value)
    except ValueError:
        raise ValueError(
            f"Option {option.name} expects {option.type.__name__}, got '{value}'"
        ) from None


def parse_dataset_options(kind: DatasetKind, text: str = "") -> Dict[str, Any]:
    """
    Parse an option string for ``kind``.

    Returns:
        Every declared option of the kind, with defaults for those not given

    Raises:
        ValueError: for unknown keys, missing values or badly typed values
    """
    declared = {option.name: option for option in DATASET_OPTIONS[kind]}
    result = {name: option.default for name, option in declared.items()}

    for item in (text or "").split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, value = item.partition("=")
        key = key.strip()
        option = declared.get(key)
        if option is None:
            valid = ", ".join(sorted(declared))
            raise ValueError(f"Unknown option '{key}' for dataset {kind.value} (valid: {valid})")
        if not sep:
            if option.type is not bool:
                raise ValueError(f"Option {key} needs a value")
            result[key] = True
        else:
            result[key] = _convert(option, value)

    return result


def describe_dataset_kind(kind: DatasetKind) -> str:
    """Human readable help for one dataset kind and its options."""
    lines = [f"{kind.value}: {DATASET_DESCRIPTIONS[kind]}", "  options:"]
    for option in DATASET_OPTIONS[kind]:
        lines.append(f"    {option.name} ({option.type.__name__}, default {option.default}): "
                     f"{option.help}")
    return "\n".join(lines)
