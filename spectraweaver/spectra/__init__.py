"""
Spectrum representation, label canonicalization and per-example transforms.
"""

from .spectrum import Spectrum, SpectrumFormatError
from .registry import ModelRegistry, normalize_model_label, purge_param_brackets
from .processing import add_noise, filter_data, normalize, reduce_region, rescale

__all__ = [
    "Spectrum",
    "SpectrumFormatError",
    "ModelRegistry",
    "normalize_model_label",
    "purge_param_brackets",
    "add_noise",
    "filter_data",
    "normalize",
    "reduce_region",
    "rescale",
]
