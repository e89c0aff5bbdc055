#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Package initialization and version metadata.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

from .version import __version__

__all__ = ["__version__"]

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
