#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Version information.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

__version__ = "0.1.0"

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
