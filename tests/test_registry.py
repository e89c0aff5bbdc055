#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpectraWeaver v0.1.0

Tests for model label canonicalization, the model registry and flat index
resolution.

Author: SpectraWeaver Development Team
License: GNU General Public License v3 or later - See LICENSE
"""

import pytest

from spectraweaver.datasets.indexing import resolve_index
from spectraweaver.spectra.registry import (
    ModelRegistry,
    UNION_LABEL,
    normalize_model_label,
    purge_param_brackets,
    remove_series_resistance,
    split_series,
)


# ═══════════════════════════════════════════════════════════════════════
#  Label canonicalization
# ═══════════════════════════════════════════════════════════════════════

class TestNormalization:
    """Model string canonicalization."""

    def test_purge_brackets(self):
        assert purge_param_brackets("r{100}-r{10~1e4}c{1e-6}") == "r-rc"

    def test_split_series_respects_parentheses(self):
        assert split_series("r-r(r-c)-w") == ["r", "r(r-c)", "w"]

    def test_remove_leading_series_resistance(self):
        assert remove_series_resistance("r-rc") == "rc"
        assert remove_series_resistance("rc-r") == "rc"

    def test_only_resistors_keeps_one(self):
        assert remove_series_resistance("r-r") == "r"

    def test_case_whitespace_and_parameters(self):
        assert normalize_model_label(" R{5}-RC{1e-6} ") == "rc"

    def test_single_known_element_kept(self):
        for element in ("r", "c", "w", "p", "l"):
            assert normalize_model_label(element) == element

    def test_short_unknown_label_becomes_union(self):
        assert normalize_model_label("x") == UNION_LABEL
        assert normalize_model_label("") == UNION_LABEL


# ═══════════════════════════════════════════════════════════════════════
#  ModelRegistry
# ═══════════════════════════════════════════════════════════════════════

class TestModelRegistry:
    """First-seen class assignment."""

    def test_first_seen_order(self):
        registry = ModelRegistry()
        assert registry.intern("r-rc") == 0
        assert registry.intern("r-rp") == 1
        assert registry.intern("rc") == 0
        assert registry.intern("R{10}-RC") == 0
        assert len(registry) == 2
        assert registry.labels == ["rc", "rp"]

    def test_label_for_class(self):
        registry = ModelRegistry()
        registry.intern("r-rc")
        assert registry.label_for_class(0) == "rc"
        assert registry.label_for_class(5) == "invalid"
        assert registry.label_for_class(-1) == "invalid"

    def test_contains_and_index_of(self):
        registry = ModelRegistry()
        registry.intern("rc")
        assert "r-rc" in registry
        assert registry.index_of("r{1}-rc") == 0
        with pytest.raises(KeyError):
            registry.index_of("rp")


# ═══════════════════════════════════════════════════════════════════════
#  Index resolution
# ═══════════════════════════════════════════════════════════════════════

class TestResolveIndex:
    """Flat index to (sub-model, offset)."""

    @pytest.mark.parametrize("index,expected", [
        (0, (0, 0)),
        (2, (0, 2)),
        (3, (1, 0)),
        (7, (1, 4)),
        (8, (2, 0)),
        (9, (2, 1)),
    ])
    def test_examples(self, index, expected):
        assert resolve_index([3, 5, 2], index) == expected

    @pytest.mark.parametrize("index,expected", [
        (0, (0, 0)),
        (3, (1, 0)),
        (7, (2, 0)),
    ])
    def test_examples_with_shorter_middle_model(self, index, expected):
        assert resolve_index([3, 4, 2], index) == expected

    def test_past_end_with_shorter_middle_model(self):
        with pytest.raises(IndexError):
            resolve_index([3, 4, 2], 9)

    def test_past_end_raises(self):
        with pytest.raises(IndexError):
            resolve_index([3, 5, 2], 10)

    def test_negative_raises(self):
        with pytest.raises(IndexError):
            resolve_index([3, 5, 2], -1)

    def test_zero_count_models_are_skipped(self):
        assert resolve_index([0, 2, 0, 1], 2) == (3, 0)

# SpectraWeaver v0.1.0
# Any usage is subject to this software's license.
