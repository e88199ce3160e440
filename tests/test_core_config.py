"""Tests for AggregationConfig.

Tests configuration validation, defaults and presets.
"""

from __future__ import annotations

import dataclasses

import pytest

from htskit import AggregationConfig


class TestAggregationConfigValidation:
    """Test config validation."""

    def test_valid_config(self):
        """Create valid config."""
        config = AggregationConfig(missing_policy="error", max_workers=4)
        assert config.missing_policy == "error"
        assert config.max_workers == 4

    def test_invalid_missing_policy(self):
        """missing_policy must be zero or error."""
        with pytest.raises(ValueError, match="missing_policy"):
            AggregationConfig(missing_policy="ffill")

    def test_invalid_bottom_order(self):
        """bottom_order must be first_seen or sorted."""
        with pytest.raises(ValueError, match="bottom_order"):
            AggregationConfig(bottom_order="random")

    def test_empty_total_label(self):
        """total_label cannot be empty."""
        with pytest.raises(ValueError, match="total_label"):
            AggregationConfig(total_label="")

    def test_empty_separator(self):
        """Separators cannot be empty."""
        with pytest.raises(ValueError, match="separators"):
            AggregationConfig(path_separator="")

    def test_max_workers_zero(self):
        """max_workers must be at least 1."""
        with pytest.raises(ValueError, match="max_workers must be at least 1"):
            AggregationConfig(max_workers=0)

    def test_min_periods_per_worker_zero(self):
        """min_periods_per_worker must be at least 1."""
        with pytest.raises(ValueError, match="min_periods_per_worker"):
            AggregationConfig(min_periods_per_worker=0)


class TestAggregationConfigDefaults:
    """Test config defaults."""

    def test_defaults(self):
        """Zero-fill, first-seen order, Total labels."""
        config = AggregationConfig()
        assert config.missing_policy == "zero"
        assert config.bottom_order == "first_seen"
        assert config.total_label == "Total"
        assert config.path_separator == "/"
        assert config.group_separator == "::"
        assert config.max_workers is None

    def test_frozen(self):
        """Config is immutable."""
        config = AggregationConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.missing_policy = "error"


class TestAggregationConfigPresets:
    """Test presets."""

    def test_strict(self):
        """Strict preset fails on gaps."""
        assert AggregationConfig.strict().missing_policy == "error"

    def test_sorted_bottom(self):
        """Sorted preset orders bottom series by key."""
        assert AggregationConfig.sorted_bottom().bottom_order == "sorted"

    def test_with_workers(self):
        """with_workers returns a modified copy."""
        config = AggregationConfig.strict()
        parallel = config.with_workers(3)
        assert parallel.max_workers == 3
        assert parallel.missing_policy == "error"
        assert config.max_workers is None
