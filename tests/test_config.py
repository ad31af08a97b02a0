"""
Unit tests for the config module.
"""
import os
import tempfile

import pytest

from xorfilter.config import FilterConfig


def test_default_config():
    """Test default construction settings."""
    config = FilterConfig()

    assert config.fingerprint_bits == 32
    assert config.load_factor == 1.23
    assert config.growth_factor == 1.15
    assert config.retries_per_size == 100
    assert config.max_attempts == 1000
    assert config.validate()


def test_invalid_config():
    """Test that invalid parameters raise errors."""
    with pytest.raises(ValueError):
        FilterConfig(fingerprint_bits=12).validate()

    with pytest.raises(ValueError):
        FilterConfig(load_factor=0.9).validate()

    with pytest.raises(ValueError):
        FilterConfig(growth_factor=1.0).validate()

    with pytest.raises(ValueError):
        FilterConfig(retries_per_size=0).validate()

    with pytest.raises(ValueError):
        FilterConfig(max_attempts=0).validate()


def test_initial_table_size():
    """Test the first-attempt table size."""
    config = FilterConfig()

    assert config.initial_table_size(1) == 3
    assert config.initial_table_size(2) == 3
    assert config.initial_table_size(100) == 123
    assert config.initial_table_size(10000) == 12300

    assert FilterConfig(load_factor=1.5).initial_table_size(10) == 15


def test_config_persistence():
    """Test saving and loading configuration."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "filter.json")

        config1 = FilterConfig(fingerprint_bits=8, retries_per_size=10, max_attempts=50)
        config1.to_file(path)

        config2 = FilterConfig.from_file(path)

    assert config2 == config1
    assert config2.fingerprint_bits == 8
