import logging
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from cortex.config import DEFAULT_CORE_MODEL, CortexConfig, configure_logging
from cortex.errors import CortexError, CortexErrorCode

ENV_VARS = (
    "CORTEX_CORE_MODEL",
    "CORTEX_CACHE_ENABLED",
    "CORTEX_CACHE_MAX_ENTRIES",
    "CORTEX_CACHE_TTL_SECONDS",
    "CORTEX_MIN_SEMANTIC_INTEGRITY",
    "CORTEX_DEBUG",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = CortexConfig.from_env()
    assert config.core_model == DEFAULT_CORE_MODEL
    assert config.cache_enabled is True
    assert config.cache_max_entries == 500
    assert config.cache_ttl_seconds == 1800.0
    assert config.min_semantic_integrity == 0.0
    assert config.debug is False


def test_environment_overrides(clean_env):
    clean_env.setenv("CORTEX_CORE_MODEL", "other-model")
    clean_env.setenv("CORTEX_CACHE_ENABLED", "false")
    clean_env.setenv("CORTEX_CACHE_MAX_ENTRIES", "10")
    clean_env.setenv("CORTEX_DEBUG", "1")
    config = CortexConfig.from_env()
    assert config.core_model == "other-model"
    assert config.cache_enabled is False
    assert config.cache_max_entries == 10
    assert config.debug is True


def test_invalid_number_is_configuration_error(clean_env):
    clean_env.setenv("CORTEX_CACHE_MAX_ENTRIES", "lots")
    with pytest.raises(CortexError) as exc_info:
        CortexConfig.from_env()
    assert exc_info.value.code == CortexErrorCode.CONFIGURATION_ERROR


def test_out_of_range_values_rejected(clean_env):
    with pytest.raises(CortexError):
        CortexConfig(cache_max_entries=0)
    with pytest.raises(CortexError):
        CortexConfig(min_semantic_integrity=1.5)


def test_with_overrides_returns_copy(clean_env):
    config = CortexConfig.from_env()
    debug = config.with_overrides(debug=True)
    assert debug.debug is True
    assert config.debug is False


def test_configure_logging_levels(clean_env):
    config = CortexConfig.from_env()
    assert configure_logging(config.with_overrides(debug=True)).level == logging.DEBUG
    assert configure_logging(config).level == logging.INFO
    assert logging.getLogger("cortex").level == logging.INFO
