"""Engine configuration, read from the environment.

This is the only module that reads environment variables. Everything else
receives a CortexConfig through its constructor.
"""

import logging
import os
from dataclasses import dataclass, field, replace

from .errors import CortexError, CortexErrorCode

DEFAULT_CORE_MODEL = "anthropic.claude-opus-4-1-20250805-v1:0"

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE_VALUES


def _env_number(name: str, default: str, kind):
    raw = os.getenv(name, default)
    try:
        return kind(raw)
    except ValueError:
        raise CortexError(
            CortexErrorCode.CONFIGURATION_ERROR,
            f"Invalid value for {name}: {raw!r}",
            context={"variable": name, "value": raw},
        ) from None


@dataclass(frozen=True)
class CortexConfig:
    """Settings for CortexCore and its cache.

    Environment:
    - CORTEX_CORE_MODEL: model id handed to the invoker in answer mode
    - CORTEX_CACHE_ENABLED: turn the processing cache on/off
    - CORTEX_CACHE_MAX_ENTRIES / CORTEX_CACHE_TTL_SECONDS: cache bounds
    - CORTEX_MIN_SEMANTIC_INTEGRITY: compressions scoring below this are
      discarded and the input returned unchanged
    - CORTEX_DEBUG: "1" lowers the cortex logger to DEBUG
    """

    core_model: str = field(
        default_factory=lambda: os.getenv("CORTEX_CORE_MODEL", DEFAULT_CORE_MODEL)
    )
    cache_enabled: bool = field(default_factory=lambda: _env_bool("CORTEX_CACHE_ENABLED", "true"))
    cache_max_entries: int = field(
        default_factory=lambda: _env_number("CORTEX_CACHE_MAX_ENTRIES", "500", int)
    )
    cache_ttl_seconds: float = field(
        default_factory=lambda: _env_number("CORTEX_CACHE_TTL_SECONDS", "1800", float)
    )
    min_semantic_integrity: float = field(
        default_factory=lambda: _env_number("CORTEX_MIN_SEMANTIC_INTEGRITY", "0.0", float)
    )
    debug: bool = field(default_factory=lambda: _env_bool("CORTEX_DEBUG", "0"))

    def __post_init__(self):
        if self.cache_max_entries < 1:
            raise CortexError(
                CortexErrorCode.CONFIGURATION_ERROR,
                f"cache_max_entries must be >= 1, got {self.cache_max_entries}",
            )
        if self.cache_ttl_seconds <= 0:
            raise CortexError(
                CortexErrorCode.CONFIGURATION_ERROR,
                f"cache_ttl_seconds must be > 0, got {self.cache_ttl_seconds}",
            )
        if not 0.0 <= self.min_semantic_integrity <= 1.0:
            raise CortexError(
                CortexErrorCode.CONFIGURATION_ERROR,
                f"min_semantic_integrity must be within [0, 1], got {self.min_semantic_integrity}",
            )

    @classmethod
    def from_env(cls) -> "CortexConfig":
        return cls()

    def with_overrides(self, **overrides) -> "CortexConfig":
        return replace(self, **overrides)


def configure_logging(config: CortexConfig) -> logging.Logger:
    """Set the package logger level from config.debug and return it."""
    log = logging.getLogger("cortex")
    log.setLevel(logging.DEBUG if config.debug else logging.INFO)
    return log
