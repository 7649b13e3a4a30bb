"""Rules tables and engine configuration."""

from .context import EngineConfig, get_engine_config
from .loader import (
    DEFAULT_RULES_PATH,
    RulesConfig,
    RulesLoadError,
    RulesValidationError,
    load_rules,
)

__all__ = [
    "DEFAULT_RULES_PATH",
    "EngineConfig",
    "RulesConfig",
    "RulesLoadError",
    "RulesValidationError",
    "get_engine_config",
    "load_rules",
]
