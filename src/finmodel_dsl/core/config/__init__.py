# src/finmodel_dsl/core/config/__init__.py

"""
Configuration layer.

Loads, merges and fingerprints engine configuration: default timeout,
debug tracing, DSL limits and data cache TTLs.

Principles:
    - Configuration is declarative and carries no model logic
    - Overrides are always explicit
    - The same inputs always produce the same configuration

Explicit limits:
    - Does not validate models
    - Does not execute anything
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .hashing import canonical_hash, canonical_json, compute_config_hash
from .loader import default_config, get_setting, load_config, resolve_config
from .merge import deep_merge

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "UnsupportedConfigFormatError",
    "canonical_hash",
    "canonical_json",
    "compute_config_hash",
    "default_config",
    "get_setting",
    "load_config",
    "resolve_config",
    "deep_merge",
]
