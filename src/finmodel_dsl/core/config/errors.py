# src/finmodel_dsl/core/config/errors.py
"""
Canonical exceptions of the configuration layer.

These exceptions represent explicit structural violations found while
loading or merging engine configuration, never step or model errors.

Invariants:
    - Every configuration exception inherits from `ConfigError`
    - No exception here represents a model validation or execution failure

Explicit limits:
    - No fallback or recovery
    - No dependency on the engine, validator or primitives
"""


class ConfigError(Exception):
    """
    Base exception for configuration errors.

    Lets callers catch every load/merge failure at once while keeping
    configuration failures apart from run failures.
    """


class DefaultsNotFoundError(ConfigError):
    """
    Raised when the defaults file does not exist at the given path.

    The defaults file is mandatory: without it there is no effective
    configuration.
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Raised when the configuration file extension is not supported.

    Supported formats (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """
    Raised when the configuration root is not a mapping.

    Lists or scalars at the root are rejected, never wrapped.
    """


class ConfigTypeConflictError(ConfigError):
    """
    Raised when a key has incompatible types between base and override.

    Example:
        - base:     {"engine": {"default_timeout_ms": 30000}}
        - override: {"engine": "fast"}

    No partial merge is produced and no coercion is attempted.
    """
