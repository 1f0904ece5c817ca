# src/finmodel_dsl/core/config/hashing.py
"""
Canonical hashing.

One serialization policy is shared by every fingerprint in the package:
the effective engine configuration, model fingerprints and cache keys for
model runs.

Hashing policy (v1):
    - Canonical JSON (sorted keys, compact separators, UTF-8)
    - SHA-256, hex digest (64 chars)
    - Non-JSON values (dates, tuples) are rendered with `str`
"""

import hashlib
import json
from typing import Any, Dict


def canonical_json(value: Any) -> str:
    """Serialize `value` to the canonical JSON form used for hashing."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def canonical_hash(value: Any) -> str:
    """SHA-256 hex digest of `canonical_json(value)`."""
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Deterministic fingerprint of an effective configuration.

    Structurally equivalent configurations produce the same hash,
    independent of the original key order.

    Raises:
        TypeError: If `config` is not a dict.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config to hash must be a dict, got: {type(config).__name__}"
        )

    return canonical_hash(config)
