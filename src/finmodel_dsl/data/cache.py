"""
In-process TTL cache for collaborator responses.

Entries expire `ttl_seconds` after they are written, measured with an
injectable monotonic clock. Expired entries are dropped lazily on read
and in bulk on every write. When `max_entries` is set, a write that
would exceed it evicts the oldest written entries first.

Values are deep-copied on the way in and out: a cached response can be
handed to several runs and none of them can alter what the others see.

Key builders produce the namespaced keys used by `DataGateway`:

    market:<symbol>:<interval>:<start>:<end>
    macro:<indicator>:<k=v&...>          (params sorted, None dropped)
    deriv:quote:<symbol>:<expiration>:<strike>:<type>
    deriv:chain:<symbol>:<expiration|all>
    model:run:<model_version_id>:<sha256 prefix of canonical inputs>
"""

from __future__ import annotations

import copy
import fnmatch
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from finmodel_dsl.core.config.hashing import canonical_hash


@dataclass(frozen=True)
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """Key → value map with per-entry expiry."""

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = 1024,
    ) -> None:
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._clock = clock
        self.max_entries = max_entries
        self._entries: Dict[str, _Entry] = {}

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return default
        return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.cleanup_expired()
        self._entries.pop(key, None)
        self._evict_if_needed()
        self._entries[key] = _Entry(
            value=copy.deepcopy(value),
            expires_at=self._clock() + float(ttl_seconds),
        )

    def _evict_if_needed(self) -> None:
        if self.max_entries is None:
            return
        # dicts keep write order; the first keys are the oldest
        while len(self._entries) >= self.max_entries:
            del self._entries[next(iter(self._entries))]

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate_pattern(self, pattern: str) -> int:
        """Drop every key matching the glob `pattern` (`*` wildcard)."""
        matched = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
        for k in matched:
            del self._entries[k]
        return len(matched)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def stats(self) -> Dict[str, int]:
        now = self._clock()
        active = sum(1 for e in self._entries.values() if e.expires_at > now)
        return {
            "size": len(self._entries),
            "active": active,
            "expired": len(self._entries) - active,
        }

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and entry.expires_at > self._clock()

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# Key builders
# ---------------------------------------------------------------------------

def market_data_key(symbol: str, start_date: str, end_date: str, interval: str = "day") -> str:
    return f"market:{symbol}:{interval}:{start_date}:{end_date}"


def macro_data_key(indicator: str, params: Optional[Mapping[str, Any]] = None) -> str:
    items = sorted((k, v) for k, v in (params or {}).items() if v is not None)
    return f"macro:{indicator}:" + "&".join(f"{k}={v}" for k, v in items)


def options_quote_key(symbol: str, expiration: str, strike: float, option_type: str) -> str:
    return f"deriv:quote:{symbol}:{expiration}:{strike:g}:{option_type}"


def options_chain_key(symbol: str, expiration: Optional[str] = None) -> str:
    return f"deriv:chain:{symbol}:{expiration or 'all'}"


def model_run_key(model_version_id: str, inputs: Mapping[str, Any]) -> str:
    return f"model:run:{model_version_id}:{canonical_hash(dict(inputs))[:16]}"
