# src/finmodel_dsl/core/pipeline/registry.py
"""
Primitive registry.

This module defines `PrimitiveRegistry`, the read-only map from operation
name to Primitive consulted by the validator and the executor.

The registry is populated once, then frozen. After freezing it is safe to
share across concurrent runs without locking, because nothing mutates it.

Responsibilities:
    - Enforce unique operation names
    - Preserve registration order (for category listings)
    - Fail explicitly on unknown names, listing every valid name

Invariants:
    - Each name maps to exactly one Primitive
    - A frozen registry never changes
    - `names()` is sorted

Explicit limits:
    - Does not validate step params
    - Does not execute primitives
    - Does not know about models or runs
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from finmodel_dsl.core.exceptions import UnknownOperationError

from .primitive import Primitive


class DuplicatePrimitiveError(ValueError):
    """
    Raised when two primitives are registered under the same name.

    A duplicate name is a fatal configuration error: no partial
    registration is kept and no automatic renaming is attempted.
    """


class RegistryFrozenError(RuntimeError):
    """Raised when registering into a registry that has been frozen."""


@dataclass
class PrimitiveRegistry:
    """
    Canonical name → Primitive map.

    Invariants:
        - Each `name` is unique in the registry
        - Only objects conforming to `Primitive` are stored
        - After `freeze()` the content is immutable
    """

    _primitives: Dict[str, Primitive] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)
    _frozen: bool = field(default=False, init=False, repr=False)

    def add(self, primitive: Primitive) -> None:
        if self._frozen:
            raise RegistryFrozenError("Primitive registry is frozen")

        if not isinstance(primitive, Primitive):
            raise TypeError(f"not a primitive: {primitive!r}")

        name = getattr(primitive, "name", None)
        if not isinstance(name, str) or not name.strip():
            raise ValueError("primitive.name must be a non-empty string")

        if name in self._primitives:
            raise DuplicatePrimitiveError(f"Duplicate primitive operation: {name}")

        self._primitives[name] = primitive
        self._order.append(name)

    def extend(self, primitives: Iterable[Primitive]) -> None:
        for p in primitives:
            self.add(p)

    def freeze(self) -> "PrimitiveRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def has(self, name: str) -> bool:
        return name in self._primitives

    def get(self, name: str) -> Primitive:
        try:
            return self._primitives[name]
        except KeyError:
            available = self.names()
            raise UnknownOperationError(
                message=(
                    f'Unknown primitive operation: "{name}". '
                    f"Available operations: {', '.join(available)}"
                ),
                details={"operation": name, "available": available},
                hint="Use one of the registered primitive operations.",
            ) from None

    def names(self) -> List[str]:
        return sorted(self._primitives)

    def by_category(self) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {}
        for name in self._order:
            out.setdefault(self._primitives[name].category, []).append(name)
        return out

    def __contains__(self, name: object) -> bool:
        return name in self._primitives

    def __len__(self) -> int:
        return len(self._primitives)
