"""
Cycle detection over the step dependency graph.

The graph maps each step id to the ids listed in its `inputs`. A
depth-first walk tracks the current path; every back edge closes one
cycle, reported as the path from the re-entered step back to itself:

    Circular dependency detected: a -> b -> a

Invariants:
    - Each cycle is reported once, whatever step the walk started from
    - Edges to undeclared ids are ignored (reported elsewhere)
    - Walk order follows declaration order, so output is deterministic
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence, Set, Tuple


_WHITE, _GREY, _BLACK = 0, 1, 2


def _canonical(cycle: Sequence[str]) -> Tuple[str, ...]:
    """Rotation of `cycle` (without the closing node) starting at its smallest id."""
    nodes = list(cycle[:-1])
    pivot = nodes.index(min(nodes))
    return tuple(nodes[pivot:] + nodes[:pivot])


def find_cycles(graph: Mapping[str, Sequence[str]]) -> List[List[str]]:
    """
    Distinct cycles of `graph`, each as a closed path ``[a, b, ..., a]``.

    Args:
        graph: step id -> ids it depends on, in declaration order.
    """
    color: Dict[str, int] = {node: _WHITE for node in graph}
    seen: Set[Tuple[str, ...]] = set()
    cycles: List[List[str]] = []

    for root in graph:
        if color[root] != _WHITE:
            continue

        path: List[str] = [root]
        stack = [(root, iter(graph[root]))]
        color[root] = _GREY

        while stack:
            node, deps = stack[-1]
            advanced = False
            for dep in deps:
                if dep not in graph:
                    continue
                if color[dep] == _GREY:
                    cycle = path[path.index(dep):] + [dep]
                    key = _canonical(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
                elif color[dep] == _WHITE:
                    color[dep] = _GREY
                    path.append(dep)
                    stack.append((dep, iter(graph[dep])))
                    advanced = True
                    break
            if not advanced:
                color[node] = _BLACK
                path.pop()
                stack.pop()

    return cycles


def format_cycle(cycle: Sequence[str]) -> str:
    return "Circular dependency detected: " + " -> ".join(cycle)
