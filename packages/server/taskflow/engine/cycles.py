"""Cycle detection for candidate dependency edges."""
from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from taskflow.engine.graph import DependencyGraph


def find_cycle_path(
    graph: "DependencyGraph", source: str, target: str
) -> Optional[list[str]]:
    """Check if adding edge (source -> target) would create a cycle.

    Searches breadth-first from ``target`` through outgoing edges, i.e. over
    every task that depends on ``target`` directly or indirectly. If
    ``source`` is among them the new edge would make ``source`` depend on
    itself. Returns the cycle as ``[source, target, ..., source]`` or None.
    """
    if source == target:
        return [source, source]

    parents: dict[str, Optional[str]] = {target: None}
    queue = deque([target])
    while queue:
        node = queue.popleft()
        if node == source:
            path = []
            cursor: Optional[str] = node
            while cursor is not None:
                path.append(cursor)
                cursor = parents[cursor]
            path.reverse()
            return [source] + path
        for dependent in graph.dependents(node):
            if dependent not in parents:
                parents[dependent] = node
                queue.append(dependent)
    return None


def would_create_cycle(graph: "DependencyGraph", source: str, target: str) -> bool:
    return find_cycle_path(graph, source, target) is not None


def is_acyclic(graph: "DependencyGraph") -> bool:
    """Kahn's algorithm over the whole snapshot."""
    in_degree: dict[str, int] = {}
    for edge in graph.edges():
        in_degree.setdefault(edge.source, 0)
        in_degree[edge.target] = in_degree.get(edge.target, 0) + 1

    queue = deque(node for node, degree in in_degree.items() if degree == 0)
    seen = 0
    while queue:
        node = queue.popleft()
        seen += 1
        for dependent in graph.dependents(node):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)
    return seen == len(in_degree)
