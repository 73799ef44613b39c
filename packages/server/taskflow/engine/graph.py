"""In-memory adjacency snapshot of a workspace's dependency edges."""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional

from taskflow.engine.cycles import find_cycle_path
from taskflow.engine.types import DependencyType, Edge
from taskflow.errors import (
    CircularDependencyError,
    DuplicateDependencyError,
    NotFoundError,
    SelfDependencyError,
)


class DependencyGraph:
    """Directed dependency graph keyed by task id.

    Outgoing edges of a task are its dependents, incoming edges its
    blockers. The graph is a snapshot: loading it once per operation replaces
    per-edge queries against the store.
    """

    def __init__(self, edges: Iterable[Edge] = ()):
        self._edges: dict[str, Edge] = {}
        self._pairs: dict[tuple[str, str], str] = {}
        self._outgoing: dict[str, list[Edge]] = defaultdict(list)
        self._incoming: dict[str, list[Edge]] = defaultdict(list)
        for edge in edges:
            self._insert(edge)

    def __len__(self) -> int:
        return len(self._edges)

    def __contains__(self, edge_id: str) -> bool:
        return edge_id in self._edges

    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    def get_edge(self, edge_id: str) -> Edge:
        edge = self._edges.get(edge_id)
        if edge is None:
            raise NotFoundError(f"Dependency {edge_id} not found")
        return edge

    def find_edge(self, source: str, target: str) -> Optional[Edge]:
        edge_id = self._pairs.get((source, target))
        return self._edges[edge_id] if edge_id else None

    def outgoing_edges(self, task_id: str) -> list[Edge]:
        """Edges where ``task_id`` is the source (its dependents)."""
        return list(self._outgoing.get(task_id, ()))

    def incoming_edges(self, task_id: str) -> list[Edge]:
        """Edges where ``task_id`` is the target (its blockers)."""
        return list(self._incoming.get(task_id, ()))

    def dependents(self, task_id: str) -> list[str]:
        return [e.target for e in self._outgoing.get(task_id, ())]

    def check_new_edge(self, source: str, target: str) -> None:
        """Raise if ``source -> target`` cannot be added.

        Self-loops are rejected before the reachability search runs.
        """
        if source == target:
            raise SelfDependencyError("A task cannot depend on itself")
        if (source, target) in self._pairs:
            raise DuplicateDependencyError("This dependency already exists")
        path = find_cycle_path(self, source, target)
        if path:
            raise CircularDependencyError(
                "Cannot create dependency: would create a cycle: "
                + " -> ".join(path),
                path=path,
            )

    def add_edge(
        self,
        edge_id: str,
        source: str,
        target: str,
        type: DependencyType = DependencyType.FINISH_TO_START,
    ) -> Edge:
        self.check_new_edge(source, target)
        edge = Edge(id=edge_id, source=source, target=target, type=DependencyType(type))
        self._insert(edge)
        return edge

    def remove_edge(self, edge_id: str) -> Edge:
        edge = self.get_edge(edge_id)
        del self._edges[edge_id]
        del self._pairs[(edge.source, edge.target)]
        self._outgoing[edge.source].remove(edge)
        self._incoming[edge.target].remove(edge)
        return edge

    def _insert(self, edge: Edge) -> None:
        # Snapshot loading trusts the store; validation happens in add_edge.
        self._edges[edge.id] = edge
        self._pairs[(edge.source, edge.target)] = edge.id
        self._outgoing[edge.source].append(edge)
        self._incoming[edge.target].append(edge)
