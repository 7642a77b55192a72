"""Dependency ordering for plan and apply."""

from __future__ import annotations

import heapq
from typing import TYPE_CHECKING

from foreman_provisioner.engine.errors import DependencyCycleError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class DependencyGraph:
    """Nodes (resource addresses) and the nodes each one depends on.

    Edges to nodes outside the graph are ignored.
    """

    def __init__(
        self,
        nodes: Iterable[str],
        dependencies: Mapping[str, Iterable[str]],
        priorities: Mapping[str, int] | None = None,
    ) -> None:
        self._nodes = set(nodes)
        self._priorities = dict(priorities or {})
        self._deps = {
            node: {d for d in dependencies.get(node, ()) if d in self._nodes and d != node}
            for node in self._nodes
        }

    def topological_order(self) -> list[str]:
        """Dependencies first; ties broken by priority, then address."""
        waiting = {node: len(deps) for node, deps in self._deps.items()}
        dependents: dict[str, list[str]] = {node: [] for node in self._nodes}
        for node, deps in self._deps.items():
            for dep in deps:
                dependents[dep].append(node)

        ready = [(self._priorities.get(n, 0), n) for n, count in waiting.items() if count == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            _, node = heapq.heappop(ready)
            order.append(node)
            for child in dependents[node]:
                waiting[child] -= 1
                if waiting[child] == 0:
                    heapq.heappush(ready, (self._priorities.get(child, 0), child))

        if len(order) != len(self._nodes):
            raise DependencyCycleError(sorted(self._nodes - set(order)))
        return order

    def reverse_topological_order(self) -> list[str]:
        return self.topological_order()[::-1]
