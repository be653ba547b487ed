"""
Cycle guard for the task dependency graph.

An edge ``task -> depends_on`` means the task cannot complete before the
task it depends on. The graph of one project must stay acyclic, so before a
new edge is inserted we ask whether ``depends_on`` can already reach
``task``; if it can, the new edge would close a loop.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Hashable, Iterable, TypeVar

NodeId = TypeVar("NodeId", bound=Hashable)


def would_create_cycle(
    task_id: NodeId,
    depends_on_id: NodeId,
    fetch_dependencies: Callable[[NodeId], Iterable[NodeId]],
) -> bool:
    """Return True if adding ``task_id -> depends_on_id`` would create a cycle.

    Depth-first search from ``depends_on_id`` along existing "depends on"
    edges, looking for ``task_id``. Each node is expanded at most once, so
    diamonds and any pre-existing cycles terminate. Iterative, O(V + E).

    The caller rejects self-dependencies before calling this.
    """
    visited: set[NodeId] = set()
    stack: list[NodeId] = [depends_on_id]
    while stack:
        current = stack.pop()
        if current == task_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        stack.extend(n for n in fetch_dependencies(current) if n not in visited)
    return False


def build_adjacency(
    edges: Iterable[tuple[NodeId, NodeId]],
) -> dict[NodeId, set[NodeId]]:
    """Group ``(task_id, depends_on_id)`` pairs into outgoing edge sets."""
    adjacency: dict[NodeId, set[NodeId]] = defaultdict(set)
    for task_id, depends_on_id in edges:
        adjacency[task_id].add(depends_on_id)
    return adjacency
