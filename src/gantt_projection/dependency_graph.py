from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Mapping

from .errors import (
    Cycle,
    CycleDetected,
    DuplicateEdge,
    InvalidDependencyType,
    SelfDependency,
    TaskNotFound,
)
from .task_models import DependencyEdge, DependencyType, EdgeListing

if TYPE_CHECKING:
    from .task_store import TaskStore


logger = logging.getLogger(__name__)

PrerequisitesOf = Callable[[str], Iterable[str]]
"""Returns the ids a task directly depends on."""


class AdjacencyIndex:
    """
    In-memory index of dependency edges keyed by both endpoints.

    Lists keep insertion order so listings stay stable across mutations.
    """

    def __init__(self) -> None:
        self._by_dependent: dict[str, list[DependencyEdge]] = {}
        self._by_prerequisite: dict[str, list[DependencyEdge]] = {}

    @classmethod
    def from_edges(cls, edges: Iterable[DependencyEdge]) -> "AdjacencyIndex":
        index = cls()
        for edge in edges:
            index.add(edge)
        return index

    @classmethod
    def from_prerequisites(cls, prerequisites: Mapping[str, Iterable[str]]) -> "AdjacencyIndex":
        """Build from `{dependent_id: [prerequisite_id, ...]}`, e.g. a fetched task list."""
        index = cls()
        for dependent_id, prerequisite_ids in prerequisites.items():
            for prerequisite_id in prerequisite_ids:
                index.add(
                    DependencyEdge(
                        id=f"{prerequisite_id}->{dependent_id}",
                        prerequisite_id=prerequisite_id,
                        dependent_id=dependent_id,
                    )
                )
        return index

    def add(self, edge: DependencyEdge) -> None:
        self._by_dependent.setdefault(edge.dependent_id, []).append(edge)
        self._by_prerequisite.setdefault(edge.prerequisite_id, []).append(edge)

    def discard(self, edge: DependencyEdge) -> None:
        _remove_from(self._by_dependent, edge.dependent_id, edge)
        _remove_from(self._by_prerequisite, edge.prerequisite_id, edge)

    def drop_task(self, task_id: str) -> list[DependencyEdge]:
        """Remove every edge touching `task_id` and return them."""
        dropped = list(self._by_dependent.get(task_id, [])) + list(self._by_prerequisite.get(task_id, []))
        for edge in dropped:
            self.discard(edge)
        return dropped

    def find(self, prerequisite_id: str, dependent_id: str) -> DependencyEdge | None:
        for edge in self._by_dependent.get(dependent_id, []):
            if edge.prerequisite_id == prerequisite_id:
                return edge
        return None

    def by_dependent(self, task_id: str) -> list[DependencyEdge]:
        return list(self._by_dependent.get(task_id, []))

    def by_prerequisite(self, task_id: str) -> list[DependencyEdge]:
        return list(self._by_prerequisite.get(task_id, []))

    def prerequisites_of(self, task_id: str) -> list[str]:
        return [edge.prerequisite_id for edge in self._by_dependent.get(task_id, [])]


def find_dependency_path(start: str, target: str, prerequisites_of: PrerequisitesOf) -> list[str] | None:
    """
    Return a chain `start -> ... -> target` following depends-on links, or None.

    Depth-first with an explicit stack. A node already visited is skipped but
    the walk goes on with the remaining branches, so a revisit never ends the
    search early. Work is bounded by the edges reachable from `start`.
    """

    if start == target:
        return [start]

    parents: dict[str, str | None] = {start: None}
    stack = [start]
    while stack:
        current = stack.pop()
        for prerequisite_id in prerequisites_of(current):
            if prerequisite_id in parents:
                continue
            parents[prerequisite_id] = current
            if prerequisite_id == target:
                return _unwind(parents, target)
            stack.append(prerequisite_id)
    return None


def reaches(start: str, target: str, prerequisites_of: PrerequisitesOf) -> bool:
    """True when `start` transitively depends on `target`."""
    return find_dependency_path(start, target, prerequisites_of) is not None


def would_create_cycle(prerequisite_id: str, dependent_id: str, prerequisites_of: PrerequisitesOf) -> bool:
    """
    True when making `dependent_id` wait on `prerequisite_id` closes a loop.

    That is the case when the prerequisite already depends, directly or
    transitively, on the dependent. A self-dependency is the degenerate loop.
    """
    return reaches(prerequisite_id, dependent_id, prerequisites_of)


def would_create_cycle_in_tasks(
    prerequisites: Mapping[str, Iterable[str]], prerequisite_id: str, dependent_id: str
) -> bool:
    """Cycle check over an already materialised `{task_id: [prerequisite ids]}` mapping."""
    index = AdjacencyIndex.from_prerequisites(prerequisites)
    return would_create_cycle(prerequisite_id, dependent_id, index.prerequisites_of)


def coerce_dependency_type(value: DependencyType | str | None) -> DependencyType:
    if value is None:
        return DependencyType.FINISH_TO_START
    if isinstance(value, DependencyType):
        return value
    try:
        return DependencyType(value)
    except ValueError as exc:
        allowed = ", ".join(kind.value for kind in DependencyType)
        raise InvalidDependencyType(f"Unknown dependency type {value!r}; expected one of: {allowed}") from exc


class DependencyGraph:
    """
    Edge set of one workspace, guarded against self-loops, duplicates and cycles.

    Every mutation runs its check-then-write sequence inside the workspace
    lock, so two concurrent insertions that would only form a cycle together
    cannot both commit. Reads take the same lock and never observe a write
    halfway through its check.
    """

    def __init__(self, store: "TaskStore", workspace_id: str = "default") -> None:
        self.store = store
        self.workspace_id = workspace_id
        self._lock = threading.RLock()

    def add_dependency(
        self,
        prerequisite_id: str,
        dependent_id: str,
        type: DependencyType | str | None = DependencyType.FINISH_TO_START,
        edge_id: str | None = None,
    ) -> DependencyEdge:
        """Validate and insert the edge `prerequisite_id -> dependent_id`; return it."""

        kind = coerce_dependency_type(type)
        if prerequisite_id == dependent_id:
            logger.debug("[%s] rejected self-dependency on %s", self.workspace_id, dependent_id)
            raise SelfDependency(dependent_id)

        with self._lock:
            if self.store.find_task(prerequisite_id) is None:
                raise TaskNotFound(prerequisite_id, role="prerequisite task")
            if self.store.find_task(dependent_id) is None:
                raise TaskNotFound(dependent_id, role="dependent task")

            existing = self.store.find_edge(prerequisite_id, dependent_id)
            if existing is not None:
                logger.debug(
                    "[%s] rejected duplicate %s -> %s", self.workspace_id, prerequisite_id, dependent_id
                )
                raise DuplicateEdge(prerequisite_id, dependent_id, existing.id)

            path = find_dependency_path(prerequisite_id, dependent_id, self._prerequisites_of)
            if path is not None:
                # The existing chain runs prerequisite -> ... -> dependent; the new edge closes it.
                cycle = Cycle(path + [prerequisite_id])
                logger.debug("[%s] rejected cycle %s", self.workspace_id, cycle)
                raise CycleDetected(prerequisite_id, dependent_id, cycle)

            edge = DependencyEdge(
                id=edge_id or uuid.uuid4().hex,
                prerequisite_id=prerequisite_id,
                dependent_id=dependent_id,
                type=kind,
            )
            stored = self.store.insert_edge(edge)

        logger.info(
            "[%s] added dependency %s -> %s (%s)",
            self.workspace_id,
            stored.prerequisite_id,
            stored.dependent_id,
            stored.type.value,
        )
        return stored

    def remove_dependency(
        self,
        edge_id: str | None = None,
        *,
        prerequisite_id: str | None = None,
        dependent_id: str | None = None,
    ) -> DependencyEdge | None:
        """
        Delete one edge, selected by id or by its ordered pair.

        Returns the removed edge, or None when nothing matched.
        """

        by_pair = prerequisite_id is not None or dependent_id is not None
        if edge_id is not None and by_pair:
            raise ValueError("select the edge either by id or by (prerequisite_id, dependent_id), not both")
        if edge_id is None and (prerequisite_id is None or dependent_id is None):
            raise ValueError("an edge id or both prerequisite_id and dependent_id are required")

        with self._lock:
            if edge_id is not None:
                edge = self.store.get_edge(edge_id)
            else:
                edge = self.store.find_edge(prerequisite_id, dependent_id)
            if edge is None:
                return None
            self.store.delete_edge(edge.id)

        logger.info(
            "[%s] removed dependency %s -> %s", self.workspace_id, edge.prerequisite_id, edge.dependent_id
        )
        return edge

    def list_edges(self, task_id: str) -> EdgeListing:
        """Edges where the task waits (`prerequisites`) and where others wait on it (`dependents`)."""
        with self._lock:
            return EdgeListing(
                prerequisites=tuple(self.store.list_edges_by_dependent(task_id)),
                dependents=tuple(self.store.list_edges_by_prerequisite(task_id)),
            )

    @contextmanager
    def reading(self) -> Iterator["TaskStore"]:
        """Hold the workspace lock while a caller reads several edges from the store.

        The lock is reentrant, so the same thread may add or remove edges
        inside the block.
        """
        with self._lock:
            yield self.store

    def would_create_cycle(self, prerequisite_id: str, dependent_id: str) -> bool:
        """Read-only check, e.g. to grey out invalid choices in a picker."""
        with self._lock:
            return would_create_cycle(prerequisite_id, dependent_id, self._prerequisites_of)

    def _prerequisites_of(self, task_id: str) -> list[str]:
        return [edge.prerequisite_id for edge in self.store.list_edges_by_dependent(task_id)]


class GraphRegistry:
    """One graph, and therefore one lock, per workspace id."""

    def __init__(self, store_factory: Callable[[str], "TaskStore"]) -> None:
        self._store_factory = store_factory
        self._graphs: dict[str, DependencyGraph] = {}
        self._lock = threading.Lock()

    def graph_for(self, workspace_id: str) -> DependencyGraph:
        with self._lock:
            graph = self._graphs.get(workspace_id)
            if graph is None:
                graph = DependencyGraph(self._store_factory(workspace_id), workspace_id)
                self._graphs[workspace_id] = graph
            return graph

    def workspaces(self) -> list[str]:
        with self._lock:
            return list(self._graphs)


def _unwind(parents: dict[str, str | None], node: str) -> list[str]:
    chain: list[str] = []
    current: str | None = node
    while current is not None:
        chain.append(current)
        current = parents[current]
    chain.reverse()
    return chain


def _remove_from(buckets: dict[str, list[DependencyEdge]], key: str, edge: DependencyEdge) -> None:
    bucket = buckets.get(key)
    if not bucket:
        return
    bucket[:] = [existing for existing in bucket if existing.id != edge.id]
    if not bucket:
        del buckets[key]
