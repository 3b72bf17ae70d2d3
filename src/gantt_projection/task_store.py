from __future__ import annotations

from typing import Iterable, Protocol

from .dependency_graph import AdjacencyIndex
from .errors import DuplicateEdge
from .task_models import DependencyEdge, Task


class TaskStore(Protocol):
    """Persistence collaborator the dependency core reads from and writes edges to."""

    def find_task(self, task_id: str) -> Task | None: ...

    def find_edge(self, prerequisite_id: str, dependent_id: str) -> DependencyEdge | None: ...

    def get_edge(self, edge_id: str) -> DependencyEdge | None: ...

    def list_edges_by_dependent(self, task_id: str) -> list[DependencyEdge]: ...

    def list_edges_by_prerequisite(self, task_id: str) -> list[DependencyEdge]: ...

    def insert_edge(self, edge: DependencyEdge) -> DependencyEdge: ...

    def delete_edge(self, edge_id: str) -> bool: ...


class InMemoryTaskStore:
    """
    Dict-backed `TaskStore`.

    Edges are indexed by both endpoints as they are inserted and deleted, so
    traversals never rescan the whole edge table. Deleting a task cascades to
    its edges the way a foreign key with ON DELETE CASCADE would.
    """

    def __init__(self, tasks: Iterable[Task] = (), edges: Iterable[DependencyEdge] = ()) -> None:
        self._tasks: dict[str, Task] = {}
        self._edges: dict[str, DependencyEdge] = {}
        self._index = AdjacencyIndex()
        for task in tasks:
            self.add_task(task)
        for edge in edges:
            self.insert_edge(edge)

    # Tasks

    def add_task(self, task: Task) -> Task:
        if task.id in self._tasks:
            raise ValueError(f"Duplicate task id '{task.id}'")
        self._tasks[task.id] = task
        return task

    def remove_task(self, task_id: str) -> list[DependencyEdge]:
        """Delete the task and every edge touching it; return the removed edges."""
        self._tasks.pop(task_id, None)
        dropped = self._index.drop_task(task_id)
        for edge in dropped:
            self._edges.pop(edge.id, None)
        return dropped

    def find_task(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def all_tasks(self) -> list[Task]:
        return list(self._tasks.values())

    # Edges

    def find_edge(self, prerequisite_id: str, dependent_id: str) -> DependencyEdge | None:
        return self._index.find(prerequisite_id, dependent_id)

    def get_edge(self, edge_id: str) -> DependencyEdge | None:
        return self._edges.get(edge_id)

    def list_edges_by_dependent(self, task_id: str) -> list[DependencyEdge]:
        return self._index.by_dependent(task_id)

    def list_edges_by_prerequisite(self, task_id: str) -> list[DependencyEdge]:
        return self._index.by_prerequisite(task_id)

    def all_edges(self) -> list[DependencyEdge]:
        return list(self._edges.values())

    def insert_edge(self, edge: DependencyEdge) -> DependencyEdge:
        # Unique (prerequisite_id, dependent_id), as the backing table enforces.
        existing = self._index.find(edge.prerequisite_id, edge.dependent_id)
        if existing is not None:
            raise DuplicateEdge(edge.prerequisite_id, edge.dependent_id, existing.id)
        if edge.id in self._edges:
            raise ValueError(f"Duplicate edge id '{edge.id}'")
        self._edges[edge.id] = edge
        self._index.add(edge)
        return edge

    def delete_edge(self, edge_id: str) -> bool:
        edge = self._edges.pop(edge_id, None)
        if edge is None:
            return False
        self._index.discard(edge)
        return True
