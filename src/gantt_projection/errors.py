from __future__ import annotations

from dataclasses import dataclass


class GanttError(Exception):
    """Base class for every error raised by this package."""


class GraphIntegrityError(GanttError):
    """Raised when a proposed dependency would break the graph invariants."""

    def __init__(self, message: str, prerequisite_id: str, dependent_id: str) -> None:
        super().__init__(message)
        self.prerequisite_id = prerequisite_id
        self.dependent_id = dependent_id


class SelfDependency(GraphIntegrityError):
    """Prerequisite and dependent are the same task."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task '{task_id}' cannot depend on itself", task_id, task_id)


class DuplicateEdge(GraphIntegrityError):
    """The ordered pair already has an edge."""

    def __init__(self, prerequisite_id: str, dependent_id: str, existing_id: str) -> None:
        super().__init__(
            f"Dependency '{prerequisite_id}' -> '{dependent_id}' already exists (edge '{existing_id}')",
            prerequisite_id,
            dependent_id,
        )
        self.existing_id = existing_id


@dataclass(frozen=True)
class Cycle:
    """Represents a detected cycle path for error reporting."""

    path: list[str]

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return " -> ".join(self.path)


class CycleDetected(GraphIntegrityError):
    """Inserting the edge would close a loop."""

    def __init__(self, prerequisite_id: str, dependent_id: str, cycle: Cycle | None = None) -> None:
        detail = f": {cycle}" if cycle else ""
        super().__init__(
            f"Dependency '{prerequisite_id}' -> '{dependent_id}' would create a cycle{detail}",
            prerequisite_id,
            dependent_id,
        )
        self.cycle = cycle


class TaskNotFound(GanttError, LookupError):
    """A task id does not resolve through the task store."""

    def __init__(self, task_id: str, role: str = "task") -> None:
        super().__init__(f"Unknown {role} '{task_id}'")
        self.task_id = task_id
        self.role = role


class EdgeNotFound(GanttError, LookupError):
    """A deletion selector matched no edge."""

    def __init__(self, selector: object) -> None:
        super().__init__(f"No dependency matches {selector!r}")
        self.selector = selector


class InvalidWindow(GanttError, ValueError):
    """Malformed scale, reference instant or window bounds."""


class InvalidDependencyType(GanttError, ValueError):
    """The dependency type is not one of the supported kinds."""


class WorkspaceValidationError(GanttError):
    """Raised when a workspace file is invalid (bad shape, unknown refs, broken graph)."""
