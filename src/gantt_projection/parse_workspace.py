from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .dependency_graph import DependencyGraph, coerce_dependency_type
from .errors import GanttError, WorkspaceValidationError
from .task_models import Task
from .task_store import InMemoryTaskStore


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable YAML path strings like tasks[0].start_date."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


@dataclass
class Workspace:
    """Tasks and dependency edges loaded from one workspace file."""

    name: str
    store: InMemoryTaskStore = field(default_factory=InMemoryTaskStore)
    meta: dict[str, Any] | None = None

    @property
    def task_ids(self) -> list[str]:
        return [task.id for task in self.store.all_tasks()]


_TASK_KEYS = {
    "id",
    "title",
    "type",
    "start_date",
    "end_date",
    "completed",
    "color",
    "progress",
    "project",
    "customer",
}
_GROUP_KEYS = {"id", "name"}
_DEPENDENCY_KEYS = {"id", "prerequisite", "dependent", "type"}


def load_workspace(path: str | Path) -> Workspace:
    """
    Load a Workspace from a YAML file.

    Every dependency goes through the same validation as an interactive
    insertion, so a file with a self-loop, duplicate or cycle is rejected.
    """

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    return parse_workspace(raw)


def parse_workspace(data: Any) -> Workspace:
    path = _Path()
    if not isinstance(data, dict):
        raise WorkspaceValidationError(f"{path}: expected mapping at top level")
    _assert_allowed_keys(data, {"workspace", "tasks", "dependencies"}, path)

    workspace_raw = data.get("workspace")
    if not isinstance(workspace_raw, dict):
        raise WorkspaceValidationError(f"{path}: missing required mapping 'workspace'")
    _assert_allowed_keys(workspace_raw, {"name", "meta"}, path.child("workspace"))
    name = _require_str(workspace_raw, "name", path.child("workspace"))
    meta = _parse_meta(workspace_raw.get("meta"), path.child("workspace.meta"))

    tasks_raw = data.get("tasks")
    if tasks_raw is None:
        raise WorkspaceValidationError(f"{path}: missing required field 'tasks'")
    if not isinstance(tasks_raw, list):
        raise WorkspaceValidationError(f"{path.child('tasks')}: expected list")

    store = InMemoryTaskStore()
    for idx, task_raw in enumerate(tasks_raw):
        task_path = path.child(f"tasks[{idx}]")
        task = _parse_task(task_raw, task_path)
        if store.find_task(task.id) is not None:
            raise WorkspaceValidationError(f"{task_path.child('id')}: duplicate task id '{task.id}'")
        store.add_task(task)

    dependencies_raw = data.get("dependencies", [])
    if dependencies_raw is None:
        dependencies_raw = []
    if not isinstance(dependencies_raw, list):
        raise WorkspaceValidationError(f"{path.child('dependencies')}: expected list")

    graph = DependencyGraph(store, workspace_id=name)
    for idx, dep_raw in enumerate(dependencies_raw):
        _parse_dependency(dep_raw, path.child(f"dependencies[{idx}]"), graph)

    return Workspace(name=name, store=store, meta=meta)


def save_workspace(path: str | Path, workspace: Workspace) -> None:
    """Write the workspace back in the format `load_workspace` reads."""

    payload: dict[str, Any] = {"workspace": {"name": workspace.name}}
    if workspace.meta:
        payload["workspace"]["meta"] = workspace.meta
    payload["tasks"] = [_dump_task(task) for task in workspace.store.all_tasks()]
    payload["dependencies"] = [
        {
            "id": edge.id,
            "prerequisite": edge.prerequisite_id,
            "dependent": edge.dependent_id,
            "type": edge.type.value,
        }
        for edge in workspace.store.all_edges()
    ]

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(payload, fh, sort_keys=False, allow_unicode=True)


def _parse_task(data: Any, path: _Path) -> Task:
    if not isinstance(data, dict):
        raise WorkspaceValidationError(f"{path}: expected mapping for task")
    _assert_allowed_keys(data, _TASK_KEYS, path)

    task_id = _require_id(data, "id", path)
    title = data.get("title", "")
    if not isinstance(title, str):
        raise WorkspaceValidationError(f"{path.child('title')}: expected string")
    task_type = data.get("type", "task")
    if not isinstance(task_type, str) or not task_type.strip():
        raise WorkspaceValidationError(f"{path.child('type')}: expected non-empty string")

    start_date = _parse_optional_date(data.get("start_date"), path.child("start_date"))
    end_date = _parse_optional_date(data.get("end_date"), path.child("end_date"))

    completed = data.get("completed", False)
    if not isinstance(completed, bool):
        raise WorkspaceValidationError(f"{path.child('completed')}: expected boolean")

    color = data.get("color")
    if color is not None and not isinstance(color, str):
        raise WorkspaceValidationError(f"{path.child('color')}: expected colour string")

    progress = data.get("progress", 0)
    if isinstance(progress, bool) or not isinstance(progress, int) or not 0 <= progress <= 100:
        raise WorkspaceValidationError(f"{path.child('progress')}: expected integer between 0 and 100")

    project_id, project_name = _parse_group_ref(data.get("project"), path.child("project"))
    customer_id, customer_name = _parse_group_ref(data.get("customer"), path.child("customer"))

    return Task(
        id=task_id,
        title=title,
        start_date=start_date,
        end_date=end_date,
        is_completed=completed,
        color=color,
        type=task_type,
        progress=progress,
        project_id=project_id,
        project_name=project_name,
        customer_id=customer_id,
        customer_name=customer_name,
    )


def _parse_dependency(data: Any, path: _Path, graph: DependencyGraph) -> None:
    if not isinstance(data, dict):
        raise WorkspaceValidationError(f"{path}: expected mapping for dependency")
    _assert_allowed_keys(data, _DEPENDENCY_KEYS, path)

    prerequisite = _require_id(data, "prerequisite", path)
    dependent = _require_id(data, "dependent", path)
    edge_id = data.get("id")
    if edge_id is not None and (not isinstance(edge_id, str) or not edge_id.strip()):
        raise WorkspaceValidationError(f"{path.child('id')}: expected non-empty string")

    try:
        kind = coerce_dependency_type(data.get("type"))
        graph.add_dependency(prerequisite, dependent, kind, edge_id=edge_id)
    except (GanttError, ValueError) as exc:
        raise WorkspaceValidationError(f"{path}: {exc}") from exc


def _dump_task(task: Task) -> dict[str, Any]:
    out: dict[str, Any] = {"id": task.id}
    if task.title:
        out["title"] = task.title
    if task.type != "task":
        out["type"] = task.type
    if task.start_date is not None:
        out["start_date"] = task.start_date
    if task.end_date is not None:
        out["end_date"] = task.end_date
    if task.is_completed:
        out["completed"] = True
    if task.color:
        out["color"] = task.color
    if task.progress:
        out["progress"] = task.progress
    if task.project_id:
        out["project"] = _dump_group_ref(task.project_id, task.project_name)
    if task.customer_id:
        out["customer"] = _dump_group_ref(task.customer_id, task.customer_name)
    return out


def _dump_group_ref(group_id: str, name: str) -> dict[str, str]:
    out = {"id": group_id}
    if name:
        out["name"] = name
    return out


def _parse_group_ref(value: Any, path: _Path) -> tuple[str | None, str]:
    if value is None:
        return None, ""
    if not isinstance(value, dict):
        raise WorkspaceValidationError(f"{path}: expected mapping with id and name")
    _assert_allowed_keys(value, _GROUP_KEYS, path)
    group_id = _require_id(value, "id", path)
    name = value.get("name", "")
    if not isinstance(name, str):
        raise WorkspaceValidationError(f"{path.child('name')}: expected string")
    return group_id, name


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise WorkspaceValidationError(f"{path}: unexpected fields {extras}")


def _require_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise WorkspaceValidationError(f"{path.child(key)}: expected non-empty string")
    return value


def _require_id(data: dict[str, Any], key: str, path: _Path) -> str:
    # YAML turns bare numbers into ints; ids are compared as strings.
    value = _require_value(data, key, path)
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str) or not value.strip():
        raise WorkspaceValidationError(f"{path.child(key)}: expected non-empty string id")
    return value


def _require_value(data: dict[str, Any], key: str, path: _Path) -> Any:
    if key not in data:
        raise WorkspaceValidationError(f"{path}: missing required field '{key}'")
    return data[key]


def _parse_optional_date(value: Any, path: _Path) -> _dt.date | None:
    if value is None:
        return None
    # safe_load already converts unquoted ISO dates and timestamps.
    if isinstance(value, _dt.datetime):
        if value.tzinfo is not None:
            raise WorkspaceValidationError(f"{path}: expected a timezone-naive date")
        return value
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        raise WorkspaceValidationError(f"{path}: expected YYYY-MM-DD string")
    text = value.strip()
    try:
        if "T" in text or " " in text:
            return _parse_optional_date(_dt.datetime.fromisoformat(text), path)
        return _dt.date.fromisoformat(text)
    except ValueError as exc:
        raise WorkspaceValidationError(f"{path}: expected YYYY-MM-DD string") from exc


def _parse_meta(value: Any, path: _Path) -> dict[str, Any] | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise WorkspaceValidationError(f"{path}: expected mapping for meta")
    return value
