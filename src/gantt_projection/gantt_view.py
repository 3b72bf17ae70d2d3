from __future__ import annotations

import datetime as dt
from typing import Iterable

from .arrow_paths import DEFAULT_ROW_HEIGHT, path_for
from .bar_layout import project_bar
from .errors import TaskNotFound
from .render_rows import row_index, to_render_rows
from .task_models import DependencyEdge, GanttEdge, GanttView, RenderRow, Task, TaskGroup, TaskGroups
from .task_store import TaskStore
from .timeline import Scale, columns_for, window_for


def build_view(
    scale: Scale | str,
    reference: dt.date | dt.datetime | str,
    tasks: Iterable[Task],
    edges: Iterable[DependencyEdge],
    today: dt.date | None = None,
    row_height: float = DEFAULT_ROW_HEIGHT,
) -> GanttView:
    """
    Project already-materialised tasks and edges onto a window.

    Pure: the same inputs always give the same view, so callers holding a
    fetched task list can re-derive it when only the scale changes.
    Edges with an endpoint outside `tasks` are left out; edges whose
    endpoints are hidden in the window keep a None path.
    """

    window = window_for(scale, reference)
    columns = columns_for(window.scale, window.start, window.end, today=today)

    task_list = list(tasks)
    rows = to_render_rows(task_list)
    positions = row_index(rows)
    bars = {task.id: project_bar(task, window.start, window.end) for task in task_list}

    view_edges: list[GanttEdge] = []
    for edge in edges:
        source_row = positions.get(edge.prerequisite_id)
        target_row = positions.get(edge.dependent_id)
        if source_row is None or target_row is None:
            continue
        path = path_for(
            bars[edge.prerequisite_id],
            bars[edge.dependent_id],
            source_row,
            target_row,
            row_height=row_height,
        )
        view_edges.append(
            GanttEdge(
                id=edge.id,
                source=edge.prerequisite_id,
                target=edge.dependent_id,
                type=edge.type,
                path=path,
            )
        )

    return GanttView(
        window=window,
        columns=columns,
        rows=rows,
        bars=bars,
        edges=view_edges,
        groups=group_rows(rows),
    )


def group_rows(rows: Iterable[RenderRow]) -> TaskGroups:
    """Group rows by project, else by customer; the rest are ungrouped."""

    by_project: dict[str, TaskGroup] = {}
    by_customer: dict[str, TaskGroup] = {}
    ungrouped: list[str] = []
    for row in rows:
        task = row.task
        if task.project_id:
            group = by_project.setdefault(task.project_id, TaskGroup(task.project_id, task.project_name))
        elif task.customer_id:
            group = by_customer.setdefault(task.customer_id, TaskGroup(task.customer_id, task.customer_name))
        else:
            ungrouped.append(task.id)
            continue
        group.task_ids.append(task.id)

    return TaskGroups(
        by_project=list(by_project.values()),
        by_customer=list(by_customer.values()),
        ungrouped=ungrouped,
    )


def gantt_view(
    store: TaskStore,
    scale: Scale | str,
    reference: dt.date | dt.datetime | str,
    task_ids: Iterable[str],
    today: dt.date | None = None,
    row_height: float = DEFAULT_ROW_HEIGHT,
) -> GanttView:
    """Resolve `task_ids` through the store and build their view with the edges among them."""

    tasks: list[Task] = []
    seen: set[str] = set()
    for task_id in task_ids:
        if task_id in seen:
            continue
        seen.add(task_id)
        task = store.find_task(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        tasks.append(task)

    edges: list[DependencyEdge] = []
    for task in tasks:
        # Incoming edges only, so each edge is collected once.
        for edge in store.list_edges_by_dependent(task.id):
            if edge.prerequisite_id in seen:
                edges.append(edge)

    return build_view(scale, reference, tasks, edges, today=today, row_height=row_height)
