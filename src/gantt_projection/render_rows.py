from __future__ import annotations

import datetime as dt
from typing import Iterable, List

from .task_models import Instant, RenderRow, Task


def to_render_rows(tasks: Iterable[Task]) -> list[RenderRow]:
    """
    Convert tasks into an ordered list of chart rows.

    Tasks are sorted by start date, then end date; single-date tasks sort by
    the date they have and undated tasks go last. Ties keep input order.
    """

    ordered = sorted(tasks, key=_row_key)
    rows: List[RenderRow] = []
    for order, task in enumerate(ordered):
        rows.append(RenderRow(order=order, task=task))
    return rows


def row_index(rows: Iterable[RenderRow]) -> dict[str, int]:
    """Map task id to its row order."""
    return {row.task_id: row.order for row in rows}


def _row_key(task: Task) -> tuple[int, dt.datetime, dt.datetime]:
    start = task.span_start
    finish = task.span_finish
    if start is None or finish is None:
        return (1, dt.datetime.min, dt.datetime.min)
    return (0, _sortable(start), _sortable(finish))


def _sortable(value: Instant) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return value
    return dt.datetime.combine(value, dt.time.min)
