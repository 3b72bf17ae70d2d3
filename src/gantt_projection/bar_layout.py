from __future__ import annotations

import datetime as dt

from .errors import InvalidWindow
from .task_models import BarPosition, Instant, Task


MIN_BAR_WIDTH_PERCENT = 1.0  # keeps zero-length and single-date bars clickable


def project_bar(task: Task, window_start: Instant, window_end: Instant) -> BarPosition | None:
    """
    Place `task` on the window `[window_start, window_end)` in percent.

    Returns None when the task has no dates or its span misses the window.
    Spans are clamped to the window, widths never drop below
    MIN_BAR_WIDTH_PERCENT, and `left + width` never exceeds 100.
    """

    first = task.span_start
    last = task.span_finish
    if first is None or last is None:
        return None

    range_start = _as_datetime(window_start)
    range_end = _as_datetime(window_end)
    total = (range_end - range_start).total_seconds()
    if total <= 0:
        raise InvalidWindow(f"Window end {window_end} must be after start {window_start}")

    bar_start = _as_datetime(first)
    bar_end = _as_datetime(last)
    if bar_end < bar_start:
        bar_start, bar_end = bar_end, bar_start

    if bar_end < range_start or bar_start >= range_end:
        return None

    visible_start = max(bar_start, range_start)
    visible_end = min(bar_end, range_end)

    left = (visible_start - range_start).total_seconds() / total * 100
    width = max((visible_end - visible_start).total_seconds() / total * 100, MIN_BAR_WIDTH_PERCENT)
    # Minimum-width bars touching the right edge grow leftwards instead.
    left = min(left, 100.0 - width)
    return BarPosition(left=left, width=width)


def _as_datetime(value: Instant) -> dt.datetime:
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            raise InvalidWindow(f"Expected a timezone-naive instant, got {value.isoformat()}")
        return value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min)
    raise InvalidWindow(f"Expected a date, got {type(value).__name__}")
