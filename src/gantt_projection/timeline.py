from __future__ import annotations

import datetime as dt
from enum import Enum

from .errors import InvalidWindow
from .task_models import Column, Window


WEEK_SCALE_WEEKS = 5
MONTH_SCALE_MONTHS = 3
QUARTER_SCALE_MONTHS = 9


class Scale(str, Enum):
    """Zoom level of the chart."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @classmethod
    def parse(cls, value: "Scale | str") -> "Scale":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(scale.value for scale in cls)
            raise InvalidWindow(f"Unknown scale {value!r}; expected one of: {allowed}") from exc


def window_for(scale: Scale | str, reference: dt.date | dt.datetime | str) -> Window:
    """
    Derive the visible window for `scale` around `reference`.

    Bounds sit on calendar boundaries; the time of day of `reference` is ignored.
    `end` is exclusive on every scale: it is the day after the last visible day.

    - week: Monday of the reference week, plus five full weeks
    - month: first of the month, three calendar months
    - quarter: first day of the quarter, nine calendar months
    - year: January 1, two calendar years
    """

    kind = Scale.parse(scale)
    day = coerce_date(reference, "reference")

    if kind is Scale.WEEK:
        start = day - dt.timedelta(days=day.weekday())
        end = start + dt.timedelta(weeks=WEEK_SCALE_WEEKS)
    elif kind is Scale.MONTH:
        start = day.replace(day=1)
        end = _add_months(start, MONTH_SCALE_MONTHS)
    elif kind is Scale.QUARTER:
        quarter_month = (day.month - 1) // 3 * 3 + 1
        start = dt.date(day.year, quarter_month, 1)
        end = _add_months(start, QUARTER_SCALE_MONTHS)
    else:
        start = dt.date(day.year, 1, 1)
        end = dt.date(day.year + 2, 1, 1)

    return Window(start=start, end=end, scale=kind.value)


def columns_for(
    scale: Scale | str,
    start: dt.date | dt.datetime | str,
    end: dt.date | dt.datetime | str,
    today: dt.date | None = None,
) -> list[Column]:
    """
    Ordered header columns covering `[start, end)`.

    Days for the week scale, Monday-based calendar weeks for the month scale,
    calendar months for quarter and year. Every column is clipped to the
    window, so partial weeks and months at the edges stay inside it.
    """

    kind = Scale.parse(scale)
    start_day = coerce_date(start, "start")
    end_day = coerce_date(end, "end")
    if end_day <= start_day:
        raise InvalidWindow(f"Window end {end_day} must be after start {start_day}")
    today_day = coerce_date(today, "today") if today is not None else None

    if kind is Scale.WEEK:
        return _day_columns(start_day, end_day, today_day)
    if kind is Scale.MONTH:
        return _week_columns(start_day, end_day, today_day)
    return _month_columns(start_day, end_day, today_day)


def column_span(column: Column, window: Window) -> tuple[float, float]:
    """(left, width) of a column in percent of the window."""
    total = (window.end - window.start).days
    if total <= 0:
        raise InvalidWindow(f"Window end {window.end} must be after start {window.start}")
    left = (column.start - window.start).days / total * 100
    width = (column.end - column.start).days / total * 100
    return left, width


def coerce_date(value: object, name: str = "date") -> dt.date:
    """Accept a date, a naive datetime (truncated) or an ISO string."""
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            raise InvalidWindow(f"{name}: expected a timezone-naive instant, got {value.isoformat()}")
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if "T" in text or " " in text:
                return coerce_date(dt.datetime.fromisoformat(text), name)
            return dt.date.fromisoformat(text)
        except ValueError as exc:
            raise InvalidWindow(f"{name}: expected YYYY-MM-DD, got {value!r}") from exc
    raise InvalidWindow(f"{name}: expected a date, got {type(value).__name__}")


def _day_columns(start: dt.date, end: dt.date, today: dt.date | None) -> list[Column]:
    columns: list[Column] = []
    current = start
    while current < end:
        columns.append(
            Column(
                start=current,
                end=current + dt.timedelta(days=1),
                label=_month_day_label(current),
                is_current=current == today,
            )
        )
        current += dt.timedelta(days=1)
    return columns


def _week_columns(start: dt.date, end: dt.date, today: dt.date | None) -> list[Column]:
    columns: list[Column] = []
    monday = start - dt.timedelta(days=start.weekday())
    while monday < end:
        next_monday = monday + dt.timedelta(weeks=1)
        col_start = max(monday, start)
        col_end = min(next_monday, end)
        columns.append(
            Column(
                start=col_start,
                end=col_end,
                label=_month_day_label(col_start),
                is_current=_contains(col_start, col_end, today),
            )
        )
        monday = next_monday
    return columns


def _month_columns(start: dt.date, end: dt.date, today: dt.date | None) -> list[Column]:
    columns: list[Column] = []
    month_start = start.replace(day=1)
    while month_start < end:
        next_month = _add_months(month_start, 1)
        col_start = max(month_start, start)
        col_end = min(next_month, end)
        first_of_year = not columns or month_start.month == 1
        label = f"{month_start:%b} {month_start.year}" if first_of_year else f"{month_start:%b}"
        columns.append(
            Column(
                start=col_start,
                end=col_end,
                label=label,
                is_current=_contains(col_start, col_end, today),
            )
        )
        month_start = next_month
    return columns


def _month_day_label(day: dt.date) -> str:
    return f"{day:%b} {day.day}"


def _contains(start: dt.date, end: dt.date, day: dt.date | None) -> bool:
    return day is not None and start <= day < end


def _add_months(day: dt.date, months: int) -> dt.date:
    """First day of the month `months` after the month of `day`."""
    index = day.year * 12 + (day.month - 1) + months
    return dt.date(index // 12, index % 12 + 1, 1)
