from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal


Instant = dt.date | dt.datetime
"""Timezone-naive calendar date or date-time. `datetime` is a subclass of `date`."""

PathCommand = Literal["M", "C"]
"""Path segment commands: move-to and cubic Bezier curve-to."""

TYPE_COLORS: dict[str, str] = {
    "task": "#3B82F6",
    "call": "#22C55E",
    "meeting": "#8B5CF6",
    "email": "#F97316",
    "follow_up": "#06B6D4",
    "milestone": "#EC4899",
}
DEFAULT_COLOR = "#6B7280"


class DependencyType(str, Enum):
    """How the prerequisite gates the dependent."""

    FINISH_TO_START = "finish_to_start"
    START_TO_START = "start_to_start"
    FINISH_TO_FINISH = "finish_to_finish"
    START_TO_FINISH = "start_to_finish"


@dataclass
class Task:
    """Work item as read from the task store; only scheduling fields are kept."""

    id: str
    title: str = ""
    start_date: Instant | None = None
    end_date: Instant | None = None
    is_completed: bool = False
    color: str | None = None
    type: str = "task"
    progress: int = 0
    project_id: str | None = None
    project_name: str = ""
    customer_id: str | None = None
    customer_name: str = ""

    @property
    def effective_color(self) -> str:
        """Explicit colour, or the palette colour of the task type."""
        if self.color:
            return self.color
        return TYPE_COLORS.get(self.type, DEFAULT_COLOR)

    @property
    def span_start(self) -> Instant | None:
        """Start boundary, falling back to end_date for single-date tasks."""
        return self.start_date if self.start_date is not None else self.end_date

    @property
    def span_finish(self) -> Instant | None:
        """Finish boundary, falling back to start_date for single-date tasks."""
        return self.end_date if self.end_date is not None else self.start_date


@dataclass(frozen=True)
class DependencyEdge:
    """`dependent_id` waits on `prerequisite_id`."""

    id: str
    prerequisite_id: str
    dependent_id: str
    type: DependencyType = DependencyType.FINISH_TO_START

    @property
    def pair(self) -> tuple[str, str]:
        return (self.prerequisite_id, self.dependent_id)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "prerequisite_id": self.prerequisite_id,
            "dependent_id": self.dependent_id,
            "type": self.type.value,
        }


@dataclass(frozen=True)
class EdgeListing:
    """Edges around one task, both in insertion order."""

    prerequisites: tuple[DependencyEdge, ...] = ()
    dependents: tuple[DependencyEdge, ...] = ()


@dataclass(frozen=True)
class Window:
    """Visible time window of the chart, `[start, end)` on calendar days."""

    start: dt.date
    end: dt.date
    scale: str

    @property
    def span_days(self) -> int:
        return (self.end - self.start).days


@dataclass(frozen=True)
class Column:
    """Header unit (day, week or month) inside the window, clipped to it."""

    start: dt.date
    end: dt.date
    label: str
    is_current: bool = False


@dataclass(frozen=True)
class BarPosition:
    """Horizontal placement of a bar, in percent of the window width."""

    left: float
    width: float

    @property
    def right(self) -> float:
        return self.left + self.width


@dataclass(frozen=True)
class PathSegment:
    """One path command with its coordinate points (x in percent, y in row units)."""

    command: PathCommand
    points: tuple[tuple[float, float], ...]


@dataclass(frozen=True)
class ArrowPath:
    """Abstract connector path: a move followed by one or more cubic curves."""

    segments: tuple[PathSegment, ...]

    @property
    def start(self) -> tuple[float, float]:
        return self.segments[0].points[0]

    @property
    def end(self) -> tuple[float, float]:
        return self.segments[-1].points[-1]

    def as_svg_d(self, x_scale: float | None = None) -> str:
        """
        SVG `d` attribute for the path.

        Without `x_scale` the x values stay in percent and carry a `%` suffix,
        matching how the chart lays out bars. With `x_scale` (pixels per
        percent) the x values are converted to plain user units.
        """
        parts: list[str] = []
        for segment in self.segments:
            coords = ", ".join(_format_point(point, x_scale) for point in segment.points)
            parts.append(f"{segment.command} {coords}")
        return " ".join(parts)

    def to_mpl_path(self, x_scale: float = 1.0, y_scale: float = 1.0):
        """Convert to a `matplotlib.path.Path` made of MOVETO/CURVE4 codes."""
        import matplotlib.path as mpath

        vertices: list[tuple[float, float]] = []
        codes: list[int] = []
        for segment in self.segments:
            code = mpath.Path.MOVETO if segment.command == "M" else mpath.Path.CURVE4
            for x, y in segment.points:
                vertices.append((x * x_scale, y * y_scale))
                codes.append(code)
        return mpath.Path(vertices, codes)

    def as_dict(self) -> dict[str, Any]:
        return {
            "d": self.as_svg_d(),
            "segments": [
                {"command": segment.command, "points": [list(point) for point in segment.points]}
                for segment in self.segments
            ],
        }


@dataclass(frozen=True)
class GanttEdge:
    """Dependency edge as shown in a view; `path` is None when an endpoint is hidden."""

    id: str
    source: str
    target: str
    type: DependencyType
    path: ArrowPath | None = None


@dataclass
class RenderRow:
    """Task placed on a chart row."""

    order: int
    task: Task

    @property
    def task_id(self) -> str:
        return self.task.id


@dataclass
class TaskGroup:
    """Tasks sharing a project or customer, in row order."""

    id: str
    name: str
    task_ids: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "tasks": list(self.task_ids)}


@dataclass
class TaskGroups:
    """
    Row grouping of a view.

    A task belongs to its project when it has one, otherwise to its customer,
    otherwise it is ungrouped. Groups appear in first-seen order.
    """

    by_project: list[TaskGroup] = field(default_factory=list)
    by_customer: list[TaskGroup] = field(default_factory=list)
    ungrouped: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "by_project": [group.as_dict() for group in self.by_project],
            "by_customer": [group.as_dict() for group in self.by_customer],
            "ungrouped": list(self.ungrouped),
        }


@dataclass
class GanttView:
    """
    Everything a chart needs for one render pass.

    `bars` holds an entry for every task in the view; tasks outside the
    window map to None, which is a valid result and not an error.
    """

    window: Window
    columns: list[Column] = field(default_factory=list)
    rows: list[RenderRow] = field(default_factory=list)
    bars: dict[str, BarPosition | None] = field(default_factory=dict)
    edges: list[GanttEdge] = field(default_factory=list)
    groups: TaskGroups = field(default_factory=TaskGroups)

    @property
    def total_count(self) -> int:
        return len(self.rows)

    def as_dict(self) -> dict[str, Any]:
        """JSON-ready payload of the view."""
        return {
            "window": {
                "start": self.window.start.isoformat(),
                "end": self.window.end.isoformat(),
                "scale": self.window.scale,
            },
            "columns": [
                {
                    "start": column.start.isoformat(),
                    "end": column.end.isoformat(),
                    "label": column.label,
                    "is_current": column.is_current,
                }
                for column in self.columns
            ],
            "rows": [
                {
                    "order": row.order,
                    "task_id": row.task.id,
                    "title": row.task.title,
                    "color": row.task.effective_color,
                    "is_completed": row.task.is_completed,
                    "progress": row.task.progress,
                }
                for row in self.rows
            ],
            "bars": {
                task_id: None if bar is None else {"left": bar.left, "width": bar.width}
                for task_id, bar in self.bars.items()
            },
            "edges": [
                {
                    "id": edge.id,
                    "from": edge.source,
                    "to": edge.target,
                    "type": edge.type.value,
                    "path": None if edge.path is None else edge.path.as_dict(),
                }
                for edge in self.edges
            ],
            "grouped": self.groups.as_dict(),
            "total_count": self.total_count,
        }


def _format_point(point: tuple[float, float], x_scale: float | None) -> str:
    x, y = point
    if x_scale is None:
        return f"{_trim(x)}% {_trim(y)}"
    return f"{_trim(x * x_scale)} {_trim(y)}"


def _trim(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text
