from __future__ import annotations

import datetime as dt
from pathlib import Path
from importlib import metadata

import matplotlib

matplotlib.use("Agg")  # ensure headless, deterministic output
import matplotlib.pyplot as plt
from matplotlib.patches import FancyArrowPatch

from .arrow_paths import path_for
from .render_rows import row_index
from .task_models import GanttView
from .timeline import column_span

BAR_HEIGHT = 0.6  # in rows
BAR_ALPHA = 0.35
COMPLETED_ALPHA = 0.2
ARROW_COLOR = "#3a3a3a"
GRID_COLOR = "#cccccc"
CURRENT_COLUMN_COLOR = "#fff4c2"
FONT_SCALE = 1.0
TITLE_FONT = 14 * FONT_SCALE
LABEL_FONT = 10 * FONT_SCALE
FOOTER_FONT = 8 * FONT_SCALE
TICK_FONT = 8 * FONT_SCALE
TOP_MARGIN_FRAC = 0.85
TITLE_Y = 0.985
ROW_INCH = 0.4
MAX_TICK_LABELS = 40


def render_gantt(view: GanttView, out_path: str, title: str = "") -> None:
    """
    Render a static SVG Gantt chart of `view` to `out_path`.

    - The x axis runs from 0 to 100 percent of the window; columns become
      grid lines and tick labels.
    - One row per task; tasks outside the window keep their label and no bar.
    - Arrows are re-derived from the bars with a unit row height so they line
      up with the row centres.
    """

    if not view.rows:
        raise ValueError("view must contain at least one row")

    n_rows = len(view.rows)
    fig_height = max(3.0, ROW_INCH * n_rows + 2.0)
    fig_width = max(12.0, min(24.0, len(view.columns) * 0.35 + 6.0))
    fig = plt.figure(figsize=(fig_width, fig_height))
    # Allocate explicit grid: left column for labels, right for chart.
    gs = fig.add_gridspec(1, 2, width_ratios=[1.2, 4.0], wspace=0.05, left=0.06, right=0.98, top=TOP_MARGIN_FRAC, bottom=0.1)
    label_ax = fig.add_subplot(gs[0, 0])
    ax = fig.add_subplot(gs[0, 1], sharey=label_ax)

    # Configure axes: window percent on x, rows on y.
    ax.set_xlim(0, 100)
    ax.set_ylim(n_rows, 0)
    ax.xaxis.tick_top()
    ax.set_yticks([])
    _draw_columns(ax, view)

    label_ax.set_xlim(0, 1)
    label_ax.axis("off")

    fig.suptitle(title, x=0.5, fontsize=TITLE_FONT, y=TITLE_Y)
    last_day = view.window.end - dt.timedelta(days=1)
    footer = (
        f"{view.window.scale} view {view.window.start.isoformat()} to {last_day.isoformat()}"
        f" · gantt-projection v{_tool_version()}"
    )
    fig.text(0.99, 0.01, footer, ha="right", va="bottom", fontsize=FOOTER_FONT, alpha=0.8)

    for row in view.rows:
        y = row.order + 0.5
        task = row.task
        label_ax.text(
            0.98,
            y,
            task.title or task.id,
            ha="right",
            va="center",
            fontsize=LABEL_FONT,
            color="#888888" if task.is_completed else "black",
            transform=label_ax.transData,
        )

        bar = view.bars.get(task.id)
        if bar is None:
            continue
        color = task.effective_color
        ax.barh(
            y,
            width=bar.width,
            left=bar.left,
            height=BAR_HEIGHT,
            color=color,
            alpha=COMPLETED_ALPHA if task.is_completed else BAR_ALPHA,
            edgecolor=color,
            linewidth=0.8,
            hatch="//" if task.is_completed else None,
        )
        progress = 100 if task.is_completed else task.progress
        if progress > 0:
            ax.barh(
                y,
                width=bar.width * progress / 100,
                left=bar.left,
                height=BAR_HEIGHT,
                color=color,
                linewidth=0,
            )

    _draw_dependencies(ax, view)

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, format="svg", bbox_inches="tight")
    plt.close(fig)


def _draw_columns(ax: plt.Axes, view: GanttView) -> None:
    centers: list[float] = []
    labels: list[str] = []
    for column in view.columns:
        left, width = column_span(column, view.window)
        if column.is_current:
            ax.axvspan(left, left + width, color=CURRENT_COLUMN_COLOR, zorder=0)
        ax.axvline(left, color=GRID_COLOR, linestyle="--", linewidth=0.5, zorder=1)
        centers.append(left + width / 2)
        labels.append(column.label)

    # Day columns on long windows would overlap; thin the labels out.
    step = max(1, -(-len(centers) // MAX_TICK_LABELS))
    ax.set_xticks(centers[::step])
    ax.set_xticklabels(labels[::step])
    ax.tick_params(axis="x", labelrotation=30, labelsize=TICK_FONT, pad=4)


def _draw_dependencies(ax: plt.Axes, view: GanttView) -> None:
    positions = row_index(view.rows)
    for edge in view.edges:
        if edge.path is None:
            continue
        arrow_path = path_for(
            view.bars.get(edge.source),
            view.bars.get(edge.target),
            positions[edge.source],
            positions[edge.target],
            row_height=1.0,
        )
        if arrow_path is None:
            continue
        arrow = FancyArrowPatch(
            path=arrow_path.to_mpl_path(),
            arrowstyle="-|>",
            mutation_scale=8.0,
            lw=0.9,
            color=ARROW_COLOR,
            shrinkA=0.5,
            shrinkB=0.5,
        )
        ax.add_patch(arrow)


def _tool_version() -> str:
    try:
        return metadata.version("gantt-projection")
    except Exception:
        return "0.0.0"
