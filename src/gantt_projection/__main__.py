from __future__ import annotations

import argparse
import datetime as dt
import json
import logging
import sys
import webbrowser
from pathlib import Path

import yaml

from .errors import GanttError, WorkspaceValidationError
from .parse_workspace import Workspace, load_workspace, save_workspace
from .render_gantt import render_gantt
from .service import GanttService
from .task_models import DependencyType
from .timeline import Scale


logger = logging.getLogger("gantt_projection")


def _parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def _add_view_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--scale", choices=[scale.value for scale in Scale], default=Scale.MONTH.value)
    parser.add_argument(
        "--reference",
        type=_parse_date,
        help="Reference date the window is derived from (YYYY-MM-DD); defaults to today",
    )
    parser.add_argument(
        "--tasks",
        help="Comma-separated task ids to include; defaults to every task in the workspace",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gantt-projection",
        description="Task dependency graph and Gantt projection",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Repeat for more log output")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser(
        "render", help="Render the workspace as an SVG chart", formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    render.add_argument("workspace", help="Path to workspace YAML")
    _add_view_options(render)
    render.add_argument("--out", default="output/gantt_chart.svg", help="Output SVG path")
    render.add_argument(
        "--view",
        dest="view",
        action="store_true",
        default=True,
        help="Best-effort open the output file after rendering",
    )
    render.add_argument(
        "--no-view",
        dest="view",
        action="store_false",
        help="Do not open the output file after rendering",
    )

    payload = sub.add_parser(
        "json", help="Print the projected view as JSON", formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    payload.add_argument("workspace", help="Path to workspace YAML")
    _add_view_options(payload)
    payload.add_argument("--row-height", type=float, default=40.0, help="Row height used for arrow paths")
    payload.add_argument("--out", default="-", help="Output file, '-' for stdout")

    link = sub.add_parser(
        "link", help="Add a dependency and save the workspace", formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    link.add_argument("workspace", help="Path to workspace YAML")
    link.add_argument("prerequisite", help="Task that must be satisfied first")
    link.add_argument("dependent", help="Task that waits")
    link.add_argument(
        "--type",
        choices=[kind.value for kind in DependencyType],
        default=DependencyType.FINISH_TO_START.value,
    )

    unlink = sub.add_parser("unlink", help="Remove a dependency and save the workspace")
    unlink.add_argument("workspace", help="Path to workspace YAML")
    unlink.add_argument("ids", nargs="+", metavar="ID", help="Edge id, or prerequisite and dependent task ids")

    deps = sub.add_parser("deps", help="List the dependencies around one task")
    deps.add_argument("workspace", help="Path to workspace YAML")
    deps.add_argument("task", help="Task id")
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _selected_tasks(workspace: Workspace, raw: str | None) -> list[str]:
    if not raw:
        return workspace.task_ids
    return [task_id.strip() for task_id in raw.split(",") if task_id.strip()]


def _cmd_render(args: argparse.Namespace, workspace: Workspace, service: GanttService) -> int:
    view = service.gantt_view(
        args.scale,
        args.reference or dt.date.today(),
        _selected_tasks(workspace, args.tasks),
        today=dt.date.today(),
    )
    try:
        render_gantt(view, out_path=args.out, title=workspace.name)
    except Exception as exc:
        print(f"Unexpected error while rendering: {exc}", file=sys.stderr)
        return 1

    if args.view:
        try:
            webbrowser.open(Path(args.out).resolve().as_uri())
        except Exception:
            logger.debug("could not open %s", args.out, exc_info=True)
    return 0


def _cmd_json(args: argparse.Namespace, workspace: Workspace, service: GanttService) -> int:
    view = service.gantt_view(
        args.scale,
        args.reference or dt.date.today(),
        _selected_tasks(workspace, args.tasks),
        today=dt.date.today(),
        row_height=args.row_height,
    )
    text = json.dumps(view.as_dict(), indent=2)
    if args.out == "-":
        print(text)
    else:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text + "\n", encoding="utf-8")
    return 0


def _cmd_link(args: argparse.Namespace, workspace: Workspace, service: GanttService) -> int:
    edge = service.create_dependency(args.prerequisite, args.dependent, args.type)
    save_workspace(args.workspace, workspace)
    print(f"Added {edge.prerequisite_id} -> {edge.dependent_id} ({edge.type.value}) as {edge.id}")
    return 0


def _cmd_unlink(args: argparse.Namespace, workspace: Workspace, service: GanttService) -> int:
    if len(args.ids) == 1:
        selector: str | tuple[str, str] = args.ids[0]
    elif len(args.ids) == 2:
        selector = (args.ids[0], args.ids[1])
    else:
        print("Error: expected an edge id or a prerequisite and dependent id", file=sys.stderr)
        return 2
    edge = service.delete_dependency(selector)
    save_workspace(args.workspace, workspace)
    print(f"Removed {edge.prerequisite_id} -> {edge.dependent_id} ({edge.id})")
    return 0


def _cmd_deps(args: argparse.Namespace, workspace: Workspace, service: GanttService) -> int:
    listing = service.dependencies_of(args.task)
    print(f"{args.task} waits on:")
    for edge in listing.prerequisites:
        print(f"  {edge.prerequisite_id} ({edge.type.value}) [{edge.id}]")
    print(f"Waiting on {args.task}:")
    for edge in listing.dependents:
        print(f"  {edge.dependent_id} ({edge.type.value}) [{edge.id}]")
    return 0


_COMMANDS = {
    "render": _cmd_render,
    "json": _cmd_json,
    "link": _cmd_link,
    "unlink": _cmd_unlink,
    "deps": _cmd_deps,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    workspace_path = Path(args.workspace)

    try:
        workspace = load_workspace(workspace_path)
    except (yaml.YAMLError, WorkspaceValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: workspace file not found: {workspace_path}", file=sys.stderr)
        return 1
    except Exception as exc:  # Unexpected
        print(f"Unexpected error while loading workspace: {exc}", file=sys.stderr)
        return 1

    service = GanttService(workspace.store, workspace_id=workspace.name)
    try:
        return _COMMANDS[args.command](args, workspace, service)
    except (GanttError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:
        print(f"Unexpected error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
