import datetime as dt
import textwrap

import pytest

from gantt_projection.errors import WorkspaceValidationError
from gantt_projection.parse_workspace import load_workspace, parse_workspace, save_workspace
from gantt_projection.task_models import DependencyType

WORKSPACE_YAML = """
workspace:
  name: Launch plan
tasks:
  - id: design
    title: Design
    start_date: 2026-02-10
    end_date: 2026-02-13
    progress: 50
  - id: build
    title: Build
    start_date: "2026-02-16"
    end_date: "2026-02-27"
    color: "#123456"
  - id: review
    title: Review
    type: meeting
    completed: true
dependencies:
  - prerequisite: design
    dependent: build
  - id: build-review
    prerequisite: build
    dependent: review
    type: finish_to_finish
"""


def _write(tmp_path, text):
    path = tmp_path / "workspace.yaml"
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


def test_load_workspace_reads_tasks_and_dependencies(tmp_path):
    workspace = load_workspace(_write(tmp_path, WORKSPACE_YAML))

    assert workspace.name == "Launch plan"
    assert workspace.task_ids == ["design", "build", "review"]
    design = workspace.store.find_task("design")
    assert design.start_date == dt.date(2026, 2, 10)
    assert design.progress == 50
    assert workspace.store.find_task("build").end_date == dt.date(2026, 2, 27)
    review = workspace.store.find_task("review")
    assert review.is_completed
    assert review.effective_color == "#8B5CF6"

    edge = workspace.store.get_edge("build-review")
    assert edge.type is DependencyType.FINISH_TO_FINISH
    assert workspace.store.find_edge("design", "build").type is DependencyType.FINISH_TO_START


def test_cyclic_dependencies_are_rejected_with_their_path():
    data = {
        "workspace": {"name": "W"},
        "tasks": [{"id": "A"}, {"id": "B"}],
        "dependencies": [
            {"prerequisite": "A", "dependent": "B"},
            {"prerequisite": "B", "dependent": "A"},
        ],
    }

    with pytest.raises(WorkspaceValidationError, match=r"dependencies\[1\].*cycle"):
        parse_workspace(data)


def test_unknown_task_reference_is_rejected():
    data = {
        "workspace": {"name": "W"},
        "tasks": [{"id": "A"}],
        "dependencies": [{"prerequisite": "A", "dependent": "missing"}],
    }

    with pytest.raises(WorkspaceValidationError, match="missing"):
        parse_workspace(data)


def test_unknown_dependency_type_is_rejected():
    data = {
        "workspace": {"name": "W"},
        "tasks": [{"id": "A"}, {"id": "B"}],
        "dependencies": [{"prerequisite": "A", "dependent": "B", "type": "whenever"}],
    }

    with pytest.raises(WorkspaceValidationError, match="whenever"):
        parse_workspace(data)


@pytest.mark.parametrize(
    "task, message",
    [
        ({"title": "no id"}, "missing required field 'id'"),
        ({"id": "A", "owner": "x"}, "unexpected fields"),
        ({"id": "A", "start_date": "next week"}, "YYYY-MM-DD"),
        ({"id": "A", "progress": 150}, "progress"),
        ({"id": "A", "completed": "yes"}, "boolean"),
    ],
)
def test_invalid_tasks_are_rejected(task, message):
    data = {"workspace": {"name": "W"}, "tasks": [task]}

    with pytest.raises(WorkspaceValidationError, match=message):
        parse_workspace(data)


def test_duplicate_task_ids_are_rejected():
    data = {"workspace": {"name": "W"}, "tasks": [{"id": "A"}, {"id": "A"}]}

    with pytest.raises(WorkspaceValidationError, match="duplicate task id"):
        parse_workspace(data)


def test_numeric_ids_are_read_as_strings():
    data = {
        "workspace": {"name": "W"},
        "tasks": [{"id": 1}, {"id": 2}],
        "dependencies": [{"prerequisite": 1, "dependent": 2}],
    }

    workspace = parse_workspace(data)

    assert workspace.store.find_edge("1", "2") is not None


def test_save_and_load_roundtrip(tmp_path):
    workspace = load_workspace(_write(tmp_path, WORKSPACE_YAML))
    out = tmp_path / "saved" / "workspace.yaml"

    save_workspace(out, workspace)
    reloaded = load_workspace(out)

    assert reloaded.name == workspace.name
    assert reloaded.store.all_tasks() == workspace.store.all_tasks()
    assert [edge.pair for edge in reloaded.store.all_edges()] == [
        edge.pair for edge in workspace.store.all_edges()
    ]
    assert reloaded.store.get_edge("build-review") is not None


def test_timestamps_survive_save_and_load(tmp_path):
    workspace = parse_workspace(
        {
            "workspace": {"name": "W"},
            "tasks": [{"id": "A", "start_date": dt.datetime(2026, 2, 10, 9), "end_date": dt.date(2026, 2, 12)}],
        }
    )
    out = tmp_path / "workspace.yaml"

    save_workspace(out, workspace)
    reloaded = load_workspace(out)

    task = reloaded.store.find_task("A")
    assert task.start_date == dt.datetime(2026, 2, 10, 9)
    assert task.end_date == dt.date(2026, 2, 12)


def test_quoted_timestamp_strings_are_accepted():
    data = {"workspace": {"name": "W"}, "tasks": [{"id": "A", "start_date": "2026-02-10T09:00:00"}]}

    workspace = parse_workspace(data)

    assert workspace.store.find_task("A").start_date == dt.datetime(2026, 2, 10, 9)


def test_aware_timestamp_strings_are_rejected():
    data = {"workspace": {"name": "W"}, "tasks": [{"id": "A", "start_date": "2026-02-10T09:00:00+02:00"}]}

    with pytest.raises(WorkspaceValidationError, match="timezone-naive"):
        parse_workspace(data)


def test_project_and_customer_are_read_and_saved(tmp_path):
    path = _write(
        tmp_path,
        """
        workspace:
          name: W
        tasks:
          - id: A
            project: {id: p1, name: Website}
          - id: B
            customer: {id: 42, name: Acme}
        """,
    )

    workspace = load_workspace(path)
    task_a = workspace.store.find_task("A")
    task_b = workspace.store.find_task("B")

    assert (task_a.project_id, task_a.project_name) == ("p1", "Website")
    assert task_a.customer_id is None
    assert (task_b.customer_id, task_b.customer_name) == ("42", "Acme")

    out = tmp_path / "saved.yaml"
    save_workspace(out, workspace)
    assert load_workspace(out).store.all_tasks() == workspace.store.all_tasks()


def test_project_without_id_is_rejected():
    data = {"workspace": {"name": "W"}, "tasks": [{"id": "A", "project": {"name": "Website"}}]}

    with pytest.raises(WorkspaceValidationError, match=r"tasks\[0\].project"):
        parse_workspace(data)
