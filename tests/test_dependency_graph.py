import threading

import pytest

from gantt_projection.dependency_graph import (
    AdjacencyIndex,
    DependencyGraph,
    GraphRegistry,
    find_dependency_path,
    would_create_cycle,
    would_create_cycle_in_tasks,
)
from gantt_projection.errors import (
    CycleDetected,
    DuplicateEdge,
    InvalidDependencyType,
    SelfDependency,
    TaskNotFound,
)
from gantt_projection.task_models import DependencyType, Task
from gantt_projection.task_store import InMemoryTaskStore


def _graph(*task_ids):
    store = InMemoryTaskStore(tasks=[Task(id=task_id, title=task_id) for task_id in task_ids])
    return DependencyGraph(store, workspace_id="ws")


def _pairs(store):
    return sorted(edge.pair for edge in store.all_edges())


def test_add_dependency_returns_stored_edge():
    graph = _graph("A", "B")

    edge = graph.add_dependency("A", "B")

    assert edge.prerequisite_id == "A"
    assert edge.dependent_id == "B"
    assert edge.type is DependencyType.FINISH_TO_START
    assert graph.store.get_edge(edge.id) == edge


def test_dependency_type_accepts_string_value():
    graph = _graph("A", "B")

    edge = graph.add_dependency("A", "B", "start_to_start")

    assert edge.type is DependencyType.START_TO_START


def test_unknown_dependency_type_is_rejected():
    graph = _graph("A", "B")

    with pytest.raises(InvalidDependencyType):
        graph.add_dependency("A", "B", "sideways")
    assert graph.store.all_edges() == []


def test_closing_a_chain_is_a_cycle():
    graph = _graph("A", "B", "C")
    graph.add_dependency("A", "B")
    graph.add_dependency("B", "C")
    before = _pairs(graph.store)

    with pytest.raises(CycleDetected) as excinfo:
        graph.add_dependency("C", "A", DependencyType.FINISH_TO_START)

    assert _pairs(graph.store) == before
    assert excinfo.value.cycle.path == ["C", "B", "A", "C"]


def test_two_node_cycle_is_detected():
    graph = _graph("A", "B")
    graph.add_dependency("A", "B")

    with pytest.raises(CycleDetected):
        graph.add_dependency("B", "A")


@pytest.mark.parametrize("task_id", ["X", "missing"])
def test_self_dependency_is_rejected(task_id):
    graph = _graph("X")

    with pytest.raises(SelfDependency):
        graph.add_dependency(task_id, task_id, DependencyType.FINISH_TO_START)
    assert graph.store.all_edges() == []


def test_duplicate_pair_is_rejected_regardless_of_type():
    graph = _graph("A", "B")
    first = graph.add_dependency("A", "B", DependencyType.FINISH_TO_START)

    with pytest.raises(DuplicateEdge) as excinfo:
        graph.add_dependency("A", "B", DependencyType.START_TO_FINISH)

    assert excinfo.value.existing_id == first.id
    assert len(graph.store.all_edges()) == 1


def test_unknown_endpoint_raises_task_not_found():
    graph = _graph("A")

    with pytest.raises(TaskNotFound) as excinfo:
        graph.add_dependency("A", "ghost")
    assert excinfo.value.task_id == "ghost"

    with pytest.raises(TaskNotFound):
        graph.add_dependency("ghost", "A")


def test_diamond_is_not_a_cycle():
    graph = _graph("A", "B", "C", "D")
    graph.add_dependency("A", "B")
    graph.add_dependency("A", "C")
    graph.add_dependency("B", "D")

    edge = graph.add_dependency("C", "D")

    assert edge.pair == ("C", "D")


def test_revisited_node_does_not_hide_a_later_branch():
    # D depends on C and B; both depend on A, and C also depends on E.
    # B is walked first, so A is already visited when C is reached; E must still be found.
    prerequisites = {"D": ["C", "B"], "B": ["A"], "C": ["A", "E"]}

    assert would_create_cycle_in_tasks(prerequisites, "D", "E")
    assert not would_create_cycle_in_tasks(prerequisites, "D", "F")


def test_find_dependency_path_follows_prerequisites():
    index = AdjacencyIndex.from_prerequisites({"C": ["B"], "B": ["A"]})

    assert find_dependency_path("C", "A", index.prerequisites_of) == ["C", "B", "A"]
    assert find_dependency_path("A", "C", index.prerequisites_of) is None


def test_would_create_cycle_treats_self_as_cycle():
    assert would_create_cycle("A", "A", lambda task_id: [])


def test_remove_dependency_by_id_and_by_pair():
    graph = _graph("A", "B", "C")
    first = graph.add_dependency("A", "B")
    graph.add_dependency("B", "C")

    assert graph.remove_dependency(first.id) == first
    removed = graph.remove_dependency(prerequisite_id="B", dependent_id="C")

    assert removed is not None and removed.pair == ("B", "C")
    assert graph.store.all_edges() == []


def test_remove_missing_dependency_returns_none():
    graph = _graph("A", "B")

    assert graph.remove_dependency("nope") is None
    assert graph.remove_dependency(prerequisite_id="A", dependent_id="B") is None


def test_remove_dependency_requires_a_selector():
    graph = _graph("A", "B")

    with pytest.raises(ValueError):
        graph.remove_dependency()
    with pytest.raises(ValueError):
        graph.remove_dependency("id", prerequisite_id="A", dependent_id="B")


def test_removing_an_edge_allows_the_reverse_edge():
    graph = _graph("A", "B")
    graph.add_dependency("A", "B")
    graph.remove_dependency(prerequisite_id="A", dependent_id="B")

    edge = graph.add_dependency("B", "A")

    assert edge.pair == ("B", "A")


def test_list_edges_splits_prerequisites_and_dependents_in_insertion_order():
    graph = _graph("A", "B", "C", "D", "E")
    graph.add_dependency("C", "B")
    graph.add_dependency("A", "B")
    graph.add_dependency("B", "E")
    graph.add_dependency("B", "D")

    listing = graph.list_edges("B")

    assert [edge.prerequisite_id for edge in listing.prerequisites] == ["C", "A"]
    assert [edge.dependent_id for edge in listing.dependents] == ["E", "D"]


def test_deleting_a_task_cascades_to_its_edges():
    graph = _graph("A", "B", "C")
    graph.add_dependency("A", "B")
    graph.add_dependency("B", "C")

    dropped = graph.store.remove_task("B")

    assert len(dropped) == 2
    assert graph.store.all_edges() == []
    assert graph.list_edges("A").dependents == ()


def test_accepted_edges_never_form_a_cycle():
    ids = [f"T{i}" for i in range(6)]
    graph = _graph(*ids)
    for pre in ids:
        for dep in ids:
            try:
                graph.add_dependency(pre, dep)
            except (SelfDependency, DuplicateEdge, CycleDetected):
                pass

    index = AdjacencyIndex.from_edges(graph.store.all_edges())
    for edge in graph.store.all_edges():
        # An edge on a cycle means its prerequisite depends on its dependent.
        assert find_dependency_path(edge.prerequisite_id, edge.dependent_id, index.prerequisites_of) is None


def test_concurrent_insertions_cannot_jointly_form_a_cycle():
    for _ in range(20):
        graph = _graph("A", "B")
        barrier = threading.Barrier(2)
        outcomes = []

        def attempt(pre, dep):
            barrier.wait()
            try:
                graph.add_dependency(pre, dep)
                outcomes.append("ok")
            except CycleDetected:
                outcomes.append("cycle")

        threads = [
            threading.Thread(target=attempt, args=("A", "B")),
            threading.Thread(target=attempt, args=("B", "A")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes) == ["cycle", "ok"]
        assert len(graph.store.all_edges()) == 1


def test_registry_keeps_one_graph_per_workspace():
    stores = {}

    def factory(workspace_id):
        stores[workspace_id] = InMemoryTaskStore(tasks=[Task(id="A"), Task(id="B")])
        return stores[workspace_id]

    registry = GraphRegistry(factory)
    first = registry.graph_for("acme")

    assert registry.graph_for("acme") is first
    assert registry.graph_for("globex") is not first
    first.add_dependency("A", "B")
    assert stores["globex"].all_edges() == []
    assert registry.workspaces() == ["acme", "globex"]


def test_edges_can_be_added_while_reading():
    graph = _graph("A", "B", "C")

    with graph.reading() as store:
        if store.find_edge("A", "B") is None:
            graph.add_dependency("A", "B")
        graph.add_dependency("B", "C")

    assert _pairs(graph.store) == [("A", "B"), ("B", "C")]
