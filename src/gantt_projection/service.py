from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, Tuple, Union

from .arrow_paths import DEFAULT_ROW_HEIGHT
from .dependency_graph import DependencyGraph
from .errors import EdgeNotFound, TaskNotFound
from .gantt_view import gantt_view
from .task_models import DependencyEdge, DependencyType, EdgeListing, GanttView
from .task_store import TaskStore
from .timeline import Scale


logger = logging.getLogger(__name__)

EdgeSelector = Union[str, Tuple[str, str]]
"""Edge id, or `(prerequisite_id, dependent_id)`."""


class GanttService:
    """Operations exposed to the application layer for one workspace."""

    def __init__(self, store: TaskStore, workspace_id: str = "default", graph: DependencyGraph | None = None) -> None:
        self.store = store
        self.graph = graph or DependencyGraph(store, workspace_id)

    def create_dependency(
        self,
        prerequisite_id: str,
        dependent_id: str,
        type: DependencyType | str = DependencyType.FINISH_TO_START,
    ) -> DependencyEdge:
        return self.graph.add_dependency(prerequisite_id, dependent_id, type)

    def delete_dependency(self, selector: EdgeSelector) -> DependencyEdge:
        """Remove the selected edge; raise EdgeNotFound when nothing matches."""
        if isinstance(selector, str):
            removed = self.graph.remove_dependency(selector)
        elif isinstance(selector, tuple) and len(selector) == 2:
            prerequisite_id, dependent_id = selector
            removed = self.graph.remove_dependency(prerequisite_id=prerequisite_id, dependent_id=dependent_id)
        else:
            raise TypeError(f"selector must be an edge id or a (prerequisite_id, dependent_id) pair, got {selector!r}")

        if removed is None:
            logger.debug("no dependency matches %r", selector)
            raise EdgeNotFound(selector)
        return removed

    def dependencies_of(self, task_id: str) -> EdgeListing:
        if self.store.find_task(task_id) is None:
            raise TaskNotFound(task_id)
        return self.graph.list_edges(task_id)

    def gantt_view(
        self,
        scale: Scale | str,
        reference: dt.date | dt.datetime | str,
        task_ids: Iterable[str],
        today: dt.date | None = None,
        row_height: float = DEFAULT_ROW_HEIGHT,
    ) -> GanttView:
        with self.graph.reading() as store:
            return gantt_view(store, scale, reference, task_ids, today=today, row_height=row_height)
