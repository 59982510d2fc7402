"""
Relationship projections over the entity index.

Pure functions of one index snapshot: the timeline (dated projects with
their dated tasks, plus standalone dated tasks) and the work breakdown
tree (goals -> portfolios -> projects -> tasks) with rolled-up progress.
"""

import math
from datetime import date
from typing import Iterable, Optional

from workgraph.index.entity_index import EntityIndex
from workgraph.index.models import Entity, Goal, Portfolio, Project, Task, TimelineItem, WBSNode


def aggregate_progress(stored: Optional[int], child_progress: Iterable[int]) -> int:
    """Displayed progress for a hierarchy node.

    Mean of the children's computed progress, rounded half-up, when there
    are children; otherwise the node's own stored progress (0 if none).
    """
    values = list(child_progress)
    if not values:
        return stored or 0
    return int(math.floor(sum(values) / len(values) + 0.5))


def _is_visible(entity: Entity, include_completed: bool) -> bool:
    return include_completed or entity.status != "completed"


def _task_item(task: Task) -> TimelineItem:
    return TimelineItem(
        id=task.id,
        title=task.title,
        type="task",
        start_date=task.start_date,
        end_date=task.due_date,
        progress=task.progress,
        status=task.status,
        project_id=task.project_id,
    )


def _sort_key(item: TimelineItem) -> tuple[date, str]:
    return item.start_date, item.id


def get_timeline_items(index: EntityIndex, include_completed: bool = True) -> list[TimelineItem]:
    """Dated work items for timeline rendering, sorted by start date.

    A project appears when it has both a start and an end date; its tasks
    with a start and a due date become its children. Tasks that belong to
    no project appear at the top level under the same date rule.
    """
    snapshot = index.snapshot
    tasks = [e for e in snapshot.entities.values() if isinstance(e, Task)]
    items = []

    for project in snapshot.entities.values():
        if not isinstance(project, Project):
            continue
        if not (project.start_date and project.end_date):
            continue
        if not _is_visible(project, include_completed):
            continue
        children = [
            _task_item(t) for t in tasks
            if t.project_id == project.id and t.start_date and t.due_date
            and _is_visible(t, include_completed)
        ]
        children.sort(key=_sort_key)
        items.append(TimelineItem(
            id=project.id,
            title=project.title,
            type="project",
            start_date=project.start_date,
            end_date=project.end_date,
            progress=project.progress,
            status=project.status,
            children=children,
        ))

    for task in tasks:
        if task.project_id is None and task.start_date and task.due_date \
                and _is_visible(task, include_completed):
            items.append(_task_item(task))

    items.sort(key=_sort_key)
    return items


def _children_of(entity: Entity, entities: list[Entity]) -> list[Entity]:
    if isinstance(entity, Goal):
        return [e for e in entities if isinstance(e, Portfolio) and e.goal_id == entity.id]
    if isinstance(entity, Portfolio):
        return [e for e in entities if isinstance(e, Project) and e.portfolio_id == entity.id]
    if isinstance(entity, Project):
        return [e for e in entities if isinstance(e, Task) and e.project_id == entity.id]
    return []


def _build_node(entity: Entity, entities: list[Entity]) -> WBSNode:
    children = [_build_node(child, entities) for child in _children_of(entity, entities)]
    return WBSNode(
        id=entity.id,
        title=entity.title,
        type=entity.type,
        status=entity.status,
        progress=aggregate_progress(getattr(entity, "progress", 0), (c.progress for c in children)),
        children=children,
    )


def get_wbs_tree(index: EntityIndex) -> list[WBSNode]:
    """Work breakdown tree rooted at every goal, in scan order.

    Entities whose parent reference dangles are not reachable from a goal
    and do not appear.
    """
    entities = index.all_entities()
    return [_build_node(goal, entities) for goal in entities if isinstance(goal, Goal)]
