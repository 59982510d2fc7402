"""
Entity data model.

Entities are derived from documents during a rebuild and never mutated
afterwards; child-id sets are filled in by the index with
dataclasses.replace() before the snapshot is published.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import ClassVar, Optional

from workgraph.lib.constants import DEFAULT_DEPENDENCY_TYPE, DEFAULT_PRIORITY


@dataclass(frozen=True)
class Dependency:
    """One task must reach a milestone of another before it may proceed."""
    task_id: str
    type: str = DEFAULT_DEPENDENCY_TYPE  # finish-to-start, start-to-start, ...
    lag: Optional[int] = None            # Signed days


@dataclass(frozen=True)
class Entity:
    """Fields shared by every entity type."""
    type: ClassVar[str] = ""

    id: str
    title: str
    status: str
    created_at: datetime
    updated_at: datetime
    source_ref: str                      # Document id in the store
    description: str = ""


@dataclass(frozen=True)
class Goal(Entity):
    """Top-level objective."""
    type: ClassVar[str] = "goal"

    portfolio_ids: frozenset[str] = frozenset()
    target_date: Optional[date] = None


@dataclass(frozen=True)
class Portfolio(Entity):
    """Collection of related projects."""
    type: ClassVar[str] = "portfolio"

    goal_id: Optional[str] = None
    project_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Project(Entity):
    """A defined piece of work with a timeline."""
    type: ClassVar[str] = "project"

    portfolio_id: Optional[str] = None
    task_ids: frozenset[str] = frozenset()
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    progress: int = 0


@dataclass(frozen=True)
class Task(Entity):
    """Atomic unit of work."""
    type: ClassVar[str] = "task"

    project_id: Optional[str] = None
    parent_task_id: Optional[str] = None
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    completed_date: Optional[date] = None
    priority: str = DEFAULT_PRIORITY
    dependencies: tuple[Dependency, ...] = ()
    progress: int = 0
    section_id: Optional[str] = None
    assignee: Optional[str] = None
    collaborators: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    order: Optional[float] = None

    @property
    def dependency_ids(self) -> list[str]:
        return [d.task_id for d in self.dependencies]


ENTITY_CLASSES: dict[str, type[Entity]] = {
    "goal": Goal,
    "portfolio": Portfolio,
    "project": Project,
    "task": Task,
}


@dataclass
class TimelineItem:
    """A dated bar for timeline rendering."""
    id: str
    title: str
    type: str
    start_date: date
    end_date: date
    progress: int
    status: str
    project_id: Optional[str] = None
    children: list["TimelineItem"] = field(default_factory=list)


@dataclass
class WBSNode:
    """A node of the work breakdown structure tree."""
    id: str
    title: str
    type: str
    status: str
    progress: int                        # Aggregated from children when there are any
    children: list["WBSNode"] = field(default_factory=list)
    expanded: bool = False
