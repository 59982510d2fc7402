"""
Entity index.

Holds the current snapshot of every entity parsed from the document store.
The snapshot is replaced wholesale by rebuild(); it is never patched in
place. Readers take the snapshot reference once and keep working on it,
so they always see either the fully-old or the fully-new index.

Rebuild ordering:
    Every rebuild draws a generation number when it starts. Scanning the
    store happens outside the lock; publishing happens under it, and only
    if no rebuild with a newer generation has been published meanwhile.
    An older scan can therefore never overwrite a newer one.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date, datetime
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from workgraph.index.models import Entity, Goal, Portfolio, Project, Task
from workgraph.index.parser import parse_document
from workgraph.lib.config import Settings
from workgraph.lib.constants import ENTITY_TYPES
from workgraph.store.documents import MarkdownDocumentStore

logger = logging.getLogger(__name__)

_CLOSED_STATUSES = ("completed", "cancelled")


class SupersededRebuild(Exception):
    """A newer rebuild was published while this one was scanning."""

    def __init__(self, generation: int, published: int):
        self.generation = generation
        self.published = published
        super().__init__(f"Rebuild {generation} superseded by {published}")


@dataclass(frozen=True)
class IndexSnapshot:
    """Immutable result of one rebuild."""
    generation: int
    entities: Mapping[str, Entity]
    built_at: datetime
    documents_scanned: int = 0
    documents_skipped: int = 0


EMPTY_SNAPSHOT = IndexSnapshot(generation=0, entities=MappingProxyType({}), built_at=datetime.min)


class EntityIndex:
    """The authoritative in-memory id -> entity map.

    Construct one per workspace and pass it to every consumer; only
    rebuild() changes what it returns.
    """

    def __init__(self, store: MarkdownDocumentStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or Settings()
        self._snapshot = EMPTY_SNAPSHOT
        self._lock = threading.Lock()
        self._requested = 0
        self._listeners: list[Callable[[IndexSnapshot], None]] = []

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> IndexSnapshot:
        return self._snapshot

    @property
    def generation(self) -> int:
        """Generation of the published snapshot (0 before the first rebuild)."""
        return self._snapshot.generation

    def add_listener(self, callback: Callable[[IndexSnapshot], None]) -> None:
        """Call `callback(snapshot)` after every published rebuild."""
        self._listeners.append(callback)

    def rebuild(self) -> bool:
        """Rescan the whole store and publish a new snapshot.

        Returns:
            True if the new snapshot was published, False if a newer
            rebuild finished first and this result was discarded
        """
        with self._lock:
            self._requested += 1
            generation = self._requested

        entities, scanned, skipped = self._scan()

        try:
            snapshot = self._publish(generation, entities, scanned, skipped)
        except SupersededRebuild as e:
            logger.debug(f"Discarding rebuild: {e}")
            return False

        logger.info(
            f"Index rebuilt (generation {generation}): {len(entities)} entities "
            f"from {scanned} documents, {skipped} skipped"
        )
        for callback in list(self._listeners):
            callback(snapshot)
        return True

    def _publish(self, generation: int, entities: dict[str, Entity],
                 scanned: int, skipped: int) -> IndexSnapshot:
        with self._lock:
            published = self._snapshot.generation
            if generation < published:
                raise SupersededRebuild(generation, published)
            snapshot = IndexSnapshot(
                generation=generation,
                entities=MappingProxyType(entities),
                built_at=datetime.now(),
                documents_scanned=scanned,
                documents_skipped=skipped,
            )
            self._snapshot = snapshot
            return snapshot

    def _scan(self) -> tuple[dict[str, Entity], int, int]:
        """Parse every document in the configured folders."""
        entities: dict[str, Entity] = {}
        seen_docs: set[str] = set()
        scanned = 0
        skipped = 0

        for folder, expected_type in self.settings.scan_scopes():
            for document in self.store.list_documents(folder):
                if document.id in seen_docs:
                    continue
                seen_docs.add(document.id)
                scanned += 1

                entity = parse_document(document, expected_type)
                if entity is None:
                    skipped += 1
                    continue
                if entity.id in entities:
                    logger.warning(
                        f"Duplicate id '{entity.id}' in {document.id}; "
                        f"keeping {entities[entity.id].source_ref}"
                    )
                    skipped += 1
                    continue
                entities[entity.id] = entity

        return _link_children(entities), scanned, skipped

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_entity(self, entity_id: Optional[str]) -> Optional[Entity]:
        """Look up an entity by id. Unknown and dangling ids give None."""
        if not entity_id:
            return None
        return self._snapshot.entities.get(entity_id)

    def get_entities_by_type(self, entity_type: str) -> list[Entity]:
        """All entities of one type, in scan order."""
        if entity_type not in ENTITY_TYPES:
            raise ValueError(f"Unknown entity type: {entity_type}")
        return [e for e in self._snapshot.entities.values() if e.type == entity_type]

    def all_entities(self) -> list[Entity]:
        return list(self._snapshot.entities.values())

    def __len__(self) -> int:
        return len(self._snapshot.entities)

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._snapshot.entities

    # ------------------------------------------------------------------
    # Task queries
    # ------------------------------------------------------------------

    def get_all_tasks(self) -> list[Task]:
        return self.get_entities_by_type("task")

    def get_tasks_by_status(self, status: str) -> list[Task]:
        return [t for t in self.get_all_tasks() if t.status == status]

    def get_tasks_by_project(self, project_id: str) -> list[Task]:
        return [t for t in self.get_all_tasks() if t.project_id == project_id]

    def get_tasks_by_assignee(self, assignee: str) -> list[Task]:
        return [t for t in self.get_all_tasks() if t.assignee == assignee]

    def get_subtasks(self, parent_task_id: str) -> list[Task]:
        return [t for t in self.get_all_tasks() if t.parent_task_id == parent_task_id]

    def get_overdue_tasks(self, today: Optional[date] = None) -> list[Task]:
        """Open tasks whose due date has passed."""
        today = today or date.today()
        return [
            t for t in self.get_all_tasks()
            if t.due_date and t.due_date < today and t.status not in _CLOSED_STATUSES
        ]

    def get_tasks_due_today(self, today: Optional[date] = None) -> list[Task]:
        today = today or date.today()
        return [
            t for t in self.get_all_tasks()
            if t.due_date == today and t.status not in _CLOSED_STATUSES
        ]

    def get_blocked_tasks(self) -> list[Task]:
        """Tasks with at least one indexed dependency that isn't completed."""
        entities = self._snapshot.entities
        blocked = []
        for task in self.get_all_tasks():
            for dep_id in task.dependency_ids:
                dep = entities.get(dep_id)
                if dep is not None and dep.status != "completed":
                    blocked.append(task)
                    break
        return blocked

    def get_blocker_tasks(self) -> list[Task]:
        """Incomplete tasks that at least one other task depends on."""
        blocker_ids = {dep_id for t in self.get_all_tasks() for dep_id in t.dependency_ids}
        return [
            t for t in self.get_all_tasks()
            if t.id in blocker_ids and t.status != "completed"
        ]


def _link_children(entities: dict[str, Entity]) -> dict[str, Entity]:
    """Fill in child-id sets by inverting each child's parent reference.

    Children pointing at a missing parent, or at an entity of the wrong
    type, are left dangling.
    """
    children: dict[str, set[str]] = {}

    def attach(parent_id: Optional[str], parent_type: type, child_id: str) -> None:
        if parent_id and isinstance(entities.get(parent_id), parent_type):
            children.setdefault(parent_id, set()).add(child_id)

    for entity in entities.values():
        if isinstance(entity, Portfolio):
            attach(entity.goal_id, Goal, entity.id)
        elif isinstance(entity, Project):
            attach(entity.portfolio_id, Portfolio, entity.id)
        elif isinstance(entity, Task):
            attach(entity.project_id, Project, entity.id)

    linked = {}
    for entity_id, entity in entities.items():
        kids = frozenset(children.get(entity_id, ()))
        if isinstance(entity, Goal):
            entity = replace(entity, portfolio_ids=kids)
        elif isinstance(entity, Portfolio):
            entity = replace(entity, project_ids=kids)
        elif isinstance(entity, Project):
            entity = replace(entity, task_ids=kids)
        linked[entity_id] = entity
    return linked
