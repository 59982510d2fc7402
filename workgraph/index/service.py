"""
Entity mutations.

Every write goes to the document store first, under the store write
lock, and is followed by a full index rebuild. Entities are never patched
in memory.

Attribute layout written for a new entity:

    type: task
    id: 1700000000000-k3j9x0a2b
    status: not-started
    createdAt: '2024-01-01T09:00:00.000Z'
    updatedAt: '2024-01-01T09:00:00.000Z'
    parent: '[[1699999999999-abcdefghi]]'
    priority: medium
    progress: 0
"""

import logging
import random
import re
import string
import time
from datetime import date, datetime, timezone
from typing import Any, Optional

from workgraph.graph.builder import build_dependency_graph
from workgraph.index.entity_index import EntityIndex
from workgraph.index.models import Dependency, Entity, Project, Task
from workgraph.index.parser import format_link, parse_dependencies
from workgraph.lib.constants import (
    DEFAULT_DEPENDENCY_TYPE,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    DEPENDENCY_TYPES,
    DOCUMENT_SUFFIX,
    ENTITY_TYPES,
    LINK_PATTERN,
    STATUSES,
)
from workgraph.lib.validate import validate_before_write
from workgraph.store.documents import Document, DocumentStoreError
from workgraph.store.frontmatter import render_document, update_frontmatter
from workgraph.store.locking import store_write_lock

logger = logging.getLogger(__name__)

# Python field name -> frontmatter attribute
FIELD_ATTRIBUTES = {
    "title": "title",
    "status": "status",
    "description": "description",
    "goal_id": "parent",
    "portfolio_id": "parent",
    "project_id": "parent",
    "parent_task_id": "parentTask",
    "start_date": "startDate",
    "end_date": "endDate",
    "due_date": "dueDate",
    "target_date": "targetDate",
    "completed_date": "completedDate",
    "priority": "priority",
    "progress": "progress",
    "dependencies": "dependencies",
    "section_id": "section",
    "assignee": "assignee",
    "collaborators": "collaborators",
    "tags": "tags",
    "estimated_hours": "estimatedHours",
    "actual_hours": "actualHours",
    "order": "order",
}

REFERENCE_ATTRIBUTES = ("parent", "project", "parentTask", "section")
PROTECTED_ATTRIBUTES = ("id", "createdAt", "updatedAt")

# Characters that can't appear in a portable file name
UNSAFE_FILENAME_RE = re.compile(r'[\\/:*?"<>|#^\[\]\x00-\x1f]')

_ID_ALPHABET = string.digits + string.ascii_lowercase


class EntityNotFoundError(KeyError):
    """No entity (of the expected type) with this id is indexed."""

    def __init__(self, entity_id: str, expected_type: Optional[str] = None):
        self.entity_id = entity_id
        self.expected_type = expected_type
        super().__init__(entity_id)

    def __str__(self) -> str:
        kind = self.expected_type or "entity"
        return f"No {kind} with id '{self.entity_id}'"


class EntityCreateError(Exception):
    """Document was written but no entity appeared after the rebuild."""
    pass


def generate_id() -> str:
    """Millisecond timestamp plus a random base-36 suffix."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_file_name(title: str) -> str:
    """Turn a title into a file name (no suffix). May return ''."""
    name = UNSAFE_FILENAME_RE.sub("-", title)
    return " ".join(name.split()).strip(" .")


def serialize_dependencies(dependencies: list[Dependency]) -> list:
    """Dependencies as written to frontmatter.

    A flat list of links while every entry uses the defaults, otherwise a
    list of {task, type, lag} records.
    """
    if all(d.type == DEFAULT_DEPENDENCY_TYPE and d.lag is None for d in dependencies):
        return [format_link(d.task_id) for d in dependencies]
    records = []
    for d in dependencies:
        record = {"task": format_link(d.task_id), "type": d.type}
        if d.lag is not None:
            record["lag"] = d.lag
        records.append(record)
    return records


def _attribute_value(attribute: str, value: Any) -> Any:
    if value is None:
        return None
    if attribute in REFERENCE_ATTRIBUTES:
        text = str(value).strip()
        if not text:
            return None
        return text if LINK_PATTERN.fullmatch(text) else format_link(text)
    if attribute == "dependencies":
        return serialize_dependencies(list(parse_dependencies(value))) or None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    return value


class EntityService:
    """Create, update and delete entities through the document store."""

    def __init__(self, index: EntityIndex):
        self.index = index
        self.store = index.store
        self.settings = index.settings

    def _lock(self):
        return store_write_lock(self.store.root, self.settings.lock_timeout)

    def _require(self, entity_id: str, cls: Optional[type] = None) -> Entity:
        entity = self.index.get_entity(entity_id)
        if entity is None or (cls is not None and not isinstance(entity, cls)):
            raise EntityNotFoundError(entity_id, cls.type if cls is not None else None)
        return entity

    def _read_source(self, entity: Entity) -> Document:
        document = self.store.read_document(entity.source_ref)
        if document is None:
            raise EntityNotFoundError(entity.id)
        return document

    # ------------------------------------------------------------------
    # Create / update / delete
    # ------------------------------------------------------------------

    def create_entity(self, entity_type: str, title: str, parent_id: Optional[str] = None) -> Entity:
        """Write a new entity document and return the indexed entity.

        Raises:
            ValueError: Unknown type or empty title
            ValidationError: Attributes fail the entity schema
            DocumentStoreError: A document already exists for this title
            EntityCreateError: The new document did not produce an entity
        """
        if entity_type not in ENTITY_TYPES:
            raise ValueError(f"Unknown entity type: {entity_type}")
        title = title.strip()
        if not title:
            raise ValueError("Title must not be empty")

        entity_id = generate_id()
        timestamp = now_iso()
        attributes: dict[str, Any] = {
            "type": entity_type,
            "id": entity_id,
            "status": DEFAULT_STATUS,
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }
        if parent_id:
            attributes["parent"] = format_link(parent_id)

        file_name = sanitize_file_name(title) or entity_id
        if file_name != title:
            attributes["title"] = title
        if entity_type == "task":
            attributes["priority"] = DEFAULT_PRIORITY
            attributes["progress"] = 0
        elif entity_type == "project":
            attributes["progress"] = 0

        folder = self.settings.folder_for_type(entity_type)
        doc_path = f"{folder}/{file_name}{DOCUMENT_SUFFIX}"
        validate_before_write(attributes, "entity", doc_path)

        with self._lock():
            if not self.store.folder_exists(folder):
                self.store.create_folder(folder)
            self.store.create_document(doc_path, render_document(attributes, f"# {title}\n"))
        logger.info(f"Created {entity_type} {entity_id} at {doc_path}")

        self.index.rebuild()
        entity = self.index.get_entity(entity_id)
        if entity is None:
            raise EntityCreateError(f"{doc_path} was written but no {entity_type} '{entity_id}' was indexed")
        return entity

    def update_entity(self, entity_id: str, fields: dict[str, Any]) -> Optional[Entity]:
        """Rewrite the given attributes of an entity's document.

        `fields` may use Python field names (due_date, project_id, ...) or
        frontmatter attribute names. A value of None removes the
        attribute. updatedAt is always refreshed.

        Returns:
            The entity as indexed after the rebuild

        Raises:
            EntityNotFoundError: Unknown id
            ValidationError: New values fail the entity schema
            CycleError: A new dependency would close a cycle
        """
        entity = self._require(entity_id)

        updates: dict[str, Any] = {}
        for key, value in fields.items():
            attribute = FIELD_ATTRIBUTES.get(key, key)
            if attribute in PROTECTED_ATTRIBUTES:
                raise ValueError(f"Attribute '{attribute}' can't be updated")
            updates[attribute] = _attribute_value(attribute, value)
        updates["updatedAt"] = now_iso()

        if updates.get("dependencies") and isinstance(entity, Task):
            self._check_acyclic(entity, parse_dependencies(updates["dependencies"]))

        written = {k: v for k, v in updates.items() if v is not None}
        validate_before_write(written, "entity", entity.source_ref)

        with self._lock():
            document = self._read_source(entity)
            text = update_frontmatter(document.raw_text, updates)
            if text is None:
                text = render_document(written, document.raw_text)
            self.store.write_document(document.id, text)
        logger.info(f"Updated {entity.type} {entity_id}: {', '.join(sorted(updates))}")

        self.index.rebuild()
        return self.index.get_entity(entity_id)

    def _check_acyclic(self, task: Task, dependencies: tuple[Dependency, ...]) -> None:
        """Run every newly added dependency through the graph's edge check."""
        added = [d.task_id for d in dependencies if d.task_id not in task.dependency_ids]
        if not added:
            return
        graph = build_dependency_graph(self.index.get_all_tasks())
        for dep_id in added:
            graph.propose_edge(task.id, dep_id)

    def delete_entity(self, entity_id: str) -> bool:
        """Delete (or archive) an entity's document.

        Returns:
            True if the backing document was found
        """
        entity = self.index.get_entity(entity_id)
        if entity is None:
            return False

        with self._lock():
            if self.settings.delete_mode == "archive":
                found = self._archive(entity)
            else:
                found = self.store.delete_document(entity.source_ref)

        if found:
            logger.info(f"{'Archived' if self.settings.delete_mode == 'archive' else 'Deleted'} "
                        f"{entity.type} {entity_id}")
        self.index.rebuild()
        return found

    def _archive(self, entity: Entity) -> bool:
        document = self.store.read_document(entity.source_ref)
        if document is None:
            return False

        archive = self.settings.archive_path()
        if not self.store.folder_exists(archive):
            self.store.create_folder(archive)
        target = f"{archive}/{document.stem}{DOCUMENT_SUFFIX}"
        if self.store.read_document(target) is not None:
            target = f"{archive}/{document.stem} {entity.id}{DOCUMENT_SUFFIX}"

        self.store.create_document(target, document.raw_text)
        if not self.store.delete_document(document.id):
            raise DocumentStoreError(f"Archived {document.id} but could not remove the original")
        return True

    # ------------------------------------------------------------------
    # Task helpers
    # ------------------------------------------------------------------

    def update_task_status(self, task_id: str, status: str) -> Optional[Entity]:
        """Set a task's status.

        Completing a task stamps completedDate and sets progress to 100;
        any other status clears completedDate.
        """
        if status not in STATUSES:
            raise ValueError(f"Unknown status: {status}")
        self._require(task_id, Task)

        fields: dict[str, Any] = {"status": status}
        if status == "completed":
            fields["completed_date"] = date.today()
            fields["progress"] = 100
        else:
            fields["completed_date"] = None
        return self.update_entity(task_id, fields)

    def move_task_to_project(self, task_id: str, project_id: Optional[str]) -> Optional[Entity]:
        """Re-parent a task under a project, or detach it with None."""
        self._require(task_id, Task)
        if project_id is not None:
            self._require(project_id, Project)
        return self.update_entity(task_id, {"parent": project_id, "project": None})

    def add_dependency(self, task_id: str, depends_on_id: str,
                       dep_type: str = DEFAULT_DEPENDENCY_TYPE, lag: Optional[int] = None) -> bool:
        """Record that `task_id` depends on `depends_on_id`.

        Returns:
            False if the dependency was already present

        Raises:
            EntityNotFoundError: Either task isn't indexed
            CycleError: The dependency would close a cycle
        """
        if dep_type not in DEPENDENCY_TYPES:
            raise ValueError(f"Unknown dependency type: {dep_type}")
        task = self._require(task_id, Task)
        self._require(depends_on_id, Task)

        if depends_on_id in task.dependency_ids:
            return False

        dependencies = list(task.dependencies) + [Dependency(depends_on_id, dep_type, lag)]
        self.update_entity(task_id, {"dependencies": dependencies})
        return True

    def remove_dependency(self, task_id: str, depends_on_id: str) -> bool:
        """Drop a dependency. Returns False if it wasn't there."""
        task = self._require(task_id, Task)
        if depends_on_id not in task.dependency_ids:
            return False
        remaining = [d for d in task.dependencies if d.task_id != depends_on_id]
        self.update_entity(task_id, {"dependencies": remaining or None})
        return True
