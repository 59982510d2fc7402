"""
Entity parser.

Turns one raw document into a typed entity, or decides that the document
is not an entity. Parsing is best-effort: malformed values degrade to
defaults or None, and only a missing attribute block or an undeterminable
type causes a document to be skipped.
"""

import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Optional

from workgraph.index.models import (
    Dependency,
    Entity,
    Goal,
    Portfolio,
    Project,
    Task,
)
from workgraph.lib.constants import (
    DEFAULT_DEPENDENCY_TYPE,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    DEPENDENCY_TYPES,
    ENTITY_TYPES,
    LINK_PATTERN,
    PRIORITIES,
    STATUSES,
)
from workgraph.store.documents import Document

logger = logging.getLogger(__name__)

# Epoch values above this magnitude are taken to be milliseconds
_MILLISECOND_EPOCH_THRESHOLD = 1e11


class ParseError(Exception):
    """Document is not a recognizable entity."""

    def __init__(self, doc_id: str, reason: str):
        self.doc_id = doc_id
        self.reason = reason
        super().__init__(f"{doc_id}: {reason}")


def extract_link_id(value: Any) -> Optional[str]:
    """Resolve a reference field to an entity id.

    The field may be a single value or a list (first element is primary).
    "[[Target]]" and "[[Target|Alias]]" resolve to "Target"; anything else
    is used verbatim.
    """
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not text:
        return None
    match = LINK_PATTERN.search(text)
    if match:
        return match.group(1).strip() or None
    return text


def format_link(entity_id: str) -> str:
    """Render an entity id as a [[wiki-link]] reference."""
    return f"[[{entity_id}]]"


def _read_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > _MILLISECOND_EPOCH_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Normalize a date-ish value to an aware UTC datetime, or None if it
    can't be read.

    Accepts datetime, date, ISO-8601 strings and integer epochs (seconds,
    or milliseconds for large magnitudes). Values without an offset are
    taken to be UTC.
    """
    parsed = _read_datetime(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date(value: Any) -> Optional[date]:
    """Normalize a date-ish value to a calendar date.

    The date is read as written; an offset on the value doesn't move it
    to a different day.
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = _read_datetime(value)
    return parsed.date() if parsed else None


def parse_dependencies(value: Any) -> tuple[Dependency, ...]:
    """Read a task's dependency attribute.

    Either a flat list of references, or a list of {task, type, lag}
    records. Entries without a resolvable task are dropped.
    """
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        value = [value]

    deps = []
    for item in value:
        if isinstance(item, Dependency):
            deps.append(item)
        elif isinstance(item, dict):
            task_id = extract_link_id(item.get("task") or item.get("taskId"))
            if not task_id:
                continue
            dep_type = str(item.get("type") or DEFAULT_DEPENDENCY_TYPE).strip().lower()
            if dep_type not in DEPENDENCY_TYPES:
                logger.debug(f"Unknown dependency type '{dep_type}' for {task_id}, using {DEFAULT_DEPENDENCY_TYPE}")
                dep_type = DEFAULT_DEPENDENCY_TYPE
            deps.append(Dependency(task_id=task_id, type=dep_type, lag=_parse_int(item.get("lag"))))
        else:
            task_id = extract_link_id(item)
            if task_id:
                deps.append(Dependency(task_id=task_id))
    return tuple(deps)


def _parse_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_progress(value: Any) -> int:
    number = _parse_float(value)
    if number is None or not math.isfinite(number):
        return 0
    return max(0, min(100, int(number)))


def _parse_choice(value: Any, choices: tuple[str, ...], default: str) -> str:
    if value is None:
        return default
    text = str(value).strip().lower()
    return text if text in choices else default


def _parse_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _parse_tags(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(t).strip() for t in value if t is not None and str(t).strip())


def determine_type(attributes: dict[str, Any], expected_type: Optional[str]) -> Optional[str]:
    """Explicit `type` attribute wins, then the folder's expected type."""
    explicit = attributes.get("type")
    if explicit is not None:
        return str(explicit).strip().lower()
    return expected_type


def build_entity(document: Document, expected_type: Optional[str] = None) -> Entity:
    """Build the typed entity for a document.

    Raises:
        ParseError: If the document has no attribute block or its type
            can't be determined
    """
    attrs = document.attributes
    if attrs is None:
        raise ParseError(document.id, "no frontmatter")

    entity_type = determine_type(attrs, expected_type)
    if entity_type is None:
        raise ParseError(document.id, "no type attribute and no expected type")
    if entity_type not in ENTITY_TYPES:
        raise ParseError(document.id, f"unknown type '{entity_type}'")

    created = (parse_timestamp(attrs.get("createdAt")) or parse_timestamp(document.created_at)
               or datetime.now(timezone.utc))
    updated = parse_timestamp(attrs.get("updatedAt")) or parse_timestamp(document.modified_at) or created

    base = dict(
        id=_parse_str(attrs.get("id")) or document.stem,
        title=_parse_str(attrs.get("title")) or document.stem,
        status=_parse_choice(attrs.get("status"), STATUSES, DEFAULT_STATUS),
        created_at=created,
        updated_at=updated,
        source_ref=document.id,
        description=_parse_str(attrs.get("description")) or "",
    )

    if entity_type == "goal":
        return Goal(
            **base,
            target_date=parse_date(attrs.get("targetDate") or attrs.get("endDate")),
        )

    if entity_type == "portfolio":
        return Portfolio(**base, goal_id=extract_link_id(attrs.get("parent")))

    if entity_type == "project":
        return Project(
            **base,
            portfolio_id=extract_link_id(attrs.get("parent")),
            start_date=parse_date(attrs.get("startDate")),
            end_date=parse_date(attrs.get("endDate")),
            progress=_parse_progress(attrs.get("progress")),
        )

    return Task(
        **base,
        project_id=extract_link_id(attrs.get("parent") or attrs.get("project")),
        parent_task_id=extract_link_id(attrs.get("parentTask")),
        start_date=parse_date(attrs.get("startDate")),
        due_date=parse_date(attrs.get("dueDate")),
        completed_date=parse_date(attrs.get("completedDate")),
        priority=_parse_choice(attrs.get("priority"), PRIORITIES, DEFAULT_PRIORITY),
        dependencies=parse_dependencies(attrs.get("dependencies")),
        progress=_parse_progress(attrs.get("progress")),
        section_id=extract_link_id(attrs.get("section")),
        assignee=_parse_str(attrs.get("assignee")),
        collaborators=_parse_tags(attrs.get("collaborators")),
        tags=_parse_tags(attrs.get("tags")),
        estimated_hours=_parse_float(attrs.get("estimatedHours")),
        actual_hours=_parse_float(attrs.get("actualHours")),
        order=_parse_float(attrs.get("order")),
    )


def parse_document(document: Document, expected_type: Optional[str] = None) -> Optional[Entity]:
    """Parse a document into an entity, or None if it isn't one."""
    try:
        return build_entity(document, expected_type)
    except ParseError as e:
        logger.debug(f"Skipping document {e}")
        return None
