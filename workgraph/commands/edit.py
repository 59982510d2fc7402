"""
wg set / status / move / delete - Change entities.
"""

from typing import Any

import yaml

from workgraph.graph.builder import CycleError
from workgraph.index.service import EntityNotFoundError
from workgraph.lib.constants import LINK_PATTERN
from workgraph.lib.validate import ValidationError
from workgraph.lib.workspace import Workspace
from workgraph.store.documents import DocumentStoreError
from workgraph.store.locking import LockTimeout

# Errors a write can end with; all are reported, none are retried
WRITE_ERRORS = (EntityNotFoundError, ValueError, ValidationError, DocumentStoreError, LockTimeout)


def parse_assignment(text: str) -> tuple[str, Any]:
    """Parse key=value. The value is read as YAML, so `progress=50` is an
    int, `tags=[a, b]` a list and an empty value removes the attribute.
    A lone [[link]] is kept as text.

    Raises:
        ValueError: If there is no '=' or no key
    """
    key, sep, raw = text.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Expected key=value, got '{text}'")
    raw = raw.strip()
    if not raw:
        return key, None
    if LINK_PATTERN.fullmatch(raw):
        return key, raw
    try:
        return key, yaml.safe_load(raw)
    except yaml.YAMLError:
        return key, raw


def _report(error: Exception) -> int:
    print(f"ERROR: {error}")
    return 1


def cmd_set(args, workspace: Workspace) -> int:
    """Set frontmatter attributes on an entity."""
    try:
        fields = dict(parse_assignment(a) for a in args.assignments)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 2

    try:
        entity = workspace.service.update_entity(args.id, fields)
    except CycleError as e:
        print(f"REJECTED: {e}")
        return 1
    except WRITE_ERRORS as e:
        return _report(e)

    print(f"Updated {args.id}: {', '.join(fields)}")
    if entity is None:
        print("WARNING: Entity is no longer indexed after the update")
    return 0


def cmd_status(args, workspace: Workspace) -> int:
    """Set a task's status (other entity types: plain attribute update)."""
    entity = workspace.index.get_entity(args.id)
    if entity is None:
        print(f"ERROR: No entity with id '{args.id}'")
        return 1

    try:
        if entity.type == "task":
            workspace.service.update_task_status(args.id, args.status)
        else:
            workspace.service.update_entity(args.id, {"status": args.status})
    except WRITE_ERRORS as e:
        return _report(e)

    print(f"{args.id}: {entity.status} -> {args.status}")
    return 0


def cmd_move(args, workspace: Workspace) -> int:
    """Move a task to another project, or out of any project."""
    try:
        workspace.service.move_task_to_project(args.id, args.project)
    except WRITE_ERRORS as e:
        return _report(e)

    if args.project:
        print(f"Moved {args.id} to project {args.project}")
    else:
        print(f"Detached {args.id} from its project")
    return 0


def cmd_delete(args, workspace: Workspace) -> int:
    """Delete (or archive, per delete_mode) an entity's document."""
    try:
        found = workspace.service.delete_entity(args.id)
    except (DocumentStoreError, LockTimeout) as e:
        return _report(e)

    if not found:
        print(f"ERROR: No entity with id '{args.id}'")
        return 1

    verb = "Archived" if workspace.settings.delete_mode == "archive" else "Deleted"
    print(f"{verb} {args.id}")
    return 0
