"""
wg list / wg tasks - List entities and task views.
"""

from datetime import date
from typing import Optional

from workgraph.index.models import Entity, Task
from workgraph.lib.constants import ENTITY_TYPES
from workgraph.lib.workspace import Workspace


def _truncate(text: str, width: int) -> str:
    return text[:width - 3] + "..." if len(text) > width else text


def format_entity_row(entity: Entity) -> str:
    title = _truncate(entity.title, 40)
    extra = ""
    if isinstance(entity, Task):
        extra = f" {entity.priority:<8} {entity.progress:>3}%"
        if entity.due_date:
            extra += f" due {entity.due_date.isoformat()}"
    return f"  {entity.id:<26} {entity.status:<12}{extra}  {title}"


def _print_entities(heading: str, entities: list[Entity]) -> None:
    print(heading)
    print("-" * 60)
    for entity in entities:
        print(format_entity_row(entity))
    print()


def cmd_list(args, workspace: Workspace) -> int:
    """List entities, grouped by type."""
    types = [args.type] if args.type else list(ENTITY_TYPES)
    total = 0

    for entity_type in types:
        entities = workspace.index.get_entities_by_type(entity_type)
        if args.status:
            entities = [e for e in entities if e.status == args.status]
        elif not workspace.settings.show_completed:
            entities = [e for e in entities if e.status != "completed"]
        if not entities:
            continue
        _print_entities(f"{entity_type.capitalize()}s", entities)
        total += len(entities)

    print(f"{total} item(s)")
    return 0


def _parse_today(value: Optional[str]) -> date:
    return date.fromisoformat(value) if value else date.today()


def cmd_tasks(args, workspace: Workspace) -> int:
    """Show one of the task views: overdue, today, blocked, blockers."""
    index = workspace.index
    try:
        today = _parse_today(getattr(args, "today", None))
    except ValueError:
        print(f"ERROR: Invalid date: {args.today}")
        return 2

    if args.view == "overdue":
        tasks, heading = index.get_overdue_tasks(today), "Overdue tasks"
    elif args.view == "today":
        tasks, heading = index.get_tasks_due_today(today), f"Tasks due {today.isoformat()}"
    elif args.view == "blocked":
        tasks, heading = index.get_blocked_tasks(), "Blocked tasks"
    else:
        tasks, heading = index.get_blocker_tasks(), "Blocking tasks"

    if args.assignee:
        tasks = [t for t in tasks if t.assignee == args.assignee]

    if not tasks:
        print(f"{heading}: none")
        return 0

    _print_entities(heading, tasks)
    print(f"{len(tasks)} task(s)")
    return 0
