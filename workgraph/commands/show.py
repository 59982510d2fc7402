"""
wg show - Show one entity with its relationships.
"""

from dataclasses import fields

from workgraph.graph.builder import build_dependency_graph
from workgraph.index.models import Goal, Portfolio, Project, Task
from workgraph.lib.workspace import Workspace

# Printed separately or not useful to a reader
_SKIPPED_FIELDS = ("id", "title", "dependencies", "portfolio_ids", "project_ids", "task_ids")


def _label(workspace: Workspace, entity_id: str) -> str:
    entity = workspace.index.get_entity(entity_id)
    if entity is None:
        return f"{entity_id} (missing)"
    return f"{entity_id} - {entity.title} [{entity.status}]"


def cmd_show(args, workspace: Workspace) -> int:
    """Show an entity's attributes, parent, children and dependencies."""
    entity = workspace.index.get_entity(args.id)
    if entity is None:
        print(f"ERROR: No entity with id '{args.id}'")
        return 1

    print(f"{entity.type.capitalize()}: {entity.title}")
    print(f"  id: {entity.id}")
    for f in fields(entity):
        if f.name in _SKIPPED_FIELDS:
            continue
        value = getattr(entity, f.name)
        if value is None or value == () or value == "":
            continue
        print(f"  {f.name}: {value}")

    children = ()
    if isinstance(entity, Goal):
        children = entity.portfolio_ids
    elif isinstance(entity, Portfolio):
        children = entity.project_ids
    elif isinstance(entity, Project):
        children = entity.task_ids
    if children:
        print()
        print("Children:")
        for child_id in sorted(children):
            print(f"  {_label(workspace, child_id)}")

    if isinstance(entity, Task):
        graph = build_dependency_graph(workspace.index.get_all_tasks())
        node = graph.get_node(entity.id)
        if entity.dependencies:
            print()
            print("Depends on:")
            for dep in entity.dependencies:
                lag = f", lag {dep.lag:+d}d" if dep.lag is not None else ""
                print(f"  {_label(workspace, dep.task_id)} ({dep.type}{lag})")
        if node and node.dependents:
            print()
            print("Blocks:")
            for dependent_id in node.dependents:
                print(f"  {_label(workspace, dependent_id)}")
        subtasks = workspace.index.get_subtasks(entity.id)
        if subtasks:
            print()
            print("Subtasks:")
            for sub in subtasks:
                print(f"  {_label(workspace, sub.id)}")

    return 0
