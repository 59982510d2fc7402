"""
wg tree / timeline - Hierarchy and timeline projections.
"""

from workgraph.index.models import TimelineItem, WBSNode
from workgraph.index.projections import get_timeline_items, get_wbs_tree
from workgraph.lib.workspace import Workspace

BAR_WIDTH = 10


def _bar(progress: int) -> str:
    filled = round(progress * BAR_WIDTH / 100)
    return "#" * filled + "." * (BAR_WIDTH - filled)


def _print_node(node: WBSNode, depth: int, max_depth: int) -> None:
    indent = "  " * depth
    print(f"{indent}[{_bar(node.progress)}] {node.progress:>3}%  {node.type}: {node.title} ({node.status})")
    if max_depth and depth + 1 >= max_depth:
        return
    for child in node.children:
        _print_node(child, depth + 1, max_depth)


def cmd_tree(args, workspace: Workspace) -> int:
    """Print the work breakdown tree with rolled-up progress."""
    roots = get_wbs_tree(workspace.index)
    if not roots:
        print("No goals defined yet. Create one with: wg new goal <title>")
        return 0
    for root in roots:
        _print_node(root, 0, args.depth)
    return 0


def _print_item(item: TimelineItem, indent: str = "  ") -> None:
    span = f"{item.start_date.isoformat()} .. {item.end_date.isoformat()}"
    print(f"{indent}{span}  {item.progress:>3}%  {item.title} [{item.status}]")


def cmd_timeline(args, workspace: Workspace) -> int:
    """Print dated projects (with their tasks) and standalone tasks."""
    include_completed = args.all or workspace.settings.show_completed
    items = get_timeline_items(workspace.index, include_completed=include_completed)
    if not items:
        print("Nothing scheduled: give projects start/end dates and tasks start/due dates")
        return 0

    for item in items:
        _print_item(item)
        for child in item.children:
            _print_item(child, indent="      ")
    return 0
