"""
wg link / unlink - Add or remove task dependencies.
"""

from workgraph.graph.builder import CycleError
from workgraph.index.service import EntityNotFoundError
from workgraph.lib.validate import ValidationError
from workgraph.lib.workspace import Workspace
from workgraph.store.documents import DocumentStoreError
from workgraph.store.locking import LockTimeout


def cmd_link(args, workspace: Workspace) -> int:
    """Make one task depend on another, refusing cycles."""
    try:
        added = workspace.service.add_dependency(args.task, args.depends_on, args.type, args.lag)
    except CycleError as e:
        print(f"REJECTED: {e}")
        return 1
    except (EntityNotFoundError, ValueError, ValidationError, DocumentStoreError, LockTimeout) as e:
        print(f"ERROR: {e}")
        return 1

    if not added:
        print(f"{args.task} already depends on {args.depends_on}")
    else:
        print(f"{args.task} now depends on {args.depends_on} ({args.type})")
    return 0


def cmd_unlink(args, workspace: Workspace) -> int:
    """Remove a dependency."""
    try:
        removed = workspace.service.remove_dependency(args.task, args.depends_on)
    except (EntityNotFoundError, ValidationError, DocumentStoreError, LockTimeout) as e:
        print(f"ERROR: {e}")
        return 1

    if not removed:
        print(f"ERROR: {args.task} does not depend on {args.depends_on}")
        return 1
    print(f"Removed dependency {args.task} -> {args.depends_on}")
    return 0
