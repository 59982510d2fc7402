"""
wg new - Create a goal, portfolio, project or task.
"""

from workgraph.index.service import EntityCreateError
from workgraph.lib.validate import ValidationError
from workgraph.lib.workspace import Workspace
from workgraph.store.documents import DocumentStoreError
from workgraph.store.locking import LockTimeout

# Parent type expected for each child type
PARENT_TYPES = {
    "portfolio": "goal",
    "project": "portfolio",
    "task": "project",
}


def cmd_new(args, workspace: Workspace) -> int:
    """Create a new entity document."""
    parent_id = args.parent
    if parent_id:
        parent = workspace.index.get_entity(parent_id)
        expected = PARENT_TYPES.get(args.type)
        if expected is None:
            print(f"ERROR: A {args.type} has no parent")
            return 2
        if parent is None:
            # Dangling parents are allowed, but worth flagging
            print(f"WARNING: Parent '{parent_id}' is not indexed")
        elif parent.type != expected:
            print(f"ERROR: Parent of a {args.type} must be a {expected}, got {parent.type}")
            return 2

    try:
        entity = workspace.service.create_entity(args.type, args.title, parent_id)
    except (ValueError, ValidationError, DocumentStoreError, LockTimeout, EntityCreateError) as e:
        print(f"ERROR: {e}")
        return 1

    print(f"Created {entity.type} {entity.id}")
    print(f"  {entity.source_ref}")
    return 0
