"""
wg watch - Keep the index current while documents change.

Polls the store fingerprint and feeds changes to a debounced rebuild
trigger; prints a one-line summary after each published rebuild.
"""

import logging
import time
from typing import Optional

from workgraph.index.entity_index import IndexSnapshot
from workgraph.index.triggers import RebuildTrigger
from workgraph.lib.workspace import Workspace

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 2.0


def diff_fingerprints(before: dict[str, float], after: dict[str, float]) -> list[str]:
    """Describe what changed between two store fingerprints."""
    changes = []
    for doc_id in sorted(after.keys() - before.keys()):
        changes.append(f"created {doc_id}")
    for doc_id in sorted(before.keys() - after.keys()):
        changes.append(f"deleted {doc_id}")
    for doc_id in sorted(before.keys() & after.keys()):
        if before[doc_id] != after[doc_id]:
            changes.append(f"modified {doc_id}")
    return changes


def watch_loop(workspace: Workspace, trigger: RebuildTrigger, interval: float,
               max_polls: Optional[int] = None) -> int:
    """Poll until interrupted (or max_polls is reached). Returns change count."""
    fingerprint = workspace.store.fingerprint()
    polls = 0
    seen = 0
    while max_polls is None or polls < max_polls:
        time.sleep(interval)
        polls += 1
        current = workspace.store.fingerprint()
        changes = diff_fingerprints(fingerprint, current)
        fingerprint = current
        for change in changes:
            logger.debug(change)
            trigger.notify(change)
        seen += len(changes)
    return seen


def cmd_watch(args, workspace: Workspace) -> int:
    """Watch the workspace and rebuild on change."""
    def on_rebuild(snapshot: IndexSnapshot) -> None:
        stamp = snapshot.built_at.strftime("%H:%M:%S")
        print(f"[{stamp}] rebuilt: {len(snapshot.entities)} entities (generation {snapshot.generation})")

    workspace.index.add_listener(on_rebuild)
    trigger = RebuildTrigger(workspace.index)

    print(f"Watching {workspace.root} ({len(workspace.index)} entities). Ctrl-C to stop.")
    try:
        watch_loop(workspace, trigger, args.interval or POLL_INTERVAL_SECONDS)
    except KeyboardInterrupt:
        print()
    finally:
        trigger.flush()
    return 0
