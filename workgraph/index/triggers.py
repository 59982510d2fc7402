"""
Debounced rebuild trigger.

Change notifications (a file watcher, an editor save hook) tend to arrive
in bursts. RebuildTrigger folds a burst into a single EntityIndex.rebuild()
that runs once no new notification has arrived for `delay` seconds.
"""

import logging
import threading
from typing import Optional

from workgraph.index.entity_index import EntityIndex

logger = logging.getLogger(__name__)


class RebuildTrigger:
    """Coalesce change notifications into one rebuild per quiet period."""

    def __init__(self, index: EntityIndex, delay: Optional[float] = None):
        self.index = index
        self.delay = index.settings.debounce_seconds if delay is None else delay
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._reasons: list[str] = []

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def notify(self, reason: str = "change") -> None:
        """Record a change and (re)start the quiet-period timer."""
        with self._lock:
            self._reasons.append(reason)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _take_pending(self) -> list[str]:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            reasons, self._reasons = self._reasons, []
            return reasons

    def _fire(self) -> None:
        reasons = self._take_pending()
        if reasons:
            self._run(reasons)

    def _run(self, reasons: list[str]) -> bool:
        logger.debug(f"Rebuilding after {len(reasons)} change(s): {', '.join(reasons[:5])}")
        return self.index.rebuild()

    def flush(self) -> bool:
        """Run a pending rebuild now.

        Returns:
            False if nothing was pending or the rebuild was superseded
        """
        reasons = self._take_pending()
        if not reasons:
            return False
        return self._run(reasons)

    def cancel(self) -> None:
        """Drop any pending rebuild."""
        self._take_pending()
