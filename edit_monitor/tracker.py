# Edit Monitor — document change intake
#
# Pipeline for each change notification:
#   1. Recover the previous document text (per-document cache)
#   2. Classify the change
#   3. For hand-written chars and auto-completions, build a CodingEvent
#      with repository/branch from the VCS resolver
#   4. Append to the upload queue, record in stats, notify listeners

import logging
import sqlite3
import threading
import time
from datetime import datetime
from typing import Callable, Dict, Optional

from .classifier import classify_change, non_whitespace_length
from .events import STATS_CHANGED, StatsEventBus
from .normalizer import (
    ChangeType, CodingEvent, DocumentChange, EventType, language_for, now_local,
)
from .state import EventState
from .stats import StatsAggregator
from .vcs import VcsResolver

logger = logging.getLogger(__name__)


class EditTracker:
    """Turns document change notifications into recorded CodingEvents."""

    def __init__(self, state: EventState, stats: StatsAggregator,
                 resolver: VcsResolver,
                 bus: Optional[StatsEventBus] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.state = state
        self.stats = stats
        self.resolver = resolver
        self.bus = bus
        self._clock = clock or now_local
        self._lock = threading.Lock()
        self._last_text: Dict[str, str] = {}
        self._last_event_time = time.monotonic()

    def document_changed(self, change: DocumentChange) -> ChangeType:
        """Process one change. Returns the label it was given."""
        current = change.text
        with self._lock:
            previous = self._last_text.get(change.path)
            if previous is None:
                previous = change.previous_text()
            self._last_text[change.path] = current

            now = time.monotonic()
            since_last_ms = int((now - self._last_event_time) * 1000)
            self._last_event_time = now

        label = classify_change(previous, current, change.delta)
        logger.debug(
            f"Change in {change.path}: type={label.value}, offset={change.offset}, "
            f"old length={change.old_length}, new length={len(change.new_fragment)}, "
            f"time since last={since_last_ms}ms"
        )

        event_type = label.event_type
        if event_type is None:
            return label

        if event_type is EventType.AUTO_COMPLETION:
            char_count = non_whitespace_length(change.new_fragment)
            if char_count == 0:
                logger.warning(f"Auto-completion without non-whitespace chars in {change.path}")
                return label
        else:
            char_count = 1

        event = CodingEvent(
            timestamp=self._clock(),
            char_count_change=char_count,
            type=event_type,
            filename=change.path,
            extension=change.extension,
            language=change.language or language_for(change.path),
            repository=self.resolver.repo_name(change.path),
            branch=self.resolver.branch_name(change.path),
        )
        self.record(event)
        return label

    def record(self, event: CodingEvent) -> None:
        """Add an event to the upload queue and the stats log."""
        self.state.add_event(event)
        try:
            self.stats.add_event(event)
        except sqlite3.Error as e:
            logger.error(f"Failed to persist event: {e}")
        if event.type is EventType.AUTO_COMPLETION:
            logger.info(
                f"Auto-completion: {event.char_count_change} chars in {event.filename} "
                f"(queued={self.state.queue_size(event.type)}, total chars={self.state.char_count})"
            )
        if self.bus:
            self.bus.emit(STATS_CHANGED, event=event)

    def last_text(self, path: str) -> Optional[str]:
        """Text of the document as of its last processed change, if known."""
        with self._lock:
            return self._last_text.get(path)

    def prime(self, path: str, text: str) -> None:
        """Remember a document's current text without classifying anything."""
        with self._lock:
            self._last_text[path] = text

    def forget(self, path: str) -> None:
        """Drop cached text for a closed document."""
        with self._lock:
            self._last_text.pop(path, None)
