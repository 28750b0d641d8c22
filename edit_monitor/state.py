# Edit Monitor — upload queues
#
# One drainable queue per EventType. The uploader drains a queue before it
# sends, so events appended during network I/O land in the fresh queue.

import threading
from typing import Dict, List

from .normalizer import CodingEvent, EventType


class EventState:
    """Thread-safe upload queues plus running auto-completion counters."""

    def __init__(self):
        self._lock = threading.Lock()
        self._queues: Dict[EventType, List[CodingEvent]] = {t: [] for t in EventType}
        self._suggestions_count = 0
        self._char_count = 0

    def add_event(self, event: CodingEvent) -> None:
        with self._lock:
            self._queues[event.type].append(event)
            if event.type is EventType.AUTO_COMPLETION:
                self._suggestions_count += 1
                self._char_count += event.char_count_change

    def snapshot(self, event_type: EventType) -> List[CodingEvent]:
        with self._lock:
            return list(self._queues[event_type])

    def drain(self, event_type: EventType) -> List[CodingEvent]:
        """Return every queued event of this type and empty the queue."""
        with self._lock:
            drained = self._queues[event_type]
            self._queues[event_type] = []
            return drained

    def clear(self, event_type: EventType) -> None:
        with self._lock:
            self._queues[event_type] = []

    def queue_size(self, event_type: EventType) -> int:
        with self._lock:
            return len(self._queues[event_type])

    @property
    def suggestions_count(self) -> int:
        with self._lock:
            return self._suggestions_count

    @property
    def char_count(self) -> int:
        with self._lock:
            return self._char_count

    def reset(self) -> None:
        with self._lock:
            self._queues = {t: [] for t in EventType}
            self._suggestions_count = 0
            self._char_count = 0
