"""
Stats notifications: lets display code react when stats change, are sent,
or are reset, without the producers knowing who is listening.
"""
import logging
import threading
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

STATS_CHANGED = "stats_changed"
STATS_SENT = "stats_sent"
STATS_RESET = "stats_reset"


class StatsEventBus:
    """Routes stats notifications to subscribed callbacks."""

    def __init__(self):
        self._lock = threading.Lock()
        self.subscribers: Dict[str, List[Callable]] = {}  # topic -> callbacks

    def subscribe(self, topic: str, callback: Callable) -> None:
        """Register a callback for a topic."""
        with self._lock:
            self.subscribers.setdefault(topic, []).append(callback)

    def unsubscribe(self, topic: str, callback: Callable) -> None:
        with self._lock:
            callbacks = self.subscribers.get(topic, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def emit(self, topic: str, **kwargs) -> None:
        """Deliver a notification to every subscriber of the topic."""
        with self._lock:
            callbacks = list(self.subscribers.get(topic, []))
        for callback in callbacks:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error(f"Error in {topic} callback: {e}")
