# Edit Monitor — periodic task runner
#
# A daemon thread that calls `func` every `interval_secs` until cancelled.
# cancel() stops future ticks; a tick already running is left to finish.

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Ticker:
    """Fixed-period background task with cancellation."""

    def __init__(self, interval_secs: float, func: Callable[[], object], name: str = "ticker"):
        if interval_secs <= 0:
            raise ValueError("interval_secs must be positive")
        self.interval_secs = interval_secs
        self.func = func
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.debug(f"{self.name} started, every {self.interval_secs}s")

    def cancel(self, join_timeout: float = 1.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(join_timeout)
        self._thread = None
        logger.debug(f"{self.name} cancelled")

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_secs):
            try:
                self.func()
            except Exception as e:
                logger.error(f"{self.name} tick failed: {e}", exc_info=True)
