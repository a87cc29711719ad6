from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class Ticker:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread."""

    def __init__(self, interval: float, callback: Callable[[], None] | None = None, name: str = "ticker"):
        self.interval = interval
        self.callback = callback
        self.name = name
        self._thread: threading.Thread | None = None
        self._stopped = threading.Event()
        self._lock = threading.Lock()

    def _run(self, stopped: threading.Event):
        while not stopped.wait(self.interval):
            if not self.callback:
                continue
            try:
                self.callback()
            except Exception:
                logger.exception(f"Ticker {self.name}: callback failed")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, interval: float = None, callback: Callable[[], None] = None):
        with self._lock:
            if self._thread:
                self._stopped.set()
            self.interval = interval or self.interval
            self.callback = callback or self.callback
            self._stopped = threading.Event()
            self._thread = threading.Thread(target=self._run, args=(self._stopped,), name=self.name, daemon=True)
            self._thread.start()

    def stop(self, timeout: float | None = None):
        with self._lock:
            thread, self._thread = self._thread, None
            self._stopped.set()
        if thread and thread is not threading.current_thread():
            thread.join(timeout)
