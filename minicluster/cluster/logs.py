from __future__ import annotations

from enum import Enum
import logging
from pathlib import Path
import threading
from typing import IO

logger = logging.getLogger(__name__)


class DrainState(Enum):
    IDLE = "idle"
    DRAINING = "draining"
    CLOSED = "closed"


class LogDrain:
    """Copies one child process stream into a log file on a background thread.

    ``flush`` may be called from any thread; it never races the final close.
    Read or write failures are logged and end the drain, they never propagate.
    """

    def __init__(self, stream: IO[str], path: str | Path, name: str | None = None):
        self.path = Path(path)
        self.name = name or self.path.name
        self._in = stream
        self._out: IO[str] | None = open(self.path, "w", encoding="utf-8")
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = DrainState.IDLE

    @property
    def state(self) -> DrainState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is DrainState.CLOSED

    def start(self) -> "LogDrain":
        with self._lock:
            if self._state is not DrainState.IDLE:
                return self
            self._state = DrainState.DRAINING
        self._thread = threading.Thread(target=self._run, name=f"drain-{self.name}", daemon=True)
        self._thread.start()
        return self

    def _run(self):
        try:
            for line in iter(self._in.readline, ""):
                with self._lock:
                    if self._out is None:
                        break
                    self._out.write(line.rstrip("\r\n"))
                    self._out.write("\n")
        except (OSError, ValueError) as e:
            logger.warning(f"Log drain {self.name}: stopped reading: {e}")
        finally:
            self.close()

    def close(self):
        """Close the log file and the source stream. Also used when a drain is never started."""
        with self._lock:
            try:
                if self._out is not None:
                    self._out.close()
            except OSError as e:
                logger.warning(f"Log drain {self.name}: failed to close {self.path}: {e}")
            finally:
                self._out = None
            try:
                self._in.close()
            except OSError as e:
                logger.debug(f"Log drain {self.name}: failed to close stream: {e}")
            self._state = DrainState.CLOSED
        self._done.set()

    def flush(self):
        with self._lock:
            if self._out is None:
                return
            try:
                self._out.flush()
            except OSError as e:
                logger.warning(f"Log drain {self.name}: flush failed: {e}")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the drain is closed. Returns False on timeout."""
        return self._done.wait(timeout)
