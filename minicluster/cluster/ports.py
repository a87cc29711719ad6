from __future__ import annotations

import logging
import random
import socket

from minicluster.errors import PortExhaustedError

logger = logging.getLogger(__name__)

MIN_PORT = 1024
MAX_PORT = (1 << 16) - 1
DEFAULT_ATTEMPTS = 13


class PortAllocator:
    """Finds free TCP ports with a bind-then-release probe.

    The port is released before it is returned, so another process can claim it
    before the child that was configured with it binds. That race is accepted for
    a test harness. Ports handed out by one allocator are never repeated.
    """

    def __init__(self, attempts: int = DEFAULT_ATTEMPTS, host: str = "", rng: random.Random | None = None):
        self.attempts = attempts
        self.host = host
        self._rng = rng or random.Random()
        self._issued: set[int] = set()

    @property
    def issued(self) -> frozenset[int]:
        return frozenset(self._issued)

    def _probe(self, port: int) -> bool:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind((self.host, port))
            return True
        except OSError as e:
            logger.debug(f"Port {port} unavailable: {e}")
            return False
        finally:
            sock.close()

    def allocate(self) -> int:
        for _ in range(self.attempts):
            port = self._rng.randint(MIN_PORT, MAX_PORT)
            if port in self._issued:
                continue
            if self._probe(port):
                self._issued.add(port)
                logger.debug(f"Allocated port {port}")
                return port

        raise PortExhaustedError(f"Unable to find a free TCP port after {self.attempts} attempts")

    def allocate_many(self, count: int) -> list[int]:
        return [self.allocate() for _ in range(count)]
