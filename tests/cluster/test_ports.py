"""Tests for PortAllocator: bind-then-release probing."""

from __future__ import annotations

import socket

import pytest

from minicluster.cluster import ports as ports_module
from minicluster.cluster.ports import MAX_PORT, MIN_PORT, PortAllocator
from minicluster.errors import PortExhaustedError


class SequenceRandom:
    """Returns the given candidates in order, then repeats the last one."""

    def __init__(self, *values: int):
        self.values = list(values)

    def randint(self, a: int, b: int) -> int:
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


class RefusingSocket:
    """socket.socket stand-in whose bind fails for the configured ports."""

    refused: set[int] = set()
    binds: list[int] = []

    def __init__(self, *args, **kwargs):
        pass

    def bind(self, address):
        RefusingSocket.binds.append(address[1])
        if address[1] in RefusingSocket.refused or "*" in RefusingSocket.refused:
            raise OSError(98, "Address already in use")

    def close(self):
        pass


@pytest.fixture
def refusing_socket(monkeypatch: pytest.MonkeyPatch) -> type[RefusingSocket]:
    RefusingSocket.refused = set()
    RefusingSocket.binds = []
    monkeypatch.setattr(ports_module.socket, "socket", RefusingSocket)
    return RefusingSocket


class TestAllocate:
    def test_returns_bindable_port(self) -> None:
        port = PortAllocator().allocate()
        assert MIN_PORT <= port <= MAX_PORT
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind(("", port))
        finally:
            sock.close()

    def test_many_ports_are_distinct(self) -> None:
        allocated = PortAllocator().allocate_many(20)
        assert len(set(allocated)) == 20

    def test_retries_after_bind_failure(self, refusing_socket) -> None:
        refusing_socket.refused = {5000, 5001}
        allocator = PortAllocator(rng=SequenceRandom(5000, 5001, 5002))
        assert allocator.allocate() == 5002
        assert refusing_socket.binds == [5000, 5001, 5002]

    def test_never_repeats_an_issued_port(self, refusing_socket) -> None:
        allocator = PortAllocator(rng=SequenceRandom(6000, 6000, 6000, 6001))
        assert allocator.allocate() == 6000
        assert allocator.allocate() == 6001
        assert allocator.issued == {6000, 6001}


class TestExhaustion:
    def test_gives_up_after_thirteen_attempts(self, refusing_socket) -> None:
        refusing_socket.refused = {"*"}
        allocator = PortAllocator()
        with pytest.raises(PortExhaustedError, match="13 attempts"):
            allocator.allocate()
        assert len(refusing_socket.binds) == 13

    def test_repeated_candidates_count_as_attempts(self, refusing_socket) -> None:
        allocator = PortAllocator(attempts=3, rng=SequenceRandom(7000))
        assert allocator.allocate() == 7000
        with pytest.raises(PortExhaustedError):
            allocator.allocate()
