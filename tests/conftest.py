"""Shared fixtures and test doubles for multicast-ipc tests."""

from __future__ import annotations

import asyncio
import socket
from typing import Any

import pytest

from multicast_ipc import MessageEmitter, Session


GROUP = "239.255.42.1"
PORT = 5007
PEER = ("10.0.0.7", 5007)


class FakeDatagramTransport(asyncio.DatagramTransport):
    """In-memory datagram transport: records sends, closes asynchronously.

    Setting ``fail_with`` makes ``sendto`` report that error through the
    protocol's ``error_received``, the way selector transports do.
    """

    def __init__(self, protocol: MessageEmitter, *, family: int = socket.AF_INET) -> None:
        super().__init__()
        self._protocol = protocol
        self._family = family
        self._closing = False
        self.sent: list[tuple[bytes, Any]] = []
        self.fail_with: OSError | None = None

    def sendto(self, data: Any, addr: Any = None) -> None:
        if self.fail_with is not None:
            self._protocol.error_received(self.fail_with)
            return
        self.sent.append((bytes(data), addr))

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        asyncio.get_running_loop().call_soon(self._protocol.connection_lost, None)

    def abort(self) -> None:
        self.close()

    def is_closing(self) -> bool:
        return self._closing

    def get_extra_info(self, name: str, default: Any = None) -> Any:
        if name == "socket":
            return _FakeSocket(self._family)
        return default


class _FakeSocket:
    def __init__(self, family: int) -> None:
        self.family = family


@pytest.fixture
def emitter() -> MessageEmitter:
    return MessageEmitter()


@pytest.fixture
def transport(emitter: MessageEmitter) -> FakeDatagramTransport:
    fake = FakeDatagramTransport(emitter)
    emitter.connection_made(fake)
    return fake


@pytest.fixture
def session(transport: FakeDatagramTransport, emitter: MessageEmitter) -> Session:
    return Session(transport, emitter, port=PORT, multicast_address=GROUP)


async def until_listening(emitter: MessageEmitter, event: str = "message") -> None:
    """Yield to the loop until a listener for *event* is registered."""
    for _ in range(100):
        if emitter.listener_count(event):
            return
        await asyncio.sleep(0)
    msg = f"no {event!r} listener registered"
    raise AssertionError(msg)


def free_udp_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
