"""Datagram protocol that turns transport callbacks into listener events.

``MessageEmitter`` is the event source of a session's socket.  Listeners are
registered per event name and fire synchronously from the transport callbacks:

- ``"message"`` ``(data: bytes, info: SourceInfo)`` for every datagram
- ``"error"`` ``(exc: OSError)`` for socket errors
- ``"close"`` ``(exc: Exception | None)`` when the transport is closed

Datagrams arriving while no ``"message"`` listener is registered are dropped.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeAlias

from multicast_ipc.datagram import Family, SourceInfo


__all__ = ["Listener", "MessageEmitter"]

logger = logging.getLogger("multicast_ipc.emitter")


Listener: TypeAlias = Callable[..., Any]


@dataclass(frozen=True, eq=False)
class _Registration:
    listener: Listener
    once: bool


class MessageEmitter(asyncio.DatagramProtocol):
    """asyncio datagram protocol with once/on listener registration.

    Examples
    --------
    >>> emitter = MessageEmitter()
    >>> seen = []
    >>> emitter.once("message", lambda data, info: seen.append(data))
    >>> emitter.datagram_received(b"hi", ("10.0.0.7", 5007))
    >>> emitter.datagram_received(b"dropped", ("10.0.0.7", 5007))
    >>> seen
    [b'hi']
    >>> emitter.listener_count("message")
    0
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[_Registration]] = {}
        self._transport: asyncio.DatagramTransport | None = None
        self._lost = asyncio.Event()
        self._close_exc: Exception | None = None
        self.family: Family = "IPv4"

    @property
    def transport(self) -> asyncio.DatagramTransport | None:
        return self._transport

    @property
    def lost(self) -> bool:
        """``True`` once the transport has reported the connection lost."""
        return self._lost.is_set()

    def on(self, event: str, listener: Listener) -> None:
        """Register *listener* for every emission of *event*."""
        self._listeners.setdefault(event, []).append(_Registration(listener, once=False))

    def once(self, event: str, listener: Listener) -> None:
        """Register *listener* for the next emission of *event* only.

        The registration is removed before the listener is invoked.
        """
        self._listeners.setdefault(event, []).append(_Registration(listener, once=True))

    def remove_listener(self, event: str, listener: Listener) -> None:
        """Remove the most recent registration of *listener* for *event*.

        Removing a listener that is not registered is a no-op.
        """
        registrations = self._listeners.get(event)
        if not registrations:
            return
        for index in range(len(registrations) - 1, -1, -1):
            if registrations[index].listener == listener:
                del registrations[index]
                break
        if not registrations:
            del self._listeners[event]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """Invoke the listeners of *event* in registration order.

        Listeners registered or removed during the emission do not change
        which listeners it reaches.  Exceptions raised by a listener
        propagate to the caller.

        Returns
        -------
        bool
            ``True`` if *event* had listeners.
        """
        registrations = self._listeners.get(event)
        if not registrations:
            return False
        for registration in list(registrations):
            if registration.once:
                self._discard(event, registration)
            registration.listener(*args)
        return True

    def _discard(self, event: str, registration: _Registration) -> None:
        registrations = self._listeners.get(event)
        if registrations is None or registration not in registrations:
            return
        registrations.remove(registration)
        if not registrations:
            del self._listeners[event]

    async def wait_closed(self) -> None:
        """Wait until the transport reports the connection lost.

        Raises
        ------
        Exception
            The error the transport was closed with, if any.
        """
        await self._lost.wait()
        if self._close_exc is not None:
            raise self._close_exc

    # asyncio.DatagramProtocol

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport  # type: ignore[assignment]
        sock = transport.get_extra_info("socket")
        if sock is not None and sock.family == socket.AF_INET6:
            self.family = "IPv6"

    def datagram_received(self, data: bytes, addr: tuple[Any, ...]) -> None:
        host, port = addr[0], addr[1]
        info = SourceInfo(address=host, family=self.family, port=port, size=len(data))
        if not self.emit("message", data, info):
            logger.debug("Dropped %d bytes from %s:%d (no listener)", len(data), host, port)

    def error_received(self, exc: Exception) -> None:
        if not self.emit("error", exc):
            logger.error("UDP error: %s", exc)

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is not None:
            logger.error("UDP connection lost: %s", exc)
        self._close_exc = exc
        self._lost.set()
        self.emit("close", exc)
