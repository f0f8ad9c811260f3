"""Multicast communication session.

A ``Session`` owns one open, group-joined datagram socket and exposes:

- the transport facade: ``send``, ``broadcast``, ``unbind``
- the filtered wait: ``wait_for_message``, built from one-shot listens
  driven by ``repeat_while``
- the loop primitives ``repeat_while`` / ``repeat_for`` for composing
  protocol exchanges (broadcast, wait, branch, repeat)

Only one ``wait_for_message`` may be in flight per session.  Sends may
interleave freely with a pending wait.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any, TypeAlias, TypeVar

from multicast_ipc import repeat
from multicast_ipc.datagram import Payload, ReceivedDatagram, SourceInfo, to_bytes
from multicast_ipc.emitter import MessageEmitter
from multicast_ipc.errors import ConcurrentWaitError, SessionClosedError


__all__ = ["MessageFilter", "Session"]

logger = logging.getLogger("multicast_ipc.session")


T = TypeVar("T")

MessageFilter: TypeAlias = Callable[[bytes, SourceInfo], Any]


def _is_ip_literal(address: str) -> bool:
    try:
        ipaddress.ip_address(address)
    except ValueError:
        return False
    return True


class Session:
    """Send, broadcast and wait for datagrams over one multicast socket.

    Parameters
    ----------
    transport : asyncio.DatagramTransport
        Transport wrapping the session's socket.
    emitter : MessageEmitter
        Protocol instance attached to *transport*.
    port : int
        Group port used by ``broadcast``.
    multicast_address : str
        Group address used by ``broadcast``.

    Examples
    --------
    >>> async with open_session() as session:
    ...     await session.broadcast("join:alice")
    ...     req = await session.wait_for_message(
    ...         lambda message, info: message.startswith(b"welcome:")
    ...     )
    ...     await session.send("thanks", req.port, req.address)
    """

    def __init__(
        self,
        transport: asyncio.DatagramTransport,
        emitter: MessageEmitter,
        *,
        port: int,
        multicast_address: str,
    ) -> None:
        self._transport = transport
        self._emitter = emitter
        self._port = port
        self._multicast_address = multicast_address
        self._closed = False
        self._waiting = False

    @classmethod
    async def from_socket(
        cls,
        sock: socket.socket,
        *,
        port: int,
        multicast_address: str,
    ) -> Session:
        """Attach a session to an already bound and joined socket."""
        loop = asyncio.get_running_loop()
        transport, emitter = await loop.create_datagram_endpoint(MessageEmitter, sock=sock)
        return cls(transport, emitter, port=port, multicast_address=multicast_address)

    @property
    def port(self) -> int:
        return self._port

    @property
    def multicast_address(self) -> str:
        return self._multicast_address

    @property
    def closed(self) -> bool:
        """``True`` after ``unbind`` or once the transport was lost."""
        return self._closed or self._emitter.lost

    @property
    def emitter(self) -> MessageEmitter:
        return self._emitter

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self.closed:
            await self.unbind()

    def _ensure_open(self) -> None:
        if self._closed:
            msg = "Session is unbound"
            raise SessionClosedError(msg)
        if self._emitter.lost:
            msg = "Session transport was lost"
            raise SessionClosedError(msg)

    # transport facade

    async def broadcast(self, message: Payload) -> None:
        """Send *message* to every session joined to the group.

        Receivers must be bound to the same port and joined to the same
        multicast address as this session.
        """
        await self.send(message, self._port, self._multicast_address)

    async def send(self, message: Payload, port: int, address: str) -> None:
        """Send *message* to ``address:port``.

        Works for 1:1 replies as well as for group messaging when *address*
        is a multicast address.  Host names are resolved with the event
        loop's resolver; IP literals and the empty string are passed to the
        socket unchanged.

        Returns once the transport has taken the datagram; *message* may be
        reused afterwards.

        Raises
        ------
        SessionClosedError
            If the session was unbound or its transport was lost.
        OSError
            If resolution or the socket send fails.
        """
        self._ensure_open()
        data = to_bytes(message)
        target = await self._resolve(address, port)
        self._ensure_open()

        errors: list[Exception] = []
        on_error = errors.append
        self._emitter.once("error", on_error)
        try:
            self._transport.sendto(data, target)
        finally:
            self._emitter.remove_listener("error", on_error)
        if errors:
            raise errors[0]
        logger.debug("Sent %d bytes to %s:%d", len(data), address, port)

    async def _resolve(self, address: str, port: int) -> tuple[Any, ...]:
        if not address or _is_ip_literal(address):
            return (address, port)
        family = socket.AF_INET6 if self._emitter.family == "IPv6" else socket.AF_INET
        infos = await asyncio.get_running_loop().getaddrinfo(
            address, port, family=family, type=socket.SOCK_DGRAM,
        )
        return infos[0][4]

    async def unbind(self) -> None:
        """Close the socket.  No further operation is possible afterwards.

        Raises
        ------
        SessionClosedError
            If the session was already unbound.
        """
        self._ensure_open()
        self._closed = True
        self._transport.close()
        await self._emitter.wait_closed()
        logger.info("Unbound session on %s:%d", self._multicast_address, self._port)

    # filtered wait

    async def wait_for_message(self, filter: MessageFilter | None = None) -> ReceivedDatagram:
        """Wait for the next datagram accepted by *filter*.

        *filter* is called as ``filter(message, info)`` for each received
        datagram; only a return value that ``is True`` accepts it.  Without a
        filter the next datagram is accepted.  Rejected datagrams are dropped
        and the wait re-arms for the next one.

        Cancelling the wait (for instance with ``asyncio.wait_for``) removes
        its listener, leaving the session usable.

        Raises
        ------
        SessionClosedError
            If the session is or becomes unbound, or its transport is lost.
        ConcurrentWaitError
            If another wait is already in flight on this session.
        Exception
            Whatever *filter* raises.
        """
        self._ensure_open()
        if self._waiting:
            msg = "wait_for_message is already in flight on this session"
            raise ConcurrentWaitError(msg)

        self._waiting = True
        try:
            return await repeat.repeat_while(
                lambda received: received is None,
                lambda _: self._listen_once(filter),
                None,
            )
        finally:
            self._waiting = False

    async def _listen_once(self, filter: MessageFilter | None) -> ReceivedDatagram | None:
        future: asyncio.Future[ReceivedDatagram | None] = (
            asyncio.get_running_loop().create_future()
        )

        def on_message(data: bytes, info: SourceInfo) -> None:
            if future.done():
                return
            try:
                accepted = filter is None or filter(data, info) is True
            except Exception as exc:
                future.set_exception(exc)
                return
            if accepted:
                future.set_result(ReceivedDatagram.from_source(data, info))
            else:
                logger.debug("Discarded %d bytes from %s:%d", info.size, info.address, info.port)
                future.set_result(None)

        def on_close(exc: Exception | None) -> None:
            if not future.done():
                future.set_exception(SessionClosedError("Session closed while waiting"))

        self._emitter.once("message", on_message)
        self._emitter.once("close", on_close)
        try:
            return await future
        finally:
            self._emitter.remove_listener("message", on_message)
            self._emitter.remove_listener("close", on_close)

    # loop primitives

    async def repeat_while(
        self,
        condition: Callable[[T], bool],
        action: Callable[[T], Awaitable[T] | T],
        last_value: T,
    ) -> T:
        """Loop *action* while *condition* holds.  See ``repeat.repeat_while``.

        *action* is typically a whole exchange of the protocol built from
        ``broadcast``, ``send`` and ``wait_for_message``.
        """
        return await repeat.repeat_while(condition, action, last_value)

    async def repeat_for(self, count: int, fn: Callable[[], Any]) -> int:
        """Call *fn* ``max(count, 0)`` times in sequence; returns ``0``."""
        return await repeat.repeat_for(count, fn)
