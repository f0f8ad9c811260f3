"""Socket construction and session lifecycle.

``create_multicast_socket`` opens, binds and joins a UDP socket to a
multicast group.  ``open_session`` / ``with_socket`` wrap such a socket in a
``Session`` and unbind it when the caller is done.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
import struct
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from multicast_ipc.config import SessionConfig, SocketConfig, load_config
from multicast_ipc.session import Session


__all__ = ["create_multicast_socket", "open_session", "with_socket"]

logger = logging.getLogger("multicast_ipc.endpoint")

R = TypeVar("R")


def create_multicast_socket(config: SessionConfig) -> socket.socket:
    """Create a non-blocking UDP socket joined to ``config.multicast_address``.

    The socket is bound to the wildcard address on ``config.port`` so it
    receives both group traffic and datagrams sent directly to it.

    Raises
    ------
    ValueError
        If the group address is not a multicast address.
    OSError
        If the socket cannot be bound or the group cannot be joined.
    """
    group = ipaddress.ip_address(config.multicast_address)
    if not group.is_multicast:
        msg = f"{config.multicast_address} is not a multicast address"
        raise ValueError(msg)

    family = socket.AF_INET6 if group.version == 6 else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        _configure(sock, family, config)
    except BaseException:
        sock.close()
        raise

    logger.info("Joined %s:%d", config.multicast_address, config.port)
    return sock


def _configure(sock: socket.socket, family: int, config: SessionConfig) -> None:
    options = config.socket
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    if options.reuse_port and hasattr(socket, "SO_REUSEPORT"):
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
    if options.receive_buffer_size is not None:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, options.receive_buffer_size)

    if family == socket.AF_INET6:
        sock.bind(("::", config.port))
        _join_ipv6(sock, config.multicast_address, options)
    else:
        sock.bind(("", config.port))
        _join_ipv4(sock, config.multicast_address, options)

    sock.setblocking(False)


def _join_ipv4(sock: socket.socket, group: str, options: SocketConfig) -> None:
    sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, options.ttl)
    sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, int(options.loopback))
    interface = options.interface or "0.0.0.0"
    if options.interface is not None:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(interface))
    mreq = struct.pack("=4s4s", socket.inet_aton(group), socket.inet_aton(interface))
    sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)


def _join_ipv6(sock: socket.socket, group: str, options: SocketConfig) -> None:
    sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_HOPS, options.ttl)
    sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_LOOP, int(options.loopback))
    index = socket.if_nametoindex(options.interface) if options.interface else 0
    if index:
        sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_IF, index)
    mreq = socket.inet_pton(socket.AF_INET6, group) + struct.pack("@I", index)
    sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_JOIN_GROUP, mreq)


@asynccontextmanager
async def open_session(config: SessionConfig | None = None) -> AsyncIterator[Session]:
    """Open a session on a freshly joined socket; unbind it on exit.

    Parameters
    ----------
    config : SessionConfig | None
        Group and socket settings.  ``None`` loads them with ``load_config()``.

    Examples
    --------
    >>> async with open_session(SessionConfig(port=6000)) as session:
    ...     await session.broadcast("hello")
    """
    if config is None:
        config = load_config()

    sock = create_multicast_socket(config)
    try:
        session = await Session.from_socket(
            sock, port=config.port, multicast_address=config.multicast_address,
        )
    except BaseException:
        sock.close()
        raise

    try:
        yield session
    finally:
        if not session.closed:
            await session.unbind()


async def with_socket(
    fn: Callable[[Session], Awaitable[R]],
    config: SessionConfig | None = None,
) -> R:
    """Run *fn* with a new session and return its result.

    The session is unbound when *fn* finishes, unless *fn* already did.

    Examples
    --------
    >>> async def announcer(session: Session) -> None:
    ...     req = await session.wait_for_message(
    ...         lambda message, info: message.startswith(b"join:")
    ...     )
    ...     await session.broadcast(f"Player {req.message[5:].decode()} has entered the arena!")
    >>> await with_socket(announcer)
    """
    async with open_session(config) as session:
        return await fn(session)
