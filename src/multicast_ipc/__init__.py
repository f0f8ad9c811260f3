"""multicast-ipc - inter-process messaging over UDP multicast.

Basic usage:
    import asyncio

    from multicast_ipc import Session, with_socket

    async def announcer(session: Session) -> None:
        req = await session.wait_for_message(
            lambda message, info: message.startswith(b"join:")
        )
        await session.broadcast(
            f"Player {req.message[5:].decode()} has entered the arena!"
        )

    asyncio.run(with_socket(announcer))
"""

from multicast_ipc.config import SessionConfig, SocketConfig, discover_config, load_config
from multicast_ipc.datagram import Family, Payload, ReceivedDatagram, SourceInfo
from multicast_ipc.emitter import MessageEmitter
from multicast_ipc.endpoint import create_multicast_socket, open_session, with_socket
from multicast_ipc.errors import ConcurrentWaitError, MulticastIpcError, SessionClosedError
from multicast_ipc.repeat import repeat_for, repeat_while
from multicast_ipc.session import MessageFilter, Session

__all__ = [
    "ConcurrentWaitError",
    "Family",
    "MessageEmitter",
    "MessageFilter",
    "MulticastIpcError",
    "Payload",
    "ReceivedDatagram",
    "Session",
    "SessionClosedError",
    "SessionConfig",
    "SocketConfig",
    "SourceInfo",
    "create_multicast_socket",
    "discover_config",
    "load_config",
    "open_session",
    "repeat_for",
    "repeat_while",
    "with_socket",
]
