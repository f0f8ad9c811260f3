"""Records describing received datagrams.

``SourceInfo`` is what a message filter sees alongside the raw payload;
``ReceivedDatagram`` is what ``Session.wait_for_message`` returns once a
datagram is accepted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias


__all__ = [
    "Family",
    "Payload",
    "ReceivedDatagram",
    "SourceInfo",
    "to_bytes",
]


Family: TypeAlias = Literal["IPv4", "IPv6"]
Payload: TypeAlias = bytes | bytearray | memoryview | str


@dataclass(frozen=True)
class SourceInfo:
    """Sender of a datagram.

    Parameters
    ----------
    address : str
        Source IP address.
    family : Family
        ``"IPv4"`` or ``"IPv6"``.
    port : int
        Source UDP port.
    size : int
        Payload length in bytes.

    Examples
    --------
    >>> SourceInfo(address="10.0.0.7", family="IPv4", port=5007, size=4)
    SourceInfo(address='10.0.0.7', family='IPv4', port=5007, size=4)
    """

    address: str
    family: Family
    port: int
    size: int


@dataclass(frozen=True)
class ReceivedDatagram:
    """A datagram accepted by ``Session.wait_for_message``.

    Parameters
    ----------
    message : bytes
        Raw payload.
    address : str
        Source IP address.
    family : Family
        ``"IPv4"`` or ``"IPv6"``.
    port : int
        Source UDP port. Replying with ``session.send(..., req.port,
        req.address)`` reaches the sender directly.

    Examples
    --------
    >>> info = SourceInfo(address="10.0.0.7", family="IPv4", port=5007, size=4)
    >>> ReceivedDatagram.from_source(b"ping", info).message
    b'ping'
    """

    message: bytes
    address: str
    family: Family
    port: int

    @staticmethod
    def from_source(message: bytes, info: SourceInfo) -> ReceivedDatagram:
        return ReceivedDatagram(
            message=message,
            address=info.address,
            family=info.family,
            port=info.port,
        )


def to_bytes(message: Payload) -> bytes:
    """Coerce an outgoing message to an immutable ``bytes`` buffer.

    Text is encoded as UTF-8.

    Raises
    ------
    TypeError
        If *message* is neither text nor a bytes-like object.
    """
    match message:
        case str():
            return message.encode("utf-8")
        case bytes():
            return message
        case bytearray() | memoryview():
            return bytes(message)
        case _:
            msg = f"message must be str or bytes-like, got {type(message).__name__}"
            raise TypeError(msg)
