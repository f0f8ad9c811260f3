"""Exceptions raised by multicast-ipc sessions."""

from __future__ import annotations


__all__ = [
    "ConcurrentWaitError",
    "MulticastIpcError",
    "SessionClosedError",
]


class MulticastIpcError(Exception):
    pass


class SessionClosedError(MulticastIpcError, OSError):
    """The session was unbound; its socket can no longer be used.

    Also an ``OSError``, so callers handling transport failures of ``send``
    or ``unbind`` catch it too.
    """


class ConcurrentWaitError(MulticastIpcError):
    """A ``wait_for_message`` call is already in flight on this session."""
