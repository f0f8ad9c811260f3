"""TOML-based configuration for multicast sessions.

Provides ``load_config`` / ``discover_config`` for loading
``multicast-ipc.toml`` into frozen ``SessionConfig`` / ``SocketConfig``
dataclasses.

Example file::

    [session]
    port = 5007
    multicast_address = "239.255.42.1"

    [socket]
    ttl = 1
    loopback = true
    interface = "192.168.1.10"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path


__all__ = [
    "CONFIG_FILENAME",
    "SessionConfig",
    "SocketConfig",
    "discover_config",
    "load_config",
]


CONFIG_FILENAME = "multicast-ipc.toml"


@dataclass(frozen=True)
class SocketConfig:
    """Options applied when the multicast socket is created.

    Parameters
    ----------
    ttl : int
        Multicast TTL (IPv4) or hop limit (IPv6).  ``1`` keeps traffic on the
        local network.
    loopback : bool
        Deliver our own group messages back to sockets on this host.
    interface : str | None
        Interface used to join the group and send group traffic: a local
        IPv4 address for IPv4 groups, an interface name for IPv6 groups.
        ``None`` lets the OS choose.
    reuse_port : bool
        Set ``SO_REUSEPORT`` where the platform has it, so several processes
        on one host can join the same group and port.
    receive_buffer_size : int | None
        ``SO_RCVBUF`` in bytes.  ``None`` keeps the OS default.

    Examples
    --------
    >>> SocketConfig(ttl=4, interface="10.0.0.2")
    SocketConfig(ttl=4, loopback=True, interface='10.0.0.2', reuse_port=True, receive_buffer_size=None)
    """

    ttl: int = 1
    loopback: bool = True
    interface: str | None = None
    reuse_port: bool = True
    receive_buffer_size: int | None = None


@dataclass(frozen=True)
class SessionConfig:
    """Group membership of a session.

    Parameters
    ----------
    port : int
        UDP port every member binds to.
    multicast_address : str
        IPv4 or IPv6 multicast group address.
    socket : SocketConfig
        Socket-level options.

    Examples
    --------
    >>> SessionConfig(port=6000).multicast_address
    '239.255.42.1'
    """

    port: int = 5007
    multicast_address: str = "239.255.42.1"
    socket: SocketConfig = field(default_factory=SocketConfig)


def discover_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ``multicast-ipc.toml``.

    Returns
    -------
    Path | None
        Path to the discovered config file, or ``None`` if not found.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(path: Path | None = None) -> SessionConfig:
    """Load a ``SessionConfig`` from a TOML file.

    If *path* is ``None``, auto-discovers ``multicast-ipc.toml`` by walking up
    from the current working directory.  Returns the default config if no file
    is found.

    Raises
    ------
    FileNotFoundError
        If an explicit *path* is given but does not exist.
    TypeError
        If a table contains an unknown key, or ``[session]`` holds a
        ``socket`` key.

    Examples
    --------
    >>> config = load_config(Path("multicast-ipc.toml"))
    >>> config.port
    5007
    """
    if path is None:
        discovered = discover_config()
        if discovered is None:
            return SessionConfig()
        path = discovered

    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open("rb") as f:
        raw = tomllib.load(f)

    session_table = dict(raw.get("session", {}))
    if "socket" in session_table:
        msg = f"{path}: socket options belong in the [socket] table, not under [session]"
        raise TypeError(msg)

    socket_config = SocketConfig(**raw.get("socket", {}))
    return SessionConfig(**session_table, socket=socket_config)
