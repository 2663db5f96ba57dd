from __future__ import annotations

import socket
from typing import Optional, Protocol, Tuple

from .constants import ACCEPT_POLL_S, BACKLOG


class ConnectionClosed(ConnectionError):
    """The peer closed the connection before a full read completed."""


class ByteStream(Protocol):
    def recv_exact(self, n: int) -> bytes: ...

    def send_all(self, data: bytes) -> None: ...


class TcpStream:
    def __init__(self, sock: socket.socket, peer: Tuple[str, int] | None = None):
        self.sock = sock
        self.peer = peer

    @classmethod
    def connect(cls, host: str, port: Optional[int]) -> "TcpStream":
        if port is None:
            raise ConnectionError(f"no data port to connect to on {host}")
        sock = socket.create_connection((host, port))
        return cls(sock, (host, port))

    def recv_exact(self, n: int) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            chunk = self.sock.recv(n - len(buf))
            if not chunk:
                raise ConnectionClosed(f"connection closed after {len(buf)} of {n} bytes")
            buf += chunk
        return bytes(buf)

    def send_all(self, data: bytes) -> None:
        self.sock.sendall(data)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "TcpStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def listening(
    host: str,
    port: int,
    backlog: int = BACKLOG,
    poll_s: float = ACCEPT_POLL_S,
) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind((host, port))
    sock.listen(backlog)
    if poll_s > 0:
        sock.settimeout(poll_s)
    return sock


def accept(sock: socket.socket) -> TcpStream:
    """Accept one connection; raises socket.timeout when the poll interval lapses."""
    conn, addr = sock.accept()
    # session I/O never times out
    conn.settimeout(None)
    return TcpStream(conn, addr)
