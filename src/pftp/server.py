from __future__ import annotations

import logging
import signal
import socket
import threading
from dataclasses import dataclass
from typing import Optional, Tuple

from .constants import ACCEPT_POLL_S, BACKLOG, DEFAULT_HOST
from .net import TcpStream, accept, listening
from .packet import PacketError
from .session import ControlSession
from .transfer import transfer

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ServerConfig:
    port: int
    host: str = DEFAULT_HOST
    directory: str = "."
    backlog: int = BACKLOG
    poll_s: float = ACCEPT_POLL_S


class Server:
    """Sequential server: one control connection and one data connection at a time."""

    def __init__(self, config: ServerConfig):
        self.config = config
        self.sock: Optional[socket.socket] = None

    def bind(self) -> Tuple[str, int]:
        self._listen()
        return self.address

    def _listen(self) -> socket.socket:
        if self.sock is None:
            self.sock = listening(
                self.config.host,
                self.config.port,
                backlog=self.config.backlog,
                poll_s=self.config.poll_s,
            )
            log.info("server open on %s:%d serving %s", *self.address, self.config.directory)
        return self.sock

    @property
    def address(self) -> Tuple[str, int]:
        if self.sock is None:
            raise RuntimeError("server is not bound")
        host, port = self.sock.getsockname()[:2]
        return host, port

    def serve_forever(self, stop: threading.Event) -> None:
        sock = self._listen()
        try:
            while not stop.is_set():
                try:
                    control = accept(sock)
                except socket.timeout:
                    continue
                self.handle(control)
        finally:
            self.close()
        log.info("server stopped")

    def handle(self, control: TcpStream) -> None:
        client_host = control.peer[0]
        log.info("control connection established with %s", client_host)
        with control:
            session = ControlSession(control)
            try:
                request = session.handshake()
            except PacketError as exc:
                log.warning("rejected malformed packet from %s: %s", client_host, exc)
                return
            if request is None:
                return

            with TcpStream.connect(client_host, request.data_port) as data:
                log.info("data connection established with %s:%d", client_host, request.data_port)
                outcome = transfer(data, control, request.command, request.filename, self.config.directory)
            log.info("data connection closed (%s)", outcome.value)

            try:
                session.finish()
            except PacketError as exc:
                log.warning("malformed acknowledgment from %s: %s", client_host, exc)
        log.info("control connection closed")

    def close(self) -> None:
        if self.sock is not None:
            self.sock.close()
            self.sock = None


def install_signal_handlers(stop: threading.Event) -> None:
    """SIGINT/SIGTERM stop the server after the current session.

    A second signal restores the default action and re-raises it, so a
    stalled session cannot keep the process alive.
    """

    def _handle(signum, frame):
        name = signal.Signals(signum).name
        if stop.is_set():
            log.warning("received %s again; terminating now", name)
            signal.signal(signum, signal.SIG_DFL)
            signal.raise_signal(signum)
            return
        log.info("received %s; stopping after the current session", name)
        stop.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)
