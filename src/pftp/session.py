from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .constants import ACK, CLOSE, DPORT, ERROR, GET, LIST, USAGE_MESSAGE
from .net import ByteStream
from .packet import decode, send_packet
from .transfer import Command

log = logging.getLogger(__name__)


class SessionState(enum.Enum):
    AWAIT_DPORT = "await-dport"
    AWAIT_COMMAND = "await-command"
    DISPATCHED = "dispatched"
    REJECTED = "rejected"
    CLOSED = "closed"


@dataclass(slots=True)
class Session:
    data_port: Optional[int]
    command: Command
    filename: str = ""


def parse_port(payload: bytes) -> Optional[int]:
    try:
        return int(payload.decode("ascii").strip())
    except (UnicodeDecodeError, ValueError):
        return None


class ControlSession:
    """Server side of one control connection.

    Reads the data port and the command, acknowledges or rejects it, and
    closes the session once the caller has finished the transfer. Never
    opens sockets itself.
    """

    def __init__(self, control: ByteStream):
        self.control = control
        self.state = SessionState.AWAIT_DPORT
        self.data_port: Optional[int] = None

    def _expect(self, *states: SessionState) -> None:
        if self.state not in states:
            raise RuntimeError(f"invalid session state: {self.state.value}")

    def read_data_port(self) -> Optional[int]:
        self._expect(SessionState.AWAIT_DPORT)
        pkt = decode(self.control)
        if pkt.tag == DPORT:
            self.data_port = parse_port(pkt.payload)
        if self.data_port is None:
            log.warning("no usable data port announced (tag=%r payload=%r)", pkt.tag, pkt.payload)
        else:
            log.debug("data port %d", self.data_port)
        self.state = SessionState.AWAIT_COMMAND
        return self.data_port

    def read_command(self) -> Optional[Session]:
        self._expect(SessionState.AWAIT_COMMAND)
        pkt = decode(self.control)
        filename = pkt.text
        if pkt.tag not in (LIST, GET) or (pkt.tag == GET and not filename):
            log.warning("rejected command %r", pkt.tag)
            send_packet(self.control, ERROR, USAGE_MESSAGE)
            self.state = SessionState.REJECTED
            return None

        command = Command(pkt.tag)
        if command is Command.LIST:
            filename = ""
        send_packet(self.control, ACK)
        self.state = SessionState.DISPATCHED
        log.info("accepted %s %s", command.value, filename)
        return Session(data_port=self.data_port, command=command, filename=filename)

    def handshake(self) -> Optional[Session]:
        """Data port then command. Returns None if the command was rejected."""
        self.read_data_port()
        return self.read_command()

    def finish(self) -> None:
        """Send CLOSE and wait for the client's final acknowledgment."""
        self._expect(SessionState.DISPATCHED)
        send_packet(self.control, CLOSE)
        self.state = SessionState.CLOSED
        try:
            pkt = decode(self.control)
        except ConnectionError:
            log.info("client closed the control connection without acknowledging")
            return
        if pkt.tag != ACK:
            log.warning("expected %s from client, got %r", ACK, pkt.tag)
