from __future__ import annotations

import logging
import os
import socket
from pathlib import Path
from typing import List, Optional, Union

from .constants import ACK, CLOSE, DONE, DPORT, ERROR, FILE, FNAME, GET, LIST
from .net import TcpStream, accept, listening
from .packet import decode, send_packet

log = logging.getLogger(__name__)


class RemoteError(Exception):
    """The server answered with an ERROR packet."""


class ProtocolError(Exception):
    """The server sent a packet that makes no sense at this point."""


class Client:
    """Client side of the protocol. Every request is a fresh session."""

    def __init__(self, host: str, port: int, data_port: int = 0, data_host: str = ""):
        self.host = host
        self.port = port
        self.data_port = data_port
        self.data_host = data_host

    def list_files(self) -> List[str]:
        names: List[str] = []

        def on_data(data: TcpStream) -> None:
            while True:
                pkt = decode(data)
                if pkt.tag == DONE:
                    return
                if pkt.tag != FNAME:
                    raise ProtocolError(f"unexpected {pkt.tag!r} in listing")
                names.append(pkt.text)

        self._request(LIST, "", on_data)
        return names

    def get(self, filename: str, dest_dir: Union[str, os.PathLike] = ".") -> Path:
        dest = Path(dest_dir) / os.path.basename(filename)
        if dest.exists():
            raise FileExistsError(f"{dest} already exists")
        partial = dest.with_name(dest.name + ".part")
        received = False

        def on_data(data: TcpStream) -> None:
            nonlocal received
            pkt = decode(data)
            if pkt.tag == DONE:
                return
            if pkt.tag != FILE:
                raise ProtocolError(f"expected {FILE!r}, got {pkt.tag!r}")
            log.debug("receiving %r", pkt.text)
            with open(partial, "wb") as out:
                while True:
                    pkt = decode(data)
                    if pkt.tag == DONE:
                        break
                    if pkt.tag != FILE:
                        raise ProtocolError(f"unexpected {pkt.tag!r} in file stream")
                    out.write(pkt.payload)
            received = True

        try:
            self._request(GET, filename, on_data)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
        if not received:
            raise ProtocolError("server finished without sending the file")
        partial.replace(dest)
        log.info("transfer complete: %s", dest)
        return dest

    def _request(self, command: str, argument: str, on_data) -> None:
        error: Optional[str] = None
        listener = listening(self.data_host, self.data_port, poll_s=0)
        try:
            data_port = listener.getsockname()[1]
            with TcpStream(socket.create_connection((self.host, self.port))) as control:
                send_packet(control, DPORT, str(data_port))
                send_packet(control, command, argument)

                reply = decode(control)
                if reply.tag == ERROR:
                    raise RemoteError(reply.text)
                if reply.tag != ACK:
                    raise ProtocolError(f"expected {ACK!r}, got {reply.tag!r}")

                with accept(listener) as data:
                    on_data(data)

                while True:
                    pkt = decode(control)
                    if pkt.tag == CLOSE:
                        break
                    if pkt.tag == ERROR:
                        error = pkt.text
                    else:
                        log.warning("ignoring %r on control connection", pkt.tag)
                send_packet(control, ACK)
        finally:
            listener.close()
        if error is not None:
            raise RemoteError(error)
