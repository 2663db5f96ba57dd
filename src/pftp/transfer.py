from __future__ import annotations

import enum
import logging
import os
from typing import BinaryIO, Union

from .constants import DONE, ERROR, FILE, FNAME, MAX_PAYLOAD, NOT_FOUND_MESSAGE, READ_ERROR_MESSAGE
from .listing import list_files
from .net import ByteStream
from .packet import send_packet

log = logging.getLogger(__name__)


class Command(str, enum.Enum):
    LIST = "LIST"
    GET = "GET"


class Outcome(enum.Enum):
    OK = "ok"
    NOT_FOUND = "not found"
    READ_ERROR = "read error"


def send_listing(data: ByteStream, directory: Union[str, os.PathLike]) -> int:
    names = list_files(directory)
    for name in names:
        send_packet(data, FNAME, name)
    return len(names)


def send_file(data: ByteStream, name: str, f: BinaryIO) -> int:
    """Stream ``f`` as FILE packets: the name, then chunks, then an empty chunk."""
    send_packet(data, FILE, name)
    total = 0
    while True:
        chunk = f.read(MAX_PAYLOAD)
        send_packet(data, FILE, chunk)
        if not chunk:
            break
        total += len(chunk)
    return total


def transfer(
    data: ByteStream,
    control: ByteStream,
    command: Command,
    filename: str,
    directory: Union[str, os.PathLike] = ".",
) -> Outcome:
    """Run one request over the data connection.

    Every call that returns ends the data stream with exactly one DONE packet.
    Missing or unopenable files are reported as ERROR on the control
    connection. OSError while reading an opened file propagates, leaving the
    stream unterminated.
    """
    outcome = _run(data, control, Command(command), filename, directory)
    send_packet(data, DONE)
    return outcome


def _run(
    data: ByteStream,
    control: ByteStream,
    command: Command,
    filename: str,
    directory: Union[str, os.PathLike],
) -> Outcome:
    if command is Command.LIST:
        count = send_listing(data, directory)
        log.info("sent listing of %d files", count)
        return Outcome.OK

    if filename not in list_files(directory):
        log.warning("GET %r: %s", filename, NOT_FOUND_MESSAGE)
        send_packet(control, ERROR, NOT_FOUND_MESSAGE)
        return Outcome.NOT_FOUND

    try:
        f = open(os.path.join(directory, filename), "rb")
    except OSError as exc:
        log.warning("GET %r: %s (%s)", filename, READ_ERROR_MESSAGE, exc)
        send_packet(control, ERROR, READ_ERROR_MESSAGE)
        return Outcome.READ_ERROR

    with f:
        log.info("sending %r", filename)
        total = send_file(data, filename, f)
    log.info("sent %r (%d bytes)", filename, total)
    return Outcome.OK
