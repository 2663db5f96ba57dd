from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from typing import Union

from .constants import HEADER_SIZE, LENGTH_FORMAT, LENGTH_SIZE, MAX_PACKET, MAX_PAYLOAD, TAG_SIZE
from .net import ByteStream

Payload = Union[bytes, str]


class PacketError(ValueError):
    pass


def _tag_bytes(tag: str) -> bytes:
    try:
        raw = tag.encode("ascii")
    except UnicodeEncodeError:
        raise PacketError(f"tag must be ASCII: {tag!r}") from None
    if len(raw) > TAG_SIZE:
        raise PacketError(f"tag too long: {tag!r} ({len(raw)} > {TAG_SIZE} bytes)")
    return raw.ljust(TAG_SIZE, b"\x00")


def _payload_bytes(payload: Payload) -> bytes:
    if isinstance(payload, str):
        payload = os.fsencode(payload)
    if len(payload) > MAX_PAYLOAD:
        raise PacketError(f"payload too large: {len(payload)} > {MAX_PAYLOAD} bytes")
    return bytes(payload)


@dataclass(frozen=True, slots=True)
class Packet:
    tag: str
    payload: bytes = b""

    @property
    def length(self) -> int:
        return HEADER_SIZE + len(self.payload)

    @property
    def text(self) -> str:
        return os.fsdecode(self.payload)

    def to_bytes(self) -> bytes:
        tag = _tag_bytes(self.tag)
        payload = _payload_bytes(self.payload)
        return struct.pack(LENGTH_FORMAT, HEADER_SIZE + len(payload)) + tag + payload

    @staticmethod
    def from_stream(stream: ByteStream) -> "Packet":
        (length,) = struct.unpack(LENGTH_FORMAT, stream.recv_exact(LENGTH_SIZE))
        if not HEADER_SIZE <= length <= MAX_PACKET:
            raise PacketError(f"bad packet length: {length}")
        tag = stream.recv_exact(TAG_SIZE).rstrip(b"\x00").decode("ascii", errors="replace")
        payload = stream.recv_exact(length - HEADER_SIZE)
        return Packet(tag=tag, payload=payload)

    def __iter__(self):
        # allows `tag, payload = decode(stream)`
        yield self.tag
        yield self.payload


def encode(tag: str, payload: Payload = b"") -> bytes:
    return Packet(tag, _payload_bytes(payload)).to_bytes()


def decode(stream: ByteStream) -> Packet:
    return Packet.from_stream(stream)


def send_packet(stream: ByteStream, tag: str, payload: Payload = b"") -> None:
    stream.send_all(encode(tag, payload))
