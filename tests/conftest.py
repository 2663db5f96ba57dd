from __future__ import annotations

import io

import pytest

from pftp.net import ConnectionClosed
from pftp.packet import Packet, decode, encode


class MemoryStream:
    """In-memory ByteStream: reads from a fixed input, records everything sent."""

    def __init__(self, incoming: bytes = b""):
        self._in = io.BytesIO(incoming)
        self.sent = bytearray()

    @classmethod
    def of(cls, *packets: tuple) -> "MemoryStream":
        return cls(b"".join(encode(*p) for p in packets))

    def recv_exact(self, n: int) -> bytes:
        data = self._in.read(n)
        if len(data) < n:
            raise ConnectionClosed(f"connection closed after {len(data)} of {n} bytes")
        return data

    def send_all(self, data: bytes) -> None:
        self.sent += data

    def packets(self) -> list[Packet]:
        out = MemoryStream(bytes(self.sent))
        result = []
        while out._in.tell() < len(self.sent):
            result.append(decode(out))
        return result

    def tags(self) -> list[str]:
        return [p.tag for p in self.packets()]


@pytest.fixture
def serve_dir(tmp_path):
    (tmp_path / "a.txt").write_bytes(b"alpha\n")
    (tmp_path / "b.txt").write_bytes(b"bravo\n")
    (tmp_path / "subdir").mkdir()
    return tmp_path
