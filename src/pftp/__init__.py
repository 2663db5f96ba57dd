"""Two-connection file transfer protocol (pftp)

A control connection carries the data-port announcement, the command and
the session status; a per-request data connection carries the directory
listing or the file bytes. Every packet is framed as

    [u16 length][8-byte tag][0..512 byte payload]

The server is strictly sequential: one client session at a time.
"""

from .packet import Packet, PacketError, decode, encode

__all__ = ["Packet", "PacketError", "decode", "encode"]
