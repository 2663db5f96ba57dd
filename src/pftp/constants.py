from __future__ import annotations

LENGTH_FORMAT = "!H"  # total packet length, network byte order
LENGTH_SIZE = 2
TAG_SIZE = 8
MAX_PAYLOAD = 512
HEADER_SIZE = LENGTH_SIZE + TAG_SIZE
MAX_PACKET = HEADER_SIZE + MAX_PAYLOAD

# control connection
DPORT = "DPORT"
LIST = "LIST"
GET = "GET"
ACK = "ACK"
ERROR = "ERROR"
CLOSE = "CLOSE"

# data connection
FNAME = "FNAME"
FILE = "FILE"
DONE = "DONE"

MIN_PORT = 1024
MAX_PORT = 65535

DEFAULT_HOST = "0.0.0.0"
BACKLOG = 5
ACCEPT_POLL_S = 0.5

USAGE_MESSAGE = "command usage: LIST | GET <FILENAME>"
NOT_FOUND_MESSAGE = "File not found"
READ_ERROR_MESSAGE = "File wont open"
