from __future__ import annotations

import argparse
import logging
import sys
import threading

from .client import Client, ProtocolError, RemoteError
from .constants import DEFAULT_HOST, MAX_PORT, MIN_PORT
from .server import Server, ServerConfig, install_signal_handlers

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

log = logging.getLogger("pftp")


def port_number(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"port number must be an integer: {value!r}") from None
    if not MIN_PORT <= port <= MAX_PORT:
        raise argparse.ArgumentTypeError(f"port number must be between {MIN_PORT}-{MAX_PORT}")
    return port


def setup_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT)


def build_server_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ftserver", description="Serve a directory over the two-connection file protocol.")
    p.add_argument("port", type=port_number, help=f"control port ({MIN_PORT}-{MAX_PORT})")
    p.add_argument("--host", default=DEFAULT_HOST)
    p.add_argument("--directory", default=".", help="directory to serve")
    p.add_argument("--log-level", default="INFO", choices=LOG_LEVELS)
    return p


def build_client_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ftclient", description="List or fetch files from an ftserver.")
    p.add_argument("host")
    p.add_argument("port", type=port_number)
    p.add_argument("--data-port", type=port_number, default=None, help="port to receive data on (default: any)")
    p.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS)
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("list", help="list the server's files")

    get = sub.add_parser("get", help="download a file into --dest")
    get.add_argument("filename")
    get.add_argument("--dest", default=".")
    return p


def server_main(argv: list[str] | None = None) -> int:
    args = build_server_parser().parse_args(argv)
    setup_logging(args.log_level)

    stop = threading.Event()
    install_signal_handlers(stop)
    server = Server(ServerConfig(port=args.port, host=args.host, directory=args.directory))
    try:
        server.serve_forever(stop)
    except OSError:
        log.critical("fatal transport error; shutting down", exc_info=True)
        return 1
    return 0


def client_main(argv: list[str] | None = None) -> int:
    parser = build_client_parser()
    args = parser.parse_args(argv)
    if args.data_port == args.port:
        parser.error("control port and data port cannot match")
    setup_logging(args.log_level)

    client = Client(args.host, args.port, data_port=args.data_port or 0)
    try:
        if args.cmd == "list":
            for name in client.list_files():
                print(name)
        else:
            dest = client.get(args.filename, args.dest)
            print(f"transfer complete: {dest}")
    except (RemoteError, ProtocolError, FileExistsError) as exc:
        print(f"ftclient: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(server_main())
