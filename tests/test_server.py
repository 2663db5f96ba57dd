from __future__ import annotations

import signal
import socket
import struct
import threading

import pytest

from pftp.client import Client, RemoteError
from pftp.net import ConnectionClosed, TcpStream, accept, listening
from pftp.packet import decode, send_packet
from pftp.server import Server, ServerConfig, install_signal_handlers


@pytest.fixture
def server(serve_dir):
    srv = Server(ServerConfig(port=0, host="127.0.0.1", directory=str(serve_dir), poll_s=0.05))
    srv.bind()
    stop = threading.Event()
    t = threading.Thread(target=srv.serve_forever, args=(stop,), daemon=True)
    t.start()
    yield srv
    stop.set()
    t.join(timeout=5)
    assert not t.is_alive()


@pytest.fixture
def client(server):
    host, port = server.address
    return Client(host, port, data_host="127.0.0.1")


def read_until(stream, tag):
    pkts = []
    while True:
        pkt = decode(stream)
        pkts.append(pkt)
        if pkt.tag == tag:
            return pkts


def test_scenario_a_list_on_the_wire(server):
    listener = listening("127.0.0.1", 0, poll_s=0)
    data_port = listener.getsockname()[1]
    with listener, TcpStream(socket.create_connection(server.address)) as control:
        send_packet(control, "DPORT", str(data_port))
        send_packet(control, "LIST")
        assert decode(control).tag == "ACK"

        with accept(listener) as data:
            pkts = read_until(data, "DONE")
        assert [p.tag for p in pkts] == ["FNAME", "FNAME", "DONE"]
        assert sorted(p.text for p in pkts[:-1]) == ["a.txt", "b.txt"]

        assert decode(control).tag == "CLOSE"
        send_packet(control, "ACK")


def test_invalid_command_opens_no_data_connection(server):
    listener = listening("127.0.0.1", 0, poll_s=0.3)
    data_port = listener.getsockname()[1]
    with listener, TcpStream(socket.create_connection(server.address)) as control:
        send_packet(control, "DPORT", str(data_port))
        send_packet(control, "DELETE", "a.txt")
        pkt = decode(control)
        assert pkt.tag == "ERROR"
        assert "usage" in pkt.text
        with pytest.raises(socket.timeout):
            listener.accept()


def test_client_list(client):
    assert sorted(client.list_files()) == ["a.txt", "b.txt"]


def test_scenario_b_missing_file(client, tmp_path_factory):
    dest = tmp_path_factory.mktemp("dest")
    with pytest.raises(RemoteError, match="File not found"):
        client.get("missing.txt", dest)
    assert list(dest.iterdir()) == []


def test_scenario_c_get_file(client, serve_dir, tmp_path_factory):
    content = bytes(range(256)) * 3 + b"x" * 232
    assert len(content) == 1000
    (serve_dir / "payload.bin").write_bytes(content)
    dest = tmp_path_factory.mktemp("dest")

    path = client.get("payload.bin", dest)
    assert path == dest / "payload.bin"
    assert path.read_bytes() == content
    assert sorted(p.name for p in dest.iterdir()) == ["payload.bin"]


def test_get_refuses_to_overwrite(client, tmp_path_factory):
    dest = tmp_path_factory.mktemp("dest")
    (dest / "a.txt").write_bytes(b"mine")
    with pytest.raises(FileExistsError):
        client.get("a.txt", dest)
    assert (dest / "a.txt").read_bytes() == b"mine"


def test_sessions_are_served_one_after_another(client, tmp_path_factory):
    dest = tmp_path_factory.mktemp("dest")
    for _ in range(3):
        assert len(client.list_files()) == 2
    client.get("a.txt", dest)
    with pytest.raises(RemoteError):
        client.get("nope", dest)
    assert sorted(client.list_files()) == ["a.txt", "b.txt"]


def test_stop_before_serving(serve_dir):
    srv = Server(ServerConfig(port=0, host="127.0.0.1", directory=str(serve_dir), poll_s=0.05))
    stop = threading.Event()
    stop.set()
    srv.serve_forever(stop)
    assert srv.sock is None


def test_transport_error_stops_the_server(serve_dir):
    srv = Server(ServerConfig(port=0, host="127.0.0.1", directory=str(serve_dir), poll_s=0.05))
    srv.bind()
    errors = []

    def run():
        try:
            srv.serve_forever(threading.Event())
        except ConnectionError as exc:
            errors.append(exc)

    t = threading.Thread(target=run, daemon=True)
    t.start()
    socket.create_connection(srv.address).close()
    t.join(timeout=5)
    assert not t.is_alive()
    assert len(errors) == 1
    assert srv.sock is None


def test_signal_handlers_set_stop_flag():
    saved = {s: signal.getsignal(s) for s in (signal.SIGINT, signal.SIGTERM)}
    stop = threading.Event()
    try:
        install_signal_handlers(stop)
        signal.getsignal(signal.SIGTERM)(signal.SIGTERM, None)
        assert stop.is_set()
    finally:
        for s, handler in saved.items():
            signal.signal(s, handler)


@pytest.mark.parametrize("frame", [b"\x00\x04DONE", struct.pack("!H", 600) + b"FILE\x00\x00\x00\x00"])
def test_malformed_frame_does_not_stop_the_server(server, client, frame):
    with socket.create_connection(server.address) as sock:
        sock.sendall(frame)
    assert sorted(client.list_files()) == ["a.txt", "b.txt"]


def test_malformed_command_frame_after_dport(server, client):
    with TcpStream(socket.create_connection(server.address)) as control:
        send_packet(control, "DPORT", "9000")
        control.send_all(b"\x00\x02")
        with pytest.raises(ConnectionClosed):
            decode(control)
    assert len(client.list_files()) == 2


def test_second_signal_restores_default_and_reraises(monkeypatch):
    saved = {s: signal.getsignal(s) for s in (signal.SIGINT, signal.SIGTERM)}
    raised = []
    monkeypatch.setattr(signal, "raise_signal", raised.append)
    stop = threading.Event()
    try:
        install_signal_handlers(stop)
        handler = signal.getsignal(signal.SIGINT)
        handler(signal.SIGINT, None)
        assert stop.is_set()
        assert raised == []

        handler(signal.SIGINT, None)
        assert raised == [signal.SIGINT]
        assert signal.getsignal(signal.SIGINT) == signal.SIG_DFL
    finally:
        for s, h in saved.items():
            signal.signal(s, h)
