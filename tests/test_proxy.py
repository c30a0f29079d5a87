import datetime
import ipaddress
import socket
import ssl
import threading

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from cowsqlkit.proxy import (
    ProxyError,
    ext_dial_func_with_proxy,
    make_node_dial_func,
    proxy,
    set_keepalive,
    socketpair,
)

TIMEOUT = 5


@pytest.fixture
def cert_files(tmp_path):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "cowsqlkit-test")])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(
            x509.SubjectAlternativeName(
                [
                    x509.DNSName("localhost"),
                    x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
                ]
            ),
            critical=False,
        )
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    cert_path = tmp_path / "cluster.crt"
    key_path = tmp_path / "cluster.key"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return str(cert_path), str(key_path)


def _run_proxy(remote, local, stop=None, context=None):
    outcome = {}

    def target():
        try:
            outcome["result"] = proxy(remote, local, stop, context)
        except ProxyError as exc:
            outcome["error"] = exc

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return thread, outcome


def test_proxy_error_messages():
    assert str(ProxyError("a")) == "first: a"
    assert str(ProxyError(None, "b")) == "second: b"
    assert str(ProxyError("a", "b")) == "first: a second: b"


def test_socketpair_is_connected():
    first, second = socketpair()
    with first, second:
        assert first.family == socket.AF_UNIX
        first.sendall(b"abc")
        assert second.recv(3) == b"abc"


def test_proxy_copies_both_ways_until_remote_closes():
    client, remote = socketpair()
    local, server = socketpair()
    client.settimeout(TIMEOUT)
    server.settimeout(TIMEOUT)
    thread, outcome = _run_proxy(remote, local, threading.Event())

    client.sendall(b"ping")
    assert server.recv(4) == b"ping"
    server.sendall(b"pong")
    assert client.recv(4) == b"pong"

    client.close()
    thread.join(TIMEOUT)
    assert not thread.is_alive()
    assert outcome == {"result": None}
    assert server.recv(4) == b""
    server.close()


def test_proxy_stops_when_event_is_set():
    client, remote = socketpair()
    local, server = socketpair()
    client.settimeout(TIMEOUT)
    server.settimeout(TIMEOUT)
    stop = threading.Event()
    thread, outcome = _run_proxy(remote, local, stop)

    stop.set()
    thread.join(TIMEOUT)
    assert not thread.is_alive()
    assert outcome == {"result": None}
    assert client.recv(4) == b""
    assert server.recv(4) == b""
    client.close()
    server.close()


def test_proxy_reports_tls_handshake_failure(cert_files):
    cert_path, key_path = cert_files
    server_ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    server_ctx.load_cert_chain(cert_path, key_path)

    client, remote = socketpair()
    local, server = socketpair()
    thread, outcome = _run_proxy(remote, local, threading.Event(), server_ctx)
    client.sendall(b"this is not a tls handshake\r\n\r\n")
    client.close()
    thread.join(TIMEOUT)

    error = outcome["error"]
    assert str(error).startswith("first: remote -> local:")
    assert error.second is None
    server.close()


def test_set_keepalive_on_tcp_socket():
    listener = socket.create_server(("127.0.0.1", 0))
    with listener:
        conn = socket.create_connection(listener.getsockname())
        peer, _ = listener.accept()
        with conn, peer:
            set_keepalive(conn)
            assert bool(conn.getsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE)) is True
            assert conn.getsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPCNT) == 3
            assert conn.getsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPINTVL) == 3


def test_ext_dial_func_with_proxy_forwards_data():
    network, peer = socketpair()
    peer.settimeout(TIMEOUT)
    calls = []

    def fake_dial(address):
        calls.append(address)
        return network

    stop = threading.Event()
    conn = ext_dial_func_with_proxy(stop, fake_dial)("first")
    conn.settimeout(TIMEOUT)
    try:
        conn.sendall(b"ping")
        assert peer.recv(4) == b"ping"
        peer.sendall(b"pong")
        assert conn.recv(4) == b"pong"
        assert calls == ["first"]
    finally:
        stop.set()
        conn.close()
        peer.close()


def test_ext_dial_func_with_proxy_propagates_dial_error():
    def failing_dial(address):
        raise ConnectionRefusedError(address)

    dial = ext_dial_func_with_proxy(threading.Event(), failing_dial)
    with pytest.raises(ConnectionRefusedError, match="second"):
        dial("second")


@pytest.mark.parametrize("address", ["nohost", "1:2:3", "[::1]9000"])
def test_make_node_dial_func_rejects_bad_address(address):
    dial = make_node_dial_func(threading.Event(), ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT))
    with pytest.raises(ValueError, match=f"address {address}"):
        dial(address)


def test_make_node_dial_func_speaks_tls(cert_files):
    cert_path, key_path = cert_files
    server_ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    server_ctx.load_cert_chain(cert_path, key_path)
    client_ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    client_ctx.load_verify_locations(cert_path)

    listener = socket.create_server(("127.0.0.1", 0))
    listener.settimeout(TIMEOUT)
    port = listener.getsockname()[1]

    def serve():
        conn, _ = listener.accept()
        with server_ctx.wrap_socket(conn, server_side=True) as tls_conn:
            data = tls_conn.recv(1024)
            tls_conn.sendall(data.upper())

    server_thread = threading.Thread(target=serve, daemon=True)
    server_thread.start()

    stop = threading.Event()
    conn = make_node_dial_func(stop, client_ctx)(f"127.0.0.1:{port}")
    conn.settimeout(TIMEOUT)
    try:
        assert conn.family == socket.AF_UNIX
        conn.sendall(b"hello")
        assert conn.recv(1024) == b"HELLO"
    finally:
        stop.set()
        conn.close()
        server_thread.join(TIMEOUT)
        listener.close()