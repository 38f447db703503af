"""
Unit tests for fallback.py - Point-to-point envelope server and fetch
"""
import socket
import threading

import pytest

from lanclip.common.errors import FallbackFetchError, SocketBindError, get_error_from_exception
from lanclip.common.fallback import FallbackServer, fetch_envelope
from lanclip.common.protocol import ClipboardKind, Envelope, build_envelope, frame


@pytest.fixture
def big_envelope():
    return build_envelope("A" * 20000, ClipboardKind.TEXT)


@pytest.fixture
def server(big_envelope):
    server = FallbackServer(big_envelope, port=0, host="127.0.0.1", accept_timeout=0.05)
    server.start()
    yield server
    server.stop()


def serve_raw_once(payload: bytes):
    """Listen on a free port, send payload to the first client, close"""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    port = listener.getsockname()[1]

    def handle():
        conn, _ = listener.accept()
        try:
            conn.sendall(payload)
        finally:
            conn.close()
            listener.close()

    thread = threading.Thread(target=handle, daemon=True)
    thread.start()
    return port, thread


class TestFallbackServer:
    """Tests for FallbackServer"""

    def test_rejects_pointer_envelope(self, big_envelope):
        with pytest.raises(ValueError):
            FallbackServer(big_envelope.as_pointer())

    def test_serves_full_envelope(self, server, big_envelope):
        host, port = server.address
        fetched = fetch_envelope(host, port, timeout=2.0)
        assert fetched == big_envelope
        assert fetched.length == 20000

    def test_serves_every_connection(self, server, big_envelope):
        host, port = server.address
        results = [fetch_envelope(host, port, timeout=2.0) for _ in range(3)]
        assert all(result == big_envelope for result in results)

    def test_update_replaces_served_envelope(self, server):
        newer = build_envelope("B" * 30000, ClipboardKind.TEXT)
        server.update(newer)

        host, port = server.address
        assert fetch_envelope(host, port, timeout=2.0) == newer

    def test_update_rejects_pointer(self, server, big_envelope):
        with pytest.raises(ValueError):
            server.update(big_envelope.as_pointer())
        assert server.envelope == big_envelope

    def test_address_resolves_port_zero(self, server):
        assert server.address[1] != 0
        assert server.running

    def test_stop_closes_listener(self, big_envelope):
        server = FallbackServer(big_envelope, port=0, host="127.0.0.1", accept_timeout=0.05)
        server.start()
        host, port = server.address
        server.stop()

        assert not server.running
        with pytest.raises(FallbackFetchError):
            fetch_envelope(host, port, timeout=0.5)

    def test_second_bind_on_same_port_fails(self, server, big_envelope):
        other = FallbackServer(big_envelope, port=server.address[1], host="127.0.0.1")
        with pytest.raises(SocketBindError) as exc_info:
            other.start()

        assert str(server.address[1]) in str(exc_info.value)
        assert get_error_from_exception(exc_info.value).code == "port_in_use"

    def test_start_twice_is_noop(self, server):
        address = server.address
        server.start()
        assert server.address == address


class TestFetchEnvelope:
    """Tests for fetch_envelope"""

    def test_connection_refused(self):
        # Grab a free port, then close it so nothing is listening
        spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        spare.bind(("127.0.0.1", 0))
        port = spare.getsockname()[1]
        spare.close()

        with pytest.raises(FallbackFetchError):
            fetch_envelope("127.0.0.1", port, timeout=0.5)

    def test_missing_delimiter(self):
        port, thread = serve_raw_once(b'{"content":"","length":0,"kind":0}')
        with pytest.raises(FallbackFetchError, match="before end of record"):
            fetch_envelope("127.0.0.1", port, timeout=2.0)
        thread.join(1)

    def test_garbage_record(self):
        port, thread = serve_raw_once(b'not json at all\n')
        with pytest.raises(FallbackFetchError, match="decode"):
            fetch_envelope("127.0.0.1", port, timeout=2.0)
        thread.join(1)

    def test_record_too_large(self):
        port, thread = serve_raw_once(b"A" * 4096)
        with pytest.raises(FallbackFetchError, match="exceeds"):
            fetch_envelope("127.0.0.1", port, timeout=2.0, max_record_size=1024)
        thread.join(1)

    def test_bytes_after_delimiter_ignored(self):
        envelope = Envelope(content="aGk=", length=4)
        port, thread = serve_raw_once(frame(envelope) + b"trailing")
        assert fetch_envelope("127.0.0.1", port, timeout=2.0) == envelope
        thread.join(1)
