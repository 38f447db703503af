"""
Fallback channel - serves full envelopes point-to-point

Used when an envelope does not fit in one multicast datagram. The sender
runs a TCP server on a fixed port; a receiver that sees a pointer envelope
connects to the sender's address, reads one record and disconnects.
"""
import socket
import logging
import threading
from typing import Optional, Tuple

from lanclip import config
from lanclip.common.errors import FallbackFetchError, MalformedEnvelope, SocketBindError
from lanclip.common.protocol import Envelope, FRAME_DELIMITER, decode, format_bytes, frame

logger = logging.getLogger(__name__)


class FallbackServer:
    """
    Serves the current envelope to every peer that connects.

    One accept loop; each connection gets its own thread, is sent one framed
    envelope, then closed. The served envelope can be replaced while running.
    """

    def __init__(self, envelope: Envelope, port: int = config.FALLBACK_PORT,
                 host: str = "0.0.0.0", accept_timeout: float = config.SOCKET_POLL_INTERVAL):
        """
        Args:
            envelope: Data envelope to serve (never a pointer)
            port: Port to listen on (0 picks a free port)
            host: Address to bind, all local addresses by default
            accept_timeout: How often the accept loop checks for stop
        """
        if envelope.pointer:
            raise ValueError("Fallback server needs a data envelope, not a pointer")

        self.host = host
        self.port = port
        self.accept_timeout = accept_timeout

        self._envelope = envelope
        self._envelope_lock = threading.Lock()
        self._server_socket: Optional[socket.socket] = None
        self._server_thread: Optional[threading.Thread] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port), resolving port 0 once started"""
        if self._server_socket:
            return self._server_socket.getsockname()[:2]
        return (self.host, self.port)

    @property
    def envelope(self) -> Envelope:
        with self._envelope_lock:
            return self._envelope

    def update(self, envelope: Envelope):
        """Replace the served envelope; later connections get the new one"""
        if envelope.pointer:
            raise ValueError("Fallback server needs a data envelope, not a pointer")
        with self._envelope_lock:
            self._envelope = envelope

    def start(self):
        """
        Bind and start accepting connections.

        Raises SocketBindError if the port cannot be bound.
        """
        if self._running:
            return

        server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.port))
            server_socket.listen(5)
            server_socket.settimeout(self.accept_timeout)  # For clean shutdown
        except OSError as e:
            server_socket.close()
            raise SocketBindError(f"Cannot listen on TCP port {self.port}: {e}") from e

        self._server_socket = server_socket
        self._running = True

        self._server_thread = threading.Thread(target=self._server_loop, daemon=True)
        self._server_thread.start()

        logger.info(f"Fallback server listening on port {self.address[1]}")

    def stop(self):
        """Stop accepting connections"""
        if not self._running:
            return

        self._running = False

        if self._server_thread:
            self._server_thread.join(timeout=self.accept_timeout * 4)

        if self._server_socket:
            try:
                self._server_socket.close()
            except OSError as e:
                logger.debug(f"Error closing fallback server socket: {e}")

        logger.info("Fallback server stopped")

    def _server_loop(self):
        """Main server loop accepting connections"""
        while self._running:
            try:
                client_socket, addr = self._server_socket.accept()
                logger.debug(f"Fallback connection from {addr}")

                # Handle in separate thread
                handler = threading.Thread(
                    target=self._handle_client,
                    args=(client_socket, addr),
                    daemon=True
                )
                handler.start()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Fallback server error: {e}")

    def _handle_client(self, client_socket: socket.socket, addr: tuple):
        """Send one framed envelope and close"""
        envelope = self.envelope
        try:
            client_socket.settimeout(config.FALLBACK_CONNECT_TIMEOUT)
            logger.info(f"Sending {format_bytes(envelope.length)} to {addr[0]}:{addr[1]}")
            client_socket.sendall(frame(envelope))
        except OSError as e:
            logger.warning(f"Error sending to {addr}: {e}")
        finally:
            client_socket.close()


def fetch_envelope(host: str, port: int = config.FALLBACK_PORT,
                   timeout: float = config.FALLBACK_CONNECT_TIMEOUT,
                   max_record_size: int = config.FALLBACK_MAX_RECORD_SIZE,
                   max_datagram_size: int = config.MAX_DATAGRAM_SIZE) -> Envelope:
    """
    Fetch the full envelope from a sender's fallback server.

    Raises FallbackFetchError if the connection, the read or the decode fails.
    """
    buffer = bytearray()

    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            while True:
                data = sock.recv(65536)
                if not data:
                    break
                buffer.extend(data)

                if FRAME_DELIMITER in data:
                    break
                if len(buffer) > max_record_size:
                    raise FallbackFetchError(
                        f"Record from {host}:{port} exceeds {format_bytes(max_record_size)}"
                    )
    except socket.timeout as e:
        raise FallbackFetchError(f"Timed out reading from {host}:{port}") from e
    except OSError as e:
        raise FallbackFetchError(f"Could not fetch from {host}:{port}: {e}") from e

    end = buffer.find(FRAME_DELIMITER)
    if end < 0:
        raise FallbackFetchError(f"Connection to {host}:{port} closed before end of record")

    try:
        envelope = decode(bytes(buffer[:end]), max_datagram_size=max_datagram_size)
    except MalformedEnvelope as e:
        raise FallbackFetchError(f"Could not decode peer response: {e}") from e

    logger.info(f"Got {format_bytes(envelope.length)} of content from {host}:{port}")
    return envelope
