"""
Multicast receiver - adopts announced clipboard snapshots

Listens on the multicast group, decodes one announcement, fetches the full
content over the fallback channel when the announcement is a pointer, and
writes the result to the local clipboard.
"""
import socket
import struct
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from lanclip.common.errors import ClipboardError, FallbackFetchError, MalformedEnvelope, SocketBindError
from lanclip.common.fallback import fetch_envelope
from lanclip.common.protocol import Envelope, decode, format_bytes
from lanclip.common.user_config import TransportConfig

logger = logging.getLogger(__name__)


@dataclass
class ReceiveResult:
    """Outcome of handling one announcement"""
    envelope: Envelope
    source: Tuple[str, int]
    via_fallback: bool = False
    applied: bool = False


class MulticastReceiver:
    """
    Receives clipboard announcements from the multicast group.

    Usage:
        with MulticastReceiver(clipboard) as receiver:
            result = receiver.receive_once()
    """

    def __init__(self, clipboard, transport: Optional[TransportConfig] = None,
                 fetcher: Callable[..., Envelope] = fetch_envelope):
        """
        Args:
            clipboard: Object with write(content, kind)
            transport: Transport settings (defaults if None)
            fetcher: Fetches the full envelope from (host, port)
        """
        self.clipboard = clipboard
        self.transport = transport or TransportConfig()
        self.fetcher = fetcher
        self._sock: Optional[socket.socket] = None

    def __enter__(self) -> 'MulticastReceiver':
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        """
        Bind to the multicast port and join the group.

        Raises SocketBindError if the socket cannot be set up.
        """
        if self._sock:
            return

        group = self.transport.multicast_group
        port = self.transport.multicast_port

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, "SO_REUSEPORT"):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, self.transport.max_datagram_size)
            sock.bind(("", port))

            mreq = struct.pack("4sl", socket.inet_aton(group), socket.INADDR_ANY)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
            sock.settimeout(self.transport.poll_interval)
        except OSError as e:
            sock.close()
            raise SocketBindError(f"Cannot listen on multicast {group}:{port}: {e}") from e

        self._sock = sock
        logger.info(f"Listening for clipboard announcements on {group}:{port}")

    def close(self):
        if self._sock:
            try:
                self._sock.close()
            except OSError as e:
                logger.debug(f"Error closing multicast socket: {e}")
            self._sock = None

    def receive_once(self, stop_event: Optional[threading.Event] = None) -> Optional[ReceiveResult]:
        """
        Wait for one datagram and handle it.

        Returns None if stop_event was set before anything arrived.
        Raises MalformedEnvelope or FallbackFetchError if that announcement
        could not be used.
        """
        if not self._sock:
            self.open()

        while stop_event is None or not stop_event.is_set():
            try:
                # Anything beyond the buffer is truncated; senders never exceed it
                data, source = self._sock.recvfrom(self.transport.max_datagram_size)
            except socket.timeout:
                continue
            return self.handle_datagram(data, source)

        return None

    def handle_datagram(self, data: bytes, source: Tuple[str, int]) -> ReceiveResult:
        """Decode an announcement and adopt it into the clipboard"""
        logger.info(f"Read {len(data)} bytes from broadcast traffic from {source[0]}:{source[1]}")

        envelope = decode(data, max_datagram_size=self.transport.max_datagram_size)
        result = ReceiveResult(envelope=envelope, source=source)

        if envelope.pointer:
            logger.info(
                f"Announcement of {format_bytes(envelope.length)} exceeds a datagram, "
                f"fetching from {source[0]}:{self.transport.fallback_port}"
            )
            fetched = self.fetcher(
                source[0],
                self.transport.fallback_port,
                timeout=self.transport.fallback_timeout,
                max_record_size=self.transport.max_record_size,
                max_datagram_size=self.transport.max_datagram_size,
            )
            if fetched.pointer:
                raise FallbackFetchError(f"Sender at {source[0]} served a pointer instead of content")
            envelope = fetched
            result.envelope = fetched
            result.via_fallback = True

        if envelope.is_empty:
            logger.info("Sender clipboard is empty, nothing to adopt")
            return result

        self.clipboard.write(envelope.content, envelope.kind)
        result.applied = True
        logger.info(f"Adopted {format_bytes(envelope.length)} of {envelope.kind} from {source[0]}")
        return result

    def run_until_applied(self, stop_event: threading.Event) -> Optional[ReceiveResult]:
        """
        Receive until one announcement has been written to the clipboard.

        A bad announcement only aborts that exchange; the next one is
        awaited unless retry_on_error is off. Returns None if stopped.
        """
        while not stop_event.is_set():
            try:
                result = self.receive_once(stop_event)
            except (MalformedEnvelope, FallbackFetchError, ClipboardError) as e:
                if not self.transport.retry_on_error:
                    raise
                logger.warning(f"Ignoring announcement: {e}")
                continue

            if result is None:
                return None
            if result.applied:
                return result

        return None
