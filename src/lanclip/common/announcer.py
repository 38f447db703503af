"""
Multicast announcer - periodically broadcasts the clipboard

Every tick reads the clipboard, frames it and sends it to each resolved
interface. Snapshots too large for one datagram are announced as pointer
envelopes and served in full by a single fallback server.
"""
import time
import logging
import threading
from typing import Callable, List, Optional

from lanclip.common.errors import ClipboardError
from lanclip.common.fallback import FallbackServer
from lanclip.common.interfaces import MulticastTarget
from lanclip.common.protocol import Envelope, build_envelope, encode, fits_in_datagram, format_bytes
from lanclip.common.user_config import TransportConfig

logger = logging.getLogger(__name__)


class MulticastAnnouncer:
    """
    Broadcasts clipboard snapshots until stopped.

    Owns at most one fallback server for its whole lifetime. Once started,
    the server is refreshed with every oversized snapshot instead of being
    restarted, so there is only ever one bind on the fallback port.
    """

    def __init__(self, clipboard, targets: List[MulticastTarget],
                 transport: Optional[TransportConfig] = None,
                 server_factory: Callable[..., FallbackServer] = FallbackServer):
        """
        Args:
            clipboard: Object with read() -> (content, kind)
            targets: Sockets to send on, one per interface
            transport: Transport settings (defaults if None)
            server_factory: Builds the fallback server (envelope, port=...)
        """
        self.clipboard = clipboard
        self.targets = list(targets)
        self.transport = transport or TransportConfig()
        self.server_factory = server_factory

        self._fallback_server: Optional[FallbackServer] = None
        self._fallback_lock = threading.Lock()
        self._stopped = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

    @property
    def fallback_active(self) -> bool:
        return self._fallback_server is not None

    @property
    def fallback_server(self) -> Optional[FallbackServer]:
        return self._fallback_server

    def start(self):
        """Run the announce loop on a background thread"""
        with self._start_lock:
            if self._thread and self._thread.is_alive():
                logger.warning("Announcer already running")
                return

            with self._fallback_lock:
                self._stopped = False
            self._stop_event.clear()
            self._thread = threading.Thread(target=self.run, args=(self._stop_event,), daemon=True)
            self._thread.start()

    def stop(self):
        """Stop the loop and the fallback server"""
        self._stop_event.set()
        with self._fallback_lock:
            self._stopped = True

        if self._thread:
            self._thread.join(timeout=self.transport.announce_interval + self.transport.send_join_timeout + 1)

        with self._fallback_lock:
            if self._fallback_server:
                self._fallback_server.stop()
                self._fallback_server = None

    def run(self, stop_event: threading.Event):
        """
        Announce once per interval until stop_event is set.

        Clipboard changes are only picked up on the next tick.
        """
        logger.info(
            f"Multicasting clipboard to {self.transport.multicast_group}:{self.transport.multicast_port} "
            f"on interfaces: {[target.name for target in self.targets]}"
        )
        while not stop_event.is_set() and not self._stopped:
            self.tick()
            stop_event.wait(self.transport.announce_interval)

    def tick(self) -> Optional[Envelope]:
        """
        Announce the current clipboard once.

        Returns the envelope that was broadcast, or None if the clipboard
        could not be read this time or the announcer was stopped meanwhile.
        """
        try:
            content, kind = self.clipboard.read()
        except ClipboardError as e:
            logger.debug(f"Skipping announcement, clipboard not readable: {e}")
            return None

        envelope = build_envelope(content, kind)

        if not fits_in_datagram(envelope, self.transport.max_datagram_size):
            if not self._serve_oversized(envelope):
                return None
            envelope = envelope.as_pointer()

        logger.debug(
            f"Multicasting {format_bytes(envelope.length)} of clipboard contents "
            f"({'pointer' if envelope.pointer else 'data'})"
        )
        self._fan_out(encode(envelope))
        return envelope

    def _serve_oversized(self, envelope: Envelope) -> bool:
        """
        Start the fallback server once, refresh it afterwards.

        Returns False if the announcer has been stopped; a tick that outlives
        stop() must not bind the fallback port again.
        """
        with self._fallback_lock:
            if self._stopped:
                logger.debug("Announcer stopped, not serving oversized snapshot")
                return False
            if self._fallback_server is None:
                logger.info(
                    f"Message size > {self.transport.max_datagram_size}. "
                    f"Falling back to peer-to-peer connection"
                )
                logger.info(f"Starting TCP listener on port {self.transport.fallback_port}")
                server = self.server_factory(envelope, port=self.transport.fallback_port)
                server.start()
                self._fallback_server = server
            else:
                self._fallback_server.update(envelope)
        return True

    def _fan_out(self, data: bytes):
        """
        Send to every target concurrently.

        A failing or slow target never blocks the others; the wait for the
        whole batch is bounded so the next tick is never held up.
        """
        threads = []
        for target in self.targets:
            thread = threading.Thread(target=self._send_to, args=(target, data), daemon=True)
            thread.start()
            threads.append(thread)

        deadline = time.monotonic() + self.transport.send_join_timeout
        for thread in threads:
            thread.join(timeout=max(0.0, deadline - time.monotonic()))

    def _send_to(self, target: MulticastTarget, data: bytes):
        try:
            target.send(data)
        except OSError as e:
            logger.warning(f"Failed to multicast on {target.name}: {e}")
