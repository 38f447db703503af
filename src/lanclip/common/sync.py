"""
Send and receive operations

Each operation is time-boxed: it races against a deadline and reports
whether it completed or timed out. Setup failures (no interfaces, a socket
that cannot be bound) are raised before or instead of racing.
"""
import logging
from typing import Iterable, Optional

from lanclip.common.announcer import MulticastAnnouncer
from lanclip.common.deadline import DeadlineResult, Outcome, run_with_deadline
from lanclip.common.interfaces import resolve_interfaces
from lanclip.common.receiver import MulticastReceiver
from lanclip.common.user_config import TransportConfig

logger = logging.getLogger(__name__)


def send_clipboard(clipboard, interfaces: Optional[Iterable[str]] = None,
                   timeout: Optional[float] = None,
                   transport: Optional[TransportConfig] = None) -> DeadlineResult:
    """
    Announce the clipboard until the timeout elapses.

    Raises NoInterfacesError right away if no interface is usable, and
    SocketBindError if the fallback server cannot listen.
    """
    transport = transport or TransportConfig()
    timeout = timeout if timeout is not None else transport.run_timeout

    resolved = resolve_interfaces(
        interfaces,
        group=transport.multicast_group,
        port=transport.multicast_port,
        ttl=transport.multicast_ttl,
    )
    announcer = MulticastAnnouncer(clipboard, resolved.targets, transport)

    try:
        result = run_with_deadline(announcer.run, timeout, name="announcer")
    finally:
        announcer.stop()
        resolved.close()

    if result.outcome == Outcome.FAILED:
        raise result.error

    if result.timed_out:
        logger.info(f"Reached broadcasting limit of {timeout} seconds")
    return result


def receive_clipboard(clipboard, timeout: Optional[float] = None,
                      transport: Optional[TransportConfig] = None) -> DeadlineResult:
    """
    Listen until one announcement is adopted or the timeout elapses.

    Raises SocketBindError if the multicast socket cannot be set up.
    """
    transport = transport or TransportConfig()
    timeout = timeout if timeout is not None else transport.run_timeout

    receiver = MulticastReceiver(clipboard, transport)
    receiver.open()

    logger.info(f"Waiting {timeout} seconds to receive clipboard contents")
    try:
        result = run_with_deadline(receiver.run_until_applied, timeout, name="receiver")
    finally:
        receiver.close()

    if result.outcome == Outcome.FAILED:
        raise result.error

    if result.completed:
        logger.info("Received clipboard contents. Closing receiver")
    else:
        logger.info("Timed out without receiving anything.")
    return result
