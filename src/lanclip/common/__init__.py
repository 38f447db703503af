"""Transport modules for clipboard multicast"""
from .protocol import (
    ClipboardKind,
    Envelope,
    encode,
    decode,
    frame,
    build_envelope,
    fits_in_datagram,
)
from .errors import (
    LanClipError,
    MalformedEnvelope,
    NoInterfacesError,
    SocketBindError,
    FallbackFetchError,
    ClipboardError,
)
from .interfaces import resolve_interfaces, list_interfaces
from .announcer import MulticastAnnouncer
from .fallback import FallbackServer, fetch_envelope
from .receiver import MulticastReceiver, ReceiveResult
from .deadline import Outcome, DeadlineResult, run_with_deadline
from .sync import send_clipboard, receive_clipboard

__all__ = [
    'ClipboardKind',
    'Envelope',
    'encode',
    'decode',
    'frame',
    'build_envelope',
    'fits_in_datagram',
    'LanClipError',
    'MalformedEnvelope',
    'NoInterfacesError',
    'SocketBindError',
    'FallbackFetchError',
    'ClipboardError',
    'resolve_interfaces',
    'list_interfaces',
    'MulticastAnnouncer',
    'FallbackServer',
    'fetch_envelope',
    'MulticastReceiver',
    'ReceiveResult',
    'Outcome',
    'DeadlineResult',
    'run_with_deadline',
    'send_clipboard',
    'receive_clipboard',
]
