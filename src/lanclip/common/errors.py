"""
Errors for the clipboard transport

Exceptions raised by the transport, plus user-friendly messages for the CLI.
Each message includes a description and a suggestion for how to resolve it.
"""
from enum import Enum
from dataclasses import dataclass
from typing import List, Optional

from lanclip import config


class LanClipError(Exception):
    """Base class for transport errors"""


class MalformedEnvelope(LanClipError):
    """A peer sent bytes that do not decode to an envelope"""


class NoInterfacesError(LanClipError):
    """No local interface could be used for multicasting"""

    def __init__(self, available: Optional[List[str]] = None):
        self.available = list(available or [])
        super().__init__(
            f"Could not find any interfaces to multicast on. "
            f"Available interfaces: {', '.join(self.available) or 'none'}"
        )


class SocketBindError(LanClipError):
    """A multicast or fallback socket could not be bound"""


class FallbackFetchError(LanClipError):
    """Fetching the full envelope over the fallback channel failed"""


class ClipboardError(LanClipError):
    """The local clipboard could not be read or written"""


@dataclass
class UserError:
    """User-friendly error with message and suggestion"""
    message: str
    suggestion: str
    code: str = ""

    def __str__(self) -> str:
        result = f"Error: {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion
        }


class ErrorCode(Enum):
    """Error codes for categorization"""
    # Setup errors
    NO_INTERFACES = "no_interfaces"
    PORT_IN_USE = "port_in_use"
    PERMISSION_DENIED = "permission_denied"

    # Exchange errors
    MALFORMED_ENVELOPE = "malformed_envelope"
    FALLBACK_FAILED = "fallback_failed"
    CONNECTION_REFUSED = "connection_refused"
    CONNECTION_TIMEOUT = "connection_timeout"

    # Local errors
    CLIPBOARD_UNAVAILABLE = "clipboard_unavailable"
    INVALID_CONFIG = "invalid_config"
    MISSING_DEPENDENCY = "missing_dependency"

    # General
    UNKNOWN = "unknown"


ERROR_MESSAGES = {
    ErrorCode.NO_INTERFACES: UserError(
        code="no_interfaces",
        message="No network interface with an IPv4 address could be used",
        suggestion="Run 'lanclip interfaces' and pass a listed name with --interface"
    ),

    ErrorCode.PORT_IN_USE: UserError(
        code="port_in_use",
        message="A port lanclip needs is already in use (see Details for which one)",
        suggestion="Another lanclip instance may be running on this machine"
    ),

    ErrorCode.PERMISSION_DENIED: UserError(
        code="permission_denied",
        message="Permission denied when opening a network socket",
        suggestion="Check your firewall settings and that the ports are not privileged"
    ),

    ErrorCode.MALFORMED_ENVELOPE: UserError(
        code="malformed_envelope",
        message="Received an announcement that could not be decoded",
        suggestion="Ensure every machine on the network runs the same version of lanclip"
    ),

    ErrorCode.FALLBACK_FAILED: UserError(
        code="fallback_failed",
        message="Could not fetch the clipboard contents from the sender",
        suggestion="Make sure the fallback TCP port (fallback_port in the config) is open on the sending machine"
    ),

    ErrorCode.CONNECTION_REFUSED: UserError(
        code="connection_refused",
        message="Connection was refused by the sender",
        suggestion="The sender may have stopped. Run 'lanclip send' again on the other machine"
    ),

    ErrorCode.CONNECTION_TIMEOUT: UserError(
        code="connection_timeout",
        message="Connection timed out while trying to reach the sender",
        suggestion="Check your network connection and firewall settings"
    ),

    ErrorCode.CLIPBOARD_UNAVAILABLE: UserError(
        code="clipboard_unavailable",
        message="The local clipboard could not be accessed",
        suggestion="Make sure a desktop session is running (DISPLAY or WAYLAND_DISPLAY is set)"
    ),

    ErrorCode.INVALID_CONFIG: UserError(
        code="invalid_config",
        message="Configuration file contains invalid values",
        suggestion="Run 'lanclip config --reset' to restore default settings"
    ),

    ErrorCode.MISSING_DEPENDENCY: UserError(
        code="missing_dependency",
        message="A required dependency is not installed",
        suggestion="Reinstall lanclip with 'pip install lanclip'"
    ),

    ErrorCode.UNKNOWN: UserError(
        code="unknown",
        message="An unexpected error occurred",
        suggestion=f"Check the logs at {config.LOG_FILE} for more details"
    ),
}


def get_error(code: ErrorCode) -> UserError:
    """Get user-friendly error for a given error code"""
    return ERROR_MESSAGES.get(code, ERROR_MESSAGES[ErrorCode.UNKNOWN])


def get_error_from_exception(exc: Exception) -> UserError:
    """Map common exceptions to user-friendly errors"""
    if isinstance(exc, NoInterfacesError):
        return get_error(ErrorCode.NO_INTERFACES)
    if isinstance(exc, MalformedEnvelope):
        return get_error(ErrorCode.MALFORMED_ENVELOPE)
    if isinstance(exc, ClipboardError):
        return get_error(ErrorCode.CLIPBOARD_UNAVAILABLE)

    exc_str = str(exc).lower()
    exc_type = type(exc).__name__

    # Socket errors
    if "address already in use" in exc_str:
        return get_error(ErrorCode.PORT_IN_USE)
    if "permission denied" in exc_str:
        return get_error(ErrorCode.PERMISSION_DENIED)
    if "connection refused" in exc_str:
        return get_error(ErrorCode.CONNECTION_REFUSED)
    if "timed out" in exc_str or "timeout" in exc_str:
        return get_error(ErrorCode.CONNECTION_TIMEOUT)

    if isinstance(exc, FallbackFetchError):
        return get_error(ErrorCode.FALLBACK_FAILED)
    if isinstance(exc, ValueError) and "config" in exc_str:
        return get_error(ErrorCode.INVALID_CONFIG)
    if isinstance(exc, ImportError):
        return get_error(ErrorCode.MISSING_DEPENDENCY)

    # Default
    error = get_error(ErrorCode.UNKNOWN)
    # Include original exception type for debugging
    return UserError(
        code=error.code,
        message=f"{error.message}: {exc_type}",
        suggestion=error.suggestion
    )


def format_error(code: ErrorCode, details: Optional[str] = None) -> str:
    """Format error message for display"""
    error = get_error(code)
    result = str(error)
    if details:
        result = f"{result}\n  Details: {details}"
    return result
