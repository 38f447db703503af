"""
Clipboard access with platform auto-detection

Provides the clipboard implementation for the current operating system.
Platform modules are imported on first use so that only the running
platform's bindings are needed.
"""
import sys
from typing import Type

from .base import ClipboardBase, normalize_png

_PLATFORM = sys.platform


def get_clipboard_class() -> Type[ClipboardBase]:
    """Get the clipboard class for the current platform"""
    if _PLATFORM == "win32":
        from .windows import WindowsClipboard
        return WindowsClipboard
    elif _PLATFORM == "darwin":
        from .macos import MacClipboard
        return MacClipboard
    elif _PLATFORM.startswith("linux"):
        from .linux import LinuxClipboard
        return LinuxClipboard
    raise RuntimeError(f"Unsupported platform: {_PLATFORM}")


def get_clipboard() -> ClipboardBase:
    """
    Create the clipboard for the current platform.

    Raises ClipboardError if the platform bindings are unavailable.
    """
    return get_clipboard_class()()


__all__ = [
    'ClipboardBase',
    'normalize_png',
    'get_clipboard',
    'get_clipboard_class',
]
