"""
macOS clipboard using NSPasteboard

Reads and writes:
- Text (NSPasteboardTypeString)
- Image data (NSPasteboardTypePNG, TIFF) - screenshots, copied images
"""
import logging
from typing import Tuple

# macOS-specific imports
try:
    from AppKit import NSPasteboard, NSPasteboardTypePNG, NSPasteboardTypeTIFF, NSPasteboardTypeString
    from Foundation import NSData
    HAS_APPKIT = True
except ImportError:
    HAS_APPKIT = False

from lanclip.clipboard.base import ClipboardBase
from lanclip.common.errors import ClipboardError
from lanclip.common.protocol import ClipboardKind

logger = logging.getLogger(__name__)


class MacClipboard(ClipboardBase):
    """macOS general pasteboard"""

    def __init__(self):
        if not HAS_APPKIT:
            raise ClipboardError("pyobjc not installed. Run: pip install pyobjc-framework-Cocoa")

        self._pasteboard = NSPasteboard.generalPasteboard()

    def _read_raw(self) -> Tuple[bytes, ClipboardKind]:
        types = self._pasteboard.types() or []

        if NSPasteboardTypeString in types:
            text = self._pasteboard.stringForType_(NSPasteboardTypeString)
            if text is not None:
                return str(text).encode('utf-8'), ClipboardKind.TEXT

        # Try PNG first, fall back to TIFF (normalized to PNG by the base class)
        for image_type in (NSPasteboardTypePNG, NSPasteboardTypeTIFF):
            if image_type in types:
                image_data = self._pasteboard.dataForType_(image_type)
                if image_data:
                    return bytes(image_data), ClipboardKind.IMAGE

        raise ClipboardError("Failed to get clipboard image/text")

    def _write_text(self, text: str):
        self._pasteboard.clearContents()
        if not self._pasteboard.setString_forType_(text, NSPasteboardTypeString):
            raise ClipboardError("Pasteboard rejected text")

    def _write_image(self, image_data: bytes):
        png_ns_data = NSData.dataWithBytes_length_(image_data, len(image_data))
        self._pasteboard.clearContents()
        if not self._pasteboard.setData_forType_(png_ns_data, NSPasteboardTypePNG):
            raise ClipboardError("Pasteboard rejected image")
