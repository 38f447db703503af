"""
Linux clipboard using GTK3

Works on both X11 and Wayland display servers
"""
import time
import logging
from typing import Tuple

try:
    import gi
    gi.require_version('Gtk', '3.0')
    from gi.repository import Gtk, Gdk, GLib, GdkPixbuf
    HAS_GTK = True
except (ImportError, ValueError) as e:
    HAS_GTK = False
    logging.getLogger(__name__).debug(f"GTK3 not available: {e}")

from lanclip.clipboard.base import ClipboardBase
from lanclip.common.errors import ClipboardError
from lanclip.common.protocol import ClipboardKind

logger = logging.getLogger(__name__)

# How long to pump GTK events so clipboard managers can take ownership
STORE_SETTLE_TIME = 0.1


class LinuxClipboard(ClipboardBase):
    """
    Linux clipboard through GTK3

    Supports:
    - Text
    - Images (via GdkPixbuf)
    """

    def __init__(self):
        if not HAS_GTK:
            raise ClipboardError(
                "GTK3 not available. Install: sudo apt install python3-gi gir1.2-gtk-3.0"
            )

        display = Gdk.Display.get_default()
        if not display:
            raise ClipboardError("No display found. Make sure DISPLAY is set.")

        self._clipboard = Gtk.Clipboard.get_default(display)
        logger.debug("Linux clipboard initialized (GTK3)")

    def _read_raw(self) -> Tuple[bytes, ClipboardKind]:
        # Text first, then images
        if self._clipboard.wait_is_text_available():
            text = self._clipboard.wait_for_text()
            if text is not None:
                return text.encode('utf-8'), ClipboardKind.TEXT

        if self._clipboard.wait_is_image_available():
            pixbuf = self._clipboard.wait_for_image()
            if pixbuf:
                success, png_bytes = pixbuf.save_to_bufferv('png', [], [])
                if success:
                    return bytes(png_bytes), ClipboardKind.IMAGE
                logger.warning("Failed to convert image to PNG")

        raise ClipboardError("Failed to get clipboard image/text")

    def _write_text(self, text: str):
        self._clipboard.set_text(text, -1)
        self._store()

    def _write_image(self, image_data: bytes):
        loader = GdkPixbuf.PixbufLoader.new_with_type('png')
        try:
            loader.write(image_data)
            loader.close()
        except GLib.Error as e:
            raise ClipboardError(f"Failed to load image: {e}") from e

        pixbuf = loader.get_pixbuf()
        if not pixbuf:
            raise ClipboardError("Failed to load image")

        self._clipboard.set_image(pixbuf)
        self._store()

    def _store(self):
        """Hand the data to the clipboard manager before we exit"""
        self._clipboard.store()

        context = GLib.MainContext.default()
        deadline = time.monotonic() + STORE_SETTLE_TIME
        while time.monotonic() < deadline:
            if not context.iteration(False):
                time.sleep(0.01)
