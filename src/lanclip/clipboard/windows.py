"""
Windows clipboard

Uses pywin32 to read and write:
- Text (CF_UNICODETEXT)
- Image data (PNG/CF_DIB) - screenshots, copied images
"""
import io
import struct
import logging
from typing import Optional, Tuple

# Windows-specific imports
try:
    import win32clipboard
    import win32con
    HAS_WIN32 = True
except ImportError:
    HAS_WIN32 = False

from PIL import Image

from lanclip.clipboard.base import ClipboardBase
from lanclip.common.errors import ClipboardError
from lanclip.common.protocol import ClipboardKind

logger = logging.getLogger(__name__)

# Clipboard formats
CF_DIB = 8     # Device Independent Bitmap
BMP_FILE_HEADER_SIZE = 14


def dib_to_png(dib_data: bytes) -> bytes:
    """Convert DIB (Device Independent Bitmap) data to PNG bytes"""
    header_size = struct.unpack('<I', dib_data[0:4])[0]
    bit_count = struct.unpack('<H', dib_data[14:16])[0]
    colors_used = struct.unpack('<I', dib_data[32:36])[0] if header_size >= 36 else 0

    # Color table sits between the header and the pixels
    if bit_count <= 8:
        colors = colors_used or (1 << bit_count)
    else:
        colors = 0
    pixel_offset = BMP_FILE_HEADER_SIZE + header_size + colors * 4

    bmp_header = (
        b'BM'
        + struct.pack('<I', BMP_FILE_HEADER_SIZE + len(dib_data))
        + b'\x00\x00\x00\x00'
        + struct.pack('<I', pixel_offset)
    )
    output = io.BytesIO()
    with Image.open(io.BytesIO(bmp_header + dib_data)) as img:
        img.save(output, 'PNG')
    return output.getvalue()


def png_to_dib(png_data: bytes) -> bytes:
    """Convert PNG bytes to DIB, flattening transparency onto white"""
    with Image.open(io.BytesIO(png_data)) as img:
        if img.mode == 'RGBA':
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[3])
            img = background
        elif img.mode != 'RGB':
            img = img.convert('RGB')

        output = io.BytesIO()
        img.save(output, 'BMP')

    # Skip BMP file header to get DIB
    return output.getvalue()[BMP_FILE_HEADER_SIZE:]


class WindowsClipboard(ClipboardBase):
    """Windows clipboard through win32clipboard"""

    def __init__(self):
        if not HAS_WIN32:
            raise ClipboardError("pywin32 not installed. Run: pip install pywin32")

        self._cf_png: Optional[int] = None
        try:
            self._cf_png = win32clipboard.RegisterClipboardFormat("PNG")
        except win32clipboard.error as e:
            logger.debug(f"Could not register PNG clipboard format: {e}")

    def _read_raw(self) -> Tuple[bytes, ClipboardKind]:
        try:
            win32clipboard.OpenClipboard()
        except win32clipboard.error as e:
            raise ClipboardError(f"Could not open clipboard: {e}") from e

        try:
            if win32clipboard.IsClipboardFormatAvailable(win32con.CF_UNICODETEXT):
                text = win32clipboard.GetClipboardData(win32con.CF_UNICODETEXT)
                return text.encode('utf-8'), ClipboardKind.TEXT

            # Try PNG first (best quality, supports transparency)
            if self._cf_png and win32clipboard.IsClipboardFormatAvailable(self._cf_png):
                return bytes(win32clipboard.GetClipboardData(self._cf_png)), ClipboardKind.IMAGE

            if win32clipboard.IsClipboardFormatAvailable(CF_DIB):
                dib = win32clipboard.GetClipboardData(CF_DIB)
                return dib_to_png(dib), ClipboardKind.IMAGE
        except win32clipboard.error as e:
            raise ClipboardError(f"Could not read clipboard: {e}") from e
        finally:
            win32clipboard.CloseClipboard()

        raise ClipboardError("Failed to get clipboard image/text")

    def _write_text(self, text: str):
        self._set_formats([(win32con.CF_UNICODETEXT, text)])

    def _write_image(self, image_data: bytes):
        formats = [(CF_DIB, png_to_dib(image_data))]
        if self._cf_png:
            formats.append((self._cf_png, image_data))
        self._set_formats(formats)

    def _set_formats(self, formats):
        try:
            win32clipboard.OpenClipboard()
            try:
                win32clipboard.EmptyClipboard()
                for fmt, data in formats:
                    if fmt == win32con.CF_UNICODETEXT:
                        win32clipboard.SetClipboardText(data, fmt)
                    else:
                        win32clipboard.SetClipboardData(fmt, data)
            finally:
                win32clipboard.CloseClipboard()
        except win32clipboard.error as e:
            raise ClipboardError(f"Could not write clipboard: {e}") from e
