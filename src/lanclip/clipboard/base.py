"""
Base class for clipboard access

The transport only sees printable text: read() returns the clipboard as
base64 plus its kind, write() takes the same pair back. Platforms deal in
raw bytes (UTF-8 text or PNG image data).
"""
import io
import logging
from abc import ABC, abstractmethod
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from lanclip.common.errors import ClipboardError
from lanclip.common.protocol import ClipboardKind, decode_content, encode_content

logger = logging.getLogger(__name__)


def normalize_png(image_data: bytes) -> bytes:
    """
    Re-encode any image Pillow can read as PNG.

    Raises ClipboardError if the data is not an image.
    """
    try:
        with Image.open(io.BytesIO(image_data)) as img:
            if img.format == 'PNG':
                return image_data
            output = io.BytesIO()
            img.save(output, format='PNG')
            return output.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        raise ClipboardError(f"Clipboard image could not be read: {e}") from e


class ClipboardBase(ABC):
    """
    Abstract base class for clipboard access

    All platform implementations must inherit from this class.
    """

    def read(self) -> Tuple[str, ClipboardKind]:
        """
        Read the clipboard as (base64 content, kind).

        Raises ClipboardError if nothing usable is on the clipboard.
        """
        raw, kind = self._read_raw()
        if kind == ClipboardKind.IMAGE:
            raw = normalize_png(raw)
        return encode_content(raw), kind

    def write(self, content: str, kind: ClipboardKind):
        """
        Write base64 content of the given kind to the clipboard.

        Raises MalformedEnvelope if content is not base64 and ClipboardError
        if the clipboard rejects it.
        """
        raw = decode_content(content)
        kind = ClipboardKind(kind)

        if kind == ClipboardKind.IMAGE:
            self._write_image(normalize_png(raw))
            logger.info(f"Set image to clipboard ({len(raw)} bytes)")
        else:
            text = raw.decode('utf-8', errors='replace')
            self._write_text(text)
            logger.info(f"Set text to clipboard ({len(text)} chars)")

    @abstractmethod
    def _read_raw(self) -> Tuple[bytes, ClipboardKind]:
        """
        Read raw clipboard bytes.

        Returns:
            (UTF-8 text bytes, TEXT) or (image bytes, IMAGE)
        """
        pass

    @abstractmethod
    def _write_text(self, text: str) -> None:
        """Set text to clipboard"""
        pass

    @abstractmethod
    def _write_image(self, image_data: bytes) -> None:
        """
        Set image to clipboard

        Args:
            image_data: PNG image bytes
        """
        pass


__all__ = ['ClipboardBase', 'normalize_png']
