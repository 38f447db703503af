"""
Wire protocol for clipboard announcements

Envelope (JSON, UTF-8), used identically over UDP multicast and the TCP
fallback channel:
┌──────────────┬──────────────┬──────────────┬──────────────┐
│ content      │ length       │ kind         │ pointer      │
│ base64 text  │ int (bytes)  │ 0=text 1=img │ bool         │
└──────────────┴──────────────┴──────────────┴──────────────┘

Fallback record: the encoded envelope followed by a single b"\\n".

A pointer envelope carries no content: the sender withheld it because the
encoded data envelope does not fit in one datagram. `length` still holds the
real size and the receiver fetches the data over the fallback channel.
"""
import json
import base64
import binascii
import logging
from enum import IntEnum
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from lanclip import config
from lanclip.common.errors import MalformedEnvelope

logger = logging.getLogger(__name__)

FRAME_DELIMITER = b"\n"

ENVELOPE_FIELDS = ("content", "length", "kind")


class ClipboardKind(IntEnum):
    """How the clipboard writer interprets decoded content"""
    TEXT = 0
    IMAGE = 1

    def __str__(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class Envelope:
    """One clipboard snapshot on the wire"""
    content: str
    length: int
    kind: ClipboardKind = ClipboardKind.TEXT
    pointer: bool = False

    @property
    def is_empty(self) -> bool:
        """Empty clipboard: nothing to adopt"""
        return not self.pointer and self.length == 0 and not self.content

    def as_pointer(self) -> 'Envelope':
        """Copy with content withheld; length keeps the real size"""
        return replace(self, content="", pointer=True)

    def to_dict(self) -> dict:
        return {
            'content': self.content,
            'length': self.length,
            'kind': int(self.kind),
            'pointer': self.pointer,
        }

    @classmethod
    def from_dict(cls, data: dict, max_datagram_size: int = config.MAX_DATAGRAM_SIZE) -> 'Envelope':
        """
        Build an envelope from a decoded JSON object.

        Raises MalformedEnvelope if a field is missing or has the wrong type.
        """
        content = data['content']
        length = data['length']
        kind = data['kind']

        if not isinstance(content, str):
            raise MalformedEnvelope(f"content must be a string, got {type(content).__name__}")
        # bool is a subclass of int; a true/false length is a type mismatch
        if not isinstance(length, int) or isinstance(length, bool):
            raise MalformedEnvelope(f"length must be an integer, got {type(length).__name__}")
        if length < 0:
            raise MalformedEnvelope(f"length must not be negative, got {length}")
        if not isinstance(kind, int) or isinstance(kind, bool):
            raise MalformedEnvelope(f"kind must be an integer, got {type(kind).__name__}")
        try:
            kind = ClipboardKind(kind)
        except ValueError:
            raise MalformedEnvelope(f"Unknown clipboard kind: {kind}")

        # Peers that omit the tag: infer it from length and content
        if 'pointer' in data:
            pointer = data['pointer']
            if not isinstance(pointer, bool):
                raise MalformedEnvelope(f"pointer must be a boolean, got {type(pointer).__name__}")
        else:
            pointer = content == "" and length > max_datagram_size

        # Withheld content must be tagged as a pointer, and a pointer carries none
        if pointer and content:
            raise MalformedEnvelope("pointer envelope must not carry content")
        if not pointer and content == "" and length > 0:
            raise MalformedEnvelope(f"envelope withholds {length} bytes without a pointer tag")

        return cls(content=content, length=length, kind=kind, pointer=pointer)


def _safe_json_parse(data: bytes, expected_keys: Optional[List[str]] = None) -> Tuple[bool, object]:
    """
    Parse JSON bytes without raising.

    Returns: (True, parsed) or (False, error message)
    """
    try:
        text = data.decode('utf-8')
    except UnicodeDecodeError as e:
        return False, f"Invalid UTF-8: {e}"

    try:
        parsed = json.loads(text)
    except ValueError as e:
        return False, f"Invalid JSON: {e}"

    if expected_keys:
        if not isinstance(parsed, dict):
            return False, f"Expected a JSON object, got {type(parsed).__name__}"
        missing = [key for key in expected_keys if key not in parsed]
        if missing:
            return False, f"Missing keys: {', '.join(missing)}"

    return True, parsed


def encode(envelope: Envelope) -> bytes:
    """Serialize an envelope to its wire form"""
    return json.dumps(envelope.to_dict(), separators=(',', ':')).encode('utf-8')


def decode(data: bytes, max_datagram_size: int = config.MAX_DATAGRAM_SIZE) -> Envelope:
    """
    Deserialize an envelope.

    Raises MalformedEnvelope on truncated or type-mismatched input.
    """
    success, result = _safe_json_parse(bytes(data), expected_keys=list(ENVELOPE_FIELDS))
    if not success:
        raise MalformedEnvelope(result)
    return Envelope.from_dict(result, max_datagram_size=max_datagram_size)


def frame(envelope: Envelope) -> bytes:
    """Encode an envelope as one fallback channel record"""
    return encode(envelope) + FRAME_DELIMITER


def encode_content(raw: bytes) -> str:
    """Represent raw clipboard bytes as printable text"""
    return base64.b64encode(raw).decode('ascii')


def decode_content(content: str) -> bytes:
    """Inverse of encode_content"""
    try:
        return base64.b64decode(content.encode('ascii'), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise MalformedEnvelope(f"Content is not valid base64: {e}")


def build_envelope(content: str, kind: ClipboardKind) -> Envelope:
    """Data envelope for one clipboard snapshot"""
    return Envelope(content=content, length=len(content.encode('utf-8')), kind=ClipboardKind(kind))


def fits_in_datagram(envelope: Envelope, max_size: int = config.MAX_DATAGRAM_SIZE) -> bool:
    """Check whether the encoded envelope fits in one datagram"""
    return len(encode(envelope)) <= max_size


def format_bytes(size: float) -> str:
    """Format byte size as human-readable string"""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if abs(size) < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"
