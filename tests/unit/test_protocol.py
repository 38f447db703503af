"""
Unit tests for protocol.py - Envelope encoding and parsing
"""
import json

import pytest

from lanclip.common.errors import MalformedEnvelope
from lanclip.common.protocol import (
    ClipboardKind, Envelope, FRAME_DELIMITER, _safe_json_parse, build_envelope,
    decode, decode_content, encode, encode_content, fits_in_datagram, format_bytes, frame
)


class TestSafeJsonParse:
    """Tests for the _safe_json_parse function"""

    def test_valid_json(self):
        data = b'{"key": "value", "number": 42}'
        success, result = _safe_json_parse(data)
        assert success is True
        assert result == {"key": "value", "number": 42}

    def test_missing_expected_keys(self):
        data = b'{"content": "aGk="}'
        success, result = _safe_json_parse(data, expected_keys=["content", "length", "kind"])
        assert success is False
        assert "Missing keys" in result
        assert "length" in result

    def test_invalid_json(self):
        success, result = _safe_json_parse(b'{"invalid": json')
        assert success is False
        assert "Invalid JSON" in result

    def test_invalid_utf8(self):
        success, result = _safe_json_parse(b'\xff\xfe invalid utf8')
        assert success is False
        assert "Invalid UTF-8" in result

    def test_array_when_object_expected(self):
        success, result = _safe_json_parse(b'[1, 2, 3]', expected_keys=["content"])
        assert success is False
        assert "JSON object" in result


class TestEncode:
    """Tests for encode/frame"""

    def test_encode_produces_all_fields(self):
        envelope = Envelope(content="aGVsbG8=", length=8, kind=ClipboardKind.TEXT)
        data = json.loads(encode(envelope))
        assert data == {"content": "aGVsbG8=", "length": 8, "kind": 0, "pointer": False}

    def test_encode_is_compact(self):
        data = encode(Envelope(content="", length=0))
        assert b" " not in data

    def test_frame_ends_with_single_delimiter(self):
        record = frame(Envelope(content="aGk=", length=4))
        assert record.endswith(FRAME_DELIMITER)
        assert record.count(FRAME_DELIMITER) == 1
        assert record[:-1] == encode(Envelope(content="aGk=", length=4))

    def test_kind_serialized_as_integer(self):
        data = json.loads(encode(Envelope(content="", length=0, kind=ClipboardKind.IMAGE)))
        assert data["kind"] == 1


class TestDecode:
    """Tests for decode"""

    def test_decode_text_envelope(self):
        envelope = decode(b'{"content":"aGVsbG8=","length":8,"kind":0,"pointer":false}')
        assert envelope.content == "aGVsbG8="
        assert envelope.length == 8
        assert envelope.kind == ClipboardKind.TEXT
        assert envelope.pointer is False

    def test_decode_image_envelope(self):
        envelope = decode(b'{"content":"iVBO","length":4,"kind":1}')
        assert envelope.kind == ClipboardKind.IMAGE

    def test_decode_pointer_tag(self):
        envelope = decode(b'{"content":"","length":20000,"kind":0,"pointer":true}')
        assert envelope.pointer is True
        assert envelope.length == 20000

    def test_missing_pointer_inferred_from_length(self):
        envelope = decode(b'{"content":"","length":20000,"kind":0}')
        assert envelope.pointer is True

    def test_missing_pointer_small_empty_is_not_pointer(self):
        envelope = decode(b'{"content":"","length":0,"kind":0}')
        assert envelope.pointer is False
        assert envelope.is_empty

    def test_inference_uses_configured_datagram_size(self):
        data = b'{"content":"","length":600,"kind":0}'
        assert decode(data, max_datagram_size=512).pointer is True
        # Below the threshold the missing content cannot be a pointer
        with pytest.raises(MalformedEnvelope):
            decode(data, max_datagram_size=1024)

    def test_untagged_withheld_content_rejected(self):
        with pytest.raises(MalformedEnvelope, match="pointer tag"):
            decode(b'{"content":"","length":20000,"kind":0,"pointer":false}')

    def test_pointer_with_content_rejected(self):
        with pytest.raises(MalformedEnvelope, match="must not carry content"):
            decode(b'{"content":"aGk=","length":4,"kind":0,"pointer":true}')

    def test_empty_clipboard_with_false_tag_accepted(self):
        envelope = decode(b'{"content":"","length":0,"kind":0,"pointer":false}')
        assert envelope.is_empty

    def test_truncated_input_rejected(self):
        with pytest.raises(MalformedEnvelope):
            decode(b'{"content":"aGVsbG8=","len')

    def test_missing_field_rejected(self):
        with pytest.raises(MalformedEnvelope, match="kind"):
            decode(b'{"content":"aGk=","length":4}')

    def test_not_an_object_rejected(self):
        with pytest.raises(MalformedEnvelope):
            decode(b'"just a string"')

    def test_wrong_content_type_rejected(self):
        with pytest.raises(MalformedEnvelope, match="content"):
            decode(b'{"content":42,"length":4,"kind":0}')

    def test_string_length_rejected(self):
        with pytest.raises(MalformedEnvelope, match="length"):
            decode(b'{"content":"aGk=","length":"4","kind":0}')

    def test_boolean_length_rejected(self):
        with pytest.raises(MalformedEnvelope, match="length"):
            decode(b'{"content":"aGk=","length":true,"kind":0}')

    def test_negative_length_rejected(self):
        with pytest.raises(MalformedEnvelope, match="negative"):
            decode(b'{"content":"","length":-1,"kind":0}')

    def test_unknown_kind_rejected(self):
        with pytest.raises(MalformedEnvelope, match="kind"):
            decode(b'{"content":"aGk=","length":4,"kind":7}')

    def test_non_boolean_pointer_rejected(self):
        with pytest.raises(MalformedEnvelope, match="pointer"):
            decode(b'{"content":"","length":4,"kind":0,"pointer":"yes"}')

    def test_decode_accepts_bytearray(self):
        data = bytearray(encode(Envelope(content="aGk=", length=4)))
        assert decode(data).content == "aGk="

    def test_encoded_envelope_decodes_to_equal_value(self):
        original = Envelope(content="aW1hZ2U=", length=8, kind=ClipboardKind.IMAGE, pointer=False)
        assert decode(encode(original)) == original


class TestEnvelope:
    """Tests for Envelope helpers"""

    def test_as_pointer_keeps_length_and_kind(self):
        envelope = Envelope(content="x" * 100, length=100, kind=ClipboardKind.IMAGE)
        pointer = envelope.as_pointer()
        assert pointer.content == ""
        assert pointer.length == 100
        assert pointer.kind == ClipboardKind.IMAGE
        assert pointer.pointer is True

    def test_as_pointer_leaves_original_untouched(self):
        envelope = Envelope(content="abc", length=3)
        envelope.as_pointer()
        assert envelope.content == "abc"
        assert envelope.pointer is False

    def test_pointer_is_never_empty(self):
        assert not Envelope(content="", length=0, pointer=True).is_empty

    def test_data_envelope_is_not_empty(self):
        assert not Envelope(content="aGk=", length=4).is_empty

    def test_kind_str(self):
        assert str(ClipboardKind.TEXT) == "Text"
        assert str(ClipboardKind.IMAGE) == "Image"


class TestBuildEnvelope:
    """Tests for build_envelope and fits_in_datagram"""

    def test_length_is_content_length(self):
        content = encode_content(b"hello")
        envelope = build_envelope(content, ClipboardKind.TEXT)
        assert envelope.length == len(content)
        assert envelope.pointer is False

    def test_accepts_plain_int_kind(self):
        envelope = build_envelope("aGk=", 1)
        assert envelope.kind is ClipboardKind.IMAGE

    def test_small_envelope_fits(self):
        envelope = build_envelope(encode_content(b"hello"), ClipboardKind.TEXT)
        assert fits_in_datagram(envelope, 8192)

    def test_large_envelope_does_not_fit(self):
        envelope = build_envelope("A" * 20000, ClipboardKind.TEXT)
        assert not fits_in_datagram(envelope, 8192)

    def test_fit_is_measured_on_encoded_size(self):
        # Content alone fits; the JSON framing pushes it over
        envelope = build_envelope("A" * 8190, ClipboardKind.TEXT)
        assert envelope.length < 8192
        assert not fits_in_datagram(envelope, 8192)

    def test_pointer_always_fits(self):
        pointer = build_envelope("A" * 20000, ClipboardKind.TEXT).as_pointer()
        assert fits_in_datagram(pointer, 8192)


class TestContentEncoding:
    """Tests for base64 content helpers"""

    def test_encode_content(self):
        assert encode_content(b"hello") == "aGVsbG8="

    def test_decode_content(self):
        assert decode_content("aGVsbG8=") == b"hello"

    def test_empty_content(self):
        assert encode_content(b"") == ""
        assert decode_content("") == b""

    def test_invalid_base64_rejected(self):
        with pytest.raises(MalformedEnvelope):
            decode_content("not base64!!")

    def test_non_ascii_rejected(self):
        with pytest.raises(MalformedEnvelope):
            decode_content("héllo")


class TestFormatBytes:
    """Tests for format_bytes"""

    def test_bytes(self):
        assert format_bytes(512) == "512.0 B"

    def test_kilobytes(self):
        assert format_bytes(2048) == "2.0 KB"

    def test_megabytes(self):
        assert format_bytes(5 * 1024 * 1024) == "5.0 MB"
