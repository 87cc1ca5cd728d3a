import base64
import gzip

import pytest

from retrace.core.codec.envelope import EnvelopeCodec
from retrace.core.errors import CorruptEnvelopeError, MalformedInputError


@pytest.mark.ut
def test_text_uses_url_safe_alphabet():
    data = bytes([0xFB, 0xFF, 0xBF]) * 4
    text = EnvelopeCodec.to_text(data)

    assert "+" not in text and "/" not in text
    assert "-" in text or "_" in text
    assert EnvelopeCodec.from_text(text) == data


@pytest.mark.ut
def test_from_text_tolerates_missing_padding():
    text = EnvelopeCodec.to_text(b"ab")
    assert text.endswith("=")
    assert EnvelopeCodec.from_text(text.rstrip("=")) == b"ab"


@pytest.mark.ut
@pytest.mark.parametrize("text", [
    "not base64!!",
    base64.b64encode(bytes([0xFB, 0xFF, 0xBF])).decode(),   # standard alphabet
    "abcde",                                                # impossible length
    "Zm9vé",
])
def test_from_text_rejects_malformed(text):
    with pytest.raises(MalformedInputError):
        EnvelopeCodec.from_text(text)


@pytest.mark.ut
def test_from_text_requires_string():
    with pytest.raises(TypeError):
        EnvelopeCodec.from_text(b"Zm9v")


@pytest.mark.ut
def test_gzip_detection_and_roundtrip():
    raw = b"record" * 100
    packed = EnvelopeCodec.compress(raw)

    assert EnvelopeCodec.is_gzipped(packed)
    assert not EnvelopeCodec.is_gzipped(raw)
    assert not EnvelopeCodec.is_gzipped(b"\x1f")
    assert EnvelopeCodec.decompress(packed, max_size=len(raw)) == raw
    assert gzip.decompress(packed) == raw


@pytest.mark.ut
def test_compress_is_deterministic():
    assert EnvelopeCodec.compress(b"same") == EnvelopeCodec.compress(b"same")


@pytest.mark.ut
def test_decompress_truncated_stream():
    packed = EnvelopeCodec.compress(b"x" * 1000)
    with pytest.raises(CorruptEnvelopeError):
        EnvelopeCodec.decompress(packed[:-6], max_size=10_000)


@pytest.mark.ut
def test_decompress_garbage_after_magic():
    with pytest.raises(CorruptEnvelopeError):
        EnvelopeCodec.decompress(b"\x1f\x8bnot really gzip", max_size=10_000)


@pytest.mark.ut
def test_decompress_trailing_data():
    packed = EnvelopeCodec.compress(b"payload")
    with pytest.raises(CorruptEnvelopeError):
        EnvelopeCodec.decompress(packed + b"tail", max_size=10_000)


@pytest.mark.ut
def test_decompress_enforces_size_limit():
    packed = EnvelopeCodec.compress(b"\x00" * 4096)
    with pytest.raises(CorruptEnvelopeError):
        EnvelopeCodec.decompress(packed, max_size=1024)
