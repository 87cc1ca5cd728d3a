import base64
import binascii
import gzip
import zlib

from retrace.core.errors import CorruptEnvelopeError, EncodingIOError, MalformedInputError


class EnvelopeCodec:
    """
    Outer layers of the envelope:

        text = urlsafe_base64( record | gzip(record) )

    A gzip stream is recognised by its two-byte magic number, so the
    decoder never needs to be told whether compression was used.
    """
    GZIP_MAGIC: bytes = b"\x1f\x8b"
    FORBIDDEN: bytes = b"+/"

    @classmethod
    def is_gzipped(cls, data: bytes) -> bool:
        return data[:2] == cls.GZIP_MAGIC

    @classmethod
    def compress(cls, data: bytes, level: int = 9) -> bytes:
        # mtime is pinned so identical records give identical envelopes
        try:
            return gzip.compress(data, compresslevel=level, mtime=0)
        except (OSError, zlib.error, ValueError) as ex:
            raise EncodingIOError(f"Unable to compress record: {ex}") from ex

    @classmethod
    def decompress(cls, data: bytes, max_size: int) -> bytes:
        """
        Inflate a single-member gzip stream.

        Raises CorruptEnvelopeError when the stream is damaged, truncated,
        followed by trailing bytes, or inflates to more than `max_size`.
        """
        inflater = zlib.decompressobj(wbits=16 + zlib.MAX_WBITS)
        try:
            out = inflater.decompress(data, max_size + 1)
        except zlib.error as ex:
            raise CorruptEnvelopeError(f"Invalid gzip stream: {ex}") from ex

        if len(out) > max_size:
            raise CorruptEnvelopeError(
                f"Decompressed record exceeds the {max_size} bytes limit"
            )
        if not inflater.eof:
            raise CorruptEnvelopeError("Truncated gzip stream")
        if inflater.unused_data:
            raise CorruptEnvelopeError("Unexpected data after gzip stream")

        return out

    @classmethod
    def to_text(cls, data: bytes) -> str:
        return base64.urlsafe_b64encode(data).decode("ascii")

    @classmethod
    def from_text(cls, text: str) -> bytes:
        """
        Decode URL-safe Base64. Missing '=' padding is tolerated, any
        character outside the URL-safe alphabet is rejected.
        """
        if not isinstance(text, str):
            raise TypeError(f"Envelope must be a string, got {type(text).__name__}")

        try:
            raw = text.strip().encode("ascii")
        except UnicodeEncodeError as ex:
            raise MalformedInputError("Envelope contains non-ASCII characters") from ex

        if any(ch in raw for ch in cls.FORBIDDEN):
            raise MalformedInputError("Envelope is not URL-safe Base64")

        raw += b"=" * (-len(raw) % 4)
        try:
            return base64.b64decode(raw, altchars=b"-_", validate=True)
        except binascii.Error as ex:
            raise MalformedInputError(f"Envelope is not valid Base64: {ex}") from ex
