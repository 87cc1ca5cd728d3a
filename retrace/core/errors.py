class CodecError(Exception):
    """Base class for every failure raised by the stack codec."""


class EncodingError(CodecError):
    """A stack could not be turned into an envelope."""


class SubjectNotSerializableError(EncodingError):
    """
    The subject is not natively serializable and no encode hook was
    supplied (or the hook did not produce a string).
    """


class EncodingIOError(EncodingError):
    """The record could not be written (serializer or compressor failure)."""


class DecodingError(CodecError):
    """An envelope could not be turned back into a stack."""


class MalformedInputError(DecodingError):
    """The envelope text is not URL-safe Base64."""


class CorruptEnvelopeError(DecodingError):
    """The decoded bytes do not hold a valid record."""


class UnknownTypeError(DecodingError):
    """A type referenced by the record cannot be resolved by this program."""

    def __init__(self, ref: str, reason: str = "") -> None:
        self.ref = ref
        message = f"Unknown type reference '{ref}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
