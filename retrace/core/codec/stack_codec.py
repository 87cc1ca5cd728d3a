import logging
from typing import Any

from retrace.core.codec.envelope import EnvelopeCodec
from retrace.core.errors import (
    CorruptEnvelopeError,
    EncodingIOError,
    SubjectNotSerializableError,
)
from retrace.core.helpers.typeref import type_ref_of
from retrace.core.models.descriptor import SubjectDescriptor
from retrace.core.models.restored import PlaceholderSubject, RestoredResult
from retrace.core.ports.serializer import (
    Serializer,
    SubjectDecodeHook,
    SubjectEncodeHook,
    SubjectHolder,
)


class StackCodec:
    """
    Turns an undo stack and its subject into a single envelope string,
    and back.

    Record layout (before optional gzip and Base64):

        {
            "format": 1,
            "stack": <stack, subject excluded>,
            "subject": <native subject | hook string>,
            "encoded": <True if "subject" came from the encode hook>,
            "descriptor": <SubjectDescriptor.to_dict()>,
        }

    The codec keeps no state between calls; each encode or decode only
    reads its arguments and the configuration given at construction.
    """
    FORMAT: int = 1
    RECORD_KEYS = ("format", "stack", "subject", "encoded", "descriptor")

    def __init__(
        self,
        serializer: Serializer,
        compress: bool = False,
        compresslevel: int = 9,
        max_record_size: int = 16 * 1024 * 1024,
    ) -> None:
        self._serializer = serializer
        self._compress = compress
        self._compresslevel = compresslevel
        self._max_record_size = max_record_size
        self._logger = logging.getLogger("core.codec.stack_codec")

    def encode(
        self,
        stack: SubjectHolder,
        descriptor: SubjectDescriptor,
        compress: bool | None = None,
        subject_encode_hook: SubjectEncodeHook | None = None,
    ) -> str:
        if stack is None:
            raise TypeError("stack is required")
        if descriptor is None:
            raise TypeError("descriptor is required")

        subject = stack.subject
        payload, encoded = self._subject_payload(subject, subject_encode_hook)

        record = {
            "format": self.FORMAT,
            "stack": stack,
            "subject": payload,
            "encoded": encoded,
            "descriptor": descriptor.to_dict(),
        }

        try:
            data = self._serializer.serialize(record)
        except (TypeError, ValueError, OverflowError) as ex:
            raise EncodingIOError(f"Unable to write record: {ex}") from ex

        if compress is None:
            compress = self._compress

        size = len(data)
        if compress:
            data = EnvelopeCodec.compress(data, self._compresslevel)

        self._logger.debug(
            f"Encoded stack for subject {descriptor.id!r}: "
            f"record={size}B envelope={len(data)}B compressed={compress}"
        )
        return EnvelopeCodec.to_text(data)

    def decode(
        self,
        text: str,
        subject_decode_hook: SubjectDecodeHook | None = None,
    ) -> RestoredResult:
        if text is None:
            raise TypeError("text is required")

        data = EnvelopeCodec.from_text(text)
        if not data:
            raise CorruptEnvelopeError("Empty envelope")

        if len(data) > self._max_record_size:
            raise CorruptEnvelopeError(
                f"Envelope exceeds the {self._max_record_size} bytes limit"
            )

        compressed = EnvelopeCodec.is_gzipped(data)
        if compressed:
            data = EnvelopeCodec.decompress(data, self._max_record_size)

        record = self._read_record(data)
        stack: SubjectHolder = record["stack"]
        payload = record["subject"]
        encoded = bool(record["encoded"])
        descriptor = self._read_descriptor(record["descriptor"])

        subject, matched = self._reconcile(
            payload, encoded, descriptor, subject_decode_hook
        )
        try:
            stack.subject = subject
        except (AttributeError, TypeError) as ex:
            raise CorruptEnvelopeError(
                f"Record stack of type '{type_ref_of(stack)}' does not accept a subject"
            ) from ex

        self._logger.debug(
            f"Decoded stack for subject {descriptor.id!r}: "
            f"record={len(data)}B compressed={compressed} matched={matched}"
        )
        return RestoredResult(
            stack=stack,
            descriptor=descriptor,
            matched_expected_type=matched,
        )

    def _subject_payload(
        self,
        subject: Any,
        hook: SubjectEncodeHook | None,
    ) -> tuple[Any, bool]:
        if self._serializer.is_native(subject):
            return subject, False

        if hook is None:
            raise SubjectNotSerializableError(
                f"Subject of type '{type_ref_of(subject)}' is not serializable "
                "and no encode hook was given"
            )

        payload = hook(subject)
        if not isinstance(payload, str):
            raise SubjectNotSerializableError(
                f"Encode hook must return a string, got '{type_ref_of(payload)}'"
            )
        return payload, True

    def _read_record(self, data: bytes) -> dict[str, Any]:
        try:
            record = self._serializer.deserialize(data)
        except (
            ValueError,
            TypeError,
            KeyError,
            IndexError,
            AttributeError,
        ) as ex:
            raise CorruptEnvelopeError(f"Unable to read record: {ex}") from ex

        if not isinstance(record, dict) or any(k not in record for k in self.RECORD_KEYS):
            raise CorruptEnvelopeError("Record has an unexpected structure")

        if record["format"] != self.FORMAT:
            raise CorruptEnvelopeError(f"Unsupported record format {record['format']!r}")

        if not hasattr(record["stack"], "subject"):
            raise CorruptEnvelopeError(
                f"Record stack of type '{type_ref_of(record['stack'])}' has no subject"
            )

        return record

    @staticmethod
    def _read_descriptor(data: Any) -> SubjectDescriptor:
        if not isinstance(data, dict):
            raise CorruptEnvelopeError("Record descriptor is not a mapping")
        try:
            return SubjectDescriptor.from_dict(data)
        except (KeyError, TypeError, ValueError) as ex:
            raise CorruptEnvelopeError(f"Invalid subject descriptor: {ex}") from ex

    def _reconcile(
        self,
        payload: Any,
        encoded: bool,
        descriptor: SubjectDescriptor,
        hook: SubjectDecodeHook | None,
    ) -> tuple[Any, bool]:
        actual = type_ref_of(payload)
        if not encoded and actual == descriptor.declared_type:
            return payload, True

        if isinstance(payload, str) and hook is not None:
            subject = hook(payload, descriptor)
            if subject is not None:
                return subject, True

            self._logger.warning(
                f"Decode hook could not rebuild subject {descriptor.id!r} "
                f"(declared '{descriptor.declared_type}', version {descriptor.version})"
            )
            return PlaceholderSubject(), False

        self._logger.warning(
            f"Subject {descriptor.id!r} restored as '{actual}' "
            f"but '{descriptor.declared_type}' was declared"
        )
        if payload is None:
            return PlaceholderSubject(), False
        return payload, False
