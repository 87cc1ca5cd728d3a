from typing import Protocol, Any, Callable, TYPE_CHECKING

if TYPE_CHECKING:
    from retrace.core.models.descriptor import SubjectDescriptor


class Serializer(Protocol):
    """
    Defines the interface for encoding/decoding the composite record
    carried inside an envelope.

    Implementations must be:
    - deterministic
    - pure (no side effects)
    - safe against malformed input
    """

    def serialize(self, message: Any) -> bytes:
        """Encode a Python object into bytes."""

    def deserialize(self, data: bytes) -> Any:
        """Decode bytes produced by `serialize` back into a Python object."""

    def is_native(self, value: Any) -> bool:
        """Return True if `value` can be encoded without any caller help."""


class SubjectHolder(Protocol):
    """
    The only part of an undo stack the codec relies on. Everything else
    about the stack is opaque and travels through the Serializer.
    """
    subject: Any


SubjectEncodeHook = Callable[[Any], str]
"""
Caller-supplied function turning a non-serializable subject into a string.
"""


SubjectDecodeHook = Callable[[str, "SubjectDescriptor"], Any]
"""
Caller-supplied function rebuilding a subject from its string form.
Returns None when the subject cannot be rebuilt.
"""
