from dataclasses import dataclass
from typing import Any

from retrace.core.models.descriptor import SubjectDescriptor
from retrace.core.ports.serializer import SubjectHolder


class PlaceholderSubject:
    """
    Empty stand-in assigned to a restored stack when its real subject
    could not be rebuilt. A fresh instance is created every time, so two
    restored stacks never share a subject.
    """
    __slots__ = ()

    def __repr__(self) -> str:
        return "PlaceholderSubject()"


@dataclass(frozen=True)
class RestoredResult:
    """
    Outcome of a successful decode.

    `matched_expected_type` is False when the payload type diverged from
    the descriptor's declared type and nothing could reconcile it. The
    stack is still returned so the caller can inspect it and migrate.
    """
    stack: SubjectHolder
    descriptor: SubjectDescriptor
    matched_expected_type: bool = True

    @property
    def subject(self) -> Any:
        return self.stack.subject

    @property
    def has_placeholder(self) -> bool:
        return isinstance(self.stack.subject, PlaceholderSubject)
