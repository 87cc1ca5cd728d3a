from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from retrace.core.helpers.typeref import type_ref_of
from retrace.core.ports.serializer import SubjectHolder


@dataclass(frozen=True, slots=True)
class SubjectDescriptor:
    """
    Versioned metadata describing the subject persisted with a stack.

    The descriptor travels inside the envelope and is rebuilt on every
    decode so the caller can decide whether a migration is needed.
    """
    declared_type: str
    """
    Type reference ("module:qualname") of the subject at encode time.
    """

    id: str | None = None
    """
    Opaque identity of the subject: a stable key, a qualified name, a GUID.
    """

    version: int = 0
    """
    Caller-chosen shape version of the subject.
    """

    extras: Mapping[str, Any] = field(default_factory=dict)
    """
    Side metadata, kept ordered by key.
    """

    def __post_init__(self) -> None:
        if not isinstance(self.declared_type, str) or not self.declared_type:
            raise TypeError("declared_type must be a non-empty type reference")
        if self.id is not None and not isinstance(self.id, str):
            raise TypeError("id must be a string or None")
        if isinstance(self.version, bool) or not isinstance(self.version, int):
            raise TypeError("version must be an integer")

        extras = dict(self.extras)
        for key in extras:
            if not isinstance(key, str):
                raise TypeError(f"extras keys must be strings, got {key!r}")

        ordered = {key: extras[key] for key in sorted(extras)}
        object.__setattr__(self, "extras", MappingProxyType(ordered))

    @classmethod
    def of(
        cls,
        subject: Any,
        id: str | None = None,
        version: int = 0,
        extras: Mapping[str, Any] | None = None,
    ) -> SubjectDescriptor:
        """Describe `subject`, capturing its concrete type."""
        return cls(
            declared_type=type_ref_of(subject),
            id=id,
            version=version,
            extras=extras or {},
        )

    @classmethod
    def for_stack(
        cls,
        stack: SubjectHolder,
        id: str | None = None,
        version: int = 0,
        extras: Mapping[str, Any] | None = None,
    ) -> SubjectDescriptor:
        if stack is None:
            raise TypeError("stack is required")
        return cls.of(stack.subject, id=id, version=version, extras=extras)

    def with_extras(self, **items: Any) -> SubjectDescriptor:
        merged = dict(self.extras)
        merged.update(items)
        return SubjectDescriptor(
            declared_type=self.declared_type,
            id=self.id,
            version=self.version,
            extras=merged,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SubjectDescriptor):
            return NotImplemented
        return (
            self.declared_type == other.declared_type
            and self.id == other.id
            and self.version == other.version
            and dict(self.extras) == dict(other.extras)
        )

    def __hash__(self) -> int:
        return hash((self.declared_type, self.id, self.version))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "declared_type": self.declared_type,
            "extras": dict(self.extras),
        }

    @classmethod
    def from_dict(cls, data: dict) -> SubjectDescriptor:
        if "declared_type" not in data:
            raise KeyError("Missing 'declared_type' key")
        extras = data.get("extras") or {}
        if not isinstance(extras, dict):
            raise TypeError("extras must be a mapping")
        return cls(
            declared_type=data["declared_type"],
            id=data.get("id"),
            version=data.get("version", 0),
            extras=extras,
        )
