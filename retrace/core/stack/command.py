from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class UndoCommand(ABC):
    """
    A reversible change applied to a stack's subject.

    Commands receive the subject on every call instead of holding a
    reference to it, so a stack restored from an envelope can replay its
    history against the freshly decoded subject.

    Commands travel inside the envelope: the default `to_dict` captures the
    instance attributes and `from_dict` restores them without calling
    `__init__`. Every attribute must therefore be serializable.
    """

    caption: str = ""
    """
    Human readable label, shown as "Undo <caption>" / "Redo <caption>".
    """

    merge_id: int = -1
    """
    Commands sharing a non-negative merge_id may be compressed into one.
    """

    @abstractmethod
    def redo(self, subject: Any) -> None:
        """Apply the change to subject."""

    @abstractmethod
    def undo(self, subject: Any) -> None:
        """Revert the change made by redo."""

    def merge_with(self, other: UndoCommand) -> bool:
        """
        Absorb `other` (already applied) into this command.
        Return True if the merge happened.
        """
        return False

    def to_dict(self) -> dict[str, Any]:
        return dict(vars(self))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UndoCommand:
        command = cls.__new__(cls)
        command.__dict__.update(data)
        return command

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return vars(self) == vars(other)
