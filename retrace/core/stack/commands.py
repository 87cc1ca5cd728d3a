from __future__ import annotations

from typing import Any

from retrace.core.stack.command import UndoCommand


class SetItemCommand(UndoCommand):
    """Assign `subject[key] = value` on a mapping subject."""

    merge_id = 1

    def __init__(self, key: Any, value: Any, caption: str | None = None) -> None:
        self.key = key
        self.value = value
        self.caption = caption if caption is not None else f"set {key}"
        self.had_old = False
        self.old: Any = None
        self.applied = False

    def redo(self, subject: Any) -> None:
        if not self.applied:
            self.had_old = self.key in subject
            self.old = subject.get(self.key) if self.had_old else None
            self.applied = True
        subject[self.key] = self.value

    def undo(self, subject: Any) -> None:
        if self.had_old:
            subject[self.key] = self.old
        else:
            subject.pop(self.key, None)

    def merge_with(self, other: UndoCommand) -> bool:
        if not isinstance(other, SetItemCommand) or other.key != self.key:
            return False
        self.value = other.value
        return True


class SetAttrCommand(UndoCommand):
    """Assign `subject.<name> = value` on an attribute-bearing subject."""

    merge_id = 2

    def __init__(self, name: str, value: Any, caption: str | None = None) -> None:
        self.name = name
        self.value = value
        self.caption = caption if caption is not None else f"set {name}"
        self.had_old = False
        self.old: Any = None
        self.applied = False

    def redo(self, subject: Any) -> None:
        if not self.applied:
            self.had_old = hasattr(subject, self.name)
            self.old = getattr(subject, self.name, None)
            self.applied = True
        setattr(subject, self.name, self.value)

    def undo(self, subject: Any) -> None:
        if self.had_old:
            setattr(subject, self.name, self.old)
        elif hasattr(subject, self.name):
            delattr(subject, self.name)

    def merge_with(self, other: UndoCommand) -> bool:
        if not isinstance(other, SetAttrCommand) or other.name != self.name:
            return False
        self.value = other.value
        return True
