from __future__ import annotations

from typing import Any, TYPE_CHECKING

from retrace.core.stack.command import UndoCommand

if TYPE_CHECKING:
    from retrace.core.stack.group import UndoGroup


class UndoStack:
    """
    A list of UndoCommand objects applied to a single subject.

    `index` points just past the last applied command: commands below it
    can be undone, commands at or above it can be redone. Pushing a new
    command drops everything that could still be redone.

    `clean_index` remembers the index at which the subject was last saved
    (see `set_clean`). It is -1 when that state is no longer reachable.

    The subject and the group are not part of the stack's serialized form:
    the codec stores the subject on its own and a decoded stack starts
    outside of any group.
    """

    def __init__(
        self,
        subject: Any,
        group: UndoGroup | None = None,
        undo_limit: int = 0,
    ) -> None:
        if undo_limit < 0:
            raise ValueError("undo_limit must be >= 0")

        self.subject = subject
        self._commands: list[UndoCommand] = []
        self._index = 0
        self._clean_index = 0
        self._undo_limit = undo_limit
        self._group: UndoGroup | None = None

        if group is not None:
            group.add(self)

    @property
    def group(self) -> UndoGroup | None:
        return self._group

    @property
    def index(self) -> int:
        return self._index

    @property
    def count(self) -> int:
        return len(self._commands)

    @property
    def clean_index(self) -> int:
        return self._clean_index

    @property
    def undo_limit(self) -> int:
        return self._undo_limit

    @undo_limit.setter
    def undo_limit(self, value: int) -> None:
        if self._commands:
            raise RuntimeError("undo_limit can only be changed on an empty stack")
        if value < 0:
            raise ValueError("undo_limit must be >= 0")
        self._undo_limit = value

    def command(self, idx: int) -> UndoCommand | None:
        if 0 <= idx < len(self._commands):
            return self._commands[idx]
        return None

    def push(self, command: UndoCommand) -> None:
        if command is None:
            raise TypeError("command is required")

        command.redo(self.subject)

        del self._commands[self._index:]
        if self._clean_index > self._index:
            self._clean_index = -1

        top = self._commands[-1] if self._commands else None
        if (
            top is not None
            and top.merge_id != -1
            and top.merge_id == command.merge_id
            and self._clean_index != self._index
            and top.merge_with(command)
        ):
            return

        self._commands.append(command)
        self._index += 1
        self._apply_limit()

    def undo(self) -> None:
        if self._index == 0:
            return
        self._index -= 1
        self._commands[self._index].undo(self.subject)

    def redo(self) -> None:
        if self._index == len(self._commands):
            return
        self._commands[self._index].redo(self.subject)
        self._index += 1

    def set_index(self, idx: int) -> None:
        """Undo or redo commands until `index` equals idx (clamped)."""
        idx = max(0, min(idx, len(self._commands)))
        while self._index > idx:
            self.undo()
        while self._index < idx:
            self.redo()

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._commands)

    def undo_caption(self) -> str:
        if self._index > 0:
            return self._commands[self._index - 1].caption
        return ""

    def redo_caption(self) -> str:
        if self._index < len(self._commands):
            return self._commands[self._index].caption
        return ""

    def set_clean(self) -> None:
        self._clean_index = self._index

    def is_clean(self) -> bool:
        return self._clean_index == self._index

    def clear(self) -> None:
        """Forget every command. The subject is left as it is."""
        self._commands.clear()
        self._index = 0
        self._clean_index = 0

    def set_active(self, active: bool = True) -> None:
        if self._group is None:
            return
        if active:
            self._group.set_active(self)
        elif self._group.active is self:
            self._group.set_active(None)

    def is_active(self) -> bool:
        return self._group is None or self._group.active is self

    def _apply_limit(self) -> None:
        if not self._undo_limit:
            return

        excess = len(self._commands) - self._undo_limit
        if excess <= 0:
            return

        del self._commands[:excess]
        self._index -= excess
        if self._clean_index != -1:
            self._clean_index -= excess
            if self._clean_index < 0:
                self._clean_index = -1

    def to_dict(self) -> dict[str, Any]:
        return {
            "commands": list(self._commands),
            "index": self._index,
            "clean_index": self._clean_index,
            "undo_limit": self._undo_limit,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UndoStack:
        commands = data["commands"]
        index = data["index"]
        clean_index = data["clean_index"]

        if not isinstance(commands, list):
            raise TypeError("commands must be a list")
        if not all(isinstance(c, UndoCommand) for c in commands):
            raise TypeError("commands must be UndoCommand instances")
        if not 0 <= index <= len(commands):
            raise ValueError(f"index {index} out of range")
        if not -1 <= clean_index <= len(commands):
            raise ValueError(f"clean_index {clean_index} out of range")

        stack = cls(subject=None, undo_limit=data.get("undo_limit", 0))
        stack._commands = commands
        stack._index = index
        stack._clean_index = clean_index
        return stack
