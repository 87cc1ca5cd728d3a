from __future__ import annotations

import logging

from retrace.core.stack.stack import UndoStack


class UndoGroup:
    """
    A set of UndoStack objects, at most one of which is active.

    An application usually keeps one stack per subject but exposes a single
    undo/redo action; the group routes that action to whichever stack is
    active and answers with neutral values when none is.

    Two stacks holding the very same subject object cannot belong to the
    same group. Subjects are compared by identity, not by value.
    """

    def __init__(self) -> None:
        self._stacks: list[UndoStack] = []
        self._active: UndoStack | None = None
        self._logger = logging.getLogger("core.stack.group")

    @property
    def active(self) -> UndoStack | None:
        return self._active

    @property
    def stacks(self) -> list[UndoStack]:
        return list(self._stacks)

    def __contains__(self, stack: object) -> bool:
        return any(s is stack for s in self._stacks)

    def __len__(self) -> int:
        return len(self._stacks)

    def add(self, stack: UndoStack) -> None:
        if stack is None:
            raise TypeError("stack is required")

        if stack in self:
            return

        for member in self._stacks:
            if member.subject is stack.subject:
                raise RuntimeError(
                    "A stack for the same subject is already registered in this group"
                )

        previous = stack._group
        if previous is not None:
            previous.remove(stack)

        self._stacks.append(stack)
        stack._group = self

    def remove(self, stack: UndoStack) -> None:
        if stack is None:
            raise TypeError("stack is required")

        if stack not in self:
            return

        if stack is self._active:
            self.set_active(None)

        self._stacks = [s for s in self._stacks if s is not stack]
        stack._group = None

    def clear(self) -> None:
        """Detach every stack. The group is left empty with no active stack."""
        for stack in self._stacks:
            stack._group = None
        self._stacks.clear()
        self._active = None

    def set_active(self, stack: UndoStack | None) -> None:
        if stack is self._active:
            return

        if stack is not None and stack not in self:
            self._logger.warning("Ignoring set_active for a stack outside of the group")
            return

        self._active = stack

    def undo(self) -> None:
        if self._active is not None:
            self._active.undo()

    def redo(self) -> None:
        if self._active is not None:
            self._active.redo()

    def can_undo(self) -> bool:
        return self._active is not None and self._active.can_undo()

    def can_redo(self) -> bool:
        return self._active is not None and self._active.can_redo()

    def undo_caption(self) -> str:
        return self._active.undo_caption() if self._active is not None else ""

    def redo_caption(self) -> str:
        return self._active.redo_caption() if self._active is not None else ""

    def is_clean(self) -> bool:
        return self._active is None or self._active.is_clean()
