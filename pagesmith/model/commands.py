"""Undoable command interface over the project store.

Each mutation can be wrapped as a command exposing ``execute``, ``undo`` and
``description``.  ``SnapshotCommand`` is the generic implementation: it
remembers the snapshot that was current before ``execute`` and republishes it
on ``undo``, so replaying execute/undo pairs is exact.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from pagesmith.errors import InvalidInputError
from pagesmith.model.models import Project
from pagesmith.model.store import ProjectStore


class Command(ABC):
    """An undoable change to the project."""

    @abstractmethod
    async def execute(self) -> None:
        ...

    @abstractmethod
    async def undo(self) -> None:
        ...

    @abstractmethod
    def description(self) -> str:
        ...


class SnapshotCommand(Command):
    """Apply a pure ``transform(project) -> (project, result)`` via the store."""

    def __init__(
        self,
        store: ProjectStore,
        transform: Callable[[Project], tuple[Project, Any]],
        description: str,
    ) -> None:
        self.store = store
        self.transform = transform
        self._description = description
        self._before: Optional[Project] = None
        self._after: Optional[Project] = None
        self.result: Any = None

    async def execute(self) -> None:
        captured: dict[str, Project] = {}

        def _apply(current: Project) -> tuple[Project, Any]:
            captured["before"] = current.model_copy(deep=True)
            if self._after is not None:
                # Redo republishes the original outcome so generated ids stay stable.
                return self._after.model_copy(deep=True), self.result
            new_project, result = self.transform(current)
            captured["after"] = new_project.model_copy(deep=True)
            return new_project, result

        self.result = await self.store.update(_apply)
        self._before = captured["before"]
        if "after" in captured:
            self._after = captured["after"]

    async def undo(self) -> None:
        if self._before is None:
            raise InvalidInputError(f"Cannot undo {self._description!r}: not executed")
        await self.store.set_project(self._before)
        self._before = None

    def description(self) -> str:
        return self._description


class CommandHistory:
    """Undo/redo stacks of executed commands."""

    def __init__(self) -> None:
        self._undo: list[Command] = []
        self._redo: list[Command] = []

    async def run(self, command: Command) -> None:
        await command.execute()
        self._undo.append(command)
        self._redo.clear()

    async def undo(self) -> Optional[str]:
        """Undo the latest command and return its description, if any."""
        if not self._undo:
            return None
        command = self._undo.pop()
        await command.undo()
        self._redo.append(command)
        return command.description()

    async def redo(self) -> Optional[str]:
        if not self._redo:
            return None
        command = self._redo.pop()
        await command.execute()
        self._undo.append(command)
        return command.description()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)
