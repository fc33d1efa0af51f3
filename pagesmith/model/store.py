"""Process-wide project state behind a single exclusive-access gate.

``ProjectStore`` holds exactly one snapshot and a version counter.  Readers
get deep copies, writers publish whole new snapshots.  ``update`` runs a pure
transform while holding the lock; ``snapshot``/``compare_and_set`` let a
caller release the lock across slow I/O and then publish only if nobody else
wrote in between.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, TypeVar

from pagesmith.errors import NotFoundError, StaleSnapshotError
from pagesmith.model.models import Project

T = TypeVar("T")


class ProjectStore:
    """Versioned holder for the current project snapshot."""

    def __init__(self, project: Optional[Project] = None) -> None:
        self._project = project.model_copy(deep=True) if project is not None else None
        self._version = 0
        self._lock = asyncio.Lock()

    @property
    def version(self) -> int:
        """Incremented once per published snapshot."""
        return self._version

    # -- Primitive access --------------------------------------------------

    async def get_project(self) -> Optional[Project]:
        """Return a copy of the current project, or ``None``."""
        async with self._lock:
            return self._copy()

    async def set_project(self, project: Optional[Project]) -> int:
        """Replace the snapshot unconditionally and return the new version."""
        async with self._lock:
            return self._publish(project)

    async def require_project(self) -> Project:
        """Like :meth:`get_project` but raises ``NotFoundError`` when empty."""
        project = await self.get_project()
        if project is None:
            raise NotFoundError("project")
        return project

    # -- Versioned access --------------------------------------------------

    async def snapshot(self) -> tuple[int, Project]:
        """Return ``(version, copy)`` for a later :meth:`compare_and_set`."""
        async with self._lock:
            if self._project is None:
                raise NotFoundError("project")
            return self._version, self._copy()  # type: ignore[return-value]

    async def compare_and_set(self, expected_version: int, project: Project) -> int:
        """Publish *project* only if the store is still at *expected_version*."""
        async with self._lock:
            if self._version != expected_version:
                raise StaleSnapshotError(expected_version, self._version)
            return self._publish(project)

    async def update(self, transform: Callable[[Project], tuple[Project, T]]) -> T:
        """Apply ``transform(current) -> (new, result)`` atomically.

        The transform receives a private copy.  If it raises, nothing is
        published and the error propagates.
        """
        async with self._lock:
            if self._project is None:
                raise NotFoundError("project")
            current = self._project.model_copy(deep=True)
            new_project, result = transform(current)
            self._publish(new_project)
            return result

    # -- Internal ----------------------------------------------------------

    def _copy(self) -> Optional[Project]:
        return self._project.model_copy(deep=True) if self._project is not None else None

    def _publish(self, project: Optional[Project]) -> int:
        self._project = project.model_copy(deep=True) if project is not None else None
        self._version += 1
        return self._version
