"""Project service: the facade an HTTP or desktop adapter talks to.

Combines the store, the mutation API, the command history and the sync
engine.  Mutations go through :class:`CommandHistory` so they can be undone;
none of them writes to disk.  Sync happens only when asked for
(:meth:`ProjectService.trigger_sync`, :meth:`ProjectService.sync_page`,
:meth:`ProjectService.pull_from_disk`) or when the sync root is (re)set.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable, Optional

from pagesmith.config import Config
from pagesmith.errors import InvalidInputError
from pagesmith.generators import TemplateRenderer
from pagesmith.model import mutations
from pagesmith.model.commands import CommandHistory, SnapshotCommand
from pagesmith.model.models import Block, DataModel, FieldType, Page, Project
from pagesmith.model.serialization import export_project, import_project
from pagesmith.model.store import ProjectStore
from pagesmith.sync import SyncEngine, SyncReport


class ProjectService:
    """High-level operations on the single loaded project."""

    def __init__(
        self,
        store: ProjectStore | None = None,
        config: Config | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.store = store or ProjectStore()
        self.config = config or Config()
        self.renderer = renderer or TemplateRenderer()
        self.history = CommandHistory()
        self._sync_locks: dict[str, asyncio.Lock] = {}

    def engine_for(self, project: Project) -> SyncEngine:
        """Sync engine for *project*'s root; raises if none is configured.

        Engines for the same root share one lock, so their calls never overlap.
        """
        engine = SyncEngine.for_project(project, self.config, self.renderer)
        engine.lock = self._sync_locks.setdefault(str(engine.root.resolve()), engine.lock)
        return engine

    async def _run(self, transform: Callable[[Project], tuple[Project, Any]], description: str) -> Any:
        command = SnapshotCommand(self.store, transform, description)
        await self.history.run(command)
        return command.result

    # ------------------------------------------------------------------
    # Project lifecycle
    # ------------------------------------------------------------------

    async def create_project(self, name: str, root_path: Optional[str] = None) -> Project:
        """Replace the loaded project with a fresh one.

        With *root_path*, the sync root is scaffolded and every page written.
        """
        project = mutations.create_project(name, root_path)
        await self.store.set_project(project)
        self.history = CommandHistory()
        if root_path:
            await self.engine_for(project).sync_project_to_disk(project)
        return project

    async def get_project(self) -> Project:
        return await self.store.require_project()

    async def rename_project(self, name: str) -> Project:
        return await self._run(lambda p: mutations.rename_project(p, name), f"Rename project to {name!r}")

    async def reset_project(self) -> Project:
        """Drop all pages, blocks and models; rewrite the sync root if one is set."""
        project = await self._run(lambda p: _with_self(mutations.reset_project(p)), "Reset project")
        if project.root_path:
            await self.engine_for(project).sync_project_to_disk(project)
        return project

    async def set_sync_root(self, root_path: str) -> SyncReport:
        """Point the project at *root_path* and write everything there."""
        project = await self._run(
            lambda p: mutations.set_root_path(p, root_path), f"Set sync root to {root_path}"
        )
        return await self.engine_for(project).sync_project_to_disk(project)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_page(self, name: str, path: Optional[str] = None) -> Page:
        return await self._run(lambda p: mutations.add_page(p, name, path), f"Add page {name}")

    async def set_page_path(self, page_id: str, path: str) -> Page:
        return await self._run(
            lambda p: mutations.set_page_path(p, page_id, path), f"Route page {page_id} to {path}"
        )

    async def add_block(
        self,
        page_id: str,
        block_type: str,
        name: str = "",
        parent_id: Optional[str] = None,
        position: Optional[int] = None,
        classes: Iterable[str] = (),
        properties: Optional[dict[str, Any]] = None,
    ) -> Block:
        return await self._run(
            lambda p: mutations.add_block(
                p, page_id, block_type, name, parent_id, position, list(classes), properties
            ),
            f"Add {block_type} block",
        )

    async def move_block(
        self, block_id: str, new_parent_id: Optional[str], position: Optional[int] = None
    ) -> Block:
        return await self._run(
            lambda p: mutations.move_block(p, block_id, new_parent_id, position),
            f"Move block {block_id}",
        )

    async def update_block_property(self, block_id: str, key: str, value: Any) -> Block:
        return await self._run(
            lambda p: mutations.update_block_property(p, block_id, key, value),
            f"Set {key} on block {block_id}",
        )

    async def add_data_model(self, name: str) -> DataModel:
        return await self._run(lambda p: mutations.add_data_model(p, name), f"Add model {name}")

    async def add_field(
        self,
        model_id: str,
        name: str,
        field_type: str | FieldType,
        required: bool = False,
        **options: Any,
    ) -> DataModel:
        return await self._run(
            lambda p: mutations.add_field(p, model_id, name, field_type, required, **options),
            f"Add field {name}",
        )

    async def archive(self, kind: str, ident: str) -> Project:
        """Archive a ``page``, ``block`` or ``model`` by id."""
        transform = _ARCHIVE.get(kind)
        if transform is None:
            raise InvalidInputError(f"Cannot archive {kind!r}", value=kind, accepted=sorted(_ARCHIVE))
        return await self._run(lambda p: _with_self(transform(p, ident)), f"Archive {kind} {ident}")

    async def restore(self, kind: str, ident: str) -> Project:
        """Undo an archival of a ``page``, ``block`` or ``model``."""
        transform = _RESTORE.get(kind)
        if transform is None:
            raise InvalidInputError(f"Cannot restore {kind!r}", value=kind, accepted=sorted(_RESTORE))
        return await self._run(lambda p: _with_self(transform(p, ident)), f"Restore {kind} {ident}")

    async def undo(self) -> Optional[str]:
        return await self.history.undo()

    async def redo(self) -> Optional[str]:
        return await self.history.redo()

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def trigger_sync(self) -> SyncReport:
        """Write the whole project to its sync root.

        Raises:
            InvalidInputError: If no sync root is configured.
        """
        project = await self.store.require_project()
        return await self.engine_for(project).sync_project_to_disk(project)

    async def sync_page(self, page_id: str) -> SyncReport:
        project = await self.store.require_project()
        return await self.engine_for(project).sync_page_to_disk(page_id, project)

    async def pull_from_disk(self) -> SyncReport:
        """Fold disk edits into the loaded project.

        The result is published with compare-and-set, so a mutation that
        lands while the disk is being read makes this call fail with
        :class:`~pagesmith.errors.StaleSnapshotError` instead of being lost.
        """
        version, project = await self.store.snapshot()
        updated, report = await self.engine_for(project).sync_disk_to_project(project)
        if report.changed:
            await self.store.compare_and_set(version, updated)
        return report

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    async def export_project(self) -> str:
        return export_project(await self.store.require_project())

    async def import_project(self, raw: str | bytes) -> Project:
        project = import_project(raw)
        await self.store.set_project(project)
        self.history = CommandHistory()
        return project


def _with_self(project: Project) -> tuple[Project, Project]:
    return project, project


_ARCHIVE: dict[str, Callable[[Project, str], Project]] = {
    "page": mutations.archive_page,
    "block": mutations.archive_block,
    "model": mutations.archive_data_model,
}

_RESTORE: dict[str, Callable[[Project, str], Project]] = {
    "page": mutations.restore_page,
    "block": mutations.restore_block,
    "model": mutations.restore_data_model,
}
