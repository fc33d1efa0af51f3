"""Bidirectional sync between a project and its sync root on disk.

Memory to disk writes generated output: every file is first staged next to
its destination and then moved into place with ``os.replace``, so a reader
sees either the old or the new content, never a partial write.

Disk to memory reads page components and the project file back.  A per-file
baseline (see :mod:`pagesmith.sync.baseline`) tells which side changed since
the last agreement point:

============================  ==============================================
disk unchanged                skipped
disk changed, model not       folded into the model (disk wins)
disk and model both changed   :class:`SyncConflictError`, nothing applied
tracked file deleted          reported as missing, model untouched
============================  ==============================================

All public methods are coroutines.  File-system work runs in a worker thread
and calls are serialized by the engine's asyncio lock, which callers
share between engines that point at the same root.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from pagesmith.config import Config
from pagesmith.errors import InvalidInputError, NotFoundError, SyncConflictError, SyncError
from pagesmith.generators import (
    BackendGenerator,
    DatabaseGenerator,
    FrontendGenerator,
    GeneratedFile,
    TemplateRenderer,
)
from pagesmith.model.models import Page, Project, default_route_path, validate_page_name
from pagesmith.model.mutations import new_id
from pagesmith.sync.baseline import Baseline
from pagesmith.sync.project_file import fold_project_file, render_project_file
from pagesmith.sync.reconcile import PageParseError, ParsedBlock, fold_page, page_shell, read_page
from pagesmith.utils import commit_file, content_hash, ensure_dir, read_text, stage_file


class SyncReport(BaseModel):
    """What a sync call did, as root-relative POSIX paths."""

    operation: str
    root: str
    written: list[str] = Field(default_factory=list)
    folded: list[str] = Field(default_factory=list)
    created_pages: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)
    unreconciled: list[str] = Field(
        default_factory=list,
        description="Edited generated-only files that the next write will replace",
    )

    @property
    def changed(self) -> bool:
        return bool(self.folded or self.created_pages)


class SyncEngine:
    """Keeps one sync root and a project in agreement.

    Args:
        root: The sync root directory.
        config: Layout and formatting settings; defaults to ``Config()``.
        renderer: Shared template renderer for the generators.
        lock: Serializes calls on this engine. Engines that share a root
            should share a lock; a fresh one is created by default.
    """

    def __init__(
        self,
        root: str | Path,
        config: Config | None = None,
        renderer: TemplateRenderer | None = None,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self.root = Path(root)
        self.lock = lock if lock is not None else asyncio.Lock()
        self.config = config or Config()
        renderer = renderer or TemplateRenderer()
        self.frontend = FrontendGenerator(renderer, indent=self.config.indent)
        self.backend = BackendGenerator(renderer)
        self.database = DatabaseGenerator(renderer)

    @classmethod
    def for_project(
        cls,
        project: Project,
        config: Config | None = None,
        renderer: TemplateRenderer | None = None,
        lock: asyncio.Lock | None = None,
    ) -> "SyncEngine":
        """Engine for *project*'s configured root.

        Raises:
            InvalidInputError: If the project has no sync root.
        """
        if not project.root_path:
            raise InvalidInputError(f"No sync root configured for project {project.name!r}")
        return cls(project.root_path, config, renderer, lock)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def init_project_structure(self, project: Project) -> SyncReport:
        """Create the directory skeleton and write project-level output.

        Safe to call repeatedly.  Page components are left alone.
        """
        async with self.lock:
            return await asyncio.to_thread(self._init, project)

    async def sync_page_to_disk(self, page_id: str, project: Project) -> SyncReport:
        """Write one page component plus the router that lists it.

        Raises:
            NotFoundError: If the page does not exist or is archived.
            SyncError: If the root is missing or a write fails.
        """
        page = project.find_page(page_id)
        if page is None or page.archived:
            raise NotFoundError("page", page_id)
        async with self.lock:
            return await asyncio.to_thread(self._sync_page, page, project)

    async def sync_project_to_disk(self, project: Project) -> SyncReport:
        """Project-level output followed by every non-archived page."""
        async with self.lock:
            return await asyncio.to_thread(self._sync_project, project)

    async def sync_disk_to_project(self, project: Project) -> tuple[Project, SyncReport]:
        """Fold disk edits into a copy of *project*.

        Returns the updated copy (identical in content to *project* when
        nothing was folded) and a report.  *project* itself is never touched.

        Raises:
            SyncConflictError: If any edited file conflicts with a model
                change or cannot be parsed; nothing is applied in that case.
            SyncError: If the root is missing or a read fails.
        """
        async with self.lock:
            return await asyncio.to_thread(self._pull, project)

    # ------------------------------------------------------------------
    # Memory -> disk
    # ------------------------------------------------------------------

    def _init(self, project: Project) -> SyncReport:
        report = SyncReport(operation="init_project_structure", root=str(self.root))
        self._write(report, self._project_files(project))
        return report

    def _sync_page(self, page: Page, project: Project) -> SyncReport:
        report = SyncReport(operation="sync_page_to_disk", root=str(self.root))
        self._require_root(report.operation)
        files = [
            self._client_file(self.frontend.generate_page(project, page)),
            self._client_file(self.frontend.generate_app(project)),
        ]
        self._write(report, files)
        return report

    def _sync_project(self, project: Project) -> SyncReport:
        report = SyncReport(operation="sync_project_to_disk", root=str(self.root))
        files = self._project_files(project)
        files.extend(
            self._client_file(self.frontend.generate_page(project, page))
            for page in project.active_pages()
        )
        self._write(report, files)
        return report

    def _project_files(self, project: Project) -> list[tuple[str, str]]:
        """Everything except page components, as ``(rel_path, content)``."""
        layout = self.config.layout
        try:
            for directory in (
                self.root,
                self.config.pages_path(self.root),
                self.config.client_path(self.root) / "src" / "components",
                self.config.client_path(self.root) / "public",
                self.config.server_path(self.root) / "src",
                self.config.database_path(self.root) / "migrations",
                self.config.database_path(self.root) / "prisma",
                self.config.state_path(self.root),
            ):
                ensure_dir(directory)
        except OSError as exc:
            raise SyncError("init_project_structure", directory, exc) from exc

        files = [(layout.project_file, render_project_file(project, layout.client_dir))]
        files.extend(self._client_file(f) for f in self.frontend.generate_shared(project))
        files.extend(
            (f"{layout.server_dir}/{f.path}", f.content) for f in self.backend.generate(project)
        )
        files.extend(
            (f"{layout.database_dir}/{f.path}", f.content) for f in self.database.generate(project)
        )
        return files

    def _client_file(self, generated: GeneratedFile) -> tuple[str, str]:
        return f"{self.config.layout.client_dir}/{generated.path}", generated.content

    def _write(self, report: SyncReport, files: Iterable[tuple[str, str]]) -> None:
        """Stage every file, then move each into place and record the baseline.

        Files are recorded as they are committed and the baseline is saved
        even when a later commit fails, so the files already replaced are
        still known as this engine's output.
        """
        files = list(files)
        baseline = self._load_baseline(report.operation)
        staged: list[tuple[Path, Path]] = []
        target: Optional[Path] = None
        try:
            for rel_path, content in files:
                target = self.root / rel_path
                staged.append((stage_file(target, content), target))
            for (tmp, target), (rel_path, content) in zip(staged, files):
                commit_file(tmp, target)
                baseline.record(rel_path, content_hash(content))
                report.written.append(rel_path)
        except OSError as exc:
            for tmp, _ in staged:
                tmp.unlink(missing_ok=True)
            raise SyncError(report.operation, target, exc) from exc
        finally:
            if report.written:
                self._save_baseline(report.operation, baseline)

    # ------------------------------------------------------------------
    # Disk -> memory
    # ------------------------------------------------------------------

    def _pull(self, project: Project) -> tuple[Project, SyncReport]:
        operation = "sync_disk_to_project"
        report = SyncReport(operation=operation, root=str(self.root))
        self._require_root(operation)
        baseline = self._load_baseline(operation)
        layout = self.config.layout

        # Decide everything before applying anything.
        project_edit: Optional[dict] = None
        page_edits: list[tuple[Page, str, str, str]] = []
        new_pages: list[tuple[Page, str, str, list[ParsedBlock]]] = []
        accepted: dict[str, str] = {}

        rel = layout.project_file
        disk = self._read_optional(operation, rel)
        generated = render_project_file(project, layout.client_dir)
        if disk is None:
            if baseline.get(rel) is not None:
                report.missing.append(rel)
        elif self._decide(report, baseline, rel, disk, generated):
            try:
                project_edit = json.loads(disk)
            except json.JSONDecodeError as exc:
                raise SyncConflictError(rel, f"project file is not valid JSON: {exc}") from exc
            if not isinstance(project_edit, dict):
                raise SyncConflictError(rel, "project file must hold a JSON object")
            accepted[rel] = disk

        tracked_pages: set[str] = set()
        for page in project.active_pages():
            rel, generated_page = self._client_file(self.frontend.generate_page(project, page))
            tracked_pages.add(rel)
            disk = self._read_optional(operation, rel)
            if disk is None:
                if baseline.get(rel) is not None:
                    report.missing.append(rel)
                continue
            if self._decide(report, baseline, rel, disk, generated_page):
                page_edits.append((page, rel, disk, generated_page))
                accepted[rel] = disk

        pages_dir = self.config.pages_path(self.root)
        known_names = {p.name.lower() for p in project.pages}
        for path in sorted(pages_dir.glob("*.tsx")) if pages_dir.is_dir() else []:
            rel = path.relative_to(self.root).as_posix()
            if rel in tracked_pages or path.name.startswith("."):
                continue
            name = path.stem
            try:
                validate_page_name(name)
            except InvalidInputError:
                report.skipped.append(rel)
                continue
            if name.lower() in known_names:
                # Belongs to an archived page; restoring the page is a model decision.
                report.skipped.append(rel)
                continue
            disk = self._read_optional(operation, rel)
            if disk is None:
                continue
            entry = baseline.get(rel)
            if entry is not None and content_hash(disk) == entry.content_hash:
                # Earlier output for a page the model no longer has, e.g. after a reset.
                report.skipped.append(rel)
                continue
            page = Page(id=new_id(), name=name, path=default_route_path(name))
            shell = page_shell(self.frontend.generate_page(project, page).content)
            try:
                roots, disk_shell = read_page(disk)
            except PageParseError:
                roots, disk_shell = [], None
            if disk_shell != shell:
                # Not a page this engine can read, e.g. a hand-written component.
                report.skipped.append(rel)
                continue
            new_pages.append((page, rel, disk, roots))

        for rel, entry in baseline.files.items():
            if rel in accepted or rel in tracked_pages or rel == layout.project_file:
                continue
            if rel.startswith(f"{layout.client_dir}/src/pages/"):
                continue
            disk = self._read_optional(operation, rel)
            if disk is None:
                report.missing.append(rel)
            elif content_hash(disk) != entry.content_hash:
                report.unreconciled.append(rel)

        parsed_edits = [
            (page, rel, disk, self._parse(rel, disk, generated_page))
            for page, rel, disk, generated_page in page_edits
        ]

        # Apply.
        updated = project.model_copy(deep=True)
        if project_edit is not None:
            try:
                updated = fold_project_file(updated, project_edit)
            except ValueError as exc:
                raise SyncConflictError(layout.project_file, str(exc)) from exc
            report.folded.append(layout.project_file)
        for page, rel, _, roots in parsed_edits:
            updated = fold_page(updated, page.id, roots)
            report.folded.append(rel)
        for page, rel, disk, roots in new_pages:
            updated.pages.append(page)
            updated = fold_page(updated, page.id, roots)
            accepted[rel] = disk
            report.created_pages.append(rel)

        if accepted:
            for rel, disk in accepted.items():
                baseline.record(rel, content_hash(disk), content_hash(self._generated(updated, rel)))
            self._save_baseline(operation, baseline)
            return updated, report
        return project.model_copy(deep=True), report

    def _decide(
        self, report: SyncReport, baseline: Baseline, rel: str, disk: str, generated: str
    ) -> bool:
        """Return ``True`` if the disk content of *rel* should be folded."""
        disk_hash = content_hash(disk)
        model_hash = content_hash(generated)
        entry = baseline.get(rel)
        if entry is None:
            if disk_hash == model_hash:
                report.skipped.append(rel)
                return False
            raise SyncConflictError(rel, "file differs from the model and has no sync baseline")
        if disk_hash == entry.content_hash:
            report.skipped.append(rel)
            return False
        if model_hash != entry.model_hash:
            raise SyncConflictError(rel, "both the file and the model changed since the last sync")
        return True

    def _parse(self, rel: str, content: str, generated: str) -> list[ParsedBlock]:
        try:
            roots, shell = read_page(content)
        except PageParseError as exc:
            raise SyncConflictError(rel, f"cannot parse page: {exc}") from exc
        if shell != page_shell(generated):
            raise SyncConflictError(rel, "edits outside the page body cannot be synced")
        return roots

    def _generated(self, project: Project, rel: str) -> str:
        """Regenerate the content *rel* would have for *project*."""
        layout = self.config.layout
        if rel == layout.project_file:
            return render_project_file(project, layout.client_dir)
        name = Path(rel).stem
        page = next((p for p in project.active_pages() if p.name == name), None)
        if page is None:
            return ""
        return self.frontend.generate_page(project, page).content

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_root(self, operation: str) -> None:
        if not self.root.is_dir():
            raise SyncError(operation, self.root, "sync root does not exist")

    def _read_optional(self, operation: str, rel_path: str) -> Optional[str]:
        path = self.root / rel_path
        try:
            return read_text(path)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise SyncError(operation, path, exc) from exc

    def _load_baseline(self, operation: str) -> Baseline:
        path = self.config.baseline_path(self.root)
        try:
            return Baseline.load(path)
        except (OSError, ValueError) as exc:
            raise SyncError(operation, path, exc) from exc

    def _save_baseline(self, operation: str, baseline: Baseline) -> None:
        path = self.config.baseline_path(self.root)
        try:
            baseline.save(path)
        except OSError as exc:
            raise SyncError(operation, path, exc) from exc
