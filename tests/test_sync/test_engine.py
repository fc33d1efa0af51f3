"""Tests for the sync engine (pagesmith.sync.engine).

Covers:
- Skeleton creation and idempotent writes
- Page sync errors (unknown, archived, missing root, write failures)
- Disk -> memory reconciliation: skip, fold, conflict, missing, new pages
- Convergence: pull followed by page sync reaches a fixed point
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from pagesmith.errors import InvalidInputError, NotFoundError, SyncConflictError, SyncError
from pagesmith.model import mutations
from pagesmith.model.models import BlockType, FieldType, validate_tree
from pagesmith.sync import SyncEngine
from pagesmith.utils import read_text

pytestmark = pytest.mark.unit

HOME = Path("client/src/pages/Home.tsx")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine(sync_root, config, renderer) -> SyncEngine:
    return SyncEngine(sync_root, config, renderer)


@pytest.fixture
def rooted(scenario_project, sync_root):
    project, _ = mutations.set_root_path(scenario_project, str(sync_root))
    return project


def _snapshot(root: Path) -> dict[str, str]:
    return {
        p.relative_to(root).as_posix(): read_text(p)
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


# ---------------------------------------------------------------------------
# Memory -> disk
# ---------------------------------------------------------------------------


class TestWrite:
    @pytest.mark.asyncio
    async def test_init_creates_skeleton(self, engine, rooted, sync_root):
        report = await engine.init_project_structure(rooted)
        for directory in ("client/src/pages", "server/src", "database/migrations", ".pagesmith"):
            assert (sync_root / directory).is_dir()
        assert (sync_root / "pagesmith.json").exists()
        assert (sync_root / "client/src/App.tsx").exists()
        assert (sync_root / "client/package.json").exists()
        assert (sync_root / "database/prisma/schema.prisma").exists()
        assert not (sync_root / HOME).exists()
        assert "pagesmith.json" in report.written

    @pytest.mark.asyncio
    async def test_init_creates_missing_root(self, tmp_path, config, rooted):
        root = tmp_path / "fresh" / "root"
        await SyncEngine(root, config).init_project_structure(rooted)
        assert (root / "client/src/pages").is_dir()

    @pytest.mark.asyncio
    async def test_project_file_lists_pages_and_models(self, engine, model_project, sync_root):
        await engine.init_project_structure(model_project)
        data = json.loads(read_text(sync_root / "pagesmith.json"))
        assert data["name"] == "My App"
        assert data["pages"][0]["file"] == "client/src/pages/Home.tsx"
        assert [f["name"] for f in data["data_models"][0]["fields"]] == [
            "id", "title", "done", "owner_email",
        ]

    @pytest.mark.asyncio
    async def test_page_sync_is_byte_identical_on_repeat(self, engine, rooted, sync_root):
        page = rooted.pages[0]
        await engine.sync_page_to_disk(page.id, rooted)
        first = _snapshot(sync_root)
        await engine.sync_page_to_disk(page.id, rooted)
        assert _snapshot(sync_root) == first
        assert "Welcome" in first[HOME.as_posix()]
        assert "HomePage" in first["client/src/App.tsx"]

    @pytest.mark.asyncio
    async def test_project_sync_writes_every_page(self, engine, rooted, sync_root):
        project, _ = mutations.add_page(rooted, "About")
        report = await engine.sync_project_to_disk(project)
        assert (sync_root / "client/src/pages/About.tsx").exists()
        assert HOME.as_posix() in report.written

    @pytest.mark.asyncio
    async def test_unknown_or_archived_page(self, engine, rooted):
        with pytest.raises(NotFoundError):
            await engine.sync_page_to_disk("missing", rooted)
        project = mutations.archive_page(rooted, rooted.pages[0].id)
        with pytest.raises(NotFoundError):
            await engine.sync_page_to_disk(rooted.pages[0].id, project)

    @pytest.mark.asyncio
    async def test_missing_root_is_a_sync_error(self, tmp_path, config, rooted):
        engine = SyncEngine(tmp_path / "nowhere", config)
        with pytest.raises(SyncError) as exc_info:
            await engine.sync_page_to_disk(rooted.pages[0].id, rooted)
        assert exc_info.value.operation == "sync_page_to_disk"
        assert "nowhere" in exc_info.value.path

    @pytest.mark.asyncio
    async def test_failed_staging_leaves_disk_untouched(self, engine, rooted, sync_root):
        page = rooted.pages[0]
        await engine.sync_page_to_disk(page.id, rooted)
        before = _snapshot(sync_root)

        project, _ = mutations.add_page(rooted, "About")
        calls = {"n": 0}
        from pagesmith.utils import stage_file as real_stage

        def flaky_stage(path, content):
            calls["n"] += 1
            if calls["n"] == 2:
                raise OSError("disk full")
            return real_stage(path, content)

        with patch("pagesmith.sync.engine.stage_file", side_effect=flaky_stage):
            with pytest.raises(SyncError) as exc_info:
                await engine.sync_page_to_disk(page.id, project)
        assert isinstance(exc_info.value.cause, OSError)
        assert _snapshot(sync_root) == before

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_committed_files_in_baseline(self, engine, rooted, sync_root):
        await engine.sync_project_to_disk(rooted)
        renamed, _ = mutations.rename_project(rooted, "Shop Front")
        calls = {"n": 0}
        from pagesmith.utils import commit_file as real_commit

        def flaky_commit(staged, path):
            calls["n"] += 1
            if calls["n"] == 2:
                raise OSError("device busy")
            real_commit(staged, path)

        with patch("pagesmith.sync.engine.commit_file", side_effect=flaky_commit):
            with pytest.raises(SyncError):
                await engine.sync_project_to_disk(renamed)
        assert json.loads(read_text(sync_root / "pagesmith.json"))["name"] == "Shop Front"
        assert not any(p.name.endswith(".tmp") for p in sync_root.rglob("*"))

        updated, report = await engine.sync_disk_to_project(renamed)
        assert not report.changed
        assert "pagesmith.json" in report.skipped
        assert updated == renamed

    def test_for_project_requires_root(self, scenario_project):
        with pytest.raises(InvalidInputError) as exc_info:
            SyncEngine.for_project(scenario_project)
        assert "No sync root configured" in str(exc_info.value)


# ---------------------------------------------------------------------------
# Disk -> memory
# ---------------------------------------------------------------------------


class TestPull:
    @pytest.mark.asyncio
    async def test_no_edits_changes_nothing(self, engine, rooted):
        await engine.sync_project_to_disk(rooted)
        updated, report = await engine.sync_disk_to_project(rooted)
        assert not report.changed
        assert updated == rooted
        assert HOME.as_posix() in report.skipped

    @pytest.mark.asyncio
    async def test_missing_root(self, tmp_path, config, rooted):
        with pytest.raises(SyncError):
            await SyncEngine(tmp_path / "nowhere", config).sync_disk_to_project(rooted)

    @pytest.mark.asyncio
    async def test_text_edit_round_trip_reaches_fixed_point(self, engine, rooted, sync_root):
        page = rooted.pages[0]
        await engine.sync_project_to_disk(rooted)
        path = sync_root / HOME
        path.write_text(read_text(path).replace("Welcome", "Hello"), encoding="utf-8")

        updated, report = await engine.sync_disk_to_project(rooted)
        assert report.folded == [HOME.as_posix()]
        heading = next(b for b in updated.blocks.values() if b.type is BlockType.HEADING)
        assert heading.text == "Hello"
        assert next(b for b in rooted.blocks.values() if b.type is BlockType.HEADING).text == "Welcome"

        await engine.sync_page_to_disk(page.id, updated)
        settled = _snapshot(sync_root)
        again, report = await engine.sync_disk_to_project(updated)
        assert not report.changed
        assert again == updated
        await engine.sync_page_to_disk(page.id, again)
        assert _snapshot(sync_root) == settled

    @pytest.mark.asyncio
    async def test_added_element_becomes_block(self, engine, rooted, sync_root):
        await engine.sync_project_to_disk(rooted)
        path = sync_root / HOME
        path.write_text(
            read_text(path).replace(
                "</h1>\n", '</h1>\n                <button className="btn">Go</button>\n'
            ),
            encoding="utf-8",
        )
        updated, _ = await engine.sync_disk_to_project(rooted)
        button = next(b for b in updated.blocks.values() if b.type is BlockType.BUTTON)
        assert button.text == "Go"
        assert button.parent_id is not None
        assert validate_tree(updated) == []

    @pytest.mark.asyncio
    async def test_both_sides_changed_is_a_conflict(self, engine, rooted, sync_root):
        page = rooted.pages[0]
        await engine.sync_project_to_disk(rooted)
        path = sync_root / HOME
        path.write_text(read_text(path).replace("Welcome", "Hello"), encoding="utf-8")
        baseline_before = read_text(sync_root / ".pagesmith/baseline.json")

        changed, _ = mutations.add_block(rooted, page.id, "Paragraph", properties={"text": "new"})
        with pytest.raises(SyncConflictError) as exc_info:
            await engine.sync_disk_to_project(changed)
        assert exc_info.value.path == HOME.as_posix()
        assert read_text(sync_root / ".pagesmith/baseline.json") == baseline_before

    @pytest.mark.asyncio
    async def test_model_change_alone_is_skipped(self, engine, rooted):
        page = rooted.pages[0]
        await engine.sync_project_to_disk(rooted)
        changed, _ = mutations.add_block(rooted, page.id, "Paragraph", properties={"text": "new"})
        updated, report = await engine.sync_disk_to_project(changed)
        assert not report.changed
        assert updated == changed

    @pytest.mark.asyncio
    async def test_unparseable_edit_is_a_conflict(self, engine, rooted, sync_root):
        await engine.sync_project_to_disk(rooted)
        path = sync_root / HOME
        path.write_text(read_text(path).replace("</h1>", "</h2>"), encoding="utf-8")
        with pytest.raises(SyncConflictError) as exc_info:
            await engine.sync_disk_to_project(rooted)
        assert "cannot parse" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_deleted_file_is_reported_missing(self, engine, rooted, sync_root):
        await engine.sync_project_to_disk(rooted)
        (sync_root / HOME).unlink()
        updated, report = await engine.sync_disk_to_project(rooted)
        assert HOME.as_posix() in report.missing
        assert updated == rooted

    @pytest.mark.asyncio
    async def test_generated_only_edit_is_reported(self, engine, rooted, sync_root):
        await engine.sync_project_to_disk(rooted)
        app = sync_root / "client/src/App.tsx"
        app.write_text(read_text(app) + "// local tweak\n", encoding="utf-8")
        _, report = await engine.sync_disk_to_project(rooted)
        assert report.unreconciled == ["client/src/App.tsx"]

    @pytest.mark.asyncio
    async def test_changed_tag_or_extra_attribute_is_a_conflict(self, engine, rooted, sync_root):
        await engine.sync_project_to_disk(rooted)
        path = sync_root / HOME
        edited = read_text(path).replace('<h1 className="">', '<h2 className="" id="hero">')
        path.write_text(edited.replace("</h1>", "</h2>"), encoding="utf-8")
        with pytest.raises(SyncConflictError) as exc_info:
            await engine.sync_disk_to_project(rooted)
        assert exc_info.value.path == HOME.as_posix()
        assert "cannot parse" in str(exc_info.value)

        path.write_text(
            read_text(path).replace("<h2", "<h1").replace("</h2>", "</h1>"), encoding="utf-8"
        )
        with pytest.raises(SyncConflictError) as exc_info:
            await engine.sync_disk_to_project(rooted)
        assert "only className" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_edit_outside_page_body_is_a_conflict(self, engine, rooted, sync_root):
        await engine.sync_project_to_disk(rooted)
        path = sync_root / HOME
        path.write_text(
            read_text(path).replace(
                "export function HomePage() {", "const title = 'Home';\n\nexport function HomePage() {"
            ),
            encoding="utf-8",
        )
        with pytest.raises(SyncConflictError) as exc_info:
            await engine.sync_disk_to_project(rooted)
        assert "outside the page body" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_output_for_dropped_page_is_not_revived(self, engine, rooted, sync_root):
        with_about, _ = mutations.add_page(rooted, "About")
        await engine.sync_project_to_disk(with_about)
        fresh = mutations.reset_project(with_about)
        await engine.sync_project_to_disk(fresh)

        updated, report = await engine.sync_disk_to_project(fresh)
        assert "client/src/pages/About.tsx" in report.skipped
        assert report.created_pages == []
        assert [p.name for p in updated.pages] == ["Home"]

        about = sync_root / "client/src/pages/About.tsx"
        about.write_text(
            read_text(about).replace(
                '<div className="min-h-screen">\n',
                '<div className="min-h-screen">\n            <p className="">Back again</p>\n',
            ),
            encoding="utf-8",
        )
        updated, report = await engine.sync_disk_to_project(fresh)
        assert report.created_pages == ["client/src/pages/About.tsx"]
        about_page = next(p for p in updated.pages if p.name == "About")
        assert [b.text for b in updated.root_blocks(about_page.id)] == ["Back again"]

    @pytest.mark.asyncio
    async def test_untracked_page_file_creates_page(self, engine, rooted, sync_root):
        await engine.sync_project_to_disk(rooted)
        (sync_root / "client/src/pages/Contact.tsx").write_text(
            "import React from 'react';\n"
            "\n"
            "export function ContactPage() {\n"
            "    return (\n"
            '        <div className="min-h-screen">\n'
            '            <h2 className="title">Contact us</h2>\n'
            '            <form className="">\n'
            '                <input className="border" />\n'
            '                <button className="btn">\n'
            "                    Send\n"
            "                </button>\n"
            "            </form>\n"
            "        </div>\n"
            "    );\n"
            "}\n",
            encoding="utf-8",
        )
        (sync_root / "client/src/pages/helpers.tsx").write_text(
            "export const x = 1;\n", encoding="utf-8"
        )

        updated, report = await engine.sync_disk_to_project(rooted)
        assert report.created_pages == ["client/src/pages/Contact.tsx"]
        assert "client/src/pages/helpers.tsx" in report.skipped
        contact = next(p for p in updated.pages if p.name == "Contact")
        assert contact.path == "/contact"
        roots = updated.root_blocks(contact.id)
        assert [b.type for b in roots] == [BlockType.HEADING, BlockType.FORM]
        form_children = updated.active_children(roots[1])
        assert [b.type for b in form_children] == [BlockType.INPUT, BlockType.BUTTON]
        assert form_children[1].text == "Send"
        assert validate_tree(updated) == []

        again, report = await engine.sync_disk_to_project(updated)
        assert not report.changed

    @pytest.mark.asyncio
    async def test_project_file_edits_fold_routes_and_fields(self, engine, model_project, sync_root):
        project, _ = mutations.set_root_path(model_project, str(sync_root))
        await engine.sync_project_to_disk(project)
        path = sync_root / "pagesmith.json"
        data = json.loads(read_text(path))
        data["pages"][0]["path"] = "/home"
        data["data_models"][0]["fields"].append({"name": "priority", "type": "INT"})
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")

        updated, report = await engine.sync_disk_to_project(project)
        assert report.folded == ["pagesmith.json"]
        assert updated.pages[0].path == "/home"
        task = updated.data_models[0]
        assert task.fields[-1].name == "priority"
        assert task.fields[-1].type is FieldType.INT
        assert [f.id for f in task.fields[:-1]] == [f.id for f in project.data_models[0].fields]

    @pytest.mark.asyncio
    async def test_project_file_with_unknown_type_is_a_conflict(self, engine, model_project, sync_root):
        await engine.sync_project_to_disk(model_project)
        path = sync_root / "pagesmith.json"
        data = json.loads(read_text(path))
        data["data_models"][0]["fields"][1]["type"] = "money"
        path.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(SyncConflictError):
            await engine.sync_disk_to_project(model_project)

    @pytest.mark.asyncio
    async def test_corrupt_baseline_is_a_sync_error(self, engine, rooted, sync_root):
        await engine.sync_project_to_disk(rooted)
        (sync_root / ".pagesmith/baseline.json").write_text("{broken", encoding="utf-8")
        with pytest.raises(SyncError):
            await engine.sync_disk_to_project(rooted)


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_syncs_on_one_root(self, engine, rooted, sync_root, config):
        other = SyncEngine(sync_root, config, lock=engine.lock)
        page = rooted.pages[0]
        await asyncio.gather(
            engine.sync_project_to_disk(rooted),
            other.sync_page_to_disk(page.id, rooted),
            engine.sync_page_to_disk(page.id, rooted),
        )
        _, report = await engine.sync_disk_to_project(rooted)
        assert not report.changed
        assert not any(p.name.endswith(".tmp") for p in sync_root.rglob("*"))
