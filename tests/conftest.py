"""Shared pytest fixtures for the pagesmith test suite.

Provides reusable fixtures for:
- The reference project ("My App" / Home / Container / Heading)
- A project with data models
- A shared template renderer
- Temporary sync roots
"""

from __future__ import annotations

from pathlib import Path

import pytest

from pagesmith.config import Config
from pagesmith.generators import TemplateRenderer
from pagesmith.model import mutations
from pagesmith.model.models import Project


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

@pytest.fixture
def empty_project() -> Project:
    """A fresh project holding only the default Home page."""
    return mutations.create_project("My App")


@pytest.fixture
def scenario_project(empty_project: Project) -> Project:
    """Home page with a min-h-screen Container wrapping a "Welcome" Heading."""
    page = empty_project.pages[0]
    project, container = mutations.add_block(
        empty_project, page.id, "Container", name="Main", classes=["min-h-screen"]
    )
    project, _ = mutations.add_block(
        project,
        page.id,
        "Heading",
        name="Title",
        parent_id=container.id,
        properties={"text": "Welcome"},
    )
    return project


@pytest.fixture
def model_project(scenario_project: Project) -> Project:
    """The scenario project plus a Task model with a few typed fields."""
    project, task = mutations.add_data_model(scenario_project, "Task")
    project, _ = mutations.add_field(project, task.id, "title", "string", required=True)
    project, _ = mutations.add_field(project, task.id, "done", "boolean", default_value=False)
    project, _ = mutations.add_field(
        project, task.id, "owner_email", "EMAIL", unique=True, description="Who owns it"
    )
    return project


# ---------------------------------------------------------------------------
# Rendering & disk
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def sync_root(tmp_path: Path) -> Path:
    """Existing, empty sync root directory (auto-cleanup)."""
    root = tmp_path / "my-app"
    root.mkdir()
    return root
