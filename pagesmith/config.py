"""Pagesmith configuration.

Typed settings for the workspace layout the sync engine maintains under a
project's sync root.  All settings use Pydantic v2 models so they can be
validated at construction time and serialised to/from JSON or environment
variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class LayoutConfig(BaseModel):
    """Names of the top-level directories inside a sync root."""

    client_dir: str = Field(default="client", min_length=1)
    server_dir: str = Field(default="server", min_length=1)
    database_dir: str = Field(default="database", min_length=1)
    state_dir: str = Field(default=".pagesmith", min_length=1)
    project_file: str = Field(default="pagesmith.json", min_length=1)

    def as_dict(self) -> dict[str, str]:
        """Return a plain ``{target: directory}`` mapping for the three outputs."""
        return {
            "client": self.client_dir,
            "server": self.server_dir,
            "database": self.database_dir,
        }


class Config(BaseModel):
    """Global pagesmith configuration.

    Created once by the CLI or the project service and passed to every
    ``SyncEngine``.
    """

    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    indent: int = Field(default=4, ge=1, le=8, description="Spaces per JSX nesting level")

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    def client_path(self, root: Path) -> Path:
        return Path(root) / self.layout.client_dir

    def server_path(self, root: Path) -> Path:
        return Path(root) / self.layout.server_dir

    def database_path(self, root: Path) -> Path:
        return Path(root) / self.layout.database_dir

    def state_path(self, root: Path) -> Path:
        """Directory holding engine bookkeeping (never generated output)."""
        return Path(root) / self.layout.state_dir

    def baseline_path(self, root: Path) -> Path:
        """Path to the per-file sync baseline."""
        return self.state_path(root) / "baseline.json"

    def project_file_path(self, root: Path) -> Path:
        """Path to the project-level configuration artifact."""
        return Path(root) / self.layout.project_file

    def pages_path(self, root: Path) -> Path:
        """Directory the frontend page components are written to."""
        return self.client_path(root) / "src" / "pages"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            PAGESMITH_CLIENT_DIR, PAGESMITH_SERVER_DIR, PAGESMITH_DATABASE_DIR,
            PAGESMITH_STATE_DIR, PAGESMITH_PROJECT_FILE, PAGESMITH_INDENT.
        """
        layout_kwargs: dict[str, Any] = {}
        for key, var in (
            ("client_dir", "PAGESMITH_CLIENT_DIR"),
            ("server_dir", "PAGESMITH_SERVER_DIR"),
            ("database_dir", "PAGESMITH_DATABASE_DIR"),
            ("state_dir", "PAGESMITH_STATE_DIR"),
            ("project_file", "PAGESMITH_PROJECT_FILE"),
        ):
            if os.environ.get(var):
                layout_kwargs[key] = os.environ[var]

        kwargs: dict[str, Any] = {"layout": LayoutConfig(**layout_kwargs)}
        if os.environ.get("PAGESMITH_INDENT"):
            kwargs["indent"] = int(os.environ["PAGESMITH_INDENT"])
        return cls(**kwargs)
