"""Per-file sync baseline.

For every file the engine has written or folded, the baseline records two
hashes: what was on disk at the last agreement point (``content_hash``) and
what the model generated at that same point (``model_hash``).  Comparing the
current disk content and the current generated content against them tells a
hand edit apart from a model change.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from pagesmith.utils import read_text, write_file_atomic


class BaselineEntry(BaseModel):
    """Agreed state of one tracked file."""

    content_hash: str = Field(..., description="SHA-256 of the disk content")
    model_hash: str = Field(..., description="SHA-256 of the generated content")


class Baseline(BaseModel):
    """Tracked files keyed by sync-root-relative POSIX path."""

    version: int = Field(default=1)
    files: dict[str, BaselineEntry] = Field(default_factory=dict)

    def get(self, rel_path: str) -> Optional[BaselineEntry]:
        return self.files.get(rel_path)

    def record(self, rel_path: str, content_hash: str, model_hash: Optional[str] = None) -> None:
        """Store a new agreement point; *model_hash* defaults to *content_hash*."""
        self.files[rel_path] = BaselineEntry(
            content_hash=content_hash,
            model_hash=model_hash if model_hash is not None else content_hash,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path) -> "Baseline":
        """Read a baseline file; a missing file yields an empty baseline.

        Raises:
            ValueError: If the file exists but is not a valid baseline.
        """
        if not path.exists():
            return cls()
        try:
            return cls.model_validate_json(read_text(path))
        except (ValidationError, json.JSONDecodeError) as exc:
            raise ValueError(f"Corrupt sync baseline: {exc}") from exc

    def save(self, path: Path) -> None:
        payload = self.model_dump(mode="json")
        payload["files"] = dict(sorted(payload["files"].items()))
        write_file_atomic(path, json.dumps(payload, indent=2) + "\n")
