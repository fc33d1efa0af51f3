"""Shared output type and contract for the target generators."""

from __future__ import annotations

from typing import NamedTuple, Protocol

from pagesmith.model.models import Project


class GeneratedFile(NamedTuple):
    """One output file; *path* is relative to the target's own directory."""

    path: str
    content: str


class Generator(Protocol):
    """A pure function of the project model to an ordered file list."""

    target: str

    def generate(self, project: Project) -> list[GeneratedFile]:
        ...
