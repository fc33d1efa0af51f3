"""JSON import/export of whole projects."""

from __future__ import annotations

from pydantic import ValidationError

from pagesmith.errors import InvalidInputError, SerializationError
from pagesmith.model.models import Project, validate_tree


def export_project(project: Project) -> str:
    """Serialize *project* to pretty-printed JSON."""
    try:
        return project.model_dump_json(indent=2)
    except (ValueError, TypeError) as exc:
        raise SerializationError(f"Could not export project {project.id}: {exc}") from exc


def import_project(raw: str | bytes) -> Project:
    """Parse and validate a project previously produced by :func:`export_project`.

    Raises:
        SerializationError: If the text is not valid project JSON.
        InvalidInputError: If the blocks do not form a valid forest.
    """
    try:
        project = Project.model_validate_json(raw)
    except ValidationError as exc:
        raise SerializationError(f"Invalid project JSON: {exc}") from exc

    problems = validate_tree(project)
    if problems:
        raise InvalidInputError(
            "Imported project has an invalid block tree: " + "; ".join(problems)
        )
    return project
