"""The project configuration artifact (``pagesmith.json``) at the sync root.

It records pages and data models so that hand edits to route paths and to
model fields can be folded back into the in-memory project.
"""

from __future__ import annotations

from typing import Any

from pagesmith.errors import InvalidInputError
from pagesmith.generators.frontend import page_path
from pagesmith.model.models import (
    DataModel,
    FieldSchema,
    FieldType,
    Project,
    validate_route_path,
)
from pagesmith.model.mutations import new_id
from pagesmith.utils import dump_json

FORMAT_VERSION = 1


def render_project_file(project: Project, client_dir: str = "client") -> str:
    """Deterministic JSON describing *project*'s active pages and models."""
    data = {
        "version": FORMAT_VERSION,
        "id": project.id,
        "name": project.name,
        "pages": [
            {
                "id": page.id,
                "name": page.name,
                "path": page.path,
                "file": f"{client_dir}/{page_path(page)}",
            }
            for page in project.active_pages()
        ],
        "data_models": [
            {
                "id": model.id,
                "name": model.name,
                "fields": [_field_dict(f) for f in model.fields],
            }
            for model in project.active_models()
        ],
    }
    return dump_json(data)


def _field_dict(field: FieldSchema) -> dict[str, Any]:
    return {
        "id": field.id,
        "name": field.name,
        "type": field.type.value,
        "required": field.required,
        "primary_key": field.primary_key,
        "unique": field.unique,
        "default_value": field.default_value,
        "validations": list(field.validations),
        "description": field.description,
    }


# ---------------------------------------------------------------------------
# Folding
# ---------------------------------------------------------------------------

def fold_project_file(project: Project, data: dict[str, Any]) -> Project:
    """Return a copy of *project* with route paths and data models from *data*.

    Only pages already in the model are considered; page names are fixed by
    their file names.  Models missing from *data* are archived, entries
    without a known id become new models, and each model's field list is
    replaced by the listed fields.

    Raises:
        ValueError: If *data* is malformed or holds an unknown field type or
            an invalid route path.
    """
    pages = data.get("pages", [])
    models = data.get("data_models", [])
    if not isinstance(pages, list) or not isinstance(models, list):
        raise ValueError("'pages' and 'data_models' must be lists")

    updated = project.model_copy(deep=True)
    try:
        for entry in pages:
            if not isinstance(entry, dict):
                raise ValueError(f"page entry must be an object, got {entry!r}")
            page = updated.find_page(str(entry.get("id", "")))
            if page is not None and "path" in entry:
                page.path = validate_route_path(str(entry["path"]))

        listed: set[str] = set()
        for entry in models:
            model = _fold_model(updated, entry)
            listed.add(model.id)
        for model in updated.data_models:
            if not model.archived and model.id not in listed:
                model.archived = True
    except InvalidInputError as exc:
        raise ValueError(str(exc)) from None

    updated.touch()
    return updated


def _fold_model(project: Project, entry: Any) -> DataModel:
    if not isinstance(entry, dict) or not str(entry.get("name", "")).strip():
        raise ValueError(f"data model entry needs a name, got {entry!r}")
    raw_fields = entry.get("fields", [])
    if not isinstance(raw_fields, list):
        raise ValueError(f"fields of {entry['name']!r} must be a list")

    model = project.find_data_model(str(entry.get("id", "")))
    if model is None:
        model = DataModel(id=new_id(), name=str(entry["name"]).strip())
        project.data_models.append(model)
    model.name = str(entry["name"]).strip()
    model.archived = False

    known = {f.id: f for f in model.fields}
    fields: list[FieldSchema] = []
    names: set[str] = set()
    for raw in raw_fields:
        if not isinstance(raw, dict) or not str(raw.get("name", "")).strip():
            raise ValueError(f"field entry of {model.name!r} needs a name, got {raw!r}")
        name = str(raw["name"]).strip()
        if name in names:
            raise ValueError(f"duplicate field {name!r} in model {model.name!r}")
        names.add(name)
        previous = known.pop(str(raw.get("id", "")), None)
        fields.append(
            FieldSchema(
                id=previous.id if previous is not None else new_id(),
                name=name,
                type=FieldType.parse(raw.get("type", FieldType.STRING.value)),
                required=bool(raw.get("required", False)),
                primary_key=bool(raw.get("primary_key", False)),
                unique=bool(raw.get("unique", False)),
                default_value=raw.get("default_value"),
                validations=list(raw.get("validations") or []),
                description=raw.get("description"),
            )
        )
    model.fields = fields
    return model
