"""Mutation API: pure transforms over project snapshots.

Every function takes the current snapshot and returns ``(new_snapshot,
result)`` without touching its input, so a failed validation leaves the
caller's project exactly as it was.  Ids are always generated here.
Nothing in this module writes to disk; syncing is a separate step.
"""

from __future__ import annotations

import uuid
from typing import Any, Iterable, Optional

from pagesmith.errors import InvalidInputError, NotFoundError
from pagesmith.model.models import (
    Block,
    BlockType,
    DataModel,
    FieldSchema,
    FieldType,
    Page,
    Project,
    default_route_path,
    is_ancestor,
    validate_page_name,
    validate_route_path,
)


def new_id() -> str:
    """Return a fresh unique id."""
    return str(uuid.uuid4())


def _copy(project: Project) -> Project:
    return project.model_copy(deep=True)


def _require_name(name: str, kind: str) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidInputError(f"{kind.capitalize()} name must not be empty", value=name)
    return name


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------

def create_project(name: str, root_path: Optional[str] = None) -> Project:
    """Create a project holding a single ``Home`` page routed at ``/``."""
    project = Project(id=new_id(), name=_require_name(name, "project"), root_path=root_path)
    project.pages.append(Page(id=new_id(), name="Home", path="/"))
    return project


def rename_project(project: Project, name: str) -> tuple[Project, Project]:
    updated = _copy(project)
    updated.name = _require_name(name, "project")
    updated.touch()
    return updated, updated


def set_root_path(project: Project, root_path: str) -> tuple[Project, Project]:
    if not (root_path or "").strip():
        raise InvalidInputError("Sync root path must not be empty", value=root_path)
    updated = _copy(project)
    updated.root_path = root_path
    updated.touch()
    return updated, updated


def reset_project(project: Project) -> Project:
    """Return a fresh project keeping only id, name, and sync root."""
    fresh = create_project(project.name, project.root_path)
    return fresh.model_copy(update={"id": project.id})


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

def add_page(
    project: Project, name: str, path: Optional[str] = None
) -> tuple[Project, Page]:
    """Append a page; *path* defaults to ``/<name lowercased>``."""
    validate_page_name(name)
    route = validate_route_path(path) if path is not None else default_route_path(name)
    if any(p.name.lower() == name.lower() for p in project.active_pages()):
        raise InvalidInputError(f"A page named {name!r} already exists", value=name)

    updated = _copy(project)
    page = Page(id=new_id(), name=name, path=route)
    updated.pages.append(page)
    updated.touch()
    return updated, page


def set_page_path(project: Project, page_id: str, path: str) -> tuple[Project, Page]:
    validate_route_path(path)
    updated = _copy(project)
    page = _page(updated, page_id)
    page.path = path
    updated.touch()
    return updated, page


def _page(project: Project, page_id: str) -> Page:
    page = project.find_page(page_id)
    if page is None:
        raise NotFoundError("page", page_id)
    return page


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

def add_block(
    project: Project,
    page_id: str,
    block_type: str | BlockType,
    name: str = "",
    parent_id: Optional[str] = None,
    position: Optional[int] = None,
    classes: Iterable[str] = (),
    properties: Optional[dict[str, Any]] = None,
) -> tuple[Project, Block]:
    """Create a block on *page_id*, attached under *parent_id* at *position*.

    ``position=None`` appends.  Root blocks (no parent) keep insertion order.
    """
    kind = BlockType.parse(block_type)
    _page(project, page_id)
    if parent_id is not None:
        parent = project.find_block(parent_id)
        if parent is None:
            raise NotFoundError("block", parent_id)
        if parent.page_id != page_id:
            raise InvalidInputError(
                f"Parent block {parent_id!r} belongs to another page", value=parent_id
            )

    updated = _copy(project)
    block = Block(
        id=new_id(),
        page_id=page_id,
        type=kind,
        name=name or kind.value,
        classes=[c for c in classes if c],
        properties=dict(properties or {}),
        parent_id=parent_id,
    )
    updated.blocks[block.id] = block
    if parent_id is not None:
        _insert_child(updated.blocks[parent_id], block.id, position)
    updated.touch()
    return updated, block


def _insert_child(parent: Block, child_id: str, position: Optional[int]) -> None:
    if position is None or position >= len(parent.children):
        parent.children.append(child_id)
    else:
        parent.children.insert(max(position, 0), child_id)


def move_block(
    project: Project,
    block_id: str,
    new_parent_id: Optional[str],
    position: Optional[int] = None,
) -> tuple[Project, Block]:
    """Reparent *block_id*; refuses moves that would create a cycle."""
    block = project.find_block(block_id)
    if block is None:
        raise NotFoundError("block", block_id)
    if new_parent_id is not None:
        parent = project.find_block(new_parent_id)
        if parent is None:
            raise NotFoundError("block", new_parent_id)
        if is_ancestor(project, block_id, new_parent_id):
            raise InvalidInputError(
                f"Cannot move block {block_id!r} under its own descendant", value=new_parent_id
            )
        if parent.page_id != block.page_id:
            raise InvalidInputError(
                f"Parent block {new_parent_id!r} belongs to another page", value=new_parent_id
            )

    updated = _copy(project)
    moved = updated.blocks[block_id]
    if moved.parent_id is not None and moved.parent_id in updated.blocks:
        siblings = updated.blocks[moved.parent_id].children
        if block_id in siblings:
            siblings.remove(block_id)
    moved.parent_id = new_parent_id
    if new_parent_id is not None:
        _insert_child(updated.blocks[new_parent_id], block_id, position)
    updated.touch()
    return updated, moved


def update_block_property(
    project: Project, block_id: str, key: str, value: Any
) -> tuple[Project, Block]:
    """Set ``properties[key]``; a ``None`` value removes the key."""
    if project.find_block(block_id) is None:
        raise NotFoundError("block", block_id)
    updated = _copy(project)
    block = updated.blocks[block_id]
    if value is None:
        block.properties.pop(key, None)
    else:
        block.properties[key] = value
    updated.touch()
    return updated, block


def set_block_classes(
    project: Project, block_id: str, classes: Iterable[str]
) -> tuple[Project, Block]:
    if project.find_block(block_id) is None:
        raise NotFoundError("block", block_id)
    updated = _copy(project)
    block = updated.blocks[block_id]
    block.classes = [c for c in classes if c]
    updated.touch()
    return updated, block


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

def add_data_model(project: Project, name: str) -> tuple[Project, DataModel]:
    """Create a model seeded with a uuid primary key named ``id``."""
    name = _require_name(name, "model")
    updated = _copy(project)
    model = DataModel(
        id=new_id(),
        name=name,
        fields=[
            FieldSchema(
                id=new_id(),
                name="id",
                type=FieldType.UUID,
                required=True,
                primary_key=True,
                unique=True,
            )
        ],
    )
    updated.data_models.append(model)
    updated.touch()
    return updated, model


def add_field(
    project: Project,
    model_id: str,
    name: str,
    field_type: str | FieldType,
    required: bool = False,
    *,
    primary_key: bool = False,
    unique: bool = False,
    default_value: Any = None,
    validations: Optional[list[Any]] = None,
    description: Optional[str] = None,
) -> tuple[Project, DataModel]:
    """Append a field; the type is validated before anything is copied."""
    kind = FieldType.parse(field_type)
    name = _require_name(name, "field")
    model = _data_model(project, model_id)
    if any(f.name == name for f in model.fields):
        raise InvalidInputError(
            f"Model {model.name!r} already has a field named {name!r}", value=name
        )

    updated = _copy(project)
    target = _data_model(updated, model_id)
    target.fields.append(
        FieldSchema(
            id=new_id(),
            name=name,
            type=kind,
            required=required,
            primary_key=primary_key,
            unique=unique,
            default_value=default_value,
            validations=list(validations or []),
            description=description,
        )
    )
    updated.touch()
    return updated, target


def _data_model(project: Project, model_id: str) -> DataModel:
    model = project.find_data_model(model_id)
    if model is None:
        raise NotFoundError("model", model_id)
    return model


# ---------------------------------------------------------------------------
# Archival
# ---------------------------------------------------------------------------

def _set_archived(project: Project, kind: str, ident: str, archived: bool) -> Project:
    updated = _copy(project)
    if kind == "page":
        entity: Any = updated.find_page(ident)
    elif kind == "block":
        entity = updated.find_block(ident)
    else:
        entity = updated.find_data_model(ident)
    if entity is None:
        raise NotFoundError(kind, ident)
    entity.archived = archived
    updated.touch()
    return updated


def archive_page(project: Project, page_id: str) -> Project:
    return _set_archived(project, "page", page_id, True)


def restore_page(project: Project, page_id: str) -> Project:
    return _set_archived(project, "page", page_id, False)


def archive_block(project: Project, block_id: str) -> Project:
    return _set_archived(project, "block", block_id, True)


def restore_block(project: Project, block_id: str) -> Project:
    return _set_archived(project, "block", block_id, False)


def archive_data_model(project: Project, model_id: str) -> Project:
    return _set_archived(project, "model", model_id, True)


def restore_data_model(project: Project, model_id: str) -> Project:
    return _set_archived(project, "model", model_id, False)
