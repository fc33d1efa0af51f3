"""Pydantic v2 models for the in-memory project.

A project is a set of pages, a forest of UI blocks stored by id, and a list
of data models.  Blocks reference each other by id (``parent_id`` and
``children``) rather than by nesting, so lookup, archival, and reparenting
are plain dictionary operations.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from pagesmith.errors import InvalidInputError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class BlockType(str, Enum):
    """Closed set of UI block kinds. ``GENERIC`` is the catch-all."""
    CONTAINER = "Container"
    SECTION = "Section"
    HEADING = "Heading"
    PARAGRAPH = "Paragraph"
    TEXT = "Text"
    BUTTON = "Button"
    IMAGE = "Image"
    INPUT = "Input"
    LINK = "Link"
    FORM = "Form"
    GENERIC = "Generic"

    @classmethod
    def parse(cls, value: "str | BlockType") -> "BlockType":
        """Match *value* case-insensitively against the enumeration."""
        if isinstance(value, cls):
            return value
        lowered = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        raise InvalidInputError(
            f"Unknown block type: {value!r}",
            value=value,
            accepted=[m.value for m in cls],
        )


class FieldType(str, Enum):
    """Closed set of data model field types."""
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    JSON = "json"
    UUID = "uuid"
    EMAIL = "email"
    URL = "url"
    BYTES = "bytes"
    TEXT = "text"

    @classmethod
    def parse(cls, value: "str | FieldType") -> "FieldType":
        """Match *value* case-insensitively; unknown values are rejected."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidInputError(
                f"Unknown field type: {value!r}",
                value=value,
                accepted=[m.value for m in cls],
            ) from None


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

_PAGE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_page_name(name: str) -> str:
    """Return *name* if it is usable as both an identifier and a file name."""
    if not _PAGE_NAME_RE.match(name or ""):
        raise InvalidInputError(
            f"Invalid page name: {name!r} (must be a valid identifier)", value=name
        )
    return name


def validate_route_path(path: str) -> str:
    """Return *path* if it is an absolute route path without quotes or spaces."""
    if not path or not path.startswith("/") or re.search(r"[\s\"'<>{}]", path):
        raise InvalidInputError(f"Invalid route path: {path!r}", value=path)
    return path


def default_route_path(page_name: str) -> str:
    """``Home`` routes to ``/``; any other page to ``/<lowercased name>``."""
    if page_name == "Home":
        return "/"
    return f"/{page_name.lower()}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Pages & Blocks
# ---------------------------------------------------------------------------

class Page(BaseModel):
    """A routed page; its name doubles as the generated component name."""
    id: str = Field(..., frozen=True, description="Server-generated page id")
    name: str = Field(..., description="Identifier used for the file and component name")
    path: str = Field(default="/", description="Route path, e.g. '/about'")
    archived: bool = Field(default=False)


class Block(BaseModel):
    """A node in a page's UI tree."""
    id: str = Field(..., frozen=True, description="Server-generated block id")
    page_id: Optional[str] = Field(default=None, description="Owning page")
    type: BlockType = Field(default=BlockType.GENERIC)
    name: str = Field(default="")
    classes: list[str] = Field(default_factory=list, description="Style classes")
    properties: dict[str, Any] = Field(default_factory=dict)
    parent_id: Optional[str] = Field(default=None, description="None means page root")
    children: list[str] = Field(default_factory=list, description="Ordered child ids")
    archived: bool = Field(default=False)

    @property
    def text(self) -> Optional[str]:
        value = self.properties.get("text")
        return value if isinstance(value, str) else None


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

class FieldSchema(BaseModel):
    """A single column of a data model."""
    id: str = Field(..., frozen=True)
    name: str = Field(...)
    type: FieldType = Field(default=FieldType.STRING)
    required: bool = Field(default=False)
    primary_key: bool = Field(default=False)
    unique: bool = Field(default=False)
    default_value: Optional[Any] = Field(default=None)
    validations: list[Any] = Field(default_factory=list)
    description: Optional[str] = Field(default=None)


class DataModel(BaseModel):
    """A named record type, compiled to a backend module and a table."""
    id: str = Field(..., frozen=True)
    name: str = Field(...)
    fields: list[FieldSchema] = Field(default_factory=list)
    archived: bool = Field(default=False)


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------

class Project(BaseModel):
    """The whole visual application: pages, blocks, data models."""
    id: str = Field(..., frozen=True)
    name: str = Field(...)
    root_path: Optional[str] = Field(default=None, description="Sync root directory")
    pages: list[Page] = Field(default_factory=list)
    blocks: dict[str, Block] = Field(default_factory=dict)
    data_models: list[DataModel] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_now)

    def touch(self) -> None:
        self.updated_at = _now()

    # -- Lookup ------------------------------------------------------------

    def find_page(self, page_id: str) -> Optional[Page]:
        return next((p for p in self.pages if p.id == page_id), None)

    def find_block(self, block_id: str) -> Optional[Block]:
        return self.blocks.get(block_id)

    def find_data_model(self, model_id: str) -> Optional[DataModel]:
        return next((m for m in self.data_models if m.id == model_id), None)

    # -- Default (non-archived) iteration -----------------------------------

    def active_pages(self) -> list[Page]:
        return [p for p in self.pages if not p.archived]

    def active_models(self) -> list[DataModel]:
        return [m for m in self.data_models if not m.archived]

    def root_blocks(self, page_id: str) -> list[Block]:
        """Non-archived blocks without a parent on *page_id*, in insertion order."""
        return [
            b
            for b in self.blocks.values()
            if b.page_id == page_id and b.parent_id is None and not b.archived
        ]

    def active_children(self, block: Block) -> list[Block]:
        """Resolve *block*'s child ids, skipping archived and dangling ones."""
        children = []
        for child_id in block.children:
            child = self.blocks.get(child_id)
            if child is not None and not child.archived:
                children.append(child)
        return children


# ---------------------------------------------------------------------------
# Tree integrity
# ---------------------------------------------------------------------------

def validate_tree(project: Project) -> list[str]:
    """Return a description of every forest violation in *project*'s blocks.

    Checks that each listed child exists and points back at its parent, that
    each parent pointer is listed by the parent, that parent and child share a
    page, and that no block is its own ancestor.  An empty list means the
    blocks form a valid forest.
    """
    problems: list[str] = []
    blocks = project.blocks

    for block in blocks.values():
        for child_id in block.children:
            child = blocks.get(child_id)
            if child is None:
                problems.append(f"{block.id}: child {child_id} does not exist")
            elif child.parent_id != block.id:
                problems.append(
                    f"{block.id}: child {child_id} has parent {child.parent_id}"
                )
        if block.children and len(set(block.children)) != len(block.children):
            problems.append(f"{block.id}: duplicate child ids")

        if block.parent_id is not None:
            parent = blocks.get(block.parent_id)
            if parent is None:
                problems.append(f"{block.id}: parent {block.parent_id} does not exist")
            else:
                if block.id not in parent.children:
                    problems.append(
                        f"{block.id}: not listed by parent {block.parent_id}"
                    )
                if parent.page_id != block.page_id:
                    problems.append(
                        f"{block.id}: parent {block.parent_id} is on another page"
                    )

        seen = {block.id}
        cursor = block.parent_id
        while cursor is not None:
            if cursor in seen:
                problems.append(f"{block.id}: cycle through {cursor}")
                break
            seen.add(cursor)
            parent = blocks.get(cursor)
            cursor = parent.parent_id if parent is not None else None

    return problems


def is_ancestor(project: Project, ancestor_id: str, block_id: str) -> bool:
    """Return ``True`` if *ancestor_id* is *block_id* or one of its ancestors."""
    seen: set[str] = set()
    cursor: Optional[str] = block_id
    while cursor is not None and cursor not in seen:
        if cursor == ancestor_id:
            return True
        seen.add(cursor)
        block = project.blocks.get(cursor)
        cursor = block.parent_id if block is not None else None
    return False
