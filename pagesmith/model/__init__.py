"""In-memory project model, store, and mutation API."""

from pagesmith.model.models import (
    Block,
    BlockType,
    DataModel,
    FieldSchema,
    FieldType,
    Page,
    Project,
    validate_tree,
)
from pagesmith.model.store import ProjectStore

__all__ = [
    "Block",
    "BlockType",
    "DataModel",
    "FieldSchema",
    "FieldType",
    "Page",
    "Project",
    "ProjectStore",
    "validate_tree",
]
