"""Database schema generation from data models.

Produces a PostgreSQL migration (``migrations/0001_initial_schema.sql``) and
an equivalent Prisma schema (``prisma/schema.prisma``).  Field types map
through fixed tables; anything unmapped becomes ``TEXT`` / ``String``.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

from pagesmith.generators.base import GeneratedFile
from pagesmith.generators.templates import TemplateRenderer
from pagesmith.model.models import DataModel, FieldSchema, FieldType, Project
from pagesmith.utils import to_camel, to_pascal, to_snake


# ---------------------------------------------------------------------------
# Field type tables
# ---------------------------------------------------------------------------

SQL_TYPES: dict[FieldType, str] = {
    FieldType.STRING: "VARCHAR(255)",
    FieldType.TEXT: "TEXT",
    FieldType.INT: "INTEGER",
    FieldType.FLOAT: "DOUBLE PRECISION",
    FieldType.BOOLEAN: "BOOLEAN",
    FieldType.DATETIME: "TIMESTAMPTZ",
    FieldType.JSON: "JSONB",
    FieldType.UUID: "UUID",
    FieldType.EMAIL: "VARCHAR(320)",
    FieldType.URL: "VARCHAR(2048)",
    FieldType.BYTES: "BYTEA",
}

FALLBACK_SQL_TYPE = "TEXT"

#: ``FieldType -> (Prisma scalar, native type attribute)``.
PRISMA_TYPES: dict[FieldType, tuple[str, str]] = {
    FieldType.STRING: ("String", "@db.VarChar(255)"),
    FieldType.TEXT: ("String", "@db.Text"),
    FieldType.INT: ("Int", ""),
    FieldType.FLOAT: ("Float", ""),
    FieldType.BOOLEAN: ("Boolean", ""),
    FieldType.DATETIME: ("DateTime", "@db.Timestamptz"),
    FieldType.JSON: ("Json", ""),
    FieldType.UUID: ("String", "@db.Uuid"),
    FieldType.EMAIL: ("String", "@db.VarChar(320)"),
    FieldType.URL: ("String", "@db.VarChar(2048)"),
    FieldType.BYTES: ("Bytes", ""),
}

FALLBACK_PRISMA_TYPE: tuple[str, str] = ("String", "")

MIGRATION_PATH = "migrations/0001_initial_schema.sql"
PRISMA_PATH = "prisma/schema.prisma"

_IDENT_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def sql_type(field_type: FieldType) -> str:
    return SQL_TYPES.get(field_type, FALLBACK_SQL_TYPE)


def prisma_type(field_type: FieldType) -> tuple[str, str]:
    return PRISMA_TYPES.get(field_type, FALLBACK_PRISMA_TYPE)


def quote_ident(name: str) -> str:
    """Double-quote a SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Single-quote a SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def table_name(model: DataModel) -> str:
    return to_snake(model.name) or "model"


# ---------------------------------------------------------------------------
# Default values
# ---------------------------------------------------------------------------

def _is_now(field: FieldSchema) -> bool:
    return (
        field.type == FieldType.DATETIME
        and isinstance(field.default_value, str)
        and field.default_value.lower() in ("now", "now()")
    )


def sql_default(field: FieldSchema) -> Optional[str]:
    """SQL ``DEFAULT`` expression for *field*, or ``None``."""
    value = field.default_value
    if value is None:
        if field.primary_key and field.type == FieldType.UUID:
            return "gen_random_uuid()"
        return None
    if _is_now(field):
        return "CURRENT_TIMESTAMP"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (dict, list)) or field.type == FieldType.JSON:
        return quote_literal(json.dumps(value, sort_keys=True)) + "::jsonb"
    return quote_literal(str(value))


def prisma_default(field: FieldSchema) -> Optional[str]:
    """Prisma ``@default(...)`` attribute for *field*, or ``None``."""
    value = field.default_value
    if value is None:
        if field.primary_key and field.type == FieldType.UUID:
            return "@default(uuid())"
        return None
    if _is_now(field):
        return "@default(now())"
    if isinstance(value, bool):
        return f"@default({'true' if value else 'false'})"
    if isinstance(value, (int, float)):
        return f"@default({value!r})"
    if isinstance(value, (dict, list)) or field.type == FieldType.JSON:
        return f"@default({json.dumps(json.dumps(value, sort_keys=True))})"
    return f"@default({json.dumps(str(value))})"


# ---------------------------------------------------------------------------
# DatabaseGenerator
# ---------------------------------------------------------------------------


class DatabaseGenerator:
    """Compiles data models into SQL and Prisma schema descriptions."""

    target = "database"

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def generate(self, project: Project) -> list[GeneratedFile]:
        models = project.active_models()
        context = {
            "project_name": " ".join(project.name.split()),
            "tables": [_table_context(m) for m in models],
            "prisma_models": [_prisma_context(m) for m in models],
        }
        return [
            GeneratedFile(MIGRATION_PATH, self.renderer.render("database/migration.sql.j2", context)),
            GeneratedFile(PRISMA_PATH, self.renderer.render("database/schema.prisma.j2", context)),
        ]


# ---------------------------------------------------------------------------
# Context building
# ---------------------------------------------------------------------------

def _table_context(model: DataModel) -> dict[str, Any]:
    table = table_name(model)
    lines: list[str] = []
    comments: list[str] = []

    for field in model.fields:
        parts = [quote_ident(field.name), sql_type(field.type)]
        if field.required or field.primary_key:
            parts.append("NOT NULL")
        if field.unique and not field.primary_key:
            parts.append("UNIQUE")
        default = sql_default(field)
        if default is not None:
            parts.append(f"DEFAULT {default}")
        lines.append(" ".join(parts))
        if field.description:
            comments.append(
                f"COMMENT ON COLUMN {quote_ident(table)}.{quote_ident(field.name)} "
                f"IS {quote_literal(field.description)};"
            )

    primary = [quote_ident(f.name) for f in model.fields if f.primary_key]
    if primary:
        lines.append(f"PRIMARY KEY ({', '.join(primary)})")

    return {"name": quote_ident(table), "columns": lines, "comments": comments}


def _prisma_context(model: DataModel) -> dict[str, Any]:
    table = table_name(model)
    rows: list[tuple[str, str, str]] = []
    primary = [f for f in model.fields if f.primary_key]

    for field in model.fields:
        scalar, native = prisma_type(field.type)
        name = field.name if _IDENT_RE.match(field.name) else (to_camel(field.name) or "field")
        optional = not (field.required or field.primary_key)
        attrs = []
        if field.primary_key and len(primary) == 1:
            attrs.append("@id")
        if field.unique and not field.primary_key:
            attrs.append("@unique")
        default = prisma_default(field)
        if default is not None:
            attrs.append(default)
        if native:
            attrs.append(native)
        if name != field.name:
            attrs.append(f"@map({json.dumps(field.name)})")
        rows.append((name, scalar + ("?" if optional else ""), " ".join(attrs)))

    name_width = max((len(r[0]) for r in rows), default=0)
    type_width = max((len(r[1]) for r in rows), default=0)
    lines = [
        f"{n.ljust(name_width)} {t.ljust(type_width)} {a}".rstrip() for n, t, a in rows
    ]
    if len(primary) > 1:
        lines.append(f"@@id([{', '.join(f.name for f in primary)}])")
    lines.append(f"@@map({json.dumps(table)})")

    return {"name": to_pascal(model.name) or "Model", "lines": lines}
