"""Tests for the SQL migration and Prisma schema generator."""

from __future__ import annotations

import pytest

from pagesmith.generators.database import (
    MIGRATION_PATH,
    PRISMA_PATH,
    SQL_TYPES,
    DatabaseGenerator,
    prisma_default,
    quote_literal,
    sql_default,
    sql_type,
)
from pagesmith.model import mutations
from pagesmith.model.models import FieldSchema, FieldType

pytestmark = pytest.mark.unit


@pytest.fixture
def generator(renderer) -> DatabaseGenerator:
    return DatabaseGenerator(renderer)


def _files(generator, project) -> dict[str, str]:
    return {f.path: f.content for f in generator.generate(project)}


# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------


def test_migration_table(generator, model_project):
    sql = _files(generator, model_project)[MIGRATION_PATH]
    assert 'CREATE TABLE IF NOT EXISTS "task" (' in sql
    assert '"id" UUID NOT NULL DEFAULT gen_random_uuid(),' in sql
    assert '"title" VARCHAR(255) NOT NULL,' in sql
    assert '"done" BOOLEAN DEFAULT FALSE,' in sql
    assert '"owner_email" VARCHAR(320) UNIQUE,' in sql
    assert 'PRIMARY KEY ("id")' in sql
    assert """COMMENT ON COLUMN "task"."owner_email" IS 'Who owns it';""" in sql


def test_no_models_yields_header_only(generator, scenario_project):
    sql = _files(generator, scenario_project)[MIGRATION_PATH]
    assert "CREATE TABLE" not in sql
    assert sql.startswith("-- Initial schema for My App")


def test_archived_model_excluded(generator, model_project):
    project = mutations.archive_data_model(model_project, model_project.data_models[0].id)
    files = _files(generator, project)
    assert '"task"' not in files[MIGRATION_PATH]
    assert "model Task" not in files[PRISMA_PATH]


def test_deterministic(generator, model_project):
    assert generator.generate(model_project) == generator.generate(model_project)


# ---------------------------------------------------------------------------
# Prisma
# ---------------------------------------------------------------------------


def test_prisma_model(generator, model_project):
    prisma = _files(generator, model_project)[PRISMA_PATH]
    assert 'provider = "postgresql"' in prisma
    assert "model Task {" in prisma
    assert '@@map("task")' in prisma
    id_line = next(line for line in prisma.splitlines() if line.strip().startswith("id "))
    assert "@id" in id_line and "@default(uuid())" in id_line and "@db.Uuid" in id_line
    email_line = next(l for l in prisma.splitlines() if l.strip().startswith("owner_email"))
    assert "String?" in email_line and "@unique" in email_line


# ---------------------------------------------------------------------------
# Types & defaults
# ---------------------------------------------------------------------------


def test_type_table():
    assert set(SQL_TYPES) == set(FieldType)
    assert sql_type(FieldType.JSON) == "JSONB"


def _field(**kwargs) -> FieldSchema:
    return FieldSchema(id="f", name="f", **kwargs)


@pytest.mark.parametrize(
    ("field", "sql", "prisma"),
    [
        (_field(), None, None),
        (_field(type=FieldType.INT, default_value=3), "3", "@default(3)"),
        (_field(type=FieldType.BOOLEAN, default_value=True), "TRUE", "@default(true)"),
        (_field(type=FieldType.DATETIME, default_value="now"), "CURRENT_TIMESTAMP", "@default(now())"),
        (_field(default_value="it's"), "'it''s'", '@default("it\'s")'),
    ],
)
def test_defaults(field, sql, prisma):
    assert sql_default(field) == sql
    assert prisma_default(field) == prisma


def test_quote_literal():
    assert quote_literal("a'b") == "'a''b'"
