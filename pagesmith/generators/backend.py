"""NestJS-style backend generation from data models.

Each non-archived data model becomes a module directory
``src/<kebab-name>/`` with an entity interface, create/update DTOs, an
in-memory service, a REST controller and the module declaration.
``src/app.module.ts`` wires every module together.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pagesmith.generators.base import GeneratedFile
from pagesmith.generators.templates import TemplateRenderer
from pagesmith.model.models import DataModel, FieldType, Project
from pagesmith.utils import dump_json, package_name, pluralize, to_kebab, to_pascal


# ---------------------------------------------------------------------------
# Field type tables
# ---------------------------------------------------------------------------

#: ``FieldType -> (TypeScript type, class-validator decorator)``.
FIELD_TS_TYPES: dict[FieldType, tuple[str, str]] = {
    FieldType.STRING: ("string", "IsString"),
    FieldType.TEXT: ("string", "IsString"),
    FieldType.INT: ("number", "IsInt"),
    FieldType.FLOAT: ("number", "IsNumber"),
    FieldType.BOOLEAN: ("boolean", "IsBoolean"),
    FieldType.DATETIME: ("string", "IsDateString"),
    FieldType.JSON: ("Record<string, unknown>", "IsObject"),
    FieldType.UUID: ("string", "IsUUID"),
    FieldType.EMAIL: ("string", "IsEmail"),
    FieldType.URL: ("string", "IsUrl"),
    FieldType.BYTES: ("string", "IsBase64"),
}

FALLBACK_TS_TYPE: tuple[str, str] = ("string", "IsString")

_IDENT_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

#: ``(template, file suffix)`` for the per-model module files.
_MODULE_FILES: list[tuple[str, str]] = [
    ("backend/entity.ts.j2", "entity.ts"),
    ("backend/dto.ts.j2", "dto.ts"),
    ("backend/service.ts.j2", "service.ts"),
    ("backend/controller.ts.j2", "controller.ts"),
    ("backend/module.ts.j2", "module.ts"),
]

DEPENDENCIES: dict[str, str] = {
    "@nestjs/common": "^10.3.0",
    "@nestjs/core": "^10.3.0",
    "@nestjs/mapped-types": "^2.0.4",
    "@nestjs/platform-express": "^10.3.0",
    "class-transformer": "^0.5.1",
    "class-validator": "^0.14.0",
    "reflect-metadata": "^0.2.1",
    "rxjs": "^7.8.1",
}

DEV_DEPENDENCIES: dict[str, str] = {
    "@nestjs/cli": "^10.3.0",
    "@types/node": "^20.10.0",
    "ts-node": "^10.9.2",
    "typescript": "^5.3.3",
}


def ts_type(field_type: FieldType) -> tuple[str, str]:
    """Return ``(ts_type, validator)``; unmapped types fall back to string."""
    return FIELD_TS_TYPES.get(field_type, FALLBACK_TS_TYPE)


def ts_key(name: str) -> str:
    """Property key for *name*, quoted when it is not a plain identifier."""
    return name if _IDENT_RE.match(name) else json.dumps(name)


# ---------------------------------------------------------------------------
# BackendGenerator
# ---------------------------------------------------------------------------


class BackendGenerator:
    """Compiles data models into a NestJS service."""

    target = "server"

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def generate(self, project: Project) -> list[GeneratedFile]:
        modules = [_model_context(m) for m in project.active_models()]
        files: list[GeneratedFile] = []

        for module in modules:
            ctx = {"model": module}
            for template, suffix in _MODULE_FILES:
                path = f"src/{module['kebab']}/{module['kebab']}.{suffix}"
                files.append(GeneratedFile(path, self.renderer.render(template, ctx)))

        app_ctx = {"modules": modules, "project_name": " ".join(project.name.split())}
        files.append(
            GeneratedFile("src/app.module.ts", self.renderer.render("backend/app.module.ts.j2", app_ctx))
        )
        files.append(
            GeneratedFile("src/main.ts", self.renderer.render("backend/main.ts.j2", app_ctx))
        )
        files.append(GeneratedFile("package.json", self._manifest(project)))
        files.append(GeneratedFile("tsconfig.json", self._tsconfig()))
        return files

    def _manifest(self, project: Project) -> str:
        return dump_json(
            {
                "name": f"{package_name(project.name)}-server",
                "private": True,
                "version": "0.1.0",
                "scripts": {
                    "build": "nest build",
                    "start": "nest start",
                    "start:dev": "nest start --watch",
                },
                "dependencies": dict(DEPENDENCIES),
                "devDependencies": dict(DEV_DEPENDENCIES),
            }
        )

    def _tsconfig(self) -> str:
        return dump_json(
            {
                "compilerOptions": {
                    "module": "commonjs",
                    "target": "ES2021",
                    "declaration": True,
                    "emitDecoratorMetadata": True,
                    "experimentalDecorators": True,
                    "outDir": "./dist",
                    "baseUrl": "./",
                    "strict": True,
                    "strictPropertyInitialization": False,
                    "skipLibCheck": True,
                }
            }
        )


# ---------------------------------------------------------------------------
# Context building
# ---------------------------------------------------------------------------

def _model_context(model: DataModel) -> dict[str, Any]:
    """Template variables for one data model module."""
    kebab = to_kebab(model.name) or "model"
    class_name = to_pascal(model.name) or "Model"

    fields = []
    for f in model.fields:
        ts, validator = ts_type(f.type)
        fields.append(
            {
                "name": f.name,
                "key": ts_key(f.name),
                "ts_type": ts,
                "validator": validator,
                "optional": not (f.required or f.primary_key),
                "primary_key": f.primary_key,
                "generated": f.primary_key and f.type == FieldType.UUID,
                "description": (f.description or "").replace("*/", "*\\/"),
            }
        )

    pk = next((f for f in fields if f["primary_key"]), None)
    input_fields = [f for f in fields if not f["generated"]]
    validators = sorted({f["validator"] for f in input_fields} | {"IsOptional"})

    return {
        "name": model.name,
        "class_name": class_name,
        "kebab": kebab,
        "route": pluralize(kebab),
        "fields": fields,
        "input_fields": input_fields,
        "validators": validators,
        "pk_name": pk["name"] if pk else "id",
        "pk_key": pk["key"] if pk else "id",
        "pk_generated": pk["generated"] if pk else True,
        "pk_declared": pk is not None,
    }
