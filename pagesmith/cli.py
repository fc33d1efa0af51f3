"""Command-line interface.

Works on a project saved as JSON (see :func:`pagesmith.model.serialization.export_project`).

Usage::

    pagesmith new "My App" -o app.json --root ./my-app
    pagesmith generate app.json -o ./out --target client
    pagesmith sync app.json
    pagesmith pull app.json
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from pagesmith.config import Config
from pagesmith.errors import PagesmithError, SerializationError
from pagesmith.generators import BackendGenerator, DatabaseGenerator, FrontendGenerator, TemplateRenderer
from pagesmith.model import mutations
from pagesmith.model.models import Project, validate_tree
from pagesmith.model.serialization import export_project, import_project
from pagesmith.sync import SyncEngine, SyncReport
from pagesmith.utils import (
    console,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    read_text,
    write_file_atomic,
)

TARGETS = ("client", "server", "database")


# ---------------------------------------------------------------------------
# Project file helpers
# ---------------------------------------------------------------------------


def load_project(path: Path) -> Project:
    try:
        raw = read_text(path)
    except OSError as exc:
        raise SerializationError(f"Cannot read project file {path}: {exc}") from exc
    return import_project(raw)


def save_project(project: Project, path: Path) -> None:
    try:
        write_file_atomic(path, export_project(project) + "\n")
    except OSError as exc:
        raise SerializationError(f"Cannot write project file {path}: {exc}") from exc


def _with_root(project: Project, root: Optional[str]) -> Project:
    if root:
        project, _ = mutations.set_root_path(project, root)
    return project


def _load_config(path: Optional[str]) -> Config:
    if not path:
        return Config.from_env()
    try:
        return Config.load(Path(path))
    except (OSError, ValueError) as exc:
        raise SerializationError(f"Cannot load config {path}: {exc}") from exc


def print_report(report: SyncReport) -> None:
    print_summary_table(
        {
            "Root": report.root,
            "Written": str(len(report.written)),
            "Folded": ", ".join(report.folded) or "-",
            "New pages": ", ".join(report.created_pages) or "-",
            "Missing": ", ".join(report.missing) or "-",
        },
        title=report.operation,
    )
    for rel in report.unreconciled:
        print_warning(f"{rel} was edited but is generated-only; the next sync overwrites it")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_new(args: argparse.Namespace, config: Config) -> None:
    project = mutations.create_project(args.name, args.root)
    save_project(project, Path(args.output))
    print_success(f"Created project {project.name!r} in {args.output}")


def cmd_generate(args: argparse.Namespace, config: Config) -> None:
    project = load_project(Path(args.project))
    problems = validate_tree(project)
    if problems:
        for problem in problems:
            print_warning(problem)

    renderer = TemplateRenderer()
    generators = {
        "client": FrontendGenerator(renderer, indent=config.indent),
        "server": BackendGenerator(renderer),
        "database": DatabaseGenerator(renderer),
    }
    dirs = config.layout.as_dict()
    out = Path(args.output)
    selected = TARGETS if args.target == "all" else (args.target,)

    counts: dict[str, str] = {}
    for target in selected:
        files = generators[target].generate(project)
        for generated in files:
            write_file_atomic(out / dirs[target] / generated.path, generated.content)
        counts[target] = f"{len(files)} files"
    print_summary_table(counts, title=f"Generated {project.name}")


def cmd_sync(args: argparse.Namespace, config: Config) -> None:
    project = _with_root(load_project(Path(args.project)), args.root)
    engine = SyncEngine.for_project(project, config)
    report = asyncio.run(engine.sync_project_to_disk(project))
    print_report(report)
    print_success(f"Synced {len(report.written)} files to {engine.root}")


def cmd_pull(args: argparse.Namespace, config: Config) -> None:
    path = Path(args.project)
    project = _with_root(load_project(path), args.root)
    engine = SyncEngine.for_project(project, config)
    updated, report = asyncio.run(engine.sync_disk_to_project(project))
    print_report(report)
    if report.changed:
        save_project(updated, path)
        print_success(f"Folded disk edits into {path}")
    else:
        console.print("[dim]No disk edits to fold.[/dim]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagesmith",
        description="Pagesmith -- compile a visual project to source and keep it in sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            '  pagesmith new "My App" -o app.json --root ./my-app\n'
            "  pagesmith generate app.json -o ./out\n"
            "  pagesmith sync app.json\n"
            "  pagesmith pull app.json\n"
        ),
    )
    parser.add_argument("--config", default=None, help="Path to a saved config JSON file")
    sub = parser.add_subparsers(dest="command", required=True)

    p_new = sub.add_parser("new", help="Create a new project file")
    p_new.add_argument("name", help="Project name")
    p_new.add_argument("--output", "-o", default="pagesmith-project.json")
    p_new.add_argument("--root", default=None, help="Sync root directory")
    p_new.set_defaults(func=cmd_new)

    p_gen = sub.add_parser("generate", help="Write generated source without sync bookkeeping")
    p_gen.add_argument("project", help="Project JSON file")
    p_gen.add_argument("--output", "-o", default="./output")
    p_gen.add_argument("--target", choices=("all",) + TARGETS, default="all")
    p_gen.set_defaults(func=cmd_generate)

    p_sync = sub.add_parser("sync", help="Write the project to its sync root")
    p_sync.add_argument("project", help="Project JSON file")
    p_sync.add_argument("--root", default=None, help="Override the sync root")
    p_sync.set_defaults(func=cmd_sync)

    p_pull = sub.add_parser("pull", help="Fold disk edits back into the project file")
    p_pull.add_argument("project", help="Project JSON file")
    p_pull.add_argument("--root", default=None, help="Override the sync root")
    p_pull.set_defaults(func=cmd_pull)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for ``pagesmith``."""
    args = build_parser().parse_args(argv)
    try:
        config = _load_config(args.config)
        args.func(args, config)
    except PagesmithError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)
    except OSError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
