"""React + Tailwind frontend generation from page block trees.

Each non-archived page becomes ``src/pages/<Name>.tsx`` exporting
``<Name>Page``.  Blocks render depth-first in child order; every block is
preceded by a ``{/* @block id="..." type="..." */}`` marker so the sync
engine can map hand-edited markup back onto model blocks.  ``src/App.tsx``
routes every page, and ``package.json`` plus the Vite/Tailwind boilerplate
complete a runnable client.
"""

from __future__ import annotations

import html
from typing import Any, Optional

from pagesmith.generators.base import GeneratedFile
from pagesmith.generators.templates import TemplateRenderer
from pagesmith.model.models import Block, BlockType, Page, Project
from pagesmith.utils import dump_json, package_name


# ---------------------------------------------------------------------------
# Block -> markup table
# ---------------------------------------------------------------------------

#: ``BlockType -> (tag, self_closing)``.  Every member has an entry.
BLOCK_TAGS: dict[BlockType, tuple[str, bool]] = {
    BlockType.CONTAINER: ("div", False),
    BlockType.SECTION: ("div", False),
    BlockType.HEADING: ("h1", False),
    BlockType.PARAGRAPH: ("p", False),
    BlockType.TEXT: ("p", False),
    BlockType.BUTTON: ("button", False),
    BlockType.IMAGE: ("img", True),
    BlockType.INPUT: ("input", True),
    BlockType.LINK: ("a", False),
    BlockType.FORM: ("form", False),
    BlockType.GENERIC: ("div", False),
}

FALLBACK_TAG: tuple[str, bool] = ("div", False)

#: Reverse table used when unmarked tags appear in hand-edited pages.
TAG_BLOCK_TYPES: dict[str, BlockType] = {
    "div": BlockType.CONTAINER,
    "section": BlockType.SECTION,
    "h1": BlockType.HEADING,
    "h2": BlockType.HEADING,
    "h3": BlockType.HEADING,
    "h4": BlockType.HEADING,
    "h5": BlockType.HEADING,
    "h6": BlockType.HEADING,
    "p": BlockType.PARAGRAPH,
    "span": BlockType.TEXT,
    "button": BlockType.BUTTON,
    "img": BlockType.IMAGE,
    "input": BlockType.INPUT,
    "a": BlockType.LINK,
    "form": BlockType.FORM,
}

PAGES_DIR = "src/pages"
APP_PATH = "src/App.tsx"
MANIFEST_PATH = "package.json"

#: Fixed tooling dependencies written to every client manifest.
DEPENDENCIES: dict[str, str] = {
    "react": "^18.2.0",
    "react-dom": "^18.2.0",
    "react-router-dom": "^6.21.0",
}

DEV_DEPENDENCIES: dict[str, str] = {
    "@types/react": "^18.2.43",
    "@types/react-dom": "^18.2.17",
    "@vitejs/plugin-react": "^4.2.1",
    "autoprefixer": "^10.4.16",
    "postcss": "^8.4.32",
    "tailwindcss": "^3.4.0",
    "typescript": "^5.2.2",
    "vite": "^5.0.8",
}

#: ``(template, output path)`` pairs for static client boilerplate.
_BOILERPLATE: list[tuple[str, str]] = [
    ("frontend/index.html.j2", "index.html"),
    ("frontend/main.tsx.j2", "src/main.tsx"),
    ("frontend/index.css.j2", "src/index.css"),
    ("frontend/vite.config.ts.j2", "vite.config.ts"),
    ("frontend/tailwind.config.js.j2", "tailwind.config.js"),
    ("frontend/postcss.config.js.j2", "postcss.config.js"),
]


def block_tag(block_type: BlockType) -> tuple[str, bool]:
    """Return ``(tag, self_closing)``; unmapped types fall back to ``div``."""
    return BLOCK_TAGS.get(block_type, FALLBACK_TAG)


def escape_text(text: str) -> str:
    """Escape literal text so it survives as JSX children."""
    return html.escape(text, quote=False).replace("{", "&#123;").replace("}", "&#125;")


def escape_attr(value: str) -> str:
    """Escape a JSX string attribute value."""
    return html.escape(value, quote=True).replace("{", "&#123;").replace("}", "&#125;")


def component_name(page: Page) -> str:
    return f"{page.name}Page"


def page_path(page: Page) -> str:
    """Client-relative path of *page*'s component file."""
    return f"{PAGES_DIR}/{page.name}.tsx"


# ---------------------------------------------------------------------------
# FrontendGenerator
# ---------------------------------------------------------------------------


class FrontendGenerator:
    """Compiles pages and blocks into a React + Tailwind client."""

    target = "client"

    def __init__(self, renderer: TemplateRenderer | None = None, indent: int = 4) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.indent = indent

    def generate(self, project: Project) -> list[GeneratedFile]:
        """Return every client file: pages first, then project-level files."""
        files = [self.generate_page(project, page) for page in project.active_pages()]
        files.extend(self.generate_shared(project))
        return files

    def generate_shared(self, project: Project) -> list[GeneratedFile]:
        """Files that depend on the whole project rather than one page."""
        files = [self.generate_app(project), self.generate_manifest(project)]
        context = {"project_name": project.name}
        for template, path in _BOILERPLATE:
            files.append(GeneratedFile(path, self.renderer.render(template, context)))
        return files

    # -- Pages -------------------------------------------------------------

    def generate_page(self, project: Project, page: Page) -> GeneratedFile:
        body = "".join(
            self.render_block(project, block, 3)
            for block in project.root_blocks(page.id)
        )
        content = self.renderer.render(
            "frontend/page.tsx.j2",
            {
                "component": component_name(page),
                "body": body,
                "ind": " " * self.indent,
            },
        )
        return GeneratedFile(page_path(page), content)

    def render_block(
        self,
        project: Project,
        block: Block,
        level: int,
        _visiting: Optional[set[str]] = None,
    ) -> str:
        """Render *block* and its non-archived descendants at nesting *level*."""
        visiting = _visiting if _visiting is not None else set()
        if block.id in visiting:
            return ""
        visiting.add(block.id)

        pad = " " * (self.indent * level)
        tag, self_closing = block_tag(block.type)
        classes = escape_attr(" ".join(block.classes))

        lines = [f'{pad}{{/* @block id="{block.id}" type="{block.type.value}" */}}\n']
        if self_closing:
            lines.append(f'{pad}<{tag} className="{classes}" />\n')
        else:
            lines.append(f'{pad}<{tag} className="{classes}">\n')
            for child in project.active_children(block):
                lines.append(self.render_block(project, child, level + 1, visiting))
            text = block.text
            if text:
                inner = " " * (self.indent * (level + 1))
                for line in text.splitlines():
                    if line.strip():
                        lines.append(f"{inner}{escape_text(line.strip())}\n")
            lines.append(f"{pad}</{tag}>\n")

        visiting.discard(block.id)
        return "".join(lines)

    # -- Project-level files -------------------------------------------------

    def generate_app(self, project: Project) -> GeneratedFile:
        pages: list[dict[str, Any]] = [
            {"name": p.name, "component": component_name(p), "path": p.path}
            for p in project.active_pages()
        ]
        content = self.renderer.render(
            "frontend/App.tsx.j2", {"pages": pages, "ind": " " * self.indent}
        )
        return GeneratedFile(APP_PATH, content)

    def generate_manifest(self, project: Project) -> GeneratedFile:
        manifest = {
            "name": package_name(project.name),
            "private": True,
            "version": "0.1.0",
            "type": "module",
            "scripts": {
                "dev": "vite",
                "build": "tsc && vite build",
                "preview": "vite preview",
            },
            "dependencies": dict(DEPENDENCIES),
            "devDependencies": dict(DEV_DEPENDENCIES),
        }
        return GeneratedFile(MANIFEST_PATH, dump_json(manifest))
