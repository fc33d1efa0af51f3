"""Parse hand-edited page components and fold them back into the model.

The parser understands the line-oriented markup the frontend generator
emits: a page wrapper element, then one element per line, each optionally
preceded by a ``{/* @block id="..." type="..." */}`` marker.  Marked elements
map onto existing blocks and must keep the tag their type renders as;
unmarked ones become new blocks whose type comes from the reverse tag table.
``className`` is the only attribute the model holds.  Anything the parser
cannot place raises :class:`PageParseError` so an edit is never dropped
silently.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Optional

from pagesmith.errors import InvalidInputError
from pagesmith.generators.frontend import TAG_BLOCK_TYPES, block_tag
from pagesmith.model.models import Block, BlockType, Project
from pagesmith.model.mutations import new_id


class PageParseError(ValueError):
    """A page file does not follow the markup the generator produces."""

    def __init__(self, line: int, message: str) -> None:
        self.line = line
        super().__init__(f"line {line}: {message}")


@dataclass
class ParsedBlock:
    """One element read back from a page file."""

    tag: str
    type: BlockType
    block_id: Optional[str] = None
    classes: list[str] = field(default_factory=list)
    text_lines: list[str] = field(default_factory=list)
    self_closing: bool = False
    children: list["ParsedBlock"] = field(default_factory=list)
    line: int = 0

    @property
    def text(self) -> Optional[str]:
        return "\n".join(self.text_lines) if self.text_lines else None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_MARKER_RE = re.compile(
    r'^\{/\*\s*@block\s+id="(?P<id>[^"]*)"\s+type="(?P<type>[^"]*)"\s*\*/\}$'
)
_INLINE_RE = re.compile(
    r"^<(?P<tag>[A-Za-z][\w.-]*)(?P<attrs>\s[^<>]*)?>(?P<text>[^<>]*)</(?P=tag)\s*>$"
)
_OPEN_RE = re.compile(r"^<(?P<tag>[A-Za-z][\w.-]*)(?P<attrs>\s.*?)?\s*(?P<self>/)?>$")
_CLOSE_RE = re.compile(r"^</(?P<tag>[A-Za-z][\w.-]*)\s*>$")
_CLASS_RE = re.compile(r'className="(?P<classes>[^"]*)"')


def _element(
    match: re.Match, marker: Optional[tuple[str, str]], line: int, self_closing: bool = False
) -> ParsedBlock:
    tag = match.group("tag")
    attrs = match.group("attrs") or ""
    if marker is not None:
        block_id, type_name = marker
        try:
            kind = BlockType.parse(type_name)
        except InvalidInputError as exc:
            raise PageParseError(line, str(exc)) from None
        expected_tag, expected_self_closing = block_tag(kind)
        if tag != expected_tag:
            raise PageParseError(
                line, f"<{tag}> cannot hold a {kind.value} block, which renders as <{expected_tag}>"
            )
        if self_closing != expected_self_closing:
            form = "self-closing" if expected_self_closing else "an open/close pair"
            raise PageParseError(line, f"a {kind.value} block must be written as {form}")
    else:
        block_id, kind = None, TAG_BLOCK_TYPES.get(tag.lower(), BlockType.GENERIC)

    class_match = _CLASS_RE.search(attrs)
    extra = _CLASS_RE.sub("", attrs).strip()
    if extra:
        raise PageParseError(line, f"only className can be synced, found {extra!r}")
    classes = html.unescape(class_match.group("classes")).split() if class_match else []
    return ParsedBlock(
        tag=tag,
        type=kind,
        block_id=block_id or None,
        classes=classes,
        self_closing=self_closing,
        line=line,
    )


def parse_page(content: str) -> list[ParsedBlock]:
    """Return the root elements inside the page wrapper of *content*."""
    return read_page(content)[0]


def page_shell(content: str) -> list[str]:
    """Non-blank lines around the wrapper body, stripped of indentation."""
    return read_page(content)[1]


def read_page(content: str) -> tuple[list[ParsedBlock], list[str]]:
    """Parse *content* into its root elements and the lines around them.

    The second item holds every non-blank line up to and including the
    wrapper's opening tag and from its closing tag on, so callers can tell
    whether anything outside the block markup was edited.

    Raises:
        PageParseError: If the wrapper is missing or unterminated, tags do not
            balance, a marker is not followed by a matching element, an
            element carries attributes other than ``className``, or a line
            holds something other than markup or plain text.
    """
    roots: list[ParsedBlock] = []
    stack: list[ParsedBlock] = []
    shell: list[str] = []
    marker: Optional[tuple[str, str]] = None
    wrapper: Optional[str] = None
    lines = content.splitlines()

    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()

        if wrapper is None:
            if line:
                shell.append(line)
            opened = _OPEN_RE.match(line)
            if opened and not opened.group("self") and not _INLINE_RE.match(line):
                wrapper = opened.group("tag")
            continue
        if not line:
            continue

        m = _MARKER_RE.match(line)
        if m:
            if marker is not None:
                raise PageParseError(lineno, "block marker is not followed by an element")
            marker = (m.group("id"), m.group("type"))
            continue

        m = _INLINE_RE.match(line)
        if m:
            node = _element(m, marker, lineno)
            text = html.unescape(m.group("text")).strip()
            if text:
                node.text_lines.append(text)
            (stack[-1].children if stack else roots).append(node)
            marker = None
            continue

        m = _OPEN_RE.match(line)
        if m:
            node = _element(m, marker, lineno, self_closing=bool(m.group("self")))
            (stack[-1].children if stack else roots).append(node)
            if not node.self_closing:
                stack.append(node)
            marker = None
            continue

        m = _CLOSE_RE.match(line)
        if m:
            if marker is not None:
                raise PageParseError(lineno, "block marker is not followed by an element")
            tag = m.group("tag")
            if stack:
                top = stack.pop()
                if top.tag != tag:
                    raise PageParseError(
                        lineno, f"</{tag}> closes <{top.tag}> opened on line {top.line}"
                    )
                continue
            if tag != wrapper:
                raise PageParseError(lineno, f"</{tag}> does not close the page wrapper")
            shell.extend(rest.strip() for rest in lines[lineno - 1:] if rest.strip())
            return roots, shell

        if line.startswith(("<", "{")) or marker is not None:
            raise PageParseError(lineno, f"cannot interpret {line!r}")
        if not stack:
            raise PageParseError(lineno, "text outside of any block")
        stack[-1].text_lines.append(html.unescape(line))

    if wrapper is None:
        raise PageParseError(1, "no page wrapper element found")
    raise PageParseError(len(lines), f"<{wrapper}> is never closed")


# ---------------------------------------------------------------------------
# Folding
# ---------------------------------------------------------------------------

def rendered_block_ids(project: Project, page_id: str) -> set[str]:
    """Ids of the blocks the frontend generator emits for *page_id*."""
    rendered: set[str] = set()
    pending = list(project.root_blocks(page_id))
    while pending:
        block = pending.pop()
        if block.id in rendered:
            continue
        rendered.add(block.id)
        if not block_tag(block.type)[1]:
            pending.extend(project.active_children(block))
    return rendered


def fold_page(project: Project, page_id: str, roots: list[ParsedBlock]) -> Project:
    """Return a copy of *project* whose page *page_id* matches *roots*.

    Marked elements update the block they name (type, classes, text, parent
    and position).  Unmarked elements, unknown ids and repeated ids become
    new blocks.  Blocks that were rendered before but are absent now are
    archived.  Hidden blocks (archived, or under a self-closing element)
    keep their place.
    """
    updated = project.model_copy(deep=True)
    rendered = rendered_block_ids(project, page_id)
    order: dict[Optional[str], list[str]] = {None: []}
    placed: dict[str, tuple[Optional[str], ParsedBlock]] = {}

    def place(node: ParsedBlock, parent_id: Optional[str]) -> None:
        existing = updated.blocks.get(node.block_id) if node.block_id else None
        if existing is not None and existing.page_id == page_id and existing.id not in placed:
            block_id = existing.id
        else:
            block = Block(
                id=new_id(), page_id=page_id, type=node.type, name=node.type.value
            )
            updated.blocks[block.id] = block
            block_id = block.id
        placed[block_id] = (parent_id, node)
        order.setdefault(parent_id, []).append(block_id)
        order.setdefault(block_id, [])
        for child in node.children:
            place(child, block_id)

    for root in roots:
        place(root, None)

    for block_id, (parent_id, node) in placed.items():
        block = updated.blocks[block_id]
        old_parent = updated.blocks.get(block.parent_id) if block.parent_id else None
        if block.parent_id != parent_id and old_parent is not None and old_parent.id not in placed:
            if block_id in old_parent.children:
                old_parent.children.remove(block_id)
        block.parent_id = parent_id
        block.type = node.type
        block.classes = list(node.classes)
        block.archived = False
        if not node.self_closing:
            if node.text is not None:
                block.properties["text"] = node.text
            else:
                block.properties.pop("text", None)

    for block_id in placed:
        block = updated.blocks[block_id]
        listed = order[block_id]
        hidden = [
            child_id
            for child_id in block.children
            if child_id not in listed
            and child_id in updated.blocks
            and updated.blocks[child_id].parent_id == block_id
        ]
        block.children = listed + hidden

    for block_id in rendered - placed.keys():
        updated.blocks[block_id].archived = True

    # Page roots are emitted in dict order; move them to the end in file order.
    roots_in_order = order[None]
    moved = set(roots_in_order)
    blocks = {k: v for k, v in updated.blocks.items() if k not in moved}
    for block_id in roots_in_order:
        blocks[block_id] = updated.blocks[block_id]
    updated.blocks = blocks
    updated.touch()
    return updated
