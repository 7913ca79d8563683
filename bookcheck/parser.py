"""Structural parser turning manuscript Markdown into an ordered tree of block nodes.

mistletoe does the CommonMark parsing. Its block tokens are mapped onto
the node types of ``bookcheck.types``:

- ATX and setext headings become ``Heading``
- HTML comment blocks become ``AnnotationComment`` when non-empty
- fenced code blocks become ``CodeBlock`` with their info string
- block quotes and list items keep their children as sibling lists of their own
- paragraphs become ``Paragraph``

Everything else (raw HTML, tables, thematic breaks, indented code) is kept
as an ``OpaqueBlock`` so that sibling positions still match the document.
Leading YAML front matter is one ``OpaqueBlock`` as well.

CommonMark lets a fence or comment that is never closed run to the end
of its container. In a manuscript that is a broken document, so both
raise ``ManuscriptParseError``.
"""

from __future__ import annotations

import logging
import re
import textwrap
from pathlib import Path
from typing import Any, Iterable, Iterator, NamedTuple, Optional, Sequence

from mistletoe import HtmlRenderer, block_token, span_token

from .errors import ManuscriptParseError
from .types import (
    AnnotationComment,
    BlockQuote,
    CodeBlock,
    CodeSpan,
    Document,
    Emphasis,
    Heading,
    Inline,
    Link,
    ListBlock,
    ListItem,
    Node,
    OpaqueBlock,
    Paragraph,
    Text,
)

logger = logging.getLogger(__name__)

_HEADING_ANCHOR_RE = re.compile(r"[ \t]*\{#(?P<anchor>[^}\s]+)\}[ \t]*$")
_CLOSING_FENCE_RE = re.compile(r"^[ \t>]*(?:`{3,}|~{3,})[ \t]*$")
_FRONT_MATTER_END = ("---", "...")


def unwrap_comment(raw: str) -> str:
    """Remove ``<!--``/``-->`` delimiters, then dedent and trim the content."""
    inner = raw.strip()
    inner = inner[len("<!--"):] if inner.startswith("<!--") else inner
    inner = inner[:-len("-->")] if inner.endswith("-->") else inner
    return textwrap.dedent(inner).strip()


def _plain(token: Any) -> str:
    """Text of a span token and everything below it."""
    if isinstance(token, span_token.LineBreak):
        return "\n"
    children = getattr(token, "children", None)
    if children is not None:
        return "".join(_plain(child) for child in children)
    return getattr(token, "content", "")


def _inline(token: Any) -> Inline:
    if isinstance(token, span_token.Link):
        return Link(_plain(token), token.target)
    if isinstance(token, span_token.InlineCode):
        return CodeSpan(_plain(token))
    if isinstance(token, span_token.Strong):
        return Emphasis(_plain(token), strong=True)
    if isinstance(token, span_token.Emphasis):
        return Emphasis(_plain(token))
    return Text(_plain(token))


def _inlines(tokens: Iterable[Any]) -> list[Inline]:
    children: list[Inline] = []
    for token in tokens:
        inline = _inline(token)
        # Escapes and raw HTML split text runs; join them back
        if isinstance(inline, Text) and children and isinstance(children[-1], Text):
            children[-1] = Text(children[-1].value + inline.value)
        else:
            children.append(inline)
    return children


def _front_matter_length(lines: Sequence[str]) -> int:
    if not lines or lines[0].strip() != "---":
        return 0
    for i in range(1, len(lines)):
        if lines[i].strip() in _FRONT_MATTER_END:
            return i + 1
    return 0


class _TreeBuilder:
    """Maps mistletoe block tokens of one document onto bookcheck nodes."""

    def __init__(self, lines: Sequence[str], path: Optional[Path]) -> None:
        self.lines = lines
        self.path = path

    def nodes(self, tokens: Iterable[Any]) -> tuple[Node, ...]:
        return tuple(self.node(token) for token in tokens)

    def node(self, token: Any) -> Node:
        line = token.line_number
        if isinstance(token, (block_token.Heading, block_token.SetextHeading)):
            return self.heading(token, line)
        if isinstance(token, block_token.CodeFence):
            return self.code_block(token, line)
        if isinstance(token, block_token.HtmlBlock):
            return self.html(token, line)
        if isinstance(token, block_token.Quote):
            return BlockQuote(children=self.nodes(token.children), line=line)
        if isinstance(token, block_token.List):
            items = tuple(ListItem(self.nodes(item.children)) for item in token.children)
            return ListBlock(items=items, ordered=token.start is not None, line=line)
        if isinstance(token, block_token.Paragraph):
            return Paragraph(text=_plain(token).strip(), line=line)
        if isinstance(token, block_token.BlockCode):
            return OpaqueBlock("indented_code", _plain(token), line)
        if isinstance(token, block_token.ThematicBreak):
            return OpaqueBlock("thematic_break", self.lines[line - 1].strip(), line)
        return OpaqueBlock(type(token).__name__.lower(), _plain(token), line)

    def heading(self, token: Any, line: int) -> Heading:
        children = _inlines(token.children)
        anchor = None
        if children and isinstance(children[-1], Text):
            match = _HEADING_ANCHOR_RE.search(children[-1].value)
            if match:
                anchor = match.group("anchor")
                rest = children[-1].value[:match.start()]
                children[-1:] = [Text(rest)] if rest else []
        return Heading(level=token.level, children=tuple(children), line=line, anchor=anchor)

    def code_block(self, token: Any, line: int) -> CodeBlock:
        content = token.children[0].content
        end_line = line + content.count("\n") + 1
        if end_line > len(self.lines) or not _CLOSING_FENCE_RE.match(self.lines[end_line - 1]):
            raise ManuscriptParseError("unterminated code fence", self.path, line)
        return CodeBlock(
            language=token.language,
            info=token.info_string.strip(),
            source=content[:-1] if content.endswith("\n") else content,
            line=line,
            end_line=end_line,
        )

    def html(self, token: Any, line: int) -> Node:
        raw = token.content.rstrip("\n")
        stripped = raw.strip()
        if stripped.startswith("<!--"):
            if "-->" not in stripped[len("<!--"):]:
                raise ManuscriptParseError("unterminated HTML comment", self.path, line)
            if stripped.endswith("-->"):
                text = unwrap_comment(stripped)
                if text:
                    return AnnotationComment(text=text, raw=raw, line=line)
        return OpaqueBlock("html", raw, line)


def parse(text: str, path: Optional[Path] = None) -> tuple[Node, ...]:
    """
    Parse Markdown text into its top-level sibling list.

    Args:
        text: Markdown source
        path: File the text came from, used in error messages

    Returns:
        Block nodes in document order

    Raises:
        ManuscriptParseError: If a fence or comment is never closed
    """
    lines = text.splitlines()
    front = _front_matter_length(lines)
    # Front matter lines are blanked so the parser keeps manuscript line numbers
    source = [""] * front + lines[front:]
    with HtmlRenderer():
        tree = block_token.Document([line + "\n" for line in source])

    nodes = _TreeBuilder(lines, path).nodes(tree.children)
    if front:
        nodes = (OpaqueBlock("front_matter", "\n".join(lines[:front]), 1),) + nodes
    return nodes


def parse_document(document: Document) -> tuple[Node, ...]:
    """Parse a loaded document."""
    nodes = parse(document.text, document.path)
    logger.debug("Parsed %s into %d top-level nodes", document.name, len(nodes))
    return nodes


class CodeBlockSite(NamedTuple):
    """Where a code block sits in the node tree."""

    block: CodeBlock
    siblings: Sequence[Node]
    index: int
    outer: tuple[tuple[Sequence[Node], int], ...] = ()
    """Enclosing sibling lists with the container's position, innermost first"""


def walk_code_blocks(
    nodes: Sequence[Node],
    outer: tuple[tuple[Sequence[Node], int], ...] = (),
) -> Iterator[CodeBlockSite]:
    """
    Yield every code block with its sibling list and position, in document order.

    Block quotes and list items are descended into; their children are
    the siblings of any code block they contain.
    """
    for index, node in enumerate(nodes):
        if isinstance(node, CodeBlock):
            yield CodeBlockSite(node, nodes, index, outer)
        elif isinstance(node, BlockQuote):
            yield from walk_code_blocks(node.children, ((nodes, index),) + outer)
        elif isinstance(node, ListBlock):
            for item in node.items:
                yield from walk_code_blocks(item.children, ((nodes, index),) + outer)
