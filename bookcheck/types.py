"""Data structures for the bookcheck package."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class Document:
    """A manuscript file, immutable once loaded."""

    path: Path
    """Location of the file on disk"""

    text: str
    """Raw Markdown text"""

    @property
    def name(self) -> str:
        """File name, used as the group name of the document's tests."""
        return self.path.name


# Inline nodes (only parsed inside headings)


@dataclass(frozen=True)
class Text:
    """Plain inline text."""

    value: str


@dataclass(frozen=True)
class CodeSpan:
    """Inline code between backticks."""

    value: str


@dataclass(frozen=True)
class Emphasis:
    """Emphasized or strong inline text."""

    value: str
    strong: bool = False


@dataclass(frozen=True)
class Link:
    """An inline link; ``value`` is the label text."""

    value: str
    url: str


Inline = Union[Text, CodeSpan, Emphasis, Link]


# Block nodes


@dataclass(frozen=True)
class Heading:
    """An ATX or setext heading."""

    level: int
    """Heading level, 1 to 6"""

    children: tuple[Inline, ...]
    """Inline content, in order"""

    line: int
    """1-indexed line where the heading starts"""

    anchor: Optional[str] = None
    """Identifier from a trailing ``{#anchor}`` attribute, if any"""

    @property
    def title(self) -> str:
        """
        Text used to name the samples below this heading.

        The first inline child decides: a link contributes its label,
        anything else its own text.
        """
        if not self.children:
            return ""
        return self.children[0].value.strip()

    @property
    def text(self) -> str:
        """Full plain text of the heading."""
        return "".join(child.value for child in self.children).strip()


@dataclass(frozen=True)
class AnnotationComment:
    """An HTML comment block with non-empty content."""

    text: str
    """Content with the comment delimiters removed, dedented and trimmed"""

    raw: str
    """Verbatim source of the comment block"""

    line: int


@dataclass(frozen=True)
class CodeBlock:
    """A fenced code block."""

    language: str
    """First word of the info string, empty if absent"""

    info: str
    """Full info string after the opening fence"""

    source: str
    """Verbatim inner text, without the fences"""

    line: int
    """1-indexed line of the opening fence"""

    end_line: int
    """1-indexed line of the closing fence"""


@dataclass(frozen=True)
class Paragraph:
    """A run of prose lines."""

    text: str
    line: int


@dataclass(frozen=True)
class BlockQuote:
    """A ``>`` block quote; its children form their own sibling list."""

    children: tuple["Node", ...]
    line: int


@dataclass(frozen=True)
class ListItem:
    """One list item; its children form their own sibling list."""

    children: tuple["Node", ...]


@dataclass(frozen=True)
class ListBlock:
    """A bullet or ordered list."""

    items: tuple[ListItem, ...]
    ordered: bool
    line: int


@dataclass(frozen=True)
class OpaqueBlock:
    """Any block the harness does not care about (HTML, tables, rules, indented code)."""

    kind: str
    raw: str
    line: int


Node = Union[Heading, AnnotationComment, CodeBlock, Paragraph, BlockQuote, ListBlock, OpaqueBlock]


@dataclass(frozen=True)
class Sample:
    """
    One fenced code block promoted to an executable test case.

    ``source`` is the complete unit handed to the executor: padding,
    bootstrap flags, header, instrumented body and footer. Its line
    numbers line up with the manuscript, so ``filename`` is the
    manuscript path itself.
    """

    language: str
    """Declared language of the code block"""

    header: str
    """Code prepended from the preceding annotation (may be empty)"""

    body: str
    """Verbatim code block content"""

    footer: str
    """Code appended from the following annotation (may be empty)"""

    chapter_title: str
    """Title of the nearest preceding heading, empty if there is none"""

    start_line: int
    """1-indexed line of the opening fence in the manuscript"""

    source: str
    """Assembled executable unit"""

    filename: str
    """Manuscript path used as the compiled code's file name"""

    @property
    def display_name(self) -> str:
        """Human-readable location of the sample, ``<file>:<line>``."""
        return f"{Path(self.filename).name}:{self.start_line}"


@dataclass(frozen=True)
class SampleResult:
    """Verdict for one executed sample."""

    name: str
    """Test name, ``<chapter title> <n>``"""

    error: Optional[BaseException] = None
    """The raised failure, None when the sample passed"""

    @property
    def passed(self) -> bool:
        """Whether the sample ran to completion."""
        return self.error is None
