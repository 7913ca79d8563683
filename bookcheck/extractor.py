"""Sample extraction: from parsed manuscript nodes to executable source units.

Annotations are HTML comments adjacent to a code block::

    <!-- from datetime import date -->
    <!-- prettier-ignore -->
    ```python
    print(date.today())
    ```
    <!-- assert _1 -->

The comment before the block is its header, the comment after it is its
footer. Comments on the ignore-list (style-tool directives) are walked
over, never used. A header equal to the skip marker drops the block.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Iterator, Sequence

from .instrument import BOOTSTRAP, instrument
from .parser import CodeBlockSite, parse_document, walk_code_blocks
from .transpile import convert_dialect
from .types import AnnotationComment, Document, Heading, Node, Sample

if TYPE_CHECKING:
    from .config import SampleConfig

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES = ("python", "py", "python3", "pycon")

DEFAULT_IGNORE = (
    "prettier-ignore",
    "textlint-disable",
    "textlint-enable",
    "markdownlint-disable",
    "markdownlint-enable",
    "fmt: off",
    "fmt: on",
    "noqa",
)

SKIP_MARKER = "test-skip"

# Blank lines the "\n\n" joins add ahead of the body, plus the fence line itself
LINE_OFFSET = 4


def _resolve_annotation(
    siblings: Sequence[Node], indices: Iterable[int], ignore: frozenset[str]
) -> str:
    for i in indices:
        node = siblings[i]
        if not isinstance(node, AnnotationComment):
            return ""
        if node.text in ignore:
            continue
        return node.text
    return ""


def resolve_header(siblings: Sequence[Node], index: int, ignore: Iterable[str] = DEFAULT_IGNORE) -> str:
    """Code from the nearest preceding annotation that is not on the ignore-list."""
    return _resolve_annotation(siblings, range(index - 1, -1, -1), frozenset(ignore))


def resolve_footer(siblings: Sequence[Node], index: int, ignore: Iterable[str] = DEFAULT_IGNORE) -> str:
    """Code from the nearest following annotation that is not on the ignore-list."""
    return _resolve_annotation(siblings, range(index + 1, len(siblings)), frozenset(ignore))


def find_chapter_title(
    siblings: Sequence[Node],
    index: int,
    outer: Sequence[tuple[Sequence[Node], int]] = (),
) -> str:
    """
    Title of the nearest heading before ``index``, or ``""`` if there is none.

    For a block inside a quote or list item, the search continues before
    each enclosing container, innermost first.
    """
    for nodes, position in [(siblings, index), *outer]:
        for node in reversed(nodes[:position]):
            if isinstance(node, Heading):
                return node.title
    return ""


def count_lines(text: str) -> int:
    """Number of lines ``text`` takes up when joined into a unit (at least one)."""
    return len(text.split("\n"))


def padding_lines(start_line: int, header: str) -> int:
    """
    Blank lines to put ahead of a unit so its body runs at manuscript line numbers.

    The body of a code block starting at ``start_line`` must land on
    line ``start_line + 1`` after the bootstrap declarations and the
    header have been placed above it. Blocks too close to the top of a
    document cannot be aligned and get no padding.
    """
    return max(0, start_line - len(BOOTSTRAP) - count_lines(header) - LINE_OFFSET)


def assemble(start_line: int, header: str, body: str, footer: str, language: str = "python") -> str:
    """
    Build the executable unit: padding, bootstrap, header, instrumented body, footer.

    A body in a dialect such as ``pycon`` is converted to plain Python
    before the branches are instrumented.
    """
    return "\n\n".join([
        "\n" * padding_lines(start_line, header),
        "\n".join(BOOTSTRAP),
        header,
        instrument(convert_dialect(body, language)),
        footer,
    ])


class SampleExtractor:
    """
    Turns the code blocks of a document into ``Sample`` objects.

    Only blocks whose language is recognized become samples; a block
    whose header is the skip marker is dropped.
    """

    def __init__(
        self,
        languages: Iterable[str] = DEFAULT_LANGUAGES,
        ignore: Iterable[str] = DEFAULT_IGNORE,
        skip_marker: str = SKIP_MARKER,
    ) -> None:
        self.languages = frozenset(languages)
        self.ignore = frozenset(ignore)
        self.skip_marker = skip_marker

    @classmethod
    def from_config(cls, config: "SampleConfig") -> "SampleExtractor":
        """Create an extractor from the ``samples`` configuration section."""
        return cls(config.languages, config.ignore, config.skip_marker)

    def extract(self, document: Document) -> Iterator[Sample]:
        """
        Yield the samples of a document in document order.

        Each call parses the document again, so the result can be
        iterated afresh.

        Raises:
            ManuscriptParseError: If the document is malformed
        """
        nodes = parse_document(document)
        yield from self.extract_nodes(nodes, str(document.path))

    def extract_nodes(self, nodes: Sequence[Node], filename: str) -> Iterator[Sample]:
        """Yield the samples found in an already parsed sibling list."""
        for site in walk_code_blocks(nodes):
            sample = self._sample(site, filename)
            if sample is not None:
                yield sample

    def _sample(self, site: CodeBlockSite, filename: str) -> Sample | None:
        block, siblings, index = site.block, site.siblings, site.index
        if block.language not in self.languages:
            return None

        header = _resolve_annotation(siblings, range(index - 1, -1, -1), self.ignore)
        if header == self.skip_marker:
            logger.debug("Skipping sample at %s:%d", filename, block.line)
            return None
        footer = _resolve_annotation(siblings, range(index + 1, len(siblings)), self.ignore)

        return Sample(
            language=block.language,
            header=header,
            body=block.source,
            footer=footer,
            chapter_title=find_chapter_title(siblings, index, site.outer),
            start_line=block.line,
            source=assemble(block.line, header, block.source, footer, block.language),
            filename=filename,
        )
