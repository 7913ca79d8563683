"""Cross-reference linter for manuscript headings.

Chapters are given identifiers by an anchor line right above their heading::

    {#setup}

    ## Setting things up

and referenced from anywhere in the book as ``[Setting things up](#setup)``.

Checks:
  - every identifier is declared once across all documents
  - every ``(#identifier)`` link points to a declared identifier
  - the link label equals the heading's exact title

Content inside fenced code blocks is ignored. All issues are collected
before reporting, so one run shows every broken reference.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Iterable, Sequence, Union

from .loader import load_documents
from .types import Document

logger = logging.getLogger(__name__)

ANCHOR_RE = re.compile(r"^\{#(?P<id>[^}\s]+)\}[ \t]*\n(?:[ \t]*\n)?#{1,6}[ \t]+(?P<title>[^\n]+?)[ \t]*$", re.MULTILINE)
LINK_RE = re.compile(r"\[(?P<label>[^\]\n]*)\]\(#(?P<id>[^)\s]*)\)")


class IssueKind(IntEnum):
    """Kinds of broken cross-references."""

    DUPLICATE_ANCHOR = 0
    MISSING_ANCHOR = 1
    LABEL_MISMATCH = 2


@dataclass(frozen=True)
class Anchor:
    """A heading identifier declared in a document."""

    id: str
    title: str
    path: Path
    line: int


@dataclass(frozen=True)
class LinkIssue:
    """A broken cross-reference."""

    kind: IssueKind
    path: Path
    line: int
    anchor: str
    label: str = ""
    """Link label (or, for duplicates, the duplicate heading's title)"""

    title: str = ""
    """Title of the heading the identifier belongs to, if declared"""

    def __str__(self) -> str:
        location = f"{self.path}:{self.line}"
        if self.kind == IssueKind.DUPLICATE_ANCHOR:
            return f"{location}: anchor #{self.anchor} already exists, linked as '{self.label}'"
        if self.kind == IssueKind.MISSING_ANCHOR:
            return f"{location}: chapter with anchor #{self.anchor} not found, linked as '{self.label}'"
        return (
            f"{location}: link label doesn't match chapter title #{self.anchor}: "
            f"chapter '{self.title}' linked as '{self.label}'"
        )


def strip_fenced_code_blocks(content: str) -> str:
    """Replace fenced code block content with empty lines to preserve line numbers."""
    result: list[str] = []
    fence = ""
    for line in content.splitlines(keepends=True):
        stripped = line.strip()
        if not fence and stripped.startswith(("```", "~~~")):
            fence = stripped[:3]
            result.append("\n")
        elif fence:
            if stripped.startswith(fence) and not stripped.strip(fence[0]):
                fence = ""
            result.append("\n")
        else:
            result.append(line)
    return "".join(result)


def _line_of(content: str, offset: int) -> int:
    return content[:offset].count("\n") + 1


def collect_anchors(document: Document) -> list[Anchor]:
    """Heading identifiers declared in a document, in document order."""
    content = strip_fenced_code_blocks(document.text)
    return [
        Anchor(
            id=match.group("id"),
            title=match.group("title"),
            path=document.path,
            line=_line_of(content, match.start()),
        )
        for match in ANCHOR_RE.finditer(content)
    ]


def lint_documents(documents: Sequence[Document]) -> list[LinkIssue]:
    """
    Check every cross-reference in a set of documents.

    Returns:
        All issues found, duplicates first, then links in document order
    """
    issues: list[LinkIssue] = []
    anchors: dict[str, Anchor] = {}

    for document in documents:
        for anchor in collect_anchors(document):
            if anchor.id in anchors:
                issues.append(LinkIssue(
                    kind=IssueKind.DUPLICATE_ANCHOR,
                    path=anchor.path,
                    line=anchor.line,
                    anchor=anchor.id,
                    label=anchor.title,
                    title=anchors[anchor.id].title,
                ))
                continue
            anchors[anchor.id] = anchor

    for document in documents:
        logger.info("Checking links in %s", document.name)
        content = strip_fenced_code_blocks(document.text)
        for match in LINK_RE.finditer(content):
            label = match.group("label")
            anchor_id = match.group("id")
            line = _line_of(content, match.start())
            target = anchors.get(anchor_id)
            if target is None:
                issues.append(LinkIssue(IssueKind.MISSING_ANCHOR, document.path, line, anchor_id, label))
            elif label != target.title:
                issues.append(LinkIssue(
                    IssueKind.LABEL_MISMATCH, document.path, line, anchor_id, label, target.title
                ))

    return issues


def lint_manuscript(
    directory: Union[str, Path],
    pattern: str = "*.md",
    ignore_documents: Iterable[str] = (),
) -> list[LinkIssue]:
    """Load a manuscript directory and lint its cross-references."""
    documents = load_documents(directory, pattern, exclude=ignore_documents)
    logger.info("Read %d chapters", len(documents))
    return lint_documents(documents)
