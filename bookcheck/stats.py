"""Code sample statistics for a manuscript.

Counts every fenced code block in the book, whatever its language, and
the lines of code inside them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Union

import numpy as np
import pandas as pd

from .loader import load_documents
from .parser import parse_document, walk_code_blocks
from .types import Document

COLUMNS = ["document", "language", "line", "lines"]


def count_code_lines(source: str) -> int:
    """Lines inside a code block (an empty block has none)."""
    return len(source.split("\n")) if source else 0


def code_blocks_frame(documents: Sequence[Document]) -> pd.DataFrame:
    """
    One row per fenced code block.

    Columns: ``document`` (file name), ``language`` (empty when the
    fence has no info string), ``line`` (opening fence) and ``lines``
    (lines of code).
    """
    rows = [
        (document.name, site.block.language, site.block.line, count_code_lines(site.block.source))
        for document in documents
        for site in walk_code_blocks(parse_document(document))
    ]
    frame = pd.DataFrame(rows, columns=COLUMNS)
    return frame.astype({"line": np.int64, "lines": np.int64})


@dataclass(frozen=True)
class CodeStats:
    """Summary of the code samples in a manuscript."""

    examples: int
    """Number of code blocks"""

    lines: int
    """Total lines of code"""

    by_language: pd.DataFrame
    """``examples`` and ``lines`` per language, largest first"""

    by_document: pd.DataFrame
    """``examples`` and ``lines`` per document, in document order"""

    def __str__(self) -> str:
        return f"Number of code examples: {self.examples}\nNumber of lines of code: {self.lines}"


def _breakdown(frame: pd.DataFrame, key: str, sort: bool) -> pd.DataFrame:
    grouped = frame.groupby(key, sort=sort)["lines"].agg(examples="count", lines="sum")
    return grouped.astype(np.int64)


def summarize(frame: pd.DataFrame) -> CodeStats:
    """Summarize a frame built by ``code_blocks_frame``."""
    by_language = _breakdown(frame, "language", sort=True).sort_values(
        ["examples", "lines"], ascending=False, kind="stable"
    )
    return CodeStats(
        examples=int(len(frame)),
        lines=int(frame["lines"].sum()),
        by_language=by_language,
        by_document=_breakdown(frame, "document", sort=False),
    )


def manuscript_stats(directory: Union[str, Path], pattern: str = "*.md") -> CodeStats:
    """Count the code samples of a manuscript directory."""
    return summarize(code_blocks_frame(load_documents(directory, pattern)))
