"""Loading manuscript documents from disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Union

from .errors import ManuscriptNotFoundError
from .types import Document

logger = logging.getLogger(__name__)


def load_document(path: Union[str, Path]) -> Document:
    """Read a single manuscript file."""
    path = Path(path)
    return Document(path=path, text=path.read_text(encoding="utf-8"))


def find_documents(
    directory: Union[str, Path],
    pattern: str = "*.md",
    exclude: Iterable[str] = (),
) -> list[Path]:
    """
    List the manuscript files of a directory in sorted order.

    Args:
        directory: Manuscript directory
        pattern: Glob pattern for document files
        exclude: File names to leave out

    Returns:
        Sorted list of matching file paths

    Raises:
        ManuscriptNotFoundError: If the directory does not exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ManuscriptNotFoundError("manuscript directory not found", directory)

    excluded = set(exclude)
    return sorted(
        path for path in directory.glob(pattern)
        if path.is_file() and path.name not in excluded
    )


def load_documents(
    directory: Union[str, Path],
    pattern: str = "*.md",
    exclude: Iterable[str] = (),
) -> list[Document]:
    """Load every manuscript file of a directory, in sorted order."""
    paths = find_documents(directory, pattern, exclude)
    logger.debug("Found %d documents in %s", len(paths), directory)
    return [load_document(path) for path in paths]
