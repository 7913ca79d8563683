"""Convert the Markua dialect used by the manuscript to GitHub Flavored Markdown.

The EPUB variant gets GFM alerts and trailing heading anchors; the PDF
variant additionally swaps SVG images for PNG ones and italicizes local
links, since they are not otherwise visible on paper.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Sequence, Union

from .loader import load_documents

logger = logging.getLogger(__name__)

TIPS = {
    "I>": "NOTE",
    "W>": "WARNING",
    "E>": "CAUTION",
    "T>": "TIP",
}

_TIP_START_RE = re.compile(r"\n\n([EITW]>) ")
_TIP_CONTINUATION_RE = re.compile(r"\n[EITW]>")
_ANCHOR_RE = re.compile(r"\{#([\w-]+)\}\n\n(#+\s*[^\n]+)")
_LOCAL_LINK_RE = re.compile(r"\[([^\]]+)\]\((#[\w-]+)\)")


def update_tips(text: str) -> str:
    """
    Turn Markua tips into GFM alerts.

    ``I> Tacocat`` becomes ``> [!NOTE]`` followed by ``> Tacocat``.
    """
    text = _TIP_START_RE.sub(lambda m: f"\n\n> [!{TIPS[m.group(1)]}]\n> ", text)
    return _TIP_CONTINUATION_RE.sub("\n>", text)


def update_anchors(text: str) -> str:
    """``{#pizza}`` above ``# Heading`` becomes ``# Heading {#pizza}``."""
    return _ANCHOR_RE.sub(lambda m: f"{m.group(2)} {{#{m.group(1)}}}", text)


def update_images(text: str) -> str:
    """Reference PNG renditions instead of SVG images."""
    return text.replace(".svg", ".png")


def update_links(text: str) -> str:
    """Italicize local links."""
    return _LOCAL_LINK_RE.sub(lambda m: f"[_{m.group(1)}_]({m.group(2)})", text)


EPUB_STEPS: tuple[Callable[[str], str], ...] = (update_anchors, update_tips)
PDF_STEPS: tuple[Callable[[str], str], ...] = EPUB_STEPS + (update_images, update_links)


def _apply(text: str, steps: Sequence[Callable[[str], str]]) -> str:
    for step in steps:
        text = step(text)
    return text


def to_epub(text: str) -> str:
    """Markua to GFM for the EPUB build."""
    return _apply(text, EPUB_STEPS)


def to_pdf(text: str) -> str:
    """Markua to GFM for the PDF build."""
    return _apply(text, PDF_STEPS)


def convert_manuscript(
    source: Union[str, Path],
    epub_dir: Union[str, Path],
    pdf_dir: Union[str, Path],
    pattern: str = "*.md",
) -> list[Path]:
    """
    Write EPUB and PDF variants of every manuscript document.

    Output files keep their names; missing output directories are created.

    Returns:
        Paths of the written files
    """
    epub_dir = Path(epub_dir)
    pdf_dir = Path(pdf_dir)
    epub_dir.mkdir(parents=True, exist_ok=True)
    pdf_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for document in load_documents(source, pattern):
        logger.info("Converting %s", document.path)
        for target, convert in ((epub_dir, to_epub), (pdf_dir, to_pdf)):
            output = target / document.name
            output.write_text(convert(document.text), encoding="utf-8")
            written.append(output)
    return written
