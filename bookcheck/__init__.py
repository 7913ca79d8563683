"""
bookcheck - executable code samples for Markdown books.

Extracts the code samples of a manuscript, runs each one as an isolated
test with line numbers that point back into the manuscript, and checks
the cross-references between chapters.
"""

__version__ = "0.1.0"

from dataclasses import replace
from typing import Union
from pathlib import Path

from .errors import (
    BookcheckError,
    ManuscriptNotFoundError,
    ManuscriptParseError,
    ConfigError,
    SampleError,
    SampleTranspileError,
)
from .types import (
    Document,
    Heading,
    AnnotationComment,
    CodeBlock,
    Sample,
    SampleResult,
)
from .config import Config, load_config
from .parser import parse, parse_document, walk_code_blocks
from .extractor import SampleExtractor
from .environment import EnvironmentTemplate, ExecutionContext
from .executor import SampleExecutor
from .harness import Harness, Report, TestNamer
from .linter import LinkIssue, IssueKind, lint_manuscript
from .stats import CodeStats, manuscript_stats


def check(manuscript: Union[str, Path] = "manuscript", config: Union[str, Path, None] = None) -> Report:
    """
    Run every code sample of a manuscript directory.

    Args:
        manuscript: Manuscript directory
        config: Configuration file; only its non-manuscript settings apply

    Returns:
        The run report

    Example:
        >>> import bookcheck
        >>> report = bookcheck.check("manuscript")
        >>> print(f"{len(report.failures)} of {len(report.results)} samples failed")
    """
    settings = load_config(config, root=Path(manuscript).parent)
    return Harness(replace(settings, manuscript="."), base=manuscript).run()


__all__ = [
    # Top-level functions
    "check",
    "load_config",
    "parse",
    "parse_document",
    "walk_code_blocks",
    "lint_manuscript",
    "manuscript_stats",
    # Main classes
    "Config",
    "Harness",
    "Report",
    "TestNamer",
    "SampleExtractor",
    "SampleExecutor",
    "EnvironmentTemplate",
    "ExecutionContext",
    # Errors
    "BookcheckError",
    "ManuscriptNotFoundError",
    "ManuscriptParseError",
    "ConfigError",
    "SampleError",
    "SampleTranspileError",
    # Manuscript types
    "Document",
    "Heading",
    "AnnotationComment",
    "CodeBlock",
    "Sample",
    "SampleResult",
    "LinkIssue",
    "IssueKind",
    "CodeStats",
]
