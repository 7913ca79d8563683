"""Sandboxed execution of sample units.

Every sample is compiled on its own and evaluated in a fresh
``ExecutionContext``. Units that use top-level ``await`` are driven to
completion on a new event loop before the verdict is taken.
"""

from __future__ import annotations

import asyncio
import logging
import traceback
from pathlib import Path
from typing import Optional

from .environment import EnvironmentTemplate
from .errors import SampleTranspileError
from .transpile import is_async, transpile
from .types import Sample, SampleResult

logger = logging.getLogger(__name__)


class SampleExecutor:
    """Runs sample units against an environment template."""

    def __init__(self, environment: EnvironmentTemplate) -> None:
        self.environment = environment

    def run_source(
        self,
        source: str,
        filename: str,
        language: str,
        display_name: Optional[str] = None,
    ) -> None:
        """
        Compile and run a unit, raising whatever the unit raises.

        ``SystemExit`` with a zero or empty code counts as a normal finish.

        Raises:
            SampleTranspileError: If the unit does not compile
            Exception: Anything the unit itself raises
        """
        code = transpile(source, filename, language, display_name)
        with self.environment.new_context(filename) as context:
            try:
                result = eval(code, context.namespace)
                if is_async(code):
                    asyncio.run(result)
            except SystemExit as e:
                if e.code not in (None, 0):
                    raise

    def run(self, sample: Sample) -> None:
        """Run a sample, raising its failure."""
        self.run_source(sample.source, sample.filename, sample.language, sample.display_name)

    def execute(self, sample: Sample, name: str) -> SampleResult:
        """
        Run a sample and capture the verdict instead of raising.

        Args:
            sample: The sample to run
            name: Test name recorded in the result

        Returns:
            A passing result, or a failing one carrying the raised error
        """
        try:
            self.run(sample)
        except (Exception, SystemExit) as e:
            logger.debug("Sample %s (%s) failed: %r", name, sample.display_name, e)
            return SampleResult(name=name, error=e)
        return SampleResult(name=name)


def format_failure(filename: str, error: BaseException) -> str:
    """
    Render a sample failure for humans.

    Transpile errors are shown as their message. Runtime errors show the
    traceback from the first manuscript frame on, so harness frames are
    hidden and source lines come from the manuscript, headed by the
    ``<file>:<line>`` where the error surfaced.
    """
    if isinstance(error, SampleTranspileError):
        return str(error)

    frames = traceback.extract_tb(error.__traceback__)
    for i, frame in enumerate(frames):
        if frame.filename == filename:
            frames = frames[i:]
            break

    manuscript_lines = [frame.lineno for frame in frames if frame.filename == filename]
    location = Path(filename).name
    if manuscript_lines:
        location = f"{location}:{manuscript_lines[-1]}"

    parts = [f"{location}: {type(error).__name__}: {error}\n"]
    if frames:
        parts.append("Traceback (most recent call last):\n")
        parts.extend(traceback.format_list(frames))
    parts.extend(traceback.format_exception_only(type(error), error))
    return "".join(parts)
