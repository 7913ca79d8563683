"""The sample harness: loader, parser, extractor and executor composed into one run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .config import Config
from .environment import EnvironmentTemplate
from .executor import SampleExecutor
from .extractor import SampleExtractor
from .loader import load_documents
from .types import Document, Sample, SampleResult

logger = logging.getLogger(__name__)

# Name of the passing case emitted for a document without samples
PLACEHOLDER_NAME = "no samples"


class TestNamer:
    """
    Hands out test names of the form ``<title> <n>``.

    ``n`` counts how many times a title has been named so far. One namer
    lives as long as one run, so repeated titles keep counting across
    documents.
    """

    __test__ = False

    def __init__(self) -> None:
        self.counts: dict[str, int] = {}

    def name(self, title: str) -> str:
        """Name the next sample under ``title``."""
        self.counts[title] = self.counts.get(title, 0) + 1
        return f"{title} {self.counts[title]}"


@dataclass(frozen=True)
class SampleCase:
    """A named test case; the placeholder case has no sample."""

    name: str
    sample: Optional[Sample] = None

    @property
    def is_placeholder(self) -> bool:
        return self.sample is None


@dataclass(frozen=True)
class DocumentReport:
    """Results of the samples of one document."""

    document: str
    """Document file name"""

    results: tuple[SampleResult, ...]

    @property
    def failures(self) -> tuple[SampleResult, ...]:
        return tuple(result for result in self.results if not result.passed)


@dataclass(frozen=True)
class Report:
    """Results of a whole run, grouped by document."""

    documents: tuple[DocumentReport, ...]

    @property
    def results(self) -> tuple[SampleResult, ...]:
        return tuple(result for document in self.documents for result in document.results)

    @property
    def failures(self) -> tuple[SampleResult, ...]:
        return tuple(result for result in self.results if not result.passed)

    @property
    def passed(self) -> bool:
        return not self.failures


class Harness:
    """
    Drives a run over a manuscript directory.

    Owns the configuration, the extractor, the executor and the name
    counters. The execution environment is built on first use, since
    resolving its globals imports the libraries they name.

    Example:
        >>> harness = Harness(load_config(), base=".")
        >>> report = harness.run()
        >>> for failure in report.failures:
        ...     print(failure.name, failure.error)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        base: Union[str, Path, None] = None,
        environment: Optional[EnvironmentTemplate] = None,
    ) -> None:
        self.config = config or Config()
        self.base = Path(base) if base is not None else Path.cwd()
        self.extractor = SampleExtractor.from_config(self.config.samples)
        self.namer = TestNamer()
        self._environment = environment
        self._executor: Optional[SampleExecutor] = None

    @property
    def manuscript_dir(self) -> Path:
        return self.config.manuscript_path(self.base)

    @property
    def environment(self) -> EnvironmentTemplate:
        if self._environment is None:
            self._environment = EnvironmentTemplate.from_config(self.config.environment)
        return self._environment

    @property
    def executor(self) -> SampleExecutor:
        if self._executor is None:
            self._executor = SampleExecutor(self.environment)
        return self._executor

    def documents(self) -> list[Document]:
        """Load every manuscript document, in sorted order."""
        return load_documents(self.manuscript_dir, self.config.pattern)

    def cases(self, document: Document) -> list[SampleCase]:
        """
        Name the samples of a document.

        A document without samples yields a single placeholder case so
        that it still reports a passing result.

        Raises:
            ManuscriptParseError: If the document is malformed
        """
        samples = list(self.extractor.extract(document))
        logger.debug("%s: %d samples", document.name, len(samples))
        if not samples:
            return [SampleCase(PLACEHOLDER_NAME)]
        return [SampleCase(self.namer.name(sample.chapter_title), sample) for sample in samples]

    def run_document(self, document: Document) -> DocumentReport:
        """Run every sample of one document in document order."""
        results: list[SampleResult] = []
        for case in self.cases(document):
            if case.sample is None:
                results.append(SampleResult(name=case.name))
                continue
            result = self.executor.execute(case.sample, case.name)
            level = logging.INFO if result.passed else logging.WARNING
            logger.log(level, "%s › %s: %s", document.name, case.name, "ok" if result.passed else "FAILED")
            results.append(result)
        return DocumentReport(document=document.name, results=tuple(results))

    def run(self) -> Report:
        """
        Run every sample of every document.

        Raises:
            ManuscriptNotFoundError: If the manuscript directory is missing
            ManuscriptParseError: If any document is malformed
        """
        return Report(documents=tuple(self.run_document(document) for document in self.documents()))
