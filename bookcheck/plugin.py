"""pytest plugin that collects manuscript code samples as test items.

Enable it with ``-p bookcheck.plugin`` or in a ``conftest.py``::

    pytest_plugins = ["bookcheck.plugin"]

Every document directly inside the manuscript directory becomes a test
file named after the document, holding one item per sample named
``<chapter title> <n>``. A document without samples holds one passing
``no samples`` item. A malformed document is a collection error, which
stops the run.

Each pytest process (including every xdist worker) keeps its own name
counters, so names are stable per process only.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Iterator, Optional, Union

import pytest

from .config import Config, load_config
from .errors import ConfigError, ManuscriptParseError
from .executor import format_failure
from .harness import Harness
from .loader import load_document
from .types import Sample

harness_key = pytest.StashKey[Harness]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("bookcheck", "manuscript code samples")
    group.addoption(
        "--manuscript",
        dest="bookcheck_manuscript",
        default=None,
        help="manuscript directory whose code samples are collected",
    )
    group.addoption(
        "--bookcheck-config",
        dest="bookcheck_config",
        default=None,
        help="bookcheck YAML configuration file",
    )
    parser.addini("bookcheck_manuscript", "manuscript directory, relative to the rootdir", default="")
    parser.addini("bookcheck_config", "bookcheck configuration file, relative to the rootdir", default="")


def pytest_configure(config: pytest.Config) -> None:
    root = config.rootpath
    config_path: Optional[Path] = None
    option = config.getoption("bookcheck_config")
    if option:
        config_path = Path(option).resolve()
    elif config.getini("bookcheck_config"):
        config_path = root / config.getini("bookcheck_config")

    try:
        settings = load_config(config_path, root=root)
    except ConfigError as e:
        raise pytest.UsageError(str(e)) from e

    base = config_path.parent if config_path is not None else root
    manuscript = config.getoption("bookcheck_manuscript")
    if manuscript:
        base = Path(manuscript).resolve()
        settings = _with_manuscript(settings, ".")
    elif config.getini("bookcheck_manuscript"):
        base = root
        settings = _with_manuscript(settings, config.getini("bookcheck_manuscript"))

    config.stash[harness_key] = Harness(settings, base=base)


def _with_manuscript(settings: Config, manuscript: str) -> Config:
    return replace(settings, manuscript=manuscript)


def pytest_report_header(config: pytest.Config) -> str:
    harness = config.stash[harness_key]
    return f"bookcheck: manuscript {harness.manuscript_dir}"


def pytest_collect_file(file_path: Path, parent: pytest.Collector) -> Optional["ManuscriptFile"]:
    harness = parent.config.stash.get(harness_key, None)
    if harness is None:
        return None
    if file_path.parent.resolve() != harness.manuscript_dir.resolve():
        return None
    if not file_path.match(harness.config.pattern):
        return None
    return ManuscriptFile.from_parent(parent, path=file_path)


class ManuscriptFile(pytest.File):
    """One manuscript document; its items are its samples."""

    def collect(self) -> Iterator[Union["SampleItem", "EmptyManuscriptItem"]]:
        harness = self.config.stash[harness_key]
        document = load_document(self.path)
        for case in harness.cases(document):
            if case.sample is None:
                yield EmptyManuscriptItem.from_parent(self, name=case.name)
            else:
                yield SampleItem.from_parent(self, name=case.name, sample=case.sample)

    def repr_failure(self, excinfo: pytest.ExceptionInfo[BaseException]) -> Any:
        if isinstance(excinfo.value, ManuscriptParseError):
            return f"malformed manuscript: {excinfo.value}"
        return super().repr_failure(excinfo)


class SampleItem(pytest.Item):
    """A single code sample executed as a test."""

    def __init__(self, *, sample: Sample, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.sample = sample

    def runtest(self) -> None:
        self.config.stash[harness_key].executor.run(self.sample)

    def repr_failure(self, excinfo: pytest.ExceptionInfo[BaseException], style: Any = None) -> str:
        return format_failure(self.sample.filename, excinfo.value)

    def reportinfo(self) -> tuple[Path, int, str]:
        return self.path, self.sample.start_line - 1, f"{self.name} ({self.sample.display_name})"


class EmptyManuscriptItem(pytest.Item):
    """Passing stand-in for a document without samples."""

    def runtest(self) -> None:
        pass

    def reportinfo(self) -> tuple[Path, int, str]:
        return self.path, 0, self.name
