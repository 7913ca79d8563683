"""Pytest configuration and shared fixtures."""

import pytest
from pathlib import Path
from typing import Callable, Mapping

from bookcheck.config import EnvironmentConfig
from bookcheck.environment import EnvironmentTemplate
from bookcheck.executor import SampleExecutor

pytest_plugins = ["pytester"]


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def manuscript_dir(fixtures_dir: Path) -> Path:
    """Return the path to the sample manuscript, every sample of which passes."""
    return fixtures_dir / "manuscript"


@pytest.fixture
def make_manuscript(tmp_path: Path) -> Callable[[Mapping[str, str]], Path]:
    """Write documents into a fresh manuscript directory and return it."""

    def make(documents: Mapping[str, str]) -> Path:
        directory = tmp_path / "manuscript"
        directory.mkdir(exist_ok=True)
        for name, text in documents.items():
            (directory / name).write_text(text, encoding="utf-8")
        return directory

    return make


@pytest.fixture(scope="session")
def environment() -> EnvironmentTemplate:
    """The default execution environment."""
    return EnvironmentTemplate.from_config(EnvironmentConfig())


@pytest.fixture
def executor(environment: EnvironmentTemplate) -> SampleExecutor:
    """An executor over the default environment."""
    return SampleExecutor(environment)
