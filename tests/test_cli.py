"""Tests for the command line interface."""

import logging

import pytest
from pathlib import Path
from typing import Iterator

from bookcheck import __version__, cli

BROKEN_LINKS = "{#intro}\n\n# Introduction\n\nSee [Nowhere](#nowhere).\n"


@pytest.fixture(autouse=True)
def reset_logger() -> Iterator[None]:
    """Drop the handlers the CLI installs."""
    yield
    logger = logging.getLogger("bookcheck")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def project(tmp_path: Path, manuscript_dir: Path) -> Path:
    """A configuration file pointing at the bundled manuscript."""
    config = tmp_path / "bookcheck.yaml"
    config.write_text(f"manuscript: {manuscript_dir.as_posix()}\n", encoding="utf-8")
    return config


class TestParser:
    """Test argument parsing."""

    def test_command_is_required(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that running without a command is a usage error."""
        with pytest.raises(SystemExit) as excinfo:
            cli.main([])
        assert excinfo.value.code == 2

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test the version flag."""
        with pytest.raises(SystemExit):
            cli.main(["--version"])
        assert __version__ in capsys.readouterr().out

    def test_pytest_arguments(self) -> None:
        """Test passing extra arguments through to pytest."""
        args = cli.build_parser().parse_args(["test", "--", "-x", "-k", "Setup"])
        assert args.pytest_args == ["-x", "-k", "Setup"]


class TestCommands:
    """Test each command."""

    def test_run(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test running every sample without pytest."""
        assert cli.main(["--config", str(project), "run"]) == 0
        assert capsys.readouterr().out.strip() == "6 passed, 0 failed"

    def test_run_failure(self, tmp_path: Path, make_manuscript, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that failing samples are listed and fail the command."""
        make_manuscript({"ch.md": "# Broken\n\n```python\nraise ValueError('boom')\n```\n"})
        (tmp_path / "bookcheck.yaml").write_text("manuscript: manuscript\n", encoding="utf-8")
        assert cli.main(["--config", str(tmp_path / "bookcheck.yaml"), "run"]) == 1
        captured = capsys.readouterr()
        assert "FAILED ch.md::Broken 1" in captured.err
        assert "0 passed, 1 failed" in captured.out

    def test_lint(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test linting a clean manuscript."""
        assert cli.main(["--config", str(project), "lint"]) == 0
        assert "Cross-reference check passed." in capsys.readouterr().out

    def test_lint_issues(self, tmp_path: Path, make_manuscript, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that broken references fail the command."""
        make_manuscript({"010_Intro.md": BROKEN_LINKS})
        (tmp_path / "bookcheck.yaml").write_text("manuscript: manuscript\n", encoding="utf-8")
        assert cli.main(["--config", str(tmp_path / "bookcheck.yaml"), "lint"]) == 1
        err = capsys.readouterr().err
        assert "Found 1 broken cross-reference(s)" in err
        assert "010_Intro.md:5: chapter with anchor #nowhere not found, linked as 'Nowhere'" in err

    def test_stats(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test printing the code statistics."""
        assert cli.main(["--config", str(project), "stats", "--by-language"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("Number of code examples: 7\nNumber of lines of code: 14\n")
        assert "pycon" in out

    def test_convert(self, project: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test writing the converted manuscript."""
        assert cli.main(["--config", str(project), "convert", "--epub-dir", "epub", "--pdf-dir", "pdf"]) == 0
        assert capsys.readouterr().out.strip() == "Wrote 8 file(s)"
        assert (tmp_path / "pdf" / "010_Intro.md").is_file()

    def test_test_runs_pytest_with_the_plugin(
        self, project: Path, manuscript_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the arguments handed to pytest."""
        calls = []
        monkeypatch.setattr(cli.pytest, "main", lambda args: calls.append(args) or 0)
        assert cli.main(["--config", str(project), "test", "--", "-x"]) == 0
        (args,) = calls
        assert args[:2] == ["-p", "bookcheck.plugin"]
        assert args[args.index("--manuscript") + 1] == str(manuscript_dir)
        assert args[args.index("--bookcheck-config") + 1] == str(project.resolve())
        assert args[-2:] == [str(manuscript_dir), "-x"]


class TestErrors:
    """Test error reporting."""

    def test_missing_manuscript(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a missing manuscript exits with 2."""
        (tmp_path / "bookcheck.yaml").write_text("manuscript: nowhere\n", encoding="utf-8")
        assert cli.main(["--config", str(tmp_path / "bookcheck.yaml"), "lint"]) == 2
        assert "manuscript directory not found" in capsys.readouterr().err

    def test_invalid_configuration(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a bad configuration exits with 2."""
        (tmp_path / "bookcheck.yaml").write_text("manuscirpt: book\n", encoding="utf-8")
        assert cli.main(["--config", str(tmp_path / "bookcheck.yaml"), "stats"]) == 2
        assert "invalid configuration" in capsys.readouterr().err

    def test_malformed_document(self, tmp_path: Path, make_manuscript, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a parse error exits with 2."""
        make_manuscript({"ch.md": "```python\n"})
        (tmp_path / "bookcheck.yaml").write_text("manuscript: manuscript\n", encoding="utf-8")
        assert cli.main(["--config", str(tmp_path / "bookcheck.yaml"), "run"]) == 2
        assert "unterminated code fence" in capsys.readouterr().err
