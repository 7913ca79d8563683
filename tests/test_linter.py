"""Tests for the cross-reference linter."""

from pathlib import Path

from bookcheck.linter import (
    IssueKind,
    LinkIssue,
    collect_anchors,
    lint_documents,
    lint_manuscript,
    strip_fenced_code_blocks,
)
from bookcheck.types import Document


def doc(name: str, text: str) -> Document:
    return Document(Path(name), text)


SETUP = "{#setup}\n\n## Setting things up\n\nText.\n"


class TestAnchors:
    """Test collecting heading identifiers."""

    def test_anchor_with_blank_line(self) -> None:
        """Test an anchor separated from its heading by a blank line."""
        (anchor,) = collect_anchors(doc("a.md", "Intro\n\n" + SETUP))
        assert (anchor.id, anchor.title, anchor.line) == ("setup", "Setting things up", 3)

    def test_anchor_directly_above_heading(self) -> None:
        """Test an anchor on the line right above its heading."""
        (anchor,) = collect_anchors(doc("a.md", "{#intro}\n# Introduction\n"))
        assert anchor.title == "Introduction"

    def test_anchor_without_heading(self) -> None:
        """Test that an anchor above prose declares nothing."""
        assert collect_anchors(doc("a.md", "{#loose}\n\nJust text.\n")) == []

    def test_anchors_in_code_are_ignored(self) -> None:
        """Test that fenced examples of the syntax do not count."""
        text = "```markdown\n{#example}\n\n# Example\n```\n"
        assert collect_anchors(doc("a.md", text)) == []


class TestLint:
    """Test the link checks."""

    def test_valid_links(self) -> None:
        """Test a correct reference across documents."""
        documents = [doc("a.md", SETUP), doc("b.md", "See [Setting things up](#setup).\n")]
        assert lint_documents(documents) == []

    def test_missing_anchor(self) -> None:
        """Test a link to an undeclared identifier."""
        documents = [doc("a.md", SETUP), doc("b.md", "Title\n\nSee [Install](#install).\n")]
        (issue,) = lint_documents(documents)
        assert issue == LinkIssue(IssueKind.MISSING_ANCHOR, Path("b.md"), 3, "install", "Install")
        assert str(issue) == "b.md:3: chapter with anchor #install not found, linked as 'Install'"

    def test_label_mismatch(self) -> None:
        """Test a link whose label differs from the heading."""
        (issue,) = lint_documents([doc("a.md", SETUP + "\nSee [Setup](#setup).\n")])
        assert issue.kind == IssueKind.LABEL_MISMATCH
        assert issue.line == 7
        assert str(issue) == (
            "a.md:7: link label doesn't match chapter title #setup: "
            "chapter 'Setting things up' linked as 'Setup'"
        )

    def test_duplicate_anchor(self) -> None:
        """Test an identifier declared twice."""
        documents = [doc("a.md", SETUP), doc("b.md", "{#setup}\n\n# Setup again\n")]
        (issue,) = lint_documents(documents)
        assert issue.kind == IssueKind.DUPLICATE_ANCHOR
        assert (issue.path, issue.line) == (Path("b.md"), 1)
        assert str(issue) == "b.md:1: anchor #setup already exists, linked as 'Setup again'"

    def test_all_issues_are_reported(self) -> None:
        """Test that checking continues past the first issue."""
        text = SETUP + "\n[A](#a) and [B](#b)\n\n[Setup](#setup)\n"
        kinds = [issue.kind for issue in lint_documents([doc("a.md", text)])]
        assert kinds == [IssueKind.MISSING_ANCHOR, IssueKind.MISSING_ANCHOR, IssueKind.LABEL_MISMATCH]

    def test_links_in_code_are_ignored(self) -> None:
        """Test that links inside fenced code are not checked."""
        text = "~~~\n[Nowhere](#nowhere)\n~~~\n"
        assert lint_documents([doc("a.md", text)]) == []

    def test_external_links_are_ignored(self) -> None:
        """Test that only local links are checked."""
        assert lint_documents([doc("a.md", "[Docs](https://example.com/#x)\n")]) == []

    def test_strip_preserves_line_numbers(self) -> None:
        """Test that code content becomes empty lines."""
        text = "a\n```\nb\n```\nc\n"
        stripped = strip_fenced_code_blocks(text)
        assert stripped == "a\n\n\n\nc\n"


class TestLintManuscript:
    """Test linting directories."""

    def test_fixture_manuscript_is_clean(self, manuscript_dir: Path) -> None:
        """Test the bundled manuscript."""
        assert lint_manuscript(manuscript_dir) == []

    def test_ignored_documents(self, make_manuscript) -> None:
        """Test leaving documents out of the check."""
        directory = make_manuscript({
            "010_Intro.md": SETUP,
            "160_Footer.md": "[Missing](#missing)\n",
        })
        assert len(lint_manuscript(directory)) == 1
        assert lint_manuscript(directory, ignore_documents=["160_Footer.md"]) == []
