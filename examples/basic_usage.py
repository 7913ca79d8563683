#!/usr/bin/env python3
"""Basic usage examples for the bookcheck package."""

import sys
import tempfile
from pathlib import Path

import bookcheck
from bookcheck.convert import convert_manuscript


def run_samples(config: bookcheck.Config) -> bookcheck.Report:
    """Example: Run every code sample of the manuscript."""
    print("=" * 60)
    print("Example 1: Run Every Code Sample")
    print("=" * 60)

    # The manuscript directory is resolved against the working directory
    harness = bookcheck.Harness(config, base=Path.cwd())
    report = harness.run()

    for document in report.documents:
        print(f"{document.document}:")
        for result in document.results:
            status = "ok" if result.passed else f"FAILED ({result.error})"
            print(f"  {result.name}: {status}")

    print(f"\n{len(report.results)} samples, {len(report.failures)} failed")
    return report


def check_links(config: bookcheck.Config) -> list[bookcheck.LinkIssue]:
    """Example: Check cross-references between chapters."""
    print("\n" + "=" * 60)
    print("Example 2: Check Cross-References")
    print("=" * 60)

    issues = bookcheck.lint_manuscript(
        config.manuscript, ignore_documents=config.lint.ignore_documents
    )
    if issues:
        for issue in issues:
            print(f"  {issue}")
    else:
        print("All links point at existing chapters with matching titles")
    return issues


def code_statistics(config: bookcheck.Config) -> bookcheck.CodeStats:
    """Example: Count the code samples per language."""
    print("\n" + "=" * 60)
    print("Example 3: Code Statistics")
    print("=" * 60)

    stats = bookcheck.manuscript_stats(config.manuscript)
    print(stats)
    print()
    print(stats.by_language.to_string())
    return stats


def convert_for_publishing(config: bookcheck.Config) -> None:
    """Example: Convert the manuscript for the EPUB and PDF builds."""
    print("\n" + "=" * 60)
    print("Example 4: Convert to GitHub Flavored Markdown")
    print("=" * 60)

    with tempfile.TemporaryDirectory() as output:
        output_dir = Path(output)
        written = convert_manuscript(config.manuscript, output_dir / "epub", output_dir / "pdf")
        print(f"Wrote {len(written)} files")

        pdf = (output_dir / "pdf" / "020_Charts.md").read_text(encoding="utf-8")
        print(pdf.splitlines()[0])


def main() -> int:
    config = bookcheck.load_config("bookcheck.yaml")

    report = run_samples(config)
    issues = check_links(config)
    code_statistics(config)
    convert_for_publishing(config)

    return 0 if report.passed and not issues else 1


if __name__ == "__main__":
    sys.exit(main())
