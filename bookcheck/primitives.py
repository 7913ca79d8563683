"""Assertion and display primitives injected into every sample's namespace.

Samples assert with ``test(condition)`` or the fluent ``expect(value)``
matchers. Plotting samples draw on matplotlib's pyplot, switched to the
headless Agg backend; ``clear_figures`` wipes the figures a sample left
behind so the next sample starts with an empty display.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import matplotlib

matplotlib.use("Agg")

from matplotlib import pyplot  # noqa: E402


def test(condition: Any, message: Optional[str] = None) -> None:
    """Fail the sample unless ``condition`` is truthy."""
    if not condition:
        raise AssertionError(message or f"test failed: {condition!r} is not truthy")


class Expectation:
    """Fluent matchers over a single value."""

    def __init__(self, actual: Any) -> None:
        self.actual = actual

    def _check(self, ok: bool, description: str) -> "Expectation":
        if not ok:
            raise AssertionError(f"expected {self.actual!r} {description}")
        return self

    def to_be(self, expected: Any) -> "Expectation":
        """Identity for singletons and small values, equality otherwise."""
        return self._check(self.actual is expected or self.actual == expected, f"to be {expected!r}")

    def to_equal(self, expected: Any) -> "Expectation":
        return self._check(self.actual == expected, f"to equal {expected!r}")

    def to_be_truthy(self) -> "Expectation":
        return self._check(bool(self.actual), "to be truthy")

    def to_be_falsy(self) -> "Expectation":
        return self._check(not self.actual, "to be falsy")

    def to_contain(self, item: Any) -> "Expectation":
        return self._check(item in self.actual, f"to contain {item!r}")

    def to_have_length(self, length: int) -> "Expectation":
        return self._check(len(self.actual) == length, f"to have length {length}")

    def to_raise(self, exc_type: type[BaseException] = Exception) -> "Expectation":
        """``actual`` must be a callable that raises ``exc_type`` when called."""
        call: Callable[[], Any] = self.actual
        try:
            call()
        except exc_type:
            return self
        raise AssertionError(f"expected {call!r} to raise {exc_type.__name__}")


def expect(actual: Any) -> Expectation:
    """Start a fluent assertion on ``actual``."""
    return Expectation(actual)


def clear_figures() -> None:
    """Close every open pyplot figure."""
    pyplot.close("all")
