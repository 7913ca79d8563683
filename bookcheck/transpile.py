"""Turning assembled sample units into code objects, per declared language."""

from __future__ import annotations

import __future__
import ast
import inspect
import re
from types import CodeType
from typing import Callable, Optional

from .errors import SampleTranspileError

NATIVE_LANGUAGES = frozenset({"python", "py", "python3"})

_PROMPT_RE = re.compile(r"^[ \t]*(?P<prompt>>>>|\.\.\.)(?: |$)")


def pycon_to_python(source: str) -> str:
    """
    Convert an interactive-session transcript to a plain script, line for line.

    Prompts (``>>>`` and ``...``) are stripped and the echoed output
    that follows a prompt is blanked out. Lines outside a session, such
    as the bootstrap declarations or a header, pass through unchanged. A
    blank line ends the session.
    """
    converted: list[str] = []
    in_session = False
    for line in source.split("\n"):
        match = _PROMPT_RE.match(line)
        if match and (match.group("prompt") == ">>>" or in_session):
            converted.append(line[match.end():])
            in_session = True
        elif in_session and line.strip():
            converted.append("")
        else:
            if not line.strip():
                in_session = False
            converted.append(line)
    return "\n".join(converted)


_CONVERTERS: dict[str, Callable[[str], str]] = {
    "pycon": pycon_to_python,
}

SUPPORTED_LANGUAGES = NATIVE_LANGUAGES | frozenset(_CONVERTERS)


def convert_dialect(source: str, language: str) -> str:
    """Plain Python for a sample body in ``language``; other languages pass through."""
    converter = _CONVERTERS.get(language)
    return converter(source) if converter is not None else source


def hoist_future_imports(tree: ast.Module, display_name: str) -> int:
    """
    Remove module-level ``from __future__`` imports from ``tree``.

    The bootstrap declarations and the header sit above a sample body, so
    its future imports can never come first. They become compiler flags
    instead.

    Returns:
        The combined compiler flags of the imported features

    Raises:
        SampleTranspileError: If a feature is unknown
    """
    flags = 0
    body = []
    for statement in tree.body:
        if isinstance(statement, ast.ImportFrom) and statement.module == "__future__":
            for alias in statement.names:
                if alias.name not in __future__.all_feature_names:
                    raise SampleTranspileError(
                        f"future feature {alias.name!r} is not defined (line {statement.lineno})", display_name
                    )
                flags |= getattr(__future__, alias.name).compiler_flag
        else:
            body.append(statement)
    tree.body = body
    return flags


def transpile(
    source: str,
    filename: str,
    language: str,
    display_name: Optional[str] = None,
) -> CodeType:
    """
    Compile a sample unit into a code object.

    Top-level ``await`` is allowed; such units compile to a code object
    that evaluates to a coroutine (see ``is_async``). ``from __future__``
    imports may appear anywhere at module level.

    Args:
        source: Assembled unit
        filename: File name recorded in the code object (the manuscript path)
        language: Declared language of the sample
        display_name: Name used in error messages, defaults to ``filename``

    Returns:
        A code object ready for ``eval``

    Raises:
        SampleTranspileError: If the language is unsupported or the
            source does not compile
    """
    display_name = display_name or filename
    if language not in SUPPORTED_LANGUAGES:
        raise SampleTranspileError(f"no transpiler for language {language!r}", display_name)
    source = convert_dialect(source, language)

    try:
        tree = compile(
            source,
            filename,
            "exec",
            flags=ast.PyCF_ONLY_AST | ast.PyCF_ALLOW_TOP_LEVEL_AWAIT,
            dont_inherit=True,
        )
        future_flags = hoist_future_imports(tree, display_name)
        return compile(
            tree,
            filename,
            "exec",
            flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT | future_flags,
            dont_inherit=True,
        )
    except (SyntaxError, ValueError) as e:
        raise SampleTranspileError(f"{type(e).__name__}: {e}", display_name) from e


def is_async(code: CodeType) -> bool:
    """Whether evaluating ``code`` produces a coroutine that must be awaited."""
    return bool(code.co_flags & inspect.CO_COROUTINE)
