"""Source instrumentation for branches whose body is only a prose comment.

Book samples often sketch a branch like this::

    if user.is_admin:
        # the admin panel is shown

which does not compile. Each such body gets a flag assignment on the
comment's own line, ``_1 = True  # the admin panel is shown``, so the
sample runs unchanged, its line numbers stay put, and a footer can
assert which branch was taken.
"""

from __future__ import annotations

import re

FLAG_COUNT = 5

# Process-wide flag declarations placed ahead of every sample
BOOTSTRAP = tuple(f"_{n} = False" for n in range(1, FLAG_COUNT + 1))

_BRANCH_RE = re.compile(r"^(?P<indent>[ \t]*)(?:(?:if|elif)\b.*|else[ \t]*):[ \t]*(?:#.*)?$")
_COMMENT_RE = re.compile(r"^(?P<indent>[ \t]*)#")


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip())


def flag_name(index: int) -> str:
    """Name of the n-th branch flag (1-based)."""
    return f"_{index}"


def instrument(source: str) -> str:
    """
    Rewrite comment-only branch bodies to also set a numbered flag.

    Args:
        source: Sample body

    Returns:
        The body with ``_N = True`` prepended to every lone comment that
        forms the whole body of an ``if``/``elif``/``else``. N counts from
        1 in source order and stops at FLAG_COUNT, the flags the bootstrap
        declares; later comment-only bodies are left as written. The
        number of lines never changes.
    """
    lines = source.split("\n")
    flag = 0
    for i, line in enumerate(lines):
        if flag == FLAG_COUNT:
            break
        branch = _BRANCH_RE.match(line)
        if branch is None or i + 1 >= len(lines):
            continue

        comment = _COMMENT_RE.match(lines[i + 1])
        if comment is None:
            continue
        branch_indent = len(branch.group("indent"))
        if len(comment.group("indent")) <= branch_indent:
            continue

        # The comment must be the body's only line
        following = next((rest for rest in lines[i + 2:] if rest.strip()), None)
        if following is not None and _indent_width(following) > branch_indent:
            continue

        flag += 1
        lines[i + 1] = f"{comment.group('indent')}{flag_name(flag)} = True  {lines[i + 1].lstrip()}"
    return "\n".join(lines)
