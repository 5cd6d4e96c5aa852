"""Glob matching for package names, with ``/`` as a path separator.

``*`` and ``?`` stop at ``/`` so ``*`` selects unscoped names only and
``@scope/*`` selects one scope. ``**`` crosses ``/`` and selects everything.
"""

import re
from functools import lru_cache


@lru_cache(maxsize=256)
def _compile(pattern: str) -> "re.Pattern[str]":
    parts = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            end = pattern.find("]", i + 2)
            if end == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body.replace(chr(92), chr(92) * 2)}]")
                i = end + 1
                continue
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("".join(parts), re.DOTALL)


def glob_match(name: str, pattern: str) -> bool:
    """Return True if the whole of ``name`` matches ``pattern``."""
    return _compile(pattern).fullmatch(name) is not None
