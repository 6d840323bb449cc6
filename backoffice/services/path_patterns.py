"""Route pattern matching with single-segment wildcards.

A pattern such as ``/project/*/sales-control`` is split on ``/`` and compared
segment by segment with the request path. ``*`` stands for exactly one
non-empty segment; it never spans a ``/``. Matching is anchored at both ends.
"""

from typing import Iterable, List

WILDCARD = "*"


def split_path(path: str) -> List[str]:
    """Tokenize a path into its segments.

    A single trailing slash is ignored so ``/admin/`` and ``/admin`` are the
    same route. Empty inner segments are kept, so ``/a//b`` has three.
    """
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path.split("/")


def match_path(pattern: str, path: str) -> bool:
    """Return True if ``path`` matches ``pattern`` in full."""
    pattern_segments = split_path(pattern)
    path_segments = split_path(path)
    if len(pattern_segments) != len(path_segments):
        return False

    for expected, actual in zip(pattern_segments, path_segments):
        if expected == WILDCARD:
            if not actual:
                return False
        elif expected != actual:
            return False
    return True


def match_any(patterns: Iterable[str], path: str) -> bool:
    return any(match_path(pattern, path) for pattern in patterns)
