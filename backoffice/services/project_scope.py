"""Project-scope parsing and authorization.

Users carry their scope as a raw string: comma-separated project ids, or the
``*`` wildcard for every project. The string is parsed once into a typed
scope so callers never inspect it inline.

A normalized user/project membership table would remove this parsing
altogether; the string form is kept for compatibility with stored data.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Union

ALL_PROJECTS_TOKEN = "*"


@dataclass(frozen=True)
class AllProjects:
    """Scope granting every project."""

    def contains(self, project_id) -> bool:
        return True


@dataclass(frozen=True)
class SpecificProjects:
    """Scope granting an explicit set of project ids (as strings)."""

    project_ids: FrozenSet[str] = field(default_factory=frozenset)

    def contains(self, project_id) -> bool:
        return str(project_id).strip() in self.project_ids


ProjectScope = Union[AllProjects, SpecificProjects]


def parse_project_scope(raw: Optional[str]) -> ProjectScope:
    """Parse a raw scope string.

    Segments are trimmed and empty segments dropped, so ``" 1, 2,"`` is
    ``{"1", "2"}``. ``None`` or an empty string yields an empty scope.
    """
    if not raw:
        return SpecificProjects()

    segments = [segment.strip() for segment in raw.split(",")]
    segments = [segment for segment in segments if segment]
    if ALL_PROJECTS_TOKEN in segments:
        return AllProjects()
    return SpecificProjects(frozenset(segments))


def has_project_access(raw: Optional[str], project_id) -> bool:
    """Return True if the scope string admits ``project_id``."""
    return parse_project_scope(raw).contains(project_id)


def format_project_scope(project_ids: Union[str, Iterable, None]) -> Optional[str]:
    """Serialize ids (or an already-joined string) back to the stored form."""
    if project_ids is None:
        return None
    if isinstance(project_ids, str):
        scope = parse_project_scope(project_ids)
    else:
        scope = parse_project_scope(",".join(str(pid) for pid in project_ids))

    if isinstance(scope, AllProjects):
        return ALL_PROJECTS_TOKEN
    if not scope.project_ids:
        return ""
    return ",".join(sorted(scope.project_ids, key=_scope_sort_key))


def _scope_sort_key(project_id: str):
    return (0, int(project_id), "") if project_id.isdigit() else (1, 0, project_id)
