"""Per-request authorization decisions.

A request moves through ``UNAUTHENTICATED -> IDENTIFIED -> ROUTE_CHECKED ->
SCOPE_CHECKED -> ALLOWED``; any check after identification may end it in
``DENIED`` with one of the reason codes below. Public routes go straight to
``ALLOWED``.
"""

import enum
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from backoffice.core.exceptions import (
    BackOfficeError, AuthenticationRequired, AccountDisabled,
    AccessDenied, ProjectAccessDenied, ValidationError,
)
from backoffice.services.identity_service import Identity
from backoffice.services.path_patterns import match_any, split_path
from backoffice.services.project_scope import has_project_access
from backoffice.services.role_resolution import RoleResolver

# Path prefixes whose next segment is a project id
PROJECT_PATH_PREFIXES = (
    ("project",),
    ("api", "projects"),
)

DENIAL_ERRORS = {
    AuthenticationRequired.code: (AuthenticationRequired, "Not authenticated"),
    AccountDisabled.code: (AccountDisabled, "Account is disabled"),
    AccessDenied.code: (AccessDenied, "Insufficient permissions"),
    ProjectAccessDenied.code: (ProjectAccessDenied, "No access to this project"),
}


class AuthState(str, enum.Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    IDENTIFIED = "IDENTIFIED"
    ROUTE_CHECKED = "ROUTE_CHECKED"
    SCOPE_CHECKED = "SCOPE_CHECKED"
    ALLOWED = "ALLOWED"
    DENIED = "DENIED"


@dataclass(frozen=True)
class AuthDecision:
    state: AuthState
    reason: Optional[str] = None
    identity: Optional[Identity] = None

    @property
    def allowed(self) -> bool:
        return self.state is AuthState.ALLOWED

    def error(self) -> BackOfficeError:
        """The exception describing this denial."""
        error, message = DENIAL_ERRORS[self.reason]
        return error(message)


def extract_project_id(path: str) -> Optional[str]:
    """Project id embedded in ``/project/<id>/...`` or ``/api/projects/<id>/...``."""
    segments = split_path(path)[1:]
    for prefix in PROJECT_PATH_PREFIXES:
        size = len(prefix)
        if tuple(segments[:size]) == prefix and len(segments) > size and segments[size]:
            return segments[size]
    return None


def _denied(reason: str, identity: Optional[Identity] = None) -> AuthDecision:
    return AuthDecision(AuthState.DENIED, reason=reason, identity=identity)


class RequestAuthorizer:
    """Runs the authorization state machine for one path.

    Holds no per-request state; the identity is loaded lazily through the
    callable passed to ``authorize`` so public routes never touch storage.
    """

    def __init__(self, resolver: RoleResolver, public_routes: Iterable[str]):
        self.resolver = resolver
        self.public_routes = tuple(public_routes)

    def is_public(self, path: str) -> bool:
        return match_any(self.public_routes, path)

    def authorize(
        self, path: str, load_identity: Callable[[], Optional[Identity]],
    ) -> AuthDecision:
        if self.is_public(path):
            return AuthDecision(AuthState.ALLOWED)

        identity = load_identity()
        if identity is None:
            return _denied(AuthenticationRequired.code)

        # IDENTIFIED
        if not identity.is_active:
            return _denied(AccountDisabled.code, identity)

        try:
            route_allowed = identity.role is not None and self.resolver.is_route_allowed(
                identity.role, path
            )
        except ValidationError:
            # Unknown role: fail closed
            route_allowed = False
        if not route_allowed:
            return _denied(AccessDenied.code, identity)

        # ROUTE_CHECKED
        project_id = extract_project_id(path)
        if project_id is not None and not has_project_access(identity.project_ids, project_id):
            return _denied(ProjectAccessDenied.code, identity)

        # SCOPE_CHECKED
        return AuthDecision(AuthState.ALLOWED, identity=identity)
