"""JWT authentication and RBAC authorization helpers."""

import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt

from backoffice.core.config import Settings, settings
from backoffice.core.exceptions import AuthenticationRequired, AccessDenied
from backoffice.models.role import RoleName


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    config: Optional[Settings] = None,
) -> str:
    """Create a JWT access token."""
    config = config or settings
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=config.JWT_EXPIRY_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str, config: Optional[Settings] = None) -> dict:
    """Decode and validate a JWT token.

    Raises:
        AuthenticationRequired: if the token is malformed, forged or expired.
    """
    config = config or settings
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationRequired("Invalid or expired token")
    if payload.get("type") != "access":
        raise AuthenticationRequired("Not an access token")
    return payload


def token_from_request(request: Request, cookie_name: str) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(cookie_name) or None


def get_current_identity(request: Request):
    """The identity the authorization middleware attached to this request."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise AuthenticationRequired("Not authenticated")
    return identity


class RequireRole:
    """Dependency that checks the caller holds one of the given roles.

    SUPER_ADMIN passes every check.
    """

    def __init__(self, *roles: RoleName):
        self.roles = frozenset(roles) | {RoleName.SUPER_ADMIN}

    def __call__(self, request: Request):
        identity = get_current_identity(request)
        if identity.role not in {role.value for role in self.roles}:
            raise AccessDenied(f"Role '{identity.role}' may not perform this action")
        return identity


# Convenience dependency factories
require_super_admin = RequireRole(RoleName.SUPER_ADMIN)
