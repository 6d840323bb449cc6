"""Identity service: login and token-to-identity resolution."""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from backoffice.core.config import Settings
from backoffice.core.exceptions import AuthenticationRequired, AccountDisabled
from backoffice.core.security import verify_password, create_access_token, decode_token
from backoffice.db.base import utcnow
from backoffice.models.user import User

logger = logging.getLogger("backoffice")


@dataclass(frozen=True)
class Identity:
    """The authenticated caller of one request."""

    user_id: int
    email: str
    full_name: str
    role: Optional[str]
    is_active: bool
    project_ids: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role.name if user.role else None,
            is_active=bool(user.is_active),
            project_ids=user.project_ids,
        )


class IdentityService:
    """Handles authentication and identity lookup."""

    @staticmethod
    def authenticate(
        db: Session, email: str, password: str, config: Optional[Settings] = None,
    ) -> Dict[str, Any]:
        """Authenticate a user and return an access token.

        Raises:
            AuthenticationRequired: If credentials are invalid.
            AccountDisabled: If the account is deactivated.
        """
        user = db.query(User).filter(User.email == email).first()
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationRequired("Invalid email or password")

        if not user.is_active:
            raise AccountDisabled("Account is deactivated")

        role_name = user.role.name if user.role else None
        access_token = create_access_token(
            {"sub": str(user.id), "email": user.email, "role": role_name},
            config=config,
        )

        user.last_login_at = utcnow()
        db.commit()
        logger.info("User %s logged in", user.email)

        return {
            "access_token": access_token,
            "token_type": "bearer",
            "user": {
                "id": user.id,
                "email": user.email,
                "full_name": user.full_name,
                "role": role_name,
                "project_ids": user.project_ids,
            },
        }

    @staticmethod
    def resolve_token(
        db: Session, token: Optional[str], config: Optional[Settings] = None,
    ) -> Optional[Identity]:
        """Load the identity behind a token, or None if it resolves to nobody.

        Role, status and scope are read from the database on every call so a
        change takes effect on the next request, not at token expiry.
        """
        if not token:
            return None
        try:
            payload = decode_token(token, config=config)
        except AuthenticationRequired:
            return None

        subject = str(payload.get("sub", ""))
        if not subject.isdigit():
            return None
        user = db.query(User).filter(User.id == int(subject)).first()
        if not user:
            return None
        return Identity.from_user(user)


identity_service = IdentityService()
