"""User grant service: role assignment, activation, and project scope."""

from typing import Optional, List, Dict, Any, Iterable, Union

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.core.exceptions import ResourceNotFoundError, ValidationError
from backoffice.db.session import transaction
from backoffice.models.audit_log import AuditAction
from backoffice.models.project import Project
from backoffice.models.role import Role
from backoffice.models.user import User
from backoffice.services.audit_service import AuditService, AuditContext
from backoffice.services.project_scope import (
    SpecificProjects, format_project_scope, parse_project_scope,
)
from backoffice.services.role_resolution import parse_role

ScopeInput = Union[str, Iterable, None]


def user_grant_snapshot(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role.name if user.role else None,
        "is_active": user.is_active,
        "project_ids": user.project_ids,
    }


class UserService:
    """Manages what users are allowed to do: role, status, project scope."""

    @staticmethod
    def get(db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def list_users(
        db: Session,
        search: Optional[str] = None,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """List users with filters and pagination."""
        query = db.query(User)
        if search:
            query = query.filter(or_(
                User.full_name.ilike(f"%{search}%"),
                User.email.ilike(f"%{search}%"),
            ))
        if role:
            query = query.join(Role, Role.id == User.role_id).filter(
                Role.name == parse_role(role).value
            )
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))

        total = query.count()
        users = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"users": users, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def projects_in_scope(db: Session, user: User) -> List[Project]:
        """Projects the user may access, resolved from the scope string."""
        scope = parse_project_scope(user.project_ids)
        query = db.query(Project).filter(Project.is_active.is_(True))
        if isinstance(scope, SpecificProjects):
            ids = [int(pid) for pid in scope.project_ids if pid.isdigit()]
            if not ids:
                return []
            query = query.filter(Project.id.in_(ids))
        return query.order_by(Project.id).all()

    @staticmethod
    def normalize_scope(db: Session, project_ids: ScopeInput) -> Optional[str]:
        """Validate a scope against existing projects and return its stored form.

        Raises:
            ValidationError: for non-numeric ids.
            ResourceNotFoundError: for ids with no project.
        """
        scope_string = format_project_scope(project_ids)
        scope = parse_project_scope(scope_string)
        if isinstance(scope, SpecificProjects) and scope.project_ids:
            invalid = sorted(pid for pid in scope.project_ids if not pid.isdigit())
            if invalid:
                raise ValidationError(f"Invalid project ids: {', '.join(invalid)}")
            ids = {int(pid) for pid in scope.project_ids}
            found = {row.id for row in db.query(Project.id).filter(Project.id.in_(ids)).all()}
            missing = sorted(ids - found)
            if missing:
                raise ResourceNotFoundError(
                    f"Projects not found: {', '.join(map(str, missing))}"
                )
        return scope_string

    @staticmethod
    def _changes(
        db: Session,
        role: Optional[str],
        is_active: Optional[bool],
        project_ids: ScopeInput,
        full_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        if role is not None:
            role_name = parse_role(role)
            role_row = db.query(Role).filter(Role.name == role_name.value).first()
            if not role_row:
                raise ResourceNotFoundError(f"Role '{role_name.value}' not found")
            changes["role_id"] = role_row.id
        if is_active is not None:
            changes["is_active"] = is_active
        if project_ids is not None:
            changes["project_ids"] = UserService.normalize_scope(db, project_ids)
        if full_name is not None:
            changes["full_name"] = full_name
        return changes

    @staticmethod
    def update(
        db: Session,
        ctx: AuditContext,
        user_id: int,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        project_ids: ScopeInput = None,
        full_name: Optional[str] = None,
    ) -> User:
        """Change one user's role, status, or project scope."""
        user = UserService.get(db, user_id)
        changes = UserService._changes(db, role, is_active, project_ids, full_name)
        before = user_grant_snapshot(user)

        with transaction(db):
            for key, value in changes.items():
                setattr(user, key, value)
            db.flush()
            db.refresh(user)
            AuditService.record(
                db, ctx, AuditAction.UPDATE, "user", user.id,
                description=f"Updated permissions of {user.email}",
                before=before, after=user_grant_snapshot(user),
            )
        db.refresh(user)
        return user

    @staticmethod
    def batch_update(
        db: Session,
        ctx: AuditContext,
        user_ids: List[int],
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        project_ids: ScopeInput = None,
    ) -> int:
        """Apply the same role/status/scope to several users atomically."""
        if not user_ids:
            raise ValidationError("Select at least one user")
        users = db.query(User).filter(User.id.in_(user_ids)).all()
        missing = sorted(set(user_ids) - {u.id for u in users})
        if missing:
            raise ResourceNotFoundError(f"Users not found: {', '.join(map(str, missing))}")

        changes = UserService._changes(db, role, is_active, project_ids)
        before = [user_grant_snapshot(u) for u in users]
        with transaction(db):
            for user in users:
                for key, value in changes.items():
                    setattr(user, key, value)
            db.flush()
            AuditService.record(
                db, ctx, AuditAction.BATCH_UPDATE, "user", 0,
                description=f"Batch updated permissions of {', '.join(u.email for u in users)}",
                before=before, after={"user_ids": sorted(user_ids), **changes},
            )
        return len(users)


user_service = UserService()
