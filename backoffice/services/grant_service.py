"""Grant service: role/menu and role/button associations."""

from typing import Optional, List, Dict, Any, Iterable

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.core.exceptions import ResourceNotFoundError
from backoffice.db.session import transaction
from backoffice.models.audit_log import AuditAction
from backoffice.models.button_permission import ButtonPermission
from backoffice.models.grants import RoleMenuPermission, RoleButtonPermission
from backoffice.models.menu import MenuNode
from backoffice.models.role import Role
from backoffice.services.audit_service import AuditService, AuditContext, model_snapshot
from backoffice.services.role_resolution import parse_role


class GrantService:
    """Grants and revokes menu visibility and button actions for roles.

    Every grant and revoke is idempotent: granting an existing pair or
    revoking a missing one succeeds without touching the tables. Changes are
    audited in the same transaction.
    """

    # ---- Roles ----
    @staticmethod
    def get_role(db: Session, role_id: int) -> Role:
        role = db.query(Role).filter(Role.id == role_id).first()
        if not role:
            raise ResourceNotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def get_role_by_name(db: Session, name) -> Role:
        role_name = parse_role(name)
        role = db.query(Role).filter(Role.name == role_name.value).first()
        if not role:
            raise ResourceNotFoundError(f"Role '{role_name.value}' not found")
        return role

    @staticmethod
    def list_roles(
        db: Session,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """List roles with their grant counts."""
        query = db.query(Role)
        if search:
            query = query.filter(or_(
                Role.name.ilike(f"%{search}%"),
                Role.display_name.ilike(f"%{search}%"),
                Role.description.ilike(f"%{search}%"),
            ))
        if is_active is not None:
            query = query.filter(Role.is_active.is_(is_active))

        total = query.count()
        roles = query.order_by(Role.id).offset((page - 1) * page_size).limit(page_size).all()
        return {"roles": roles, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def update_role(
        db: Session,
        ctx: AuditContext,
        role_id: int,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Role:
        """Update a role's labels. Role names are fixed."""
        role = GrantService.get_role(db, role_id)
        before = model_snapshot(role)
        with transaction(db):
            if display_name is not None:
                role.display_name = display_name
            if description is not None:
                role.description = description
            if is_active is not None:
                role.is_active = is_active
            db.flush()
            AuditService.record(
                db, ctx, AuditAction.UPDATE, "role", role.id,
                description=f"Updated role {role.name}",
                before=before, after=model_snapshot(role),
            )
        db.refresh(role)
        return role

    # ---- Role <-> Menu ----
    @staticmethod
    def _get_menu(db: Session, menu_id: int) -> MenuNode:
        menu = db.query(MenuNode).filter(MenuNode.id == menu_id).first()
        if not menu:
            raise ResourceNotFoundError(f"Menu {menu_id} not found")
        return menu

    @staticmethod
    def grant_menu(db: Session, ctx: AuditContext, role_id: int, menu_id: int) -> bool:
        """Grant a menu to a role. Returns False if it was already granted."""
        role = GrantService.get_role(db, role_id)
        menu = GrantService._get_menu(db, menu_id)
        existing = db.query(RoleMenuPermission).filter(
            RoleMenuPermission.role_id == role.id,
            RoleMenuPermission.menu_id == menu.id,
        ).first()
        if existing:
            return False

        try:
            with transaction(db):
                db.add(RoleMenuPermission(role_id=role.id, menu_id=menu.id))
                db.flush()
                AuditService.record(
                    db, ctx, AuditAction.GRANT, "menu_permission", menu.id,
                    description=f"Granted menu {menu.name} to {role.name}",
                    after={"role_id": role.id, "menu_id": menu.id},
                )
        except IntegrityError:
            # A concurrent request inserted the same pair first.
            return False
        return True

    @staticmethod
    def revoke_menu(db: Session, ctx: AuditContext, role_id: int, menu_id: int) -> bool:
        """Revoke a menu from a role. Returns False if it was not granted."""
        role = GrantService.get_role(db, role_id)
        grant = db.query(RoleMenuPermission).filter(
            RoleMenuPermission.role_id == role.id,
            RoleMenuPermission.menu_id == menu_id,
        ).first()
        if not grant:
            return False

        with transaction(db):
            db.delete(grant)
            AuditService.record(
                db, ctx, AuditAction.REVOKE, "menu_permission", menu_id,
                description=f"Revoked menu {menu_id} from {role.name}",
                before={"role_id": role.id, "menu_id": menu_id},
            )
        return True

    @staticmethod
    def set_role_menus(db: Session, ctx: AuditContext, role_id: int, menu_ids: Iterable[int]) -> List[int]:
        """Replace a role's menu grants with exactly ``menu_ids``."""
        role = GrantService.get_role(db, role_id)
        wanted = sorted(set(menu_ids))
        if wanted:
            found = {row.id for row in db.query(MenuNode.id).filter(MenuNode.id.in_(wanted)).all()}
            missing = [menu_id for menu_id in wanted if menu_id not in found]
            if missing:
                raise ResourceNotFoundError(f"Menus not found: {', '.join(map(str, missing))}")

        before = sorted(
            row.menu_id for row in
            db.query(RoleMenuPermission.menu_id).filter(RoleMenuPermission.role_id == role.id).all()
        )
        with transaction(db):
            db.query(RoleMenuPermission).filter(
                RoleMenuPermission.role_id == role.id
            ).delete(synchronize_session=False)
            for menu_id in wanted:
                db.add(RoleMenuPermission(role_id=role.id, menu_id=menu_id))
            db.flush()
            AuditService.record(
                db, ctx, AuditAction.UPDATE, "menu_permission", role.id,
                description=f"Replaced menu grants of {role.name}",
                before=before, after=wanted,
            )
        return wanted

    @staticmethod
    def menus_visible_to(db: Session, role) -> List[MenuNode]:
        """Menus granted directly to ``role`` (no inheritance)."""
        role_row = GrantService.get_role_by_name(db, role)
        return (
            db.query(MenuNode)
            .join(RoleMenuPermission, RoleMenuPermission.menu_id == MenuNode.id)
            .filter(RoleMenuPermission.role_id == role_row.id)
            .order_by(MenuNode.sort_order, MenuNode.id)
            .all()
        )

    @staticmethod
    def roles_granted(db: Session, menu_id: int) -> List[Role]:
        """Roles that can see ``menu_id``."""
        GrantService._get_menu(db, menu_id)
        return (
            db.query(Role)
            .join(RoleMenuPermission, RoleMenuPermission.role_id == Role.id)
            .filter(RoleMenuPermission.menu_id == menu_id)
            .order_by(Role.id)
            .all()
        )

    # ---- Role <-> Button ----
    @staticmethod
    def _get_button(db: Session, button_id: int) -> ButtonPermission:
        button = db.query(ButtonPermission).filter(ButtonPermission.id == button_id).first()
        if not button:
            raise ResourceNotFoundError(f"Button permission {button_id} not found")
        return button

    @staticmethod
    def grant_button(db: Session, ctx: AuditContext, role_id: int, button_id: int) -> bool:
        """Grant a button action to a role. Returns False if already granted."""
        role = GrantService.get_role(db, role_id)
        button = GrantService._get_button(db, button_id)
        existing = db.query(RoleButtonPermission).filter(
            RoleButtonPermission.role_id == role.id,
            RoleButtonPermission.button_permission_id == button.id,
        ).first()
        if existing:
            return False

        try:
            with transaction(db):
                db.add(RoleButtonPermission(role_id=role.id, button_permission_id=button.id))
                db.flush()
                AuditService.record(
                    db, ctx, AuditAction.GRANT, "button_permission", button.id,
                    description=f"Granted {button.identifier} to {role.name}",
                    after={"role_id": role.id, "button_permission_id": button.id},
                )
        except IntegrityError:
            return False
        return True

    @staticmethod
    def revoke_button(db: Session, ctx: AuditContext, role_id: int, button_id: int) -> bool:
        """Revoke a button action from a role. Returns False if not granted."""
        role = GrantService.get_role(db, role_id)
        grant = db.query(RoleButtonPermission).filter(
            RoleButtonPermission.role_id == role.id,
            RoleButtonPermission.button_permission_id == button_id,
        ).first()
        if not grant:
            return False

        with transaction(db):
            db.delete(grant)
            AuditService.record(
                db, ctx, AuditAction.REVOKE, "button_permission", button_id,
                description=f"Revoked button {button_id} from {role.name}",
                before={"role_id": role.id, "button_permission_id": button_id},
            )
        return True

    @staticmethod
    def buttons_permitted_to(db: Session, role) -> List[ButtonPermission]:
        """Button permissions granted directly to ``role``."""
        role_row = GrantService.get_role_by_name(db, role)
        return (
            db.query(ButtonPermission)
            .join(RoleButtonPermission, RoleButtonPermission.button_permission_id == ButtonPermission.id)
            .filter(RoleButtonPermission.role_id == role_row.id)
            .order_by(ButtonPermission.menu_id, ButtonPermission.id)
            .all()
        )

    @staticmethod
    def grant_counts(db: Session, role_id: int) -> Dict[str, int]:
        menus = db.query(func.count(RoleMenuPermission.id)).filter(
            RoleMenuPermission.role_id == role_id
        ).scalar()
        buttons = db.query(func.count(RoleButtonPermission.id)).filter(
            RoleButtonPermission.role_id == role_id
        ).scalar()
        return {"menu_permissions": int(menus or 0), "button_permissions": int(buttons or 0)}


grant_service = GrantService()
