"""Button permission catalog: CRUD over menu-scoped actions."""

from typing import Optional, Dict, Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.core.exceptions import ResourceNotFoundError, ValidationError
from backoffice.db.session import transaction
from backoffice.models.audit_log import AuditAction
from backoffice.models.button_permission import ButtonPermission
from backoffice.models.grants import RoleButtonPermission
from backoffice.models.menu import MenuNode
from backoffice.services.audit_service import AuditService, AuditContext, model_snapshot


class ButtonService:
    """Manages the catalog of grantable button permissions."""

    @staticmethod
    def get(db: Session, button_id: int) -> ButtonPermission:
        """Get a button permission by id."""
        button = db.query(ButtonPermission).filter(ButtonPermission.id == button_id).first()
        if not button:
            raise ResourceNotFoundError(f"Button permission {button_id} not found")
        return button

    @staticmethod
    def list_buttons(
        db: Session,
        search: Optional[str] = None,
        menu_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """List button permissions with filters and pagination."""
        query = db.query(ButtonPermission)
        if search:
            query = query.filter(or_(
                ButtonPermission.name.ilike(f"%{search}%"),
                ButtonPermission.identifier.ilike(f"%{search}%"),
                ButtonPermission.description.ilike(f"%{search}%"),
            ))
        if menu_id:
            query = query.filter(ButtonPermission.menu_id == menu_id)

        total = query.count()
        buttons = (
            query.order_by(ButtonPermission.menu_id, ButtonPermission.name)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"buttons": buttons, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def _check_menu(db: Session, menu_id: int) -> None:
        if not db.query(MenuNode.id).filter(MenuNode.id == menu_id).first():
            raise ResourceNotFoundError(f"Menu {menu_id} not found")

    @staticmethod
    def _check_identifier(db: Session, menu_id: int, identifier: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(ButtonPermission.id).filter(
            ButtonPermission.menu_id == menu_id,
            ButtonPermission.identifier == identifier,
        )
        if exclude_id is not None:
            query = query.filter(ButtonPermission.id != exclude_id)
        if query.first():
            raise ValidationError(f"Identifier '{identifier}' already exists in menu {menu_id}")

    @staticmethod
    def create(
        db: Session,
        ctx: AuditContext,
        name: str,
        identifier: str,
        menu_id: int,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> ButtonPermission:
        """Create a button permission under an existing menu."""
        ButtonService._check_menu(db, menu_id)
        ButtonService._check_identifier(db, menu_id, identifier)

        button = ButtonPermission(
            name=name,
            identifier=identifier,
            menu_id=menu_id,
            description=description,
            is_active=is_active,
        )
        with transaction(db):
            db.add(button)
            db.flush()
            AuditService.record(
                db, ctx, AuditAction.CREATE, "button_permission", button.id,
                description=f"Created button permission {identifier}",
                after=model_snapshot(button),
            )
        db.refresh(button)
        return button

    @staticmethod
    def update(db: Session, ctx: AuditContext, button_id: int, **fields) -> ButtonPermission:
        """Update a button permission.

        The target menu must exist and the identifier must stay unique
        within it; both are checked before anything is written.
        """
        button = ButtonService.get(db, button_id)
        fields = {key: value for key, value in fields.items() if value is not None}

        menu_id = fields.get("menu_id", button.menu_id)
        identifier = fields.get("identifier", button.identifier)
        if menu_id != button.menu_id:
            ButtonService._check_menu(db, menu_id)
        if menu_id != button.menu_id or identifier != button.identifier:
            ButtonService._check_identifier(db, menu_id, identifier, exclude_id=button.id)

        before = model_snapshot(button)
        with transaction(db):
            for key in ("name", "identifier", "description", "menu_id", "is_active"):
                if key in fields:
                    setattr(button, key, fields[key])
            db.flush()
            AuditService.record(
                db, ctx, AuditAction.UPDATE, "button_permission", button.id,
                description=f"Updated button permission {button.identifier}",
                before=before, after=model_snapshot(button),
            )
        db.refresh(button)
        return button

    @staticmethod
    def delete(db: Session, ctx: AuditContext, button_id: int) -> None:
        """Delete a button permission and every role grant on it."""
        button = ButtonService.get(db, button_id)
        before = model_snapshot(button)
        with transaction(db):
            db.query(RoleButtonPermission).filter(
                RoleButtonPermission.button_permission_id == button.id
            ).delete(synchronize_session=False)
            db.delete(button)
            AuditService.record(
                db, ctx, AuditAction.DELETE, "button_permission", button_id,
                description=f"Deleted button permission {before['identifier']}",
                before=before,
            )


button_service = ButtonService()
