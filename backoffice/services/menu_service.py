"""Menu service: the menu tree store."""

import logging
from typing import Optional, List, Dict, Any, Iterable, Set

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from backoffice.db.session import transaction
from backoffice.models.audit_log import AuditAction
from backoffice.models.button_permission import ButtonPermission
from backoffice.models.grants import RoleMenuPermission, RoleButtonPermission
from backoffice.models.menu import MenuNode
from backoffice.services.audit_service import AuditService, AuditContext, model_snapshot
from backoffice.services.menu_tree import MenuTreeNode, build_menu_tree

logger = logging.getLogger("backoffice")

DELETE_POLICIES = ("reject", "cascade")

_EDITABLE_FIELDS = (
    "name", "display_name", "path", "icon", "parent_id",
    "sort_order", "is_active", "description",
)


class MenuService:
    """Stores menu nodes and keeps the parent relation acyclic."""

    @staticmethod
    def list_all(db: Session, active_only: bool = False) -> List[MenuNode]:
        """All menus ordered by sort order, then id."""
        query = db.query(MenuNode)
        if active_only:
            query = query.filter(MenuNode.is_active.is_(True))
        return query.order_by(MenuNode.sort_order, MenuNode.id).all()

    @staticmethod
    def get(db: Session, menu_id: int) -> MenuNode:
        """Get a menu by id."""
        menu = db.query(MenuNode).filter(MenuNode.id == menu_id).first()
        if not menu:
            raise ResourceNotFoundError(f"Menu {menu_id} not found")
        return menu

    @staticmethod
    def search(
        db: Session,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 100,
    ) -> Dict[str, Any]:
        """Flat menu listing with free-text search and pagination."""
        query = db.query(MenuNode)
        if search:
            query = query.filter(or_(
                MenuNode.name.ilike(f"%{search}%"),
                MenuNode.display_name.ilike(f"%{search}%"),
                MenuNode.path.ilike(f"%{search}%"),
            ))
        total = query.count()
        menus = (
            query.order_by(MenuNode.sort_order, MenuNode.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"menus": menus, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def get_tree(db: Session, active_only: bool = False) -> List[MenuTreeNode]:
        return build_menu_tree(MenuService.list_all(db, active_only=active_only))

    @staticmethod
    def children_of(db: Session, menu_id: int) -> List[MenuNode]:
        return (
            db.query(MenuNode)
            .filter(MenuNode.parent_id == menu_id)
            .order_by(MenuNode.sort_order, MenuNode.id)
            .all()
        )

    # ---- Validation ----
    @staticmethod
    def _check_name(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(MenuNode.id).filter(MenuNode.name == name)
        if exclude_id is not None:
            query = query.filter(MenuNode.id != exclude_id)
        if query.first():
            raise ValidationError(f"Menu name '{name}' already exists")

    @staticmethod
    def _check_parent(db: Session, menu_id: Optional[int], parent_id: Optional[int]) -> None:
        """Reject a parent that is missing, the node itself, or a descendant."""
        if parent_id is None:
            return
        if menu_id is not None and parent_id == menu_id:
            raise ValidationError("A menu cannot be its own parent")

        parent = db.query(MenuNode).filter(MenuNode.id == parent_id).first()
        if not parent:
            raise ResourceNotFoundError(f"Parent menu {parent_id} not found")
        if menu_id is None:
            return

        seen: Set[int] = set()
        ancestor = parent
        while ancestor is not None and ancestor.parent_id is not None:
            if ancestor.parent_id == menu_id:
                raise ValidationError("A menu cannot be moved under its own descendant")
            if ancestor.parent_id in seen:
                break
            seen.add(ancestor.parent_id)
            ancestor = db.query(MenuNode).filter(MenuNode.id == ancestor.parent_id).first()

    # ---- Mutations ----
    @staticmethod
    def create(
        db: Session,
        ctx: AuditContext,
        name: str,
        display_name: str,
        path: Optional[str] = None,
        icon: Optional[str] = None,
        parent_id: Optional[int] = None,
        sort_order: int = 0,
        is_active: bool = True,
        description: Optional[str] = None,
    ) -> MenuNode:
        """Create a menu node."""
        MenuService._check_name(db, name)
        MenuService._check_parent(db, None, parent_id)

        menu = MenuNode(
            name=name,
            display_name=display_name,
            path=path,
            icon=icon,
            parent_id=parent_id,
            sort_order=sort_order,
            is_active=is_active,
            description=description,
        )
        with transaction(db):
            db.add(menu)
            db.flush()
            AuditService.record(
                db, ctx, AuditAction.CREATE, "menu", menu.id,
                description=f"Created menu {name}",
                after=model_snapshot(menu),
            )
        db.refresh(menu)
        return menu

    @staticmethod
    def update(db: Session, ctx: AuditContext, menu_id: int, **fields) -> MenuNode:
        """Update a menu node's fields.

        ``parent_id`` may be set to None explicitly to move a node to the
        root; other None values are ignored.
        """
        menu = MenuService.get(db, menu_id)
        changes = {
            key: value for key, value in fields.items()
            if key in _EDITABLE_FIELDS and (value is not None or key == "parent_id")
        }

        if "name" in changes and changes["name"] != menu.name:
            MenuService._check_name(db, changes["name"], exclude_id=menu.id)
        if "parent_id" in changes and changes["parent_id"] != menu.parent_id:
            MenuService._check_parent(db, menu.id, changes["parent_id"])

        before = model_snapshot(menu)
        with transaction(db):
            for key, value in changes.items():
                setattr(menu, key, value)
            db.flush()
            AuditService.record(
                db, ctx, AuditAction.UPDATE, "menu", menu.id,
                description=f"Updated menu {menu.name}",
                before=before, after=model_snapshot(menu),
            )
        db.refresh(menu)
        return menu

    @staticmethod
    def _descendant_ids(db: Session, menu_ids: Iterable[int]) -> List[int]:
        """The given ids plus every descendant, breadth first."""
        result: List[int] = []
        seen: Set[int] = set()
        frontier = list(menu_ids)
        while frontier:
            fresh = [menu_id for menu_id in frontier if menu_id not in seen]
            seen.update(fresh)
            result.extend(fresh)
            if not fresh:
                break
            frontier = [
                row.id for row in
                db.query(MenuNode.id).filter(MenuNode.parent_id.in_(fresh)).all()
            ]
        return result

    @staticmethod
    def _purge_menus(db: Session, menu_ids: List[int]) -> None:
        """Remove menus with their button permissions and role grants."""
        button_ids = [
            row.id for row in
            db.query(ButtonPermission.id).filter(ButtonPermission.menu_id.in_(menu_ids)).all()
        ]
        if button_ids:
            db.query(RoleButtonPermission).filter(
                RoleButtonPermission.button_permission_id.in_(button_ids)
            ).delete(synchronize_session=False)
            db.query(ButtonPermission).filter(
                ButtonPermission.id.in_(button_ids)
            ).delete(synchronize_session=False)
        db.query(RoleMenuPermission).filter(
            RoleMenuPermission.menu_id.in_(menu_ids)
        ).delete(synchronize_session=False)
        # Detach first so the self-referencing foreign key never dangles mid-delete.
        db.query(MenuNode).filter(MenuNode.id.in_(menu_ids)).update(
            {MenuNode.parent_id: None}, synchronize_session=False,
        )
        db.query(MenuNode).filter(MenuNode.id.in_(menu_ids)).delete(synchronize_session=False)

    @staticmethod
    def delete(db: Session, ctx: AuditContext, menu_id: int, policy: str = "reject") -> List[int]:
        """Delete a menu node according to ``policy``.

        ``reject`` refuses while the node has child menus or active button
        permissions. ``cascade`` removes the node, all its descendants, their
        button permissions and every role grant on them in one transaction.
        Returns the ids removed.
        """
        return MenuService.delete_many(db, ctx, [menu_id], policy=policy)

    @staticmethod
    def delete_many(
        db: Session, ctx: AuditContext, menu_ids: Iterable[int], policy: str = "reject",
    ) -> List[int]:
        if policy not in DELETE_POLICIES:
            raise ValidationError(f"Unknown menu delete policy '{policy}'")
        menu_ids = list(dict.fromkeys(menu_ids))
        if not menu_ids:
            raise ValidationError("No menu ids given")

        menus = [MenuService.get(db, menu_id) for menu_id in menu_ids]
        if policy == "reject":
            targets = set(menu_ids)
            children = db.query(MenuNode).filter(
                MenuNode.parent_id.in_(menu_ids), MenuNode.id.notin_(targets),
            ).all()
            if children:
                raise ResourceConflictError(
                    f"Delete child menus first: {', '.join(c.name for c in children)}"
                )
            removed = menu_ids
            active_buttons = db.query(ButtonPermission).filter(
                ButtonPermission.menu_id.in_(removed), ButtonPermission.is_active.is_(True),
            ).count()
            if active_buttons:
                raise ResourceConflictError(
                    f"Menu still owns {active_buttons} active button permission(s)"
                )
        else:
            removed = MenuService._descendant_ids(db, menu_ids)

        before = [model_snapshot(menu) for menu in menus]
        with transaction(db):
            MenuService._purge_menus(db, removed)
            if len(menu_ids) == 1:
                AuditService.record(
                    db, ctx, AuditAction.DELETE, "menu", menu_ids[0],
                    description=f"Deleted menu {menus[0].name} ({len(removed)} node(s), policy={policy})",
                    before=before[0], after={"removed_ids": removed},
                )
            else:
                AuditService.record(
                    db, ctx, AuditAction.BATCH_DELETE, "menu", 0,
                    description=f"Deleted menus {', '.join(m.name for m in menus)} (policy={policy})",
                    before=before, after={"removed_ids": removed},
                )
        db.expire_all()
        logger.info("Deleted menus %s (policy=%s)", removed, policy)
        return removed


menu_service = MenuService()
