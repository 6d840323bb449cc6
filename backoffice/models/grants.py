"""Role grant association tables."""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from backoffice.db.base import Base, utcnow


class RoleMenuPermission(Base):
    """Grants visibility of a menu node to a role."""
    __tablename__ = "role_menu_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "menu_id", name="uq_role_menu"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_id = Column(Integer, ForeignKey("menus.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    role = relationship("Role", back_populates="menu_grants")
    menu = relationship("MenuNode")


class RoleButtonPermission(Base):
    """Grants a button action to a role."""
    __tablename__ = "role_button_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "button_permission_id", name="uq_role_button"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    button_permission_id = Column(
        Integer, ForeignKey("button_permissions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)

    role = relationship("Role", back_populates="button_grants")
    button_permission = relationship("ButtonPermission")
