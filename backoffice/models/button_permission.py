"""Button (action) permission model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from backoffice.db.base import Base, utcnow


class ButtonPermission(Base):
    """A named action owned by one menu, grantable to roles."""
    __tablename__ = "button_permissions"
    __table_args__ = (
        UniqueConstraint("menu_id", "identifier", name="uq_button_menu_identifier"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    identifier = Column(String(255), nullable=False, index=True)
    description = Column(String(500), nullable=True)
    menu_id = Column(Integer, ForeignKey("menus.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    menu = relationship("MenuNode", back_populates="button_permissions")
