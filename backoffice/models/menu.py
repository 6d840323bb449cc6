"""Menu node model: the navigation tree."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from backoffice.db.base import Base, utcnow


class MenuNode(Base):
    """A navigable or grouping entry in the application menu.

    ``parent_id`` is a plain back-reference; children are assembled on read
    by ``services.menu_tree.build_menu_tree``.
    """
    __tablename__ = "menus"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    display_name = Column(String(100), nullable=False)
    path = Column(String(255), nullable=True)  # null for grouping-only nodes
    icon = Column(String(100), nullable=True)
    parent_id = Column(Integer, ForeignKey("menus.id"), nullable=True, index=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    button_permissions = relationship("ButtonPermission", back_populates="menu", lazy="selectin")
