"""Role model for RBAC."""

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from backoffice.db.base import Base, utcnow


class RoleName(str, enum.Enum):
    """The closed set of roles a user can hold."""
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    SALES_MANAGER = "SALES_MANAGER"
    SALES_PERSON = "SALES_PERSON"
    FINANCE = "FINANCE"
    CUSTOMER_SERVICE = "CUSTOMER_SERVICE"
    USER = "USER"


class Role(Base):
    """System role; grants hang off it through the association tables."""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    display_name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    menu_grants = relationship("RoleMenuPermission", back_populates="role", lazy="selectin")
    button_grants = relationship("RoleButtonPermission", back_populates="role", lazy="selectin")
