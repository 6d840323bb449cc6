"""Project model (reference data for project scopes)."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime

from backoffice.db.base import Base, utcnow


class Project(Base):
    """A building project; sales data lives in other services."""
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
