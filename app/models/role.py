"""
Role model: a named set of permission strings.
"""

from __future__ import annotations

from sqlalchemy import JSON, Column, Integer, String

from app.db.base import Base


class Role(Base):
    __tablename__ = "roles"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(50), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    permissions: list[str] = Column(JSON, nullable=False, default=list)  # type: ignore[assignment]

    def has_permission(self, permission: str) -> bool:
        return permission in set(self.permissions or ())
