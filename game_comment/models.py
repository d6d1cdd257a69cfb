from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Integer, String, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


ADMIN_TABLE = "game_admins_users"


class AdminUser(Base):
    """
    Admin identity shared by every tenant.

    The table is not prefixed; ``project_id`` holds the tenant prefix and
    every lookup filters on it, so the same username can exist once per
    tenant.
    """

    __tablename__ = ADMIN_TABLE
    __table_args__ = (
        UniqueConstraint("username", "project_id", name="uq_game_admins_users_username_project"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(50), index=True)
    password_hash: Mapped[str] = mapped_column("password", String(255))
    role: Mapped[str] = mapped_column(String(20), default="admin")
    project_id: Mapped[str] = mapped_column(String(50), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
