from __future__ import annotations

import logging

from sqlalchemy import select

from .core import hash_password
from ..database import db_session
from ..models import AdminUser
from ..tenancy import TenantSchema

log = logging.getLogger("game_comment.seed")

DEFAULT_ADMIN_USERNAME = "admin"
_DEFAULT_PASSWORD = "admin123"


def seed_admin(tenant: TenantSchema, password: str = _DEFAULT_PASSWORD) -> bool:
    """
    Create the tenant's ``admin`` account on first startup.

    Only the account for this tenant is considered: other tenants sharing
    the admin table are left untouched. Returns True when a row was created.
    The password comes from GAME_COMMENT_ADMIN_PASSWORD; change it (or use
    /admin/change-password) before going to production.
    """
    with db_session() as session:
        existing = session.execute(
            select(AdminUser.id).where(
                AdminUser.username == DEFAULT_ADMIN_USERNAME,
                AdminUser.project_id == tenant.prefix,
            )
        ).scalar_one_or_none()
        if existing is not None:
            return False

        if password == _DEFAULT_PASSWORD:
            log.warning(
                "Seeding admin for project %s with the DEFAULT password. "
                "Set GAME_COMMENT_ADMIN_PASSWORD before deploying to production.",
                tenant.prefix,
            )

        session.add(
            AdminUser(
                username=DEFAULT_ADMIN_USERNAME,
                password_hash=hash_password(password),
                role="admin",
                project_id=tenant.prefix,
            )
        )
    log.info("Default admin created - username: %s, project: %s", DEFAULT_ADMIN_USERNAME, tenant.prefix)
    return True
