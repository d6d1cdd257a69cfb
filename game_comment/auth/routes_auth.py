from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select

from .core import create_access_token, hash_password, verify_password
from .dependencies import get_app_settings, get_current_admin, get_tenant
from ..config import Settings
from ..database import db_session
from ..models import AdminUser
from ..rate_limit import RateLimit
from ..schemas import (
    AdminUserRead,
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProtectedResponse,
    ProtectedUser,
)
from ..tenancy import TenantSchema

log = logging.getLogger("game_comment.auth")

router = APIRouter(prefix="/admin", tags=["auth"])


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@router.post("/login", response_model=LoginResponse, dependencies=[Depends(RateLimit("login"))])
def login(
    body: LoginRequest,
    settings: Settings = Depends(get_app_settings),
    tenant: TenantSchema = Depends(get_tenant),
) -> LoginResponse:
    if not body.username or not body.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Username and password are required.")

    with db_session() as session:
        admin = session.execute(
            select(AdminUser).where(
                AdminUser.username == body.username,
                AdminUser.project_id == tenant.prefix,
            )
        ).scalar_one_or_none()

        if admin is None or not verify_password(body.password, admin.password_hash):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Invalid username or password.")

        admin.last_login_at = datetime.now(timezone.utc)

    token = create_access_token(
        admin,
        secret=settings.jwt_secret,
        expires_minutes=settings.jwt_expire_minutes,
    )
    log.info("Admin login - username: %s, project: %s", admin.username, tenant.prefix)
    return LoginResponse(
        token=token,
        message="Login successful.",
        user=AdminUserRead.model_validate(admin),
    )


# ---------------------------------------------------------------------------
# Password change: previously issued tokens remain valid until they expire
# ---------------------------------------------------------------------------

@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    current_admin: AdminUser = Depends(get_current_admin),
    tenant: TenantSchema = Depends(get_tenant),
) -> MessageResponse:
    with db_session() as session:
        admin = session.execute(
            select(AdminUser).where(
                AdminUser.id == current_admin.id,
                AdminUser.project_id == tenant.prefix,
            )
        ).scalar_one_or_none()
        if admin is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                                detail="Admin account not found.")
        if not verify_password(body.current_password, admin.password_hash):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Current password is incorrect.")
        admin.password_hash = hash_password(body.new_password)
        admin.updated_at = datetime.now(timezone.utc)

    log.info("Password changed - username: %s, project: %s", current_admin.username, tenant.prefix)
    return MessageResponse(message="Password changed successfully.")


@router.get("/protected", response_model=ProtectedResponse)
def protected(current_admin: AdminUser = Depends(get_current_admin)) -> ProtectedResponse:
    """Echo the authenticated admin; used by the dashboard to check a stored token."""
    return ProtectedResponse(
        message="Authenticated admin route.",
        user=ProtectedUser.model_validate(current_admin),
    )
