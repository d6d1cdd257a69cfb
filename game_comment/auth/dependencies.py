from __future__ import annotations

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select

from .core import decode_token
from ..config import Settings
from ..database import db_session
from ..models import AdminUser
from ..tenancy import TenantSchema

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tenant(request: Request) -> TenantSchema:
    return request.app.state.tenant


# ---------------------------------------------------------------------------
# Resolve current admin from JWT
# ---------------------------------------------------------------------------

def get_current_admin(
    bearer: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
    tenant: TenantSchema = Depends(get_tenant),
) -> AdminUser:
    """
    Accepts ``Authorization: Bearer <jwt>`` and returns the matching admin.

    The signature and expiry are checked first, then the admin row is
    re-read by (id, tenant) so a token stops working once the account is
    gone or when presented to another tenant's deployment. Both cases answer
    with the same 401.
    """
    if not bearer or not bearer.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authentication token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_token(bearer.credentials, settings.jwt_secret)
        admin_id = int(payload.get("sub", ""))
    except (JWTError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Invalid or expired token.")

    with db_session() as session:
        admin = session.execute(
            select(AdminUser).where(
                AdminUser.id == admin_id,
                AdminUser.project_id == tenant.prefix,
            )
        ).scalar_one_or_none()
    if admin is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Invalid or expired token.")
    return admin
