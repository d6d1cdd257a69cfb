from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import jwt

from ..config import settings
from ..models import AdminUser

# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt(rounds=10)).decode()


def verify_password(plain: str, hashed: str) -> bool:
    encoded = plain.encode()
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

ALGORITHM = "HS256"


def create_access_token(
    admin: AdminUser,
    secret: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    """Sign a token carrying the admin's id, username, role and tenant."""
    minutes = expires_minutes or settings.jwt_expire_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(admin.id),
        "username": admin.username,
        "role": admin.role,
        "project_id": admin.project_id,
        "exp": now + timedelta(minutes=minutes),
        "iat": now,
    }
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=ALGORITHM)


def decode_token(token: str, secret: str | None = None) -> dict:
    """Decode and validate JWT. Raises JWTError on failure."""
    return jwt.decode(token, secret or settings.jwt_secret, algorithms=[ALGORITHM])
