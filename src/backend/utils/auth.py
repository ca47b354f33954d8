# src/backend/utils/auth.py
from __future__ import annotations

import logging
from typing import Optional, Literal, cast

from fastapi import Request, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.config import settings
from src.backend.crud.users import get_admin_by_email
from src.backend.models.user import AdminUser
from src.backend.utils.database import get_db
from src.backend.utils.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    decode_access_token,
    hash_password,
    needs_rehash,
    verify_password,
)

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------
# Config
# -------------------------------------------------------------------
COOKIE_SECURE: bool = settings.COOKIE_SECURE

_samesite_env = (settings.SESSION_SAMESITE or "lax").strip().lower()
if _samesite_env not in ("lax", "strict", "none"):
    _samesite_env = "lax"

# Browsers require SameSite=None cookies to also be Secure
if _samesite_env == "none" and not COOKIE_SECURE:
    _samesite_env = "lax"

COOKIE_SAMESITE: Optional[Literal["lax", "strict", "none"]] = cast(
    Optional[Literal["lax", "strict", "none"]], _samesite_env
)

ACCESS_COOKIE_NAME = "access_token"

# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _get_header(request: Request, name: str) -> Optional[str]:
    val = request.headers.get(name)
    return val if isinstance(val, str) else None

def _get_cookie(request: Request, name: str) -> Optional[str]:
    val = request.cookies.get(name)
    return val if isinstance(val, str) else None

def _cookie_kwargs() -> dict:
    return {
        "secure": COOKIE_SECURE,
        "samesite": COOKIE_SAMESITE,
        "path": "/",
    }

def set_access_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        ACCESS_COOKIE_NAME,
        access_token,
        httponly=True,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        **_cookie_kwargs(),
    )

def clear_access_cookie(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE_NAME, path="/")

# -------------------------------------------------------------------
# Core auth
# -------------------------------------------------------------------
async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[AdminUser]:
    if not email or not password:
        return None

    user = await get_admin_by_email(db, email)
    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password):
        return None

    if needs_rehash(user.password):
        user.password = hash_password(password)
        db.add(user)
        await db.commit()

    return user

def issue_access_token(user: AdminUser) -> str:
    return create_access_token({"sub": str(user.email)})

# -------------------------------------------------------------------
# Protected dependency
# -------------------------------------------------------------------
def _extract_bearer(request: Request) -> Optional[str]:
    auth_header = _get_header(request, "Authorization")
    if auth_header:
        parts = auth_header.split(" ", 1)
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1].strip()

    cookie_tok = _get_cookie(request, ACCESS_COOKIE_NAME)
    if cookie_tok:
        return cookie_tok.strip()

    return None

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AdminUser:
    token = _extract_bearer(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = decode_access_token(token)
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user = await get_admin_by_email(db, sub)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")
    return user
