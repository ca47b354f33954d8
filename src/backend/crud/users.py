# src/backend/crud/users.py
from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.models.user import AdminUser
from src.backend.utils.security import hash_password
from src.backend.utils.timezone import now_local

class DuplicateEmailError(Exception): ...

async def get_admin_by_email(db: AsyncSession, email: str) -> Optional[AdminUser]:
    email_norm = (email or "").strip().lower()
    if not email_norm:
        return None
    return await db.scalar(select(AdminUser).where(AdminUser.email == email_norm))

async def create_admin(
    db: AsyncSession,
    email: str,
    password: str,
    display_name: Optional[str] = None,
) -> AdminUser:
    """Create an admin account; ``password`` is plain text and gets hashed here."""
    email_norm = (email or "").strip().lower()
    if await get_admin_by_email(db, email_norm):
        raise DuplicateEmailError(email_norm)

    row = AdminUser(
        email=email_norm,
        display_name=(display_name or "").strip() or email_norm.split("@")[0],
        password=hash_password(password),
        status="A",
        created_dt=now_local(),
        updated_dt=now_local(),
    )
    db.add(row)
    try:
        await db.commit()
        await db.refresh(row)
    except IntegrityError:
        await db.rollback()
        raise DuplicateEmailError(email_norm)
    return row

async def set_admin_password(db: AsyncSession, user: AdminUser, password: str) -> AdminUser:
    user.password = hash_password(password)
    user.updated_dt = now_local()
    db.add(user)
    await db.commit()
    return user
