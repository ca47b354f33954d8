# src/backend/routes/pages_router.py
from __future__ import annotations
from typing import Optional, Dict, Any
from fastapi import APIRouter, Request, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from src.backend.utils.auth import get_current_user
from src.backend.utils.database import get_db
from src.backend.models.user import AdminUser
from src.backend.utils.csrf import csrf_token_for
from src.backend.utils.flash import flash_popall
from src.backend.utils.view import render  # adds no-cache headers
from src.backend.utils.common_context import add_common
from src.backend.crud.scans import dashboard_stats, describe_scans, recent_scans

router = APIRouter()

@router.get("/")
async def landing_page():
    return RedirectResponse("/admin/dashboard", status_code=303)

@router.get("/login")
async def login_page(request: Request, error: Optional[str] = None, next: Optional[str] = None):
    return await render(
        "login.html",
        {
            "request": request,
            "title": "Login",
            "error": error,
            "next": next or "",
            "csrf_token": csrf_token_for(request),
            "flashes": await flash_popall(request.session),
        },
    )

@router.get("/admin/dashboard")
async def dashboard_page(
    request: Request,
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ctx: Dict[str, Any] = {
        "request": request,
        "title": "Dashboard",
        "stats": await dashboard_stats(db),
        "scans": await describe_scans(db, await recent_scans(db, limit=10)),
    }
    await add_common(ctx, current_user, request=request)
    return await render("admin/dashboard.html", ctx)

@router.get("/admin/dashboard/feed")
async def dashboard_feed(
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """JSON used by the dashboard to refresh itself when a scan is written."""
    return {
        "stats": await dashboard_stats(db),
        "scans": await describe_scans(db, await recent_scans(db, limit=10)),
    }
