# src/backend/routes/auth_api.py
import logging
from urllib.parse import quote

from fastapi import APIRouter, Form, Request, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.utils.database import get_db
from src.backend.utils.auth import (
    authenticate_user,
    clear_access_cookie,
    issue_access_token,
    set_access_cookie,
)
from src.backend.utils.csrf import csrf_protect
from src.backend.utils.flash import flash_add

logger = logging.getLogger(__name__)

auth_api = APIRouter()

def _safe_next(target: str) -> str:
    # local admin paths only; anything else lands on the dashboard
    if target and target.startswith("/admin") and not target.startswith("//"):
        return target
    return "/admin/dashboard"

@auth_api.post("/login", dependencies=[Depends(csrf_protect)])
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    next: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    email_norm = (email or "").strip().lower()
    user = await authenticate_user(db, email_norm, password)
    if not user:
        logger.warning("Failed login for %r", email_norm)
        url = f"/login?error={quote('Invalid email or password.')}"
        if next:
            url += f"&next={quote(next)}"
        return RedirectResponse(url, status_code=303)

    resp = RedirectResponse(_safe_next(next), status_code=303)
    set_access_cookie(resp, issue_access_token(user))
    request.session["admin_email"] = user.email
    logger.info("Admin %s signed in", user.email)
    return resp

@auth_api.post("/logout", dependencies=[Depends(csrf_protect)])
async def logout(request: Request):
    request.session.pop("admin_email", None)
    await flash_add(request.session, "info", "You have been signed out.")
    resp = RedirectResponse("/login", status_code=303)
    clear_access_cookie(resp)
    return resp
