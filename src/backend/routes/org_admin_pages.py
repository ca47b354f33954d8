# src/backend/routes/org_admin_pages.py
from __future__ import annotations

import logging
import math
from typing import Optional, Dict, Any

from fastapi import APIRouter, Request, Depends, HTTPException, Form, Query
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.utils.database import get_db
from src.backend.utils.auth import get_current_user
from src.backend.models.user import AdminUser

from src.backend.crud.org import list_orgs, get_org, create_org, update_org, delete_org
from src.backend.schemas.org import OrgCreate, OrgUpdate
from src.backend.utils import csrf as csrf_mod
from src.backend.utils.view import render
from src.backend.utils.flash import redirect_with_flash
from src.backend.utils.common_context import add_common, form_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/organizations", tags=["Admin Organizations"])

async def _form_page(
    request: Request,
    current_user: AdminUser,
    mode: str,
    form: Dict[str, Any],
    org_id: Optional[str] = None,
    errors: Optional[Dict[str, str]] = None,
    status_code: int = 200,
):
    ctx: Dict[str, Any] = {
        "request": request,
        "title": "Add Organization" if mode == "create" else "Edit Organization",
        "mode": mode,
        "org_id": org_id,
        "form": form,
        "errors": errors or {},
    }
    await add_common(ctx, current_user, request=request)
    return await render("admin/organizations/form.html", ctx, status_code=status_code)

# -------- Pages --------
@router.get("")
async def list_page(
    request: Request,
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=5, le=100),
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    offset = (page - 1) * size
    rows, total = await list_orgs(db, q=q, limit=size, offset=offset)
    pages = max(1, math.ceil(total / size)) if size else 1

    ctx: Dict[str, Any] = {
        "request": request,
        "title": "Organizations",
        "rows": rows,
        "q": q or "",
        "page": page,
        "pages": pages,
        "size": size,
        "total": total,
    }
    await add_common(ctx, current_user, request=request)
    return await render("admin/organizations/index.html", ctx)

@router.get("/new")
async def new_page(
    request: Request,
    current_user: AdminUser = Depends(get_current_user),
):
    return await _form_page(request, current_user, "create", {"name": "", "contactEmail": ""})

@router.get("/{org_id}/edit")
async def edit_page(
    request: Request,
    org_id: str,
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await get_org(db, org_id)
    if not row:
        raise HTTPException(status_code=404, detail="Organization not found")

    form = {"name": row.get("name", ""), "contactEmail": row.get("contactEmail", "")}
    return await _form_page(request, current_user, "edit", form, org_id=org_id)

# -------- Actions (CSRF) --------
@router.post("", dependencies=[Depends(csrf_mod.csrf_protect)])
async def create_action(
    request: Request,
    name: str = Form(""),
    contactEmail: str = Form(""),
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    form = {"name": name, "contactEmail": contactEmail}
    try:
        payload = OrgCreate.model_validate(form)
    except ValidationError as e:
        return await _form_page(request, current_user, "create", form, errors=form_errors(e), status_code=400)

    try:
        row = await create_org(db, payload, created_by=current_user.email)
    except Exception as e:
        logger.exception("Organization create failed")
        return await _form_page(
            request, current_user, "create", form,
            errors={"__all__": f"Failed to create organization: {e}"}, status_code=500,
        )
    return await redirect_with_flash(
        request.session, "/admin/organizations", "success", f"Organization \"{row.get('name')}\" created"
    )

@router.post("/{org_id}", dependencies=[Depends(csrf_mod.csrf_protect)])
async def update_action(
    request: Request,
    org_id: str,
    name: str = Form(""),
    contactEmail: str = Form(""),
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    form = {"name": name, "contactEmail": contactEmail}
    try:
        payload = OrgUpdate.model_validate(form)
    except ValidationError as e:
        return await _form_page(request, current_user, "edit", form, org_id=org_id, errors=form_errors(e), status_code=400)

    try:
        row = await update_org(db, org_id, payload, updated_by=current_user.email)
    except Exception as e:
        logger.exception("Organization update failed id=%s", org_id)
        return await _form_page(
            request, current_user, "edit", form,
            org_id=org_id, errors={"__all__": f"Failed to update organization: {e}"}, status_code=500,
        )
    if not row:
        return await redirect_with_flash(request.session, "/admin/organizations", "danger", "Organization not found")

    return await redirect_with_flash(
        request.session, "/admin/organizations", "success", f"Organization \"{row.get('name')}\" updated"
    )

@router.post("/{org_id}/delete", dependencies=[Depends(csrf_mod.csrf_protect)])
async def delete_action(
    request: Request,
    org_id: str,
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        deleted = await delete_org(db, org_id)
    except Exception as e:
        logger.exception("Organization delete failed id=%s", org_id)
        return await redirect_with_flash(
            request.session, "/admin/organizations", "danger", f"Failed to delete organization: {e}"
        )
    if not deleted:
        return await redirect_with_flash(request.session, "/admin/organizations", "danger", "Organization not found")
    return await redirect_with_flash(request.session, "/admin/organizations", "success", "Organization deleted")
