# src/backend/routes/business_admin_pages.py
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

from src.backend.crud.business import (
    list_businesses, get_business, create_business, update_business, delete_business,
)
from src.backend.crud.org import list_orgs_for_dropdown
from src.backend.schemas.business import BusinessCreate, BusinessUpdate, format_hours, parse_hours
from src.backend.utils import csrf as csrf_mod
from src.backend.utils.view import render
from src.backend.utils.flash import redirect_with_flash
from src.backend.utils.common_context import add_common, form_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/businesses", tags=["Admin Businesses"])

_DETAIL_FIELDS = ("street", "city", "state", "zip", "phone", "heroImageUrl", "menuUrl")

def _payload_from_form(form: Dict[str, Any]) -> Dict[str, Any]:
    """Flat form fields -> nested BusinessCreate input."""
    payload: Dict[str, Any] = {
        "name": form.get("name"),
        "category": form.get("category"),
        "address": form.get("address"),
        "org_id": form.get("org_id"),
        "details": {k: form.get(k) for k in _DETAIL_FIELDS},
    }
    payload["details"]["hours"] = parse_hours(form.get("hours"))
    ppv = (form.get("points_per_visit") or "").strip()
    if ppv:
        payload["points_per_visit"] = ppv
    return payload

def _form_from_row(data: Dict[str, Any]) -> Dict[str, Any]:
    details = data.get("details") if isinstance(data.get("details"), dict) else {}
    form: Dict[str, Any] = {
        "name": data.get("name", ""),
        "category": data.get("category", ""),
        "points_per_visit": str(data.get("points_per_visit", 10)),
        "address": data.get("address", ""),
        "org_id": data.get("org_id", ""),
        "hours": format_hours(details.get("hours")),
    }
    for k in _DETAIL_FIELDS:
        form[k] = details.get(k, "") or ""
    return form

async def _form_page(
    request: Request,
    db: AsyncSession,
    current_user: AdminUser,
    mode: str,
    form: Dict[str, Any],
    business_id: Optional[str] = None,
    errors: Optional[Dict[str, str]] = None,
    status_code: int = 200,
):
    ctx: Dict[str, Any] = {
        "request": request,
        "title": "Add Business" if mode == "create" else "Edit Business",
        "mode": mode,
        "business_id": business_id,
        "form": form,
        "orgs": await list_orgs_for_dropdown(db),
        "errors": errors or {},
    }
    await add_common(ctx, current_user, request=request)
    return await render("admin/businesses/form.html", ctx, status_code=status_code)

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
    rows, total = await list_businesses(db, q=q, limit=size, offset=offset)
    pages = max(1, math.ceil(total / size)) if size else 1

    ctx: Dict[str, Any] = {
        "request": request,
        "title": "Businesses",
        "rows": rows,
        "q": q or "",
        "page": page,
        "pages": pages,
        "size": size,
        "total": total,
    }
    await add_common(ctx, current_user, request=request)
    return await render("admin/businesses/index.html", ctx)

@router.get("/new")
async def new_page(
    request: Request,
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _form_page(request, db, current_user, "create", _form_from_row({}))

@router.get("/{business_id}/edit")
async def edit_page(
    request: Request,
    business_id: str,
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await get_business(db, business_id)
    if not row:
        raise HTTPException(status_code=404, detail="Business not found")
    return await _form_page(
        request, db, current_user, "edit", _form_from_row(row.data or {}), business_id=business_id
    )

# -------- Actions (CSRF) --------
async def _read_form(request: Request) -> Dict[str, str]:
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str) and k != csrf_mod.CSRF_FORM_FIELD}

@router.post("", dependencies=[Depends(csrf_mod.csrf_protect)])
async def create_action(
    request: Request,
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    form = await _read_form(request)
    try:
        payload = BusinessCreate.model_validate(_payload_from_form(form))
    except ValidationError as e:
        return await _form_page(request, db, current_user, "create", form, errors=form_errors(e), status_code=400)

    try:
        row = await create_business(db, payload, created_by=current_user.email)
    except Exception as e:
        logger.exception("Business create failed")
        return await _form_page(
            request, db, current_user, "create", form,
            errors={"__all__": f"Failed to create business: {e}"}, status_code=500,
        )
    return await redirect_with_flash(
        request.session, "/admin/businesses", "success", f"Business \"{row.get('name')}\" created"
    )

@router.post("/{business_id}", dependencies=[Depends(csrf_mod.csrf_protect)])
async def update_action(
    request: Request,
    business_id: str,
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    form = await _read_form(request)
    try:
        payload = BusinessUpdate.model_validate(_payload_from_form(form))
    except ValidationError as e:
        return await _form_page(
            request, db, current_user, "edit", form,
            business_id=business_id, errors=form_errors(e), status_code=400,
        )

    try:
        row = await update_business(db, business_id, payload, updated_by=current_user.email)
    except Exception as e:
        logger.exception("Business update failed id=%s", business_id)
        return await _form_page(
            request, db, current_user, "edit", form,
            business_id=business_id, errors={"__all__": f"Failed to update business: {e}"}, status_code=500,
        )
    if not row:
        return await redirect_with_flash(request.session, "/admin/businesses", "danger", "Business not found")
    return await redirect_with_flash(
        request.session, "/admin/businesses", "success", f"Business \"{row.get('name')}\" updated"
    )

@router.post("/{business_id}/delete", dependencies=[Depends(csrf_mod.csrf_protect)])
async def delete_action(
    request: Request,
    business_id: str,
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        deleted = await delete_business(db, business_id)
    except Exception as e:
        logger.exception("Business delete failed id=%s", business_id)
        return await redirect_with_flash(
            request.session, "/admin/businesses", "danger", f"Failed to delete business: {e}"
        )
    if not deleted:
        return await redirect_with_flash(request.session, "/admin/businesses", "danger", "Business not found")
    return await redirect_with_flash(request.session, "/admin/businesses", "success", "Business deleted")
