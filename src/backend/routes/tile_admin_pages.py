# src/backend/routes/tile_admin_pages.py
from __future__ import annotations

import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, Request, Depends, Form, Query
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.utils.database import get_db
from src.backend.utils.auth import get_current_user
from src.backend.models.user import AdminUser
from src.backend.crud.tile import list_tiles, save_tile
from src.backend.schemas.tile import MONOPOLY_TILES, TileUpdate, tile_slug
from src.backend.utils import csrf as csrf_mod
from src.backend.utils.view import render
from src.backend.utils.flash import redirect_with_flash
from src.backend.utils.common_context import add_common, form_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/tiles", tags=["Admin Tiles"])

async def _page(
    request: Request,
    db: AsyncSession,
    current_user: AdminUser,
    form: Dict[str, Any],
    errors: Optional[Dict[str, str]] = None,
    status_code: int = 200,
):
    saved = await list_tiles(db)
    ctx: Dict[str, Any] = {
        "request": request,
        "title": "Tile Management",
        "tiles": MONOPOLY_TILES,
        "saved": saved,
        "form": form,
        "errors": errors or {},
    }
    await add_common(ctx, current_user, request=request)
    return await render("admin/tiles/index.html", ctx, status_code=status_code)

@router.get("")
async def tiles_page(
    request: Request,
    tile: Optional[str] = Query(None),
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    form: Dict[str, Any] = {"tileName": "", "owner": "", "rentLevel": "0", "specialNotes": ""}
    # ?tile=<name> preloads a saved tile for editing
    if tile:
        for row in await list_tiles(db):
            if row.id == tile_slug(tile):
                form = {
                    "tileName": row.get("tileName", ""),
                    "owner": row.get("owner") or "",
                    "rentLevel": str(row.get("rentLevel", 0)),
                    "specialNotes": row.get("specialNotes") or "",
                }
                break
        else:
            form["tileName"] = tile
    return await _page(request, db, current_user, form)

@router.post("", dependencies=[Depends(csrf_mod.csrf_protect)])
async def save_action(
    request: Request,
    tileName: str = Form(""),
    owner: str = Form(""),
    rentLevel: str = Form("0"),
    specialNotes: str = Form(""),
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    form = {"tileName": tileName, "owner": owner, "rentLevel": rentLevel or "0", "specialNotes": specialNotes}
    try:
        payload = TileUpdate.model_validate(form)
    except ValidationError as e:
        return await _page(request, db, current_user, form, errors=form_errors(e), status_code=400)

    try:
        await save_tile(db, payload, updated_by=current_user.email)
    except Exception as e:
        logger.exception("Tile save failed tile=%s", payload.tile_name)
        return await _page(
            request, db, current_user, form,
            errors={"__all__": f"Failed to save tile: {e}"}, status_code=500,
        )
    return await redirect_with_flash(
        request.session, "/admin/tiles", "success", f"Tile \"{payload.tile_name}\" saved"
    )
