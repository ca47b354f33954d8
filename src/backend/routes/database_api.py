# src/backend/routes/database_api.py
"""
Raw document access for the admin database editor.

    GET    /api/database                              -> {"collections": [...]}
    GET    /api/database?collection=c                 -> {"documents": [{id, ...}]}
    GET    /api/database?collection=c&document=d      -> {id, ...} | 404
    POST   /api/database?collection=c[&document=d]    -> 201 {id, ...}
    PUT    /api/database?collection=c&document=d      -> {id, ...} | 404
    DELETE /api/database?collection=c&document=d      -> 204
    GET    /api/database/stream?collection=c          -> text/event-stream of writes
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, Depends, Query
from fastapi.responses import JSONResponse, Response, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.crud.documents import (
    DocumentNotFound,
    add_document,
    delete_document,
    get_document,
    list_collections,
    list_documents,
    set_document,
    update_document,
)
from src.backend.models.user import AdminUser
from src.backend.utils import csrf as csrf_mod
from src.backend.utils.auth import get_current_user
from src.backend.utils.common_context import add_common
from src.backend.utils.database import get_db
from src.backend.utils.live import feed
from src.backend.utils.view import render

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Database"])

KEEPALIVE_SECONDS = 15.0


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _json_object(request: Request) -> Optional[Dict[str, Any]]:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


# -------- Page --------
@router.get("/admin/database")
async def database_page(
    request: Request,
    current_user: AdminUser = Depends(get_current_user),
):
    ctx: Dict[str, Any] = {"request": request, "title": "Database"}
    await add_common(ctx, current_user, request=request)
    return await render("admin/database/index.html", ctx)


# -------- REST --------
@router.get("/api/database")
async def read_documents(
    collection: Optional[str] = Query(None),
    document: Optional[str] = Query(None),
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        if not collection:
            return {"collections": await list_collections(db)}
        if document:
            snap = await get_document(db, collection, document)
            if snap is None:
                return _error(404, "Document not found")
            return snap.to_dict()
        rows, _ = await list_documents(db, collection, order_by=None)
        return {"documents": [r.to_dict() for r in rows]}
    except Exception as e:
        logger.exception("Database GET failed")
        return _error(500, f"Failed to fetch from database: {e}")


@router.post("/api/database", dependencies=[Depends(csrf_mod.csrf_protect)])
async def create_document(
    request: Request,
    collection: Optional[str] = Query(None),
    document: Optional[str] = Query(None),
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not collection:
        return _error(400, "Collection name is required")
    body = await _json_object(request)
    if body is None:
        return _error(400, "Request body must be a JSON object")

    try:
        if document:
            snap = await set_document(db, collection, document, body)
        else:
            snap = await add_document(db, collection, body)
    except ValueError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.exception("Database POST failed")
        return _error(500, f"Failed to create document: {e}")
    return JSONResponse(snap.to_dict(), status_code=201)


@router.put("/api/database", dependencies=[Depends(csrf_mod.csrf_protect)])
async def replace_fields(
    request: Request,
    collection: Optional[str] = Query(None),
    document: Optional[str] = Query(None),
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not collection or not document:
        return _error(400, "Collection name and document ID are required")
    body = await _json_object(request)
    if body is None:
        return _error(400, "Request body must be a JSON object")

    try:
        snap = await update_document(db, collection, document, body)
    except DocumentNotFound:
        return _error(404, "Document not found")
    except ValueError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.exception("Database PUT failed")
        return _error(500, f"Failed to update document: {e}")
    return snap.to_dict()


@router.delete("/api/database", dependencies=[Depends(csrf_mod.csrf_protect)])
async def remove_document(
    collection: Optional[str] = Query(None),
    document: Optional[str] = Query(None),
    current_user: AdminUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not collection or not document:
        return _error(400, "Collection name and document ID are required")
    try:
        await delete_document(db, collection, document)
    except Exception as e:
        logger.exception("Database DELETE failed")
        return _error(500, f"Failed to delete document: {e}")
    return Response(status_code=204)


# -------- Live --------
def _sse(event: str, data: Dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


@router.get("/api/database/stream")
async def stream_collection(
    request: Request,
    collection: str = Query(...),
    current_user: AdminUser = Depends(get_current_user),
):
    """Server-sent events for every write to ``collection`` until the client goes away."""
    sub = feed.subscribe(collection)

    async def events():
        try:
            yield _sse("ready", {"collection": collection})
            while True:
                if await request.is_disconnected():
                    break
                try:
                    event = await sub.get(timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield _sse("write", event.to_payload())
        finally:
            sub.close()

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
