# src/backend/routes/analysis_pages.py
from __future__ import annotations

import json
from typing import Any, Dict

from fastapi import APIRouter, Request, Depends, Form
from fastapi.responses import JSONResponse

from src.backend.ai.analyze_scan_trends import perform_analysis
from src.backend.models.user import AdminUser
from src.backend.utils import csrf as csrf_mod
from src.backend.utils.auth import get_current_user
from src.backend.utils.common_context import add_common
from src.backend.utils.view import render

router = APIRouter(tags=["Analysis"])

SAMPLE_HISTORICAL = json.dumps(
    [
        {"tile": "Boardwalk", "scans": 150, "period": "last_week"},
        {"tile": "Park Place", "scans": 145, "period": "last_week"},
        {"tile": "St. Charles Place", "scans": 80, "period": "last_week"},
        {"tile": "Jail", "scans": 250, "period": "last_week"},
    ],
    indent=2,
)

SAMPLE_CURRENT = json.dumps(
    [
        {"tile": "Boardwalk", "scans": 5, "period": "current_game"},
        {"tile": "Park Place", "scans": 3, "period": "current_game"},
        {"tile": "Jail", "scans": 30, "period": "current_game"},
        {"tile": "Go", "scans": 40, "period": "current_game"},
    ],
    indent=2,
)

async def _page(request: Request, current_user: AdminUser, historical: str, current: str, outcome=None):
    ctx: Dict[str, Any] = {
        "request": request,
        "title": "AI Scan Analysis",
        "historical": historical,
        "current": current,
        "outcome": outcome,
    }
    await add_common(ctx, current_user, request=request)
    return await render("admin/analysis/index.html", ctx)

@router.get("/admin/analysis")
async def analysis_page(
    request: Request,
    current_user: AdminUser = Depends(get_current_user),
):
    return await _page(request, current_user, SAMPLE_HISTORICAL, SAMPLE_CURRENT)

@router.post("/admin/analysis", dependencies=[Depends(csrf_mod.csrf_protect)])
async def analysis_action(
    request: Request,
    historicalScanData: str = Form(""),
    currentScanData: str = Form(""),
    current_user: AdminUser = Depends(get_current_user),
):
    outcome = await perform_analysis(
        {"historicalScanData": historicalScanData, "currentScanData": currentScanData}
    )
    return await _page(request, current_user, historicalScanData, currentScanData, outcome=outcome)

@router.post("/api/analysis", dependencies=[Depends(csrf_mod.csrf_protect)])
async def analysis_api(
    request: Request,
    current_user: AdminUser = Depends(get_current_user),
):
    """
    JSON in: {"historicalScanData": str, "currentScanData": str}
    JSON out: {"success": true, "data": {...}} or {"success": false, "error": "..."}
    """
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse({"success": False, "error": "Request body must be valid JSON"}, status_code=400)
    if not isinstance(body, dict):
        return JSONResponse({"success": False, "error": "Request body must be a JSON object"}, status_code=400)
    return await perform_analysis(body)
