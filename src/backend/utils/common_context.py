# src/backend/utils/common_context.py
from typing import Any, Dict, List, Optional
import logging

from fastapi import Request
from pydantic import ValidationError

from src.backend.models.user import AdminUser
from src.backend.utils.csrf import csrf_token_for
from src.backend.utils.flash import flash_popall

logger = logging.getLogger(__name__)

NAV_ITEMS: List[Dict[str, str]] = [
    {"href": "/admin/dashboard", "label": "Dashboard", "icon": "fa-gauge"},
    {"href": "/admin/organizations", "label": "Organizations", "icon": "fa-building"},
    {"href": "/admin/businesses", "label": "Businesses", "icon": "fa-briefcase"},
    {"href": "/admin/tiles", "label": "Tiles", "icon": "fa-table-cells"},
    {"href": "/admin/analysis", "label": "Analysis", "icon": "fa-brain"},
    {"href": "/admin/database", "label": "Database", "icon": "fa-database"},
]


def _initials(name: Optional[str]) -> str:
    if not name:
        return "A"
    return "".join(part[0] for part in name.split() if part).upper()[:2] or "A"


async def add_common(
    ctx: Dict[str, Any],
    current_user: AdminUser,
    request: Optional[Request] = None,
) -> None:
    """
    Header/sidebar context shared by every admin page. Pops pending
    flashes unless the route already put its own list in ``ctx``.
    """
    display_name = current_user.display_name or current_user.email
    path = request.url.path if request is not None else ""

    nav = [dict(item, active=path.startswith(item["href"])) for item in NAV_ITEMS]
    ctx.update(
        {
            "current_user": current_user,
            "display_name": display_name,
            "initials": _initials(display_name),
            "nav_items": nav,
        }
    )
    if request is not None:
        ctx.setdefault("csrf_token", csrf_token_for(request))
        if "flashes" not in ctx:
            ctx["flashes"] = await flash_popall(request.session)
    logger.debug("add_common(): user=%r path=%r", current_user.email, path)


def form_errors(exc: ValidationError) -> Dict[str, str]:
    """pydantic errors keyed by field alias, for inline form messages."""
    out: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__all__",)
        field = ".".join(str(p) for p in loc)
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.setdefault(field, msg)
    return out
