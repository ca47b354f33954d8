# src/backend/utils/view.py
import json
import os
from typing import Dict, Any

from fastapi.templating import Jinja2Templates
from starlette.responses import Response

from src.backend.config import settings
from src.backend.utils.timezone import format_date, humanize_since

_current_dir = os.path.dirname(os.path.abspath(__file__))
_project_root = os.path.abspath(os.path.join(_current_dir, "../../.."))
_templates_path = os.path.join(_project_root, "frontend", "templates")
templates = Jinja2Templates(directory=_templates_path)

# Available to ALL templates rendered via this helper
templates.env.globals["static_version"] = settings.STATIC_VERSION
templates.env.globals["app_name"] = settings.APP_NAME
templates.env.filters["date"] = format_date
templates.env.filters["since"] = humanize_since
templates.env.filters["pretty_json"] = lambda v: json.dumps(v, indent=2, ensure_ascii=False, default=str)

def _no_cache(resp: Response) -> Response:
    resp.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    resp.headers["Pragma"] = "no-cache"
    resp.headers["Expires"] = "0"
    return resp

async def render(template_name: str, ctx: Dict[str, Any], status_code: int = 200) -> Response:
    request = ctx["request"]
    ctx.setdefault("static_version", settings.STATIC_VERSION)
    ctx.setdefault("csp_nonce", getattr(request.state, "csp_nonce", ""))
    resp = templates.TemplateResponse(request, template_name, ctx, status_code=status_code)
    return _no_cache(resp)
