# src/backend/utils/error_handler.py
from __future__ import annotations

import logging
import inspect
from typing import Any, Dict
from urllib.parse import quote

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("fastapi")


# ----------------------------------------
# LOW-SPAM TRACE HELPER (debug level only)
# ----------------------------------------
def _trace(msg: str) -> None:
    """
    Logs file+line for the call-site that triggered _trace().
    Use only at decision/return points.
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return
    f = inspect.currentframe()
    if f and f.f_back:
        c = f.f_back
        text = f"[TRACE] {c.f_code.co_filename}:{c.f_lineno} | {msg}"
    else:
        text = f"[TRACE] <unknown> | {msg}"
    logger.debug(text)


def _safe_args(exc: Exception) -> str:
    a = getattr(exc, "args", None)
    return str(a) if a else "No additional details"


def _json_error(
    status_code: int,
    message: str,
    exc: Exception,
    extra: Dict[str, Any] | None = None,
) -> JSONResponse:
    """
    Unified JSON error response for APIs and non-HTML requests.
    4xx details raised by our own handlers are kept; auth and server
    errors get a fixed user-facing message.
    """
    user_message = message
    if status_code == 401:
        user_message = "Your session has timed out for security reasons. Please log in again."
    elif status_code == 500:
        user_message = "Internal Server Error. Please try again later."

    payload: Dict[str, Any] = {
        "message": user_message,
        "detail": user_message,
        "error_type": exc.__class__.__name__,
        "status_code": status_code,
    }

    if extra:
        payload.update(extra)

    _trace(f"RETURN JSONResponse | status={status_code} message={user_message!r}")
    headers = getattr(exc, "headers", None)
    return JSONResponse(status_code=status_code, content=payload, headers=headers)


def _log_http(request: Request, status_code: int, detail: str, exc: Exception) -> None:
    """
    Log levels:
    - 404 -> INFO (normal noise)
    - 401/403 -> WARNING (auth/permission)
    - other 4xx -> ERROR (client error worth checking)
    - 5xx -> EXCEPTION (stack trace)
    """
    url = str(request.url)
    method = request.method

    if status_code == 404:
        logger.info("404 Not Found: %s %s", method, url)
        return

    if status_code in (401, 403):
        logger.warning("%s: %s %s | detail=%s", status_code, method, url, detail)
        return

    if 400 <= status_code < 500:
        logger.error(
            "%s: %s %s | detail=%s | args=%s",
            status_code,
            method,
            url,
            detail,
            _safe_args(exc),
        )
        return

    logger.exception("%s: %s %s | detail=%s", status_code, method, url, detail)


def _wants_html(request: Request) -> bool:
    """
    IMPORTANT:
    - Do NOT treat Accept: */* as HTML (fetch often sends */*)
    - HTML means browser navigation (document) OR Accept includes text/html
    """
    accept = (request.headers.get("accept") or "").lower()

    if "text/html" in accept:
        return True
    if "application/json" in accept:
        return False

    dest = (request.headers.get("sec-fetch-dest") or "").lower()
    mode = (request.headers.get("sec-fetch-mode") or "").lower()
    if dest == "document" or mode == "navigate":
        return True

    return False


def _is_admin_path(request: Request) -> bool:
    return request.url.path.startswith("/admin")


def _redirect_back_with_flag(request: Request, flag: str) -> RedirectResponse:
    """
    Redirect back to the previous page (Referer) if possible.
    Fallback to the dashboard.
    """
    ref = (request.headers.get("referer") or "").strip()

    # avoid a loop back onto the forbidden URL
    if ref and not ref.endswith(request.url.path):
        sep = "&" if "?" in ref else "?"
        url = f"{ref}{sep}auth={flag}"
        _trace(f"RETURN RedirectResponse -> {url} (303) [back to referer]")
        return RedirectResponse(url=url, status_code=303)

    url = f"/admin/dashboard?auth={flag}"
    _trace(f"RETURN RedirectResponse -> {url} (303) [fallback]")
    return RedirectResponse(url=url, status_code=303)


async def custom_exception_handler(request: Request, exc: Exception):
    """
    Single handler for HTTP errors, request validation and anything unhandled.

    Browser navigation to /admin/* that fails auth is redirected:
    401 goes to the login page (remembering where the user was headed),
    403 goes back to the previous admin page with ?auth=forbidden.
    Everything else gets a JSON body.
    """
    _trace(f"ENTER handler | path={request.url.path} method={request.method} exc={exc.__class__.__name__}")

    # FastAPI's HTTPException subclasses Starlette's
    if isinstance(exc, StarletteHTTPException):
        status = int(exc.status_code)
        detail = str(exc.detail)

        _trace(f"BRANCH HTTPException | status={status} detail={detail!r}")
        _log_http(request, status, detail, exc)

        if (
            request.method in ("GET", "HEAD")
            and _is_admin_path(request)
            and _wants_html(request)
            and status in (401, 403)
        ):
            if status == 401:
                url = f"/login?next={quote(request.url.path)}"
                _trace(f"RETURN RedirectResponse -> {url} (303) [401 admin->login]")
                return RedirectResponse(url=url, status_code=303)
            return _redirect_back_with_flag(request, flag="forbidden")

        return _json_error(status_code=status, message=detail, exc=exc)

    if isinstance(exc, RequestValidationError):
        _trace("BRANCH RequestValidationError (422)")
        logger.warning(
            "422 Validation error: %s %s | %s",
            request.method,
            str(request.url),
            exc.errors(),
        )
        return _json_error(
            status_code=422,
            message="Validation error occurred",
            exc=exc,
            extra={"validation_errors": jsonable_errors(exc)},
        )

    _trace("BRANCH Unhandled exception (500)")
    logger.exception("500 Unhandled exception: %s %s | %s", request.method, str(request.url), str(exc))
    return _json_error(
        status_code=500,
        message="Internal Server Error. Please try again later.",
        exc=exc,
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors stripped of non-serialisable ``ctx``/``input`` values."""
    out = []
    for err in exc.errors():
        out.append({"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")})
    return out
