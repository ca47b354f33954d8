# src/backend/app.py
import os
import secrets
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException as FastAPIHTTPException

from starlette.middleware.sessions import SessionMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.backend.config import settings
from src.backend.utils.database import init_models
from src.backend.utils.error_handler import custom_exception_handler
from src.backend.utils.csrf import ensure_csrf_cookie
from src.backend.utils.triggers import triggers

# Importing the package registers the document triggers
import src.backend.triggers  # noqa: F401

from src.backend.routes.pages_router import router as pages_router
from src.backend.routes.auth_api import auth_api
from src.backend.routes.org_admin_pages import router as orgs_router
from src.backend.routes.business_admin_pages import router as businesses_router
from src.backend.routes.tile_admin_pages import router as tiles_router
from src.backend.routes.analysis_pages import router as analysis_router
from src.backend.routes.database_api import router as database_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)
    yield
    # let in-flight trigger handlers finish their writes
    await triggers.drain(timeout=5)


app = FastAPI(title=settings.APP_NAME, version="1.0", lifespan=lifespan)

# ----------------------------------------------------------
# ABSOLUTE PATHS
# ----------------------------------------------------------
current_dir = os.path.dirname(os.path.abspath(__file__))            # src/backend
project_root = os.path.abspath(os.path.join(current_dir, "../../")) # repo root
frontend_static_path = os.path.join(project_root, "frontend", "static")
frontend_template_path = os.path.join(project_root, "frontend", "templates")

# ----------------------------------------------------------
# VERIFY PATHS
# ----------------------------------------------------------
if not os.path.exists(frontend_static_path):
    raise RuntimeError(f"Static folder not found: {frontend_static_path}")
if not os.path.exists(frontend_template_path):
    raise RuntimeError(f"Templates folder not found: {frontend_template_path}")

# ----------------------------------------------------------
# STATIC FILES
# ----------------------------------------------------------
app.mount("/static", StaticFiles(directory=frontend_static_path), name="static")

# ----------------------------------------------------------
# SESSION
# ----------------------------------------------------------
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    same_site=(
        settings.SESSION_SAMESITE
        if settings.SESSION_SAMESITE in ("lax", "strict", "none")
        else "lax"
    ),
    https_only=settings.SESSION_HTTPS_ONLY,  # True in prod (requires HTTPS)
)

# ----------------------------------------------------------
# CSP & SECURITY HEADERS
# ----------------------------------------------------------
@app.middleware("http")
async def csp_nonce_and_headers(request: Request, call_next):
    nonce = secrets.token_urlsafe(16)
    request.state.csp_nonce = nonce

    response = await call_next(request)

    response.headers["Content-Security-Policy"] = (
        "default-src 'self'; "
        f"script-src 'self' 'nonce-{nonce}'; "
        "style-src 'self' 'unsafe-inline' https://cdnjs.cloudflare.com https://fonts.googleapis.com; "
        "img-src 'self' data: https:; "
        "font-src 'self' https://cdnjs.cloudflare.com https://fonts.gstatic.com; "
        "connect-src 'self'; "
        "frame-ancestors 'none'; "
        "base-uri 'self'; "
        "form-action 'self'; "
        "object-src 'none';"
    )
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")

    return response

# ----------------------------------------------------------
# GLOBAL XSRF TOKEN SEEDING
# ----------------------------------------------------------
@app.middleware("http")
async def seed_xsrf_cookie(request: Request, call_next):
    resp = await call_next(request)
    if request.method == "GET" and "text/html" in (resp.headers.get("content-type") or ""):
        ensure_csrf_cookie(resp, request)
    return resp

# ----------------------------------------------------------
# CUSTOM ERROR HANDLERS
# ----------------------------------------------------------
# 1) Starlette HTTPException (routing 404 etc.)
app.add_exception_handler(StarletteHTTPException, custom_exception_handler)

# 2) FastAPI HTTPException (ones we raise ourselves)
app.add_exception_handler(FastAPIHTTPException, custom_exception_handler)

# 3) Validation errors
app.add_exception_handler(RequestValidationError, custom_exception_handler)

# 4) Catch-all
app.add_exception_handler(Exception, custom_exception_handler)

# ----------------------------------------------------------
# ROUTERS
# ----------------------------------------------------------
app.include_router(pages_router)
app.include_router(auth_api, prefix="/auth")
app.include_router(orgs_router)
app.include_router(businesses_router)
app.include_router(tiles_router)
app.include_router(analysis_router)
app.include_router(database_router)
