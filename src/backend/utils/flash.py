# src/backend/utils/flash.py
from __future__ import annotations

import json
import logging
import secrets
from typing import Any, Coroutine, Dict, List, MutableMapping, Optional, cast

from starlette.responses import RedirectResponse

# ASYNC client, not redis.Redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.backend.config import settings

logger = logging.getLogger(__name__)

Session = MutableMapping[str, Any]
_FLASH_SESSION_KEY = "flashq"
_FLASH_SID_KEY = "_flash_sid"

_redis: Optional[Redis] = None
_REDIS_OK: bool = True


def _get_redis() -> Optional[Redis]:
    """Create and cache an asyncio Redis client (no network I/O here)."""
    global _redis, _REDIS_OK
    if not _REDIS_OK:
        return None
    if _redis is None:
        try:
            _redis = Redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=0.5,
            )
        except (RedisError, ValueError) as e:
            logger.warning("Flash: Redis disabled (%s); using session storage", e)
            _REDIS_OK = False
            _redis = None
    return _redis


async def _redis_available() -> bool:
    """
    True if Redis is reachable. Failures are pinned for the process lifetime.
    """
    global _REDIS_OK
    r = _get_redis()
    if r is None:
        return False
    try:
        ok = bool(await cast(Coroutine[Any, Any, bool], r.ping()))
    except (RedisError, OSError) as e:
        logger.info("Flash: Redis unreachable (%s); using session storage", e)
        ok = False
    if not ok:
        _REDIS_OK = False
    return ok


def _flash_key(session: Session) -> str:
    sid = session.get(_FLASH_SID_KEY)
    if not sid:
        sid = secrets.token_hex(12)
        session[_FLASH_SID_KEY] = sid
    return f"{settings.FLASH_PREFIX}{sid}"


def _clean(item: Any) -> Optional[Dict[str, str]]:
    if not isinstance(item, dict):
        return None
    return {"category": str(item.get("category", "")), "message": str(item.get("message", ""))}


async def flash_add(session: Session, category: str, text: str) -> None:
    """
    Queue a flash message: Redis per-session list when reachable, else the
    signed session cookie.
    """
    item: Dict[str, str] = {"category": category, "message": text}

    if await _redis_available():
        r = _get_redis()
        key = _flash_key(session)
        try:
            await cast(Coroutine[Any, Any, int], r.rpush(key, json.dumps(item)))
            await cast(Coroutine[Any, Any, bool], r.expire(key, int(settings.FLASH_TTL)))
            return
        except (RedisError, OSError) as e:
            logger.warning("Flash: Redis write failed (%s); using session storage", e)

    stack: List[Dict[str, str]] = list(session.get(_FLASH_SESSION_KEY, []))
    stack.append(item)
    session[_FLASH_SESSION_KEY] = stack


async def flash_popall(session: Session) -> List[Dict[str, str]]:
    """Pop all flash messages (Redis first, then the session fallback)."""
    msgs: List[Dict[str, str]] = []

    if _REDIS_OK and session.get(_FLASH_SID_KEY) and await _redis_available():
        r = _get_redis()
        key = _flash_key(session)
        try:
            while True:
                raw = await cast(Coroutine[Any, Any, Optional[str]], r.lpop(key))
                if raw is None:
                    break
                try:
                    item = _clean(json.loads(raw))
                except (TypeError, ValueError):
                    item = None  # malformed entry
                if item:
                    msgs.append(item)
        except (RedisError, OSError) as e:
            logger.warning("Flash: Redis read failed (%s)", e)

    for it in session.pop(_FLASH_SESSION_KEY, []) or []:
        item = _clean(it)
        if item:
            msgs.append(item)
    return msgs


async def redirect_with_flash(
    session: Session,
    url: str,
    category: str,
    text: str,
    status_code: int = 303,
):
    """Add a flash then return a redirect response."""
    await flash_add(session, category, text)
    return RedirectResponse(url, status_code=status_code)
