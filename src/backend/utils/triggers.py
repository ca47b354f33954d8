# src/backend/utils/triggers.py
from __future__ import annotations

import asyncio
import dataclasses
import logging
import re
from typing import Awaitable, Callable, List, Optional, Pattern, Set, Tuple

from src.backend.schemas.document import WriteEvent

logger = logging.getLogger(__name__)

TriggerHandler = Callable[[WriteEvent], Awaitable[None]]

_WILDCARD_RE = re.compile(r"\{(\w+)\}")


def _compile_path(path: str) -> Pattern[str]:
    """
    "businesses/{businessId}" -> ^businesses/(?P<businessId>[^/]+)$
    """
    parts = []
    pos = 0
    for m in _WILDCARD_RE.finditer(path):
        parts.append(re.escape(path[pos:m.start()]))
        parts.append(f"(?P<{m.group(1)}>[^/]+)")
        pos = m.end()
    parts.append(re.escape(path[pos:]))
    return re.compile("^" + "".join(parts) + "$")


class TriggerRegistry:
    """
    Document-write triggers.

    Each matching handler runs as its own task after the write commits.
    Failures are logged and never reach the writer; nothing is retried and
    concurrent writes are not deduplicated.
    """

    def __init__(self) -> None:
        self._handlers: List[Tuple[str, Pattern[str], TriggerHandler]] = []
        self._pending: Set[asyncio.Task] = set()

    def on_document_written(self, path: str) -> Callable[[TriggerHandler], TriggerHandler]:
        pattern = _compile_path(path)

        def decorator(fn: TriggerHandler) -> TriggerHandler:
            self._handlers.append((path, pattern, fn))
            logger.info("Registered trigger %s on %s", fn.__name__, path)
            return fn

        return decorator

    def handlers_for(self, collection: str, doc_id: str) -> List[Tuple[TriggerHandler, dict]]:
        target = f"{collection}/{doc_id}"
        out = []
        for _path, pattern, fn in self._handlers:
            m = pattern.match(target)
            if m:
                out.append((fn, m.groupdict()))
        return out

    def dispatch(self, event: WriteEvent) -> List[asyncio.Task]:
        tasks = []
        for fn, params in self.handlers_for(event.collection, event.doc_id):
            evt = dataclasses.replace(event, params=params)
            task = asyncio.create_task(self._run(fn, evt), name=f"trigger:{fn.__name__}:{event.collection}/{event.doc_id}")
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def _run(self, fn: TriggerHandler, event: WriteEvent) -> None:
        try:
            await fn(event)
        except Exception:
            logger.exception("Trigger %s failed for %s/%s", fn.__name__, event.collection, event.doc_id)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait until no trigger task of the running loop is pending (including ones spawned meanwhile)."""
        loop = asyncio.get_running_loop()
        while True:
            pending = [t for t in self._pending if t.get_loop() is loop and not t.done()]
            if not pending:
                return
            await asyncio.wait(pending, timeout=timeout)
            if timeout is not None:
                return


triggers = TriggerRegistry()
on_document_written = triggers.on_document_written
