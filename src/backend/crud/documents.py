# src/backend/crud/documents.py
from __future__ import annotations

import copy
import logging
import secrets
import string
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, distinct, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.models.document import Document
from src.backend.schemas.document import DELETE_FIELD, DocumentSnapshot, WriteEvent
from src.backend.utils.live import feed
from src.backend.utils.timezone import now_local
from src.backend.utils.triggers import triggers

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20
_MAX_NAME = 150

# Row columns usable as an ordering key besides top-level document fields.
_ROW_ORDER_COLUMNS = {"created_dt": Document.created_dt, "updated_dt": Document.updated_dt}


class DocumentNotFound(Exception):
    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document not found: {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


def new_document_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def _check_name(kind: str, value: str) -> str:
    v = (value or "").strip()
    if not v or "/" in v or len(v) > _MAX_NAME:
        raise ValueError(f"Invalid {kind} name: {value!r}")
    return v


def _snapshot(row: Document) -> DocumentSnapshot:
    return DocumentSnapshot(
        collection=row.collection,
        id=row.doc_id,
        data=copy.deepcopy(row.data or {}),
        created_dt=row.created_dt,
        updated_dt=row.updated_dt,
    )


def _missing(collection: str, doc_id: str) -> DocumentSnapshot:
    return DocumentSnapshot(collection=collection, id=doc_id, data=None)


def apply_patch(data: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of ``data`` with ``patch`` applied.

    Keys may be dotted paths into nested maps ("details.city"); intermediate
    maps are created as needed and a non-map in the way is replaced.
    ``DELETE_FIELD`` as a value removes the field.
    """
    out = copy.deepcopy(data or {})
    for key, value in patch.items():
        parts = str(key).split(".")
        if any(not p for p in parts):
            raise ValueError(f"Invalid field path: {key!r}")
        cur = out
        for part in parts[:-1]:
            nxt = cur.get(part)
            if not isinstance(nxt, dict):
                if value is DELETE_FIELD:
                    cur = None
                    break
                nxt = {}
                cur[part] = nxt
            cur = nxt
        if cur is None:
            continue
        if value is DELETE_FIELD:
            cur.pop(parts[-1], None)
        else:
            cur[parts[-1]] = copy.deepcopy(value)
    return out


def deep_merge(base: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base or {})
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def _emit(before: DocumentSnapshot, after: DocumentSnapshot) -> None:
    event = WriteEvent(collection=after.collection, doc_id=after.id, before=before, after=after)
    logger.debug("write %s %s/%s", event.kind, event.collection, event.doc_id)
    feed.publish(event)
    triggers.dispatch(event)


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise


async def _get_row(db: AsyncSession, collection: str, doc_id: str) -> Optional[Document]:
    # populate_existing: trigger writes land through other sessions
    res = await db.execute(
        select(Document)
        .where(Document.collection == collection, Document.doc_id == doc_id)
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


# -------- Reads --------
async def list_collections(db: AsyncSession) -> List[str]:
    res = await db.execute(select(distinct(Document.collection)).order_by(Document.collection))
    return [c for c in res.scalars().all() if c]


async def list_documents(
    db: AsyncSession,
    collection: str,
    q: Optional[str] = None,
    order_by: Optional[str] = "name",
    descending: bool = False,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Tuple[List[DocumentSnapshot], int]:
    base = select(Document).where(Document.collection == collection)
    if q:
        like = f"%{q.strip()}%"
        base = base.where(Document.data["name"].as_string().ilike(like))

    total = int(await db.scalar(select(func.count()).select_from(base.subquery())) or 0)

    if order_by in _ROW_ORDER_COLUMNS:
        key = _ROW_ORDER_COLUMNS[order_by]
    elif order_by:
        key = Document.data[order_by].as_string()
    else:
        key = Document.doc_id
    base = base.order_by(key.desc() if descending else key.asc(), Document.doc_id)

    if limit:
        base = base.limit(limit).offset(offset)
    res = await db.execute(base.execution_options(populate_existing=True))
    return [_snapshot(r) for r in res.scalars().all()], total


async def count_documents(db: AsyncSession, collection: str) -> int:
    res = await db.scalar(
        select(func.count()).select_from(Document).where(Document.collection == collection)
    )
    return int(res or 0)


async def get_document(db: AsyncSession, collection: str, doc_id: str) -> Optional[DocumentSnapshot]:
    row = await _get_row(db, collection, doc_id)
    return _snapshot(row) if row else None


# -------- Writes --------
async def add_document(db: AsyncSession, collection: str, data: Dict[str, Any]) -> DocumentSnapshot:
    """Create a document under a store-generated id."""
    collection = _check_name("collection", collection)
    row = Document(
        collection=collection,
        doc_id=new_document_id(),
        data=copy.deepcopy(data),
        created_dt=now_local(),
        updated_dt=now_local(),
    )
    db.add(row)
    await _commit(db)
    await db.refresh(row)
    after = _snapshot(row)
    _emit(_missing(collection, row.doc_id), after)
    return after


async def set_document(
    db: AsyncSession,
    collection: str,
    doc_id: str,
    data: Dict[str, Any],
    merge: bool = False,
) -> DocumentSnapshot:
    """Create or overwrite the document at a caller-chosen id."""
    collection = _check_name("collection", collection)
    doc_id = _check_name("document", doc_id)

    row = await _get_row(db, collection, doc_id)
    if row is None:
        before = _missing(collection, doc_id)
        row = Document(
            collection=collection,
            doc_id=doc_id,
            data=copy.deepcopy(data),
            created_dt=now_local(),
            updated_dt=now_local(),
        )
        db.add(row)
    else:
        before = _snapshot(row)
        row.data = deep_merge(row.data, data) if merge else copy.deepcopy(data)
        row.updated_dt = now_local()

    await _commit(db)
    await db.refresh(row)
    after = _snapshot(row)
    _emit(before, after)
    return after


async def update_document(
    db: AsyncSession,
    collection: str,
    doc_id: str,
    patch: Dict[str, Any],
) -> DocumentSnapshot:
    """Partial patch (dotted paths allowed). Raises DocumentNotFound."""
    row = await _get_row(db, collection, doc_id)
    if row is None:
        raise DocumentNotFound(collection, doc_id)

    before = _snapshot(row)
    # Assign a fresh dict so the JSON column is flagged dirty.
    row.data = apply_patch(row.data, patch)
    row.updated_dt = now_local()

    await _commit(db)
    await db.refresh(row)
    after = _snapshot(row)
    _emit(before, after)
    return after


async def delete_document(db: AsyncSession, collection: str, doc_id: str) -> bool:
    row = await _get_row(db, collection, doc_id)
    if row is None:
        return False
    before = _snapshot(row)
    await db.delete(row)
    await db.commit()
    _emit(before, _missing(collection, doc_id))
    return True


async def batch_set(
    db: AsyncSession,
    writes: Iterable[Tuple[str, str, Dict[str, Any]]],
) -> List[DocumentSnapshot]:
    """Set several documents in one commit; events fire after the commit."""
    staged: List[Tuple[DocumentSnapshot, Document]] = []
    for collection, doc_id, data in writes:
        collection = _check_name("collection", collection)
        doc_id = _check_name("document", doc_id)
        row = await _get_row(db, collection, doc_id)
        if row is None:
            before = _missing(collection, doc_id)
            row = Document(
                collection=collection,
                doc_id=doc_id,
                data=copy.deepcopy(data),
                created_dt=now_local(),
                updated_dt=now_local(),
            )
            db.add(row)
        else:
            before = _snapshot(row)
            row.data = copy.deepcopy(data)
            row.updated_dt = now_local()
        staged.append((before, row))

    await _commit(db)
    out = []
    for before, row in staged:
        await db.refresh(row)
        after = _snapshot(row)
        _emit(before, after)
        out.append(after)
    return out
