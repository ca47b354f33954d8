# src/backend/crud/scans.py
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.crud.documents import count_documents, get_document, list_documents
from src.backend.schemas.document import DocumentSnapshot
from src.backend.utils.timezone import humanize_since

COLLECTION = "scans"

async def recent_scans(db: AsyncSession, limit: int = 10) -> List[DocumentSnapshot]:
    rows, _ = await list_documents(db, COLLECTION, order_by="timestamp", descending=True, limit=limit)
    return rows

async def describe_scans(db: AsyncSession, scans: List[DocumentSnapshot]) -> List[Dict[str, Any]]:
    """Feed rows: scan fields plus the referenced business name (looked up once per id)."""
    names: Dict[str, str] = {}
    out: List[Dict[str, Any]] = []
    for s in scans:
        business_id = str(s.get("business_id") or "")
        if business_id and business_id not in names:
            biz = await get_document(db, "businesses", business_id)
            names[business_id] = str(biz.get("name") or business_id) if biz else business_id
        out.append(
            {
                "id": s.id,
                "property": names.get(business_id, business_id) or "—",
                "player": s.get("user_id") or "—",
                "status": s.get("status") or "Completed",
                "timestamp": s.get("timestamp"),
                "age": humanize_since(s.get("timestamp")),
            }
        )
    return out

async def dashboard_stats(db: AsyncSession) -> Dict[str, int]:
    return {
        "total_scans": await count_documents(db, COLLECTION),
        "players": await count_documents(db, "users"),
        "businesses": await count_documents(db, "businesses"),
        "organizations": await count_documents(db, "organizations"),
    }
