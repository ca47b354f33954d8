# src/backend/crud/business.py
import secrets
from typing import Any, Dict, Optional, Tuple, List

from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.crud.documents import (
    DocumentNotFound,
    delete_document,
    get_document,
    list_documents,
    new_document_id,
    set_document,
    update_document,
)
from src.backend.schemas.business import BusinessCreate, BusinessUpdate
from src.backend.schemas.document import DocumentSnapshot
from src.backend.utils.timezone import now_iso

COLLECTION = "businesses"

def new_qr_secret(business_id: str) -> str:
    return f"secret_{business_id}_{secrets.token_hex(4)}"

async def list_businesses(
    db: AsyncSession,
    q: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[DocumentSnapshot], int]:
    return await list_documents(db, COLLECTION, q=q, order_by="name", limit=limit, offset=offset)

async def get_business(db: AsyncSession, business_id: str) -> Optional[DocumentSnapshot]:
    return await get_document(db, COLLECTION, business_id)

async def create_business(db: AsyncSession, data: BusinessCreate, created_by: str = "System") -> DocumentSnapshot:
    business_id = new_document_id()
    return await set_document(
        db,
        COLLECTION,
        business_id,
        {
            "name": data.name,
            "category": data.category,
            "points_per_visit": data.points_per_visit,
            "address": data.address,
            "org_id": data.org_id,
            "details": data.details.model_dump(by_alias=True),
            "qr_code_secret": new_qr_secret(business_id),
            "total_scans": 0,
            "created_at": now_iso(),
            "created_by": created_by,
        },
    )

def business_patch(current: Dict[str, Any], data: BusinessUpdate) -> Dict[str, Any]:
    """
    Field patch for an edit form submit. Nested details go in as dotted paths
    so keys the form does not show (images, extra hours) survive. A changed
    address nulls both coordinates, which re-arms geocoding.
    """
    patch: Dict[str, Any] = {
        "name": data.name,
        "category": data.category,
        "points_per_visit": data.points_per_visit,
        "address": data.address,
        "org_id": data.org_id,
    }
    for key, value in data.details.model_dump(by_alias=True).items():
        patch[f"details.{key}"] = value

    if (current.get("address") or "") != data.address:
        patch["lat"] = None
        patch["lng"] = None
    return patch

async def update_business(
    db: AsyncSession,
    business_id: str,
    data: BusinessUpdate,
    updated_by: str = "System",
) -> Optional[DocumentSnapshot]:
    current = await get_business(db, business_id)
    if current is None:
        return None
    patch = business_patch(current.data or {}, data)
    patch["updated_at"] = now_iso()
    patch["updated_by"] = updated_by
    try:
        return await update_document(db, COLLECTION, business_id, patch)
    except DocumentNotFound:
        return None

async def delete_business(db: AsyncSession, business_id: str) -> bool:
    return await delete_document(db, COLLECTION, business_id)
