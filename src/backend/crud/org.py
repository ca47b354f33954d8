# src/backend/crud/org.py
from typing import Optional, Tuple, List

from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.crud.documents import (
    DocumentNotFound,
    add_document,
    delete_document,
    get_document,
    list_documents,
    update_document,
)
from src.backend.schemas.document import DocumentSnapshot
from src.backend.schemas.org import OrgCreate, OrgUpdate
from src.backend.utils.timezone import now_iso

COLLECTION = "organizations"

async def list_orgs(
    db: AsyncSession,
    q: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[DocumentSnapshot], int]:
    return await list_documents(db, COLLECTION, q=q, order_by="name", limit=limit, offset=offset)

async def list_orgs_for_dropdown(db: AsyncSession) -> List[DocumentSnapshot]:
    rows, _ = await list_documents(db, COLLECTION, order_by="name")
    return rows

async def get_org(db: AsyncSession, org_id: str) -> Optional[DocumentSnapshot]:
    return await get_document(db, COLLECTION, org_id)

async def create_org(db: AsyncSession, data: OrgCreate, created_by: str = "System") -> DocumentSnapshot:
    return await add_document(
        db,
        COLLECTION,
        {
            "name": data.name,
            "contactEmail": str(data.contact_email),
            "created_at": now_iso(),
            "admin_ids": [],
            "settings": {"is_active": True},
            "created_by": created_by,
        },
    )

async def update_org(db: AsyncSession, org_id: str, data: OrgUpdate, updated_by: str = "System") -> Optional[DocumentSnapshot]:
    try:
        return await update_document(
            db,
            COLLECTION,
            org_id,
            {
                "name": data.name,
                "contactEmail": str(data.contact_email),
                "updated_at": now_iso(),
                "updated_by": updated_by,
            },
        )
    except DocumentNotFound:
        return None

async def delete_org(db: AsyncSession, org_id: str) -> bool:
    # No referential checks: businesses keep their org_id string.
    return await delete_document(db, COLLECTION, org_id)
