# src/backend/crud/tile.py
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.crud.documents import list_documents, set_document
from src.backend.schemas.document import DocumentSnapshot
from src.backend.schemas.tile import TileUpdate, tile_slug
from src.backend.utils.timezone import now_iso

COLLECTION = "tiles"

async def list_tiles(db: AsyncSession) -> List[DocumentSnapshot]:
    rows, _ = await list_documents(db, COLLECTION, order_by="tileName")
    return rows

async def save_tile(db: AsyncSession, data: TileUpdate, updated_by: str = "System") -> DocumentSnapshot:
    return await set_document(
        db,
        COLLECTION,
        tile_slug(data.tile_name),
        {
            "tileName": data.tile_name,
            "owner": data.owner,
            "rentLevel": data.rent_level,
            "specialNotes": data.special_notes,
            "updated_at": now_iso(),
            "updated_by": updated_by,
        },
        merge=True,
    )
