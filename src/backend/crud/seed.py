# src/backend/crud/seed.py
"""
Bulk load of the starter board: one organization plus the businesses listed
in a config file, written in a single batch.

Config shape (assets/config.json):

    {"businesses": [{"id", "name", "street", "city", "state", "zip",
                     "category", "latitude", "longitude",
                     "heroImageUrl", "menuUrl", "hours": {...}}, ...]}
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession

from src.backend.crud.documents import batch_set
from src.backend.schemas.document import DocumentSnapshot
from src.backend.utils.timezone import now_iso

logger = logging.getLogger(__name__)

DEFAULT_ORG_ID = "bellevue-community"

Write = Tuple[str, str, Dict[str, Any]]


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as fh:
        config = json.load(fh)
    if not isinstance(config, dict) or not isinstance(config.get("businesses"), list):
        raise ValueError(f"{path}: expected an object with a 'businesses' list")
    return config


def _business_doc(b: Dict[str, Any], org_id: str) -> Dict[str, Any]:
    street, city = b.get("street", ""), b.get("city", "")
    state, zip_code = b.get("state", ""), b.get("zip", "")
    doc: Dict[str, Any] = {
        "org_id": org_id,
        "name": b["name"],
        "category": b.get("category", ""),
        "address": f"{street}, {city}, {state} {zip_code}".strip(", "),
        "details": {
            "street": street,
            "city": city,
            "state": state,
            "zip": zip_code,
            "phone": b.get("phone", ""),
            "hours": b.get("hours") or {},
            "heroImageUrl": b.get("heroImageUrl", ""),
            "menuUrl": b.get("menuUrl", ""),
        },
        "qr_code_secret": f"secret_{b['id']}",
        "points_per_visit": 10,
        "total_scans": 0,
    }
    # Known coordinates are stored so geocoding is skipped for seeded rows.
    if b.get("latitude") is not None and b.get("longitude") is not None:
        doc["lat"] = float(b["latitude"])
        doc["lng"] = float(b["longitude"])
    return doc


def build_seed_writes(config: Dict[str, Any], org_id: str = DEFAULT_ORG_ID) -> List[Write]:
    writes: List[Write] = [
        (
            "organizations",
            org_id,
            {
                "name": config.get("organization", {}).get("name", "Bellevue Community"),
                "contactEmail": config.get("organization", {}).get("contactEmail", "contact@bellevue.com"),
                "admin_ids": [],
                "created_at": now_iso(),
                "settings": {
                    "branding": {"primary_color": "#4A90E2", "logo_url": ""},
                    "is_active": True,
                },
            },
        )
    ]
    for b in config["businesses"]:
        if not b.get("id") or not b.get("name"):
            raise ValueError(f"Business entry needs 'id' and 'name': {b!r}")
        writes.append(("businesses", str(b["id"]), _business_doc(b, org_id)))
    return writes


async def seed_from_config(db: AsyncSession, config: Dict[str, Any]) -> List[DocumentSnapshot]:
    writes = build_seed_writes(config)
    logger.info("Seeding 1 organization and %d businesses", len(writes) - 1)
    return await batch_set(db, writes)
