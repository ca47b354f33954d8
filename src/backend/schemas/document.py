# src/backend/schemas/document.py
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


class _DeleteField:
    """Sentinel: as a patch value, removes the field instead of setting it."""

    _instance: Optional["_DeleteField"] = None

    def __new__(cls) -> "_DeleteField":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()


@dataclass(frozen=True)
class DocumentRef:
    collection: str
    id: str

    async def update(self, patch: Dict[str, Any]) -> "DocumentSnapshot":
        """Patch this document in a session of its own (used by triggers)."""
        # Deferred: crud.documents imports this module.
        from src.backend.crud import documents
        from src.backend.utils.database import AsyncSessionLocal

        async with AsyncSessionLocal() as db:
            return await documents.update_document(db, self.collection, self.id, patch)


@dataclass(frozen=True)
class DocumentSnapshot:
    collection: str
    id: str
    data: Optional[Dict[str, Any]]
    created_dt: Optional[datetime] = None
    updated_dt: Optional[datetime] = None

    @property
    def exists(self) -> bool:
        return self.data is not None

    @property
    def ref(self) -> DocumentRef:
        return DocumentRef(self.collection, self.id)

    def get(self, key: str, default: Any = None) -> Any:
        """Read a (possibly dotted) field; missing paths give ``default``."""
        cur: Any = self.data or {}
        for part in key.split("."):
            if not isinstance(cur, dict) or part not in cur:
                return default
            cur = cur[part]
        return cur

    def to_dict(self) -> Dict[str, Any]:
        """API shape: ``{"id": ..., **data}``."""
        out: Dict[str, Any] = {"id": self.id}
        out.update(copy.deepcopy(self.data or {}))
        return out


@dataclass(frozen=True)
class WriteEvent:
    """One committed create/update/delete of a single document."""

    collection: str
    doc_id: str
    before: DocumentSnapshot
    after: DocumentSnapshot
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        if not self.before.exists:
            return "create"
        if not self.after.exists:
            return "delete"
        return "update"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "collection": self.collection,
            "id": self.doc_id,
            "data": self.after.to_dict() if self.after.exists else None,
        }
