# src/backend/models/document.py
from typing import Any

from sqlalchemy import Column, String, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from src.backend.utils.database import Base
from src.backend.utils.timezone import now_local


class Document(Base):
    """One JSON document of a collection (``organizations``, ``businesses``...)."""

    __tablename__ = "document"

    collection: Mapped[str] = mapped_column(String(100), primary_key=True)
    doc_id: Mapped[str] = mapped_column(String(150), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_dt = Column(DateTime(timezone=True), default=now_local, nullable=False)
    updated_dt = Column(DateTime(timezone=True), default=now_local, onupdate=now_local, nullable=False)

    __table_args__ = (Index("ix_document_collection", "collection"),)

    def __repr__(self) -> str:
        return f"<Document {self.collection}/{self.doc_id}>"
