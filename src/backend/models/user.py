# src/backend/models/user.py
from sqlalchemy import Column, String, DateTime, CHAR
from sqlalchemy.orm import Mapped, mapped_column

from src.backend.utils.database import Base
from src.backend.utils.timezone import now_local

class AdminUser(Base):
    __tablename__ = "admin_user"

    email: Mapped[str] = mapped_column(String(100), primary_key=True, index=True)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(CHAR(1), default="A")
    created_dt = Column(DateTime(timezone=True), default=now_local, nullable=False)
    updated_dt = Column(DateTime(timezone=True), default=now_local, onupdate=now_local, nullable=False)

    @property
    def is_active(self) -> bool:
        return (self.status or "A") == "A"

    def __repr__(self) -> str:
        return f"<AdminUser {self.email}>"
