# src/backend/schemas/org.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

class OrgCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(max_length=150)
    contact_email: EmailStr = Field(alias="contactEmail")

    @field_validator("name", mode="before")
    @classmethod
    def _require_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Organization name is required")
        return v

    @field_validator("contact_email", mode="before")
    @classmethod
    def _trim_email(cls, v: str) -> str:
        return (v or "").strip().lower()

class OrgUpdate(OrgCreate):
    pass
