# src/backend/schemas/business.py
from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

class BusinessDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    phone: str = ""
    hours: Dict[str, str] = Field(default_factory=dict)
    hero_image_url: str = Field(default="", alias="heroImageUrl")
    menu_url: str = Field(default="", alias="menuUrl")

    @field_validator("street", "city", "state", "zip", "phone", "hero_image_url", "menu_url", mode="before")
    @classmethod
    def _trim(cls, v) -> str:
        return (v or "").strip()

class BusinessCreate(BaseModel):
    name: str = Field(max_length=150)
    category: str = ""
    points_per_visit: int = Field(default=10, ge=0)
    address: str = ""
    org_id: str = ""
    details: BusinessDetails = Field(default_factory=BusinessDetails)

    @field_validator("name", mode="before")
    @classmethod
    def _require_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Business name is required")
        return v

    @field_validator("category", "address", "org_id", mode="before")
    @classmethod
    def _trim(cls, v) -> str:
        return (v or "").strip()

class BusinessUpdate(BusinessCreate):
    pass

def parse_hours(text: str | None) -> Dict[str, str]:
    """
    "Mon: 9am-5pm" per line -> {"Mon": "9am-5pm"}; lines without a colon are skipped.
    """
    hours: Dict[str, str] = {}
    for line in (text or "").splitlines():
        day, sep, value = line.partition(":")
        if sep and day.strip():
            hours[day.strip()] = value.strip()
    return hours

def format_hours(hours: Dict[str, str] | None) -> str:
    if not isinstance(hours, dict):
        return ""
    return "\n".join(f"{k}: {v}" for k, v in hours.items())
