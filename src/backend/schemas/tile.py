# src/backend/schemas/tile.py
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MONOPOLY_TILES = [
    "Go",
    "Mediterranean Avenue",
    "Community Chest (1)",
    "Baltic Avenue",
    "Income Tax",
    "Reading Railroad",
    "Oriental Avenue",
    "Chance (1)",
    "Vermont Avenue",
    "Connecticut Avenue",
    "Jail / Just Visiting",
    "St. Charles Place",
    "Electric Company",
    "States Avenue",
    "Virginia Avenue",
    "Pennsylvania Railroad",
    "St. James Place",
    "Community Chest (2)",
    "Tennessee Avenue",
    "New York Avenue",
    "Free Parking",
    "Kentucky Avenue",
    "Chance (2)",
    "Indiana Avenue",
    "Illinois Avenue",
    "B. & O. Railroad",
    "Atlantic Avenue",
    "Ventnor Avenue",
    "Water Works",
    "Marvin Gardens",
    "Go To Jail",
    "Pacific Avenue",
    "North Carolina Avenue",
    "Community Chest (3)",
    "Pennsylvania Avenue",
    "Short Line",
    "Chance (3)",
    "Park Place",
    "Luxury Tax",
    "Boardwalk",
]

class TileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tile_name: str = Field(alias="tileName")
    owner: Optional[str] = None
    rent_level: int = Field(default=0, ge=0, le=5, alias="rentLevel")
    special_notes: Optional[str] = Field(default=None, max_length=160, alias="specialNotes")

    @field_validator("tile_name", mode="before")
    @classmethod
    def _known_tile(cls, v: str) -> str:
        v = (v or "").strip()
        if v not in MONOPOLY_TILES:
            raise ValueError("Please select a tile.")
        return v

    @field_validator("owner", "special_notes", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

def tile_slug(name: str) -> str:
    """'St. Charles Place' -> 'st-charles-place'; 'B. & O. Railroad' -> 'b-o-railroad'"""
    return re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
