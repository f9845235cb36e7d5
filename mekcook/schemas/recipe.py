"""
Recipe and schedule schemas.
"""
from datetime import datetime, time as dt_time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mekcook.core.http import Envelope


def normalize_time(value: Optional[dt_time]) -> Optional[dt_time]:
    """Drop sub-second precision: "12:30", "12:30:00" and "12:30:00.123" are the same slot."""
    if value is None:
        return None
    return value.replace(microsecond=0, tzinfo=None)


# ============ Recipes ============

class RecipeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    ingredients: str
    instructions: str


class RecipeUpdate(BaseModel):
    """Partial update; omitted fields are left untouched."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    ingredients: Optional[str] = None
    instructions: Optional[str] = None


class RecipeResponse(BaseModel):
    id: str
    name: str
    ingredients: Optional[str]
    instructions: Optional[str]
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RecipeEnvelope(Envelope):
    data: RecipeResponse


class RecipeListEnvelope(Envelope):
    data: List[RecipeResponse]


# ============ Schedules ============

class ScheduleCreate(BaseModel):
    day: str
    type: str
    time: dt_time
    recipe_id: str

    @field_validator("time")
    @classmethod
    def truncate_time(cls, v: dt_time) -> dt_time:
        return normalize_time(v)


class ScheduleUpdate(BaseModel):
    day: Optional[str] = None
    type: Optional[str] = None
    time: Optional[dt_time] = None

    @field_validator("time")
    @classmethod
    def truncate_time(cls, v: Optional[dt_time]) -> Optional[dt_time]:
        return normalize_time(v)


class ScheduleResponse(BaseModel):
    id: str
    type: str
    day: str
    time: dt_time
    recipe_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    recipe: Optional[RecipeResponse] = None

    model_config = ConfigDict(from_attributes=True)


class ScheduleEnvelope(Envelope):
    data: ScheduleResponse


class ScheduleListEnvelope(Envelope):
    data: List[ScheduleResponse]
