from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional
from datetime import datetime
from app.schemas.expense_schema import _normalize_currency


class TripCreate(BaseModel):
    name: str = Field(..., max_length=200)
    base_currency: str
    participant_ids: List[str] = []

    @field_validator("base_currency")
    @classmethod
    def currency_code(cls, v):
        return _normalize_currency(v)


class TripOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    base_currency: str
    created_by: str
    created_at: Optional[datetime] = None


class TripParticipantCreate(BaseModel):
    user_id: str


class TripParticipantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    trip_id: str
    user_id: str
    joined_at: Optional[datetime] = None
