from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum


class SplitType(str, Enum):
    equal = "equal"
    percentage = "percentage"
    amount = "amount"
    shares = "shares"


def _normalize_currency(value: str) -> str:
    value = value.strip().upper()
    if len(value) != 3 or not value.isalpha():
        raise ValueError("Currency must be a 3-letter ISO 4217 code")
    return value


class ShareParticipant(BaseModel):
    user_id: str
    share_value: Optional[Decimal] = None


class ShareCalculationRequest(BaseModel):
    total_amount: int
    split_type: SplitType = SplitType.equal
    participants: List[ShareParticipant]


class ExpenseShare(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    expense_id: Optional[str] = None
    user_id: str
    share_amount: int
    share_type: SplitType
    share_value: Optional[Decimal] = None


class ExpenseBase(BaseModel):
    description: Optional[str] = None
    amount: int = Field(..., gt=0)
    currency: str
    fx_rate: Optional[Decimal] = Field(None, gt=0)

    @field_validator("currency")
    @classmethod
    def currency_code(cls, v):
        return _normalize_currency(v)


class ExpenseCreate(ExpenseBase):
    payer_id: Optional[str] = None  # Defaults to the caller
    split_type: SplitType = SplitType.equal
    participants: List[ShareParticipant]


class ExpenseOut(ExpenseBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    trip_id: str
    payer_id: str
    created_at: Optional[datetime] = None


class ExpenseWithShares(ExpenseOut):
    participants: List[ExpenseShare] = []


class ConvertedExpense(BaseModel):
    """One expense expressed in the trip base currency."""

    expense_id: str
    payer_id: str
    amount: int
    currency: str
    rate: Optional[Decimal] = None
    converted: bool = False
    needs_conversion: bool = False
    shares: List[ExpenseShare] = []
