from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from app.models.settlements import SettlementStatus


class UserBalance(BaseModel):
    user_id: str
    net_balance: int  # Positive: owed by the group, negative: owes the group
    currency: str


class OptimizedSettlement(BaseModel):
    from_user_id: str
    to_user_id: str
    amount: int = Field(..., gt=0)
    currency: str


class SettlementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    trip_id: str
    from_user_id: str
    to_user_id: str
    amount: int
    currency: str
    status: SettlementStatus
    settled_at: Optional[datetime] = None
    settled_by: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None


class MarkSettlementPaid(BaseModel):
    note: Optional[str] = Field(None, max_length=500)


class SettlementPlan(BaseModel):
    """Pure result of one computation pass over already-fetched data."""

    base_currency: str
    balances: List[UserBalance] = []
    transfers: List[OptimizedSettlement] = []
    total_expenses_used: int = 0
    excluded_expense_ids: List[str] = []


class SettlementSummary(BaseModel):
    trip_id: str
    base_currency: str
    balances: List[UserBalance] = []
    transfers: List[OptimizedSettlement] = []
    pending_settlements: List[SettlementOut] = []
    settled_settlements: List[SettlementOut] = []
    total_expenses_used: int = 0
    excluded_expense_ids: List[str] = []
