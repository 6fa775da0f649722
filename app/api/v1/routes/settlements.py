from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from app.api.v1.dependencies import get_current_user_id
from app.db.database import get_db
from app.models.settlements import SettlementStatus
from app.schemas.settlement_schema import MarkSettlementPaid, SettlementOut, SettlementSummary
from app.services.auth.access_control import ensure_trip_participant
from app.services.settlement_service import (
    compute_settlement_summary, get_trip_settlements, mark_settlement_as_paid, recalculate_settlements
)
from app.services.trip_service import get_trip_or_404

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.get("/trips/{trip_id}/summary", response_model=SettlementSummary)
def get_settlement_summary(
    trip_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get balances, the proposed transfers and the settlement ledger for a trip"""
    get_trip_or_404(db, trip_id)
    ensure_trip_participant(db, trip_id, user_id)
    return compute_settlement_summary(db, trip_id)


@router.post("/trips/{trip_id}/recalculate", response_model=SettlementSummary)
def recalculate_trip_settlements(
    trip_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Replace pending settlements with a freshly computed plan"""
    get_trip_or_404(db, trip_id)
    ensure_trip_participant(db, trip_id, user_id)
    return recalculate_settlements(db, trip_id)


@router.get("/trips/{trip_id}", response_model=List[SettlementOut])
def get_trip_settlements_list(
    trip_id: str,
    status: Optional[SettlementStatus] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get settlements for a trip"""
    get_trip_or_404(db, trip_id)
    ensure_trip_participant(db, trip_id, user_id)
    return get_trip_settlements(db, trip_id, status)


@router.post("/{settlement_id}/mark-paid", response_model=SettlementOut)
def mark_paid(
    settlement_id: str,
    payload: Optional[MarkSettlementPaid] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Mark a settlement as paid (payer or recipient only)"""
    note = payload.note if payload else None
    return mark_settlement_as_paid(db, settlement_id, user_id, note)
