import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from app.api.v1.dependencies import get_current_user_id
from app.db.database import get_db
from app.schemas.expense_schema import (
    ExpenseCreate, ExpenseShare, ExpenseWithShares, ShareCalculationRequest
)
from app.services.auth.access_control import ensure_trip_participant
from app.services.expense_service import create_expense, get_expense_or_404, get_trip_expenses
from app.services.settlement_service import recalculate_settlements
from app.services.trip_service import get_trip_or_404
from app.utils.share_calculator import calculate_expense_shares

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.post("/shares/calculate", response_model=List[ExpenseShare])
def calculate_shares(
    request: ShareCalculationRequest,
    user_id: str = Depends(get_current_user_id)
):
    """Preview how an expense would be split, without saving anything"""
    return calculate_expense_shares(request.total_amount, request.split_type, request.participants)


@router.post("/trips/{trip_id}", response_model=ExpenseWithShares)
def create_new_expense(
    trip_id: str,
    expense_data: ExpenseCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Create a new expense and refresh the trip's pending settlements.

    The expense and the reconciled settlements commit together: if the
    recalculation fails the expense is rolled back and the error is returned.
    """
    get_trip_or_404(db, trip_id)
    ensure_trip_participant(db, trip_id, user_id)

    try:
        expense = create_expense(db, trip_id, expense_data, user_id, commit=False)
        recalculate_settlements(db, trip_id)
    except Exception:
        db.rollback()
        logger.warning(f"Expense on trip {trip_id} not saved, recalculation or validation failed")
        raise
    return ExpenseWithShares.model_validate(expense)


@router.get("/trips/{trip_id}", response_model=List[ExpenseWithShares])
def get_trip_expenses_list(
    trip_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all expenses for a trip with their shares"""
    get_trip_or_404(db, trip_id)
    ensure_trip_participant(db, trip_id, user_id)
    return get_trip_expenses(db, trip_id)


@router.get("/{expense_id}", response_model=ExpenseWithShares)
def get_expense_details(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get a single expense with its shares"""
    expense = get_expense_or_404(db, expense_id)
    ensure_trip_participant(db, expense.trip_id, user_id)
    return ExpenseWithShares.model_validate(expense)
