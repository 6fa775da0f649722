import logging
from sqlalchemy.orm import Session
from typing import List, Optional
from app.exceptions import NotFoundError, ValidationError
from app.models.expenses import Expense, ExpenseParticipant
from app.schemas.expense_schema import ExpenseCreate, ExpenseWithShares
from app.services.trip_service import get_trip_or_404, get_trip_participants
from app.utils.share_calculator import calculate_expense_shares

logger = logging.getLogger(__name__)


def create_expense(
    db: Session, trip_id: str, expense_data: ExpenseCreate, created_by: str, commit: bool = True
) -> Expense:
    """
    Create an expense with its shares.

    Shares are calculated before anything is written, so a ValidationError
    leaves no partial rows behind. With commit=False the rows are only
    flushed and the caller owns the transaction.
    """
    get_trip_or_404(db, trip_id)
    payer_id = expense_data.payer_id or created_by

    # Validate payer and share recipients are trip participants
    members = {participant.user_id for participant in get_trip_participants(db, trip_id)}
    if payer_id not in members:
        raise ValidationError(f"Payer {payer_id} is not a participant of this trip")
    for participant in expense_data.participants:
        if participant.user_id not in members:
            raise ValidationError(f"User {participant.user_id} is not a participant of this trip")

    shares = calculate_expense_shares(
        expense_data.amount, expense_data.split_type, expense_data.participants
    )

    expense = Expense(
        trip_id=trip_id,
        description=expense_data.description,
        amount=expense_data.amount,
        currency=expense_data.currency,
        fx_rate=expense_data.fx_rate,
        payer_id=payer_id
    )
    for position, share in enumerate(shares):
        expense.participants.append(ExpenseParticipant(
            user_id=share.user_id,
            share_amount=share.share_amount,
            share_type=share.share_type.value,
            share_value=share.share_value,
            position=position
        ))

    db.add(expense)
    if commit:
        db.commit()
    else:
        db.flush()
    db.refresh(expense)
    logger.info(f"Created expense {expense.id} on trip {trip_id}: {expense.amount} {expense.currency}")
    return expense


def get_expense(db: Session, expense_id: str) -> Optional[Expense]:
    """Get an expense by ID"""
    return db.query(Expense).filter(Expense.id == expense_id).first()


def get_expense_or_404(db: Session, expense_id: str) -> Expense:
    expense = get_expense(db, expense_id)
    if not expense:
        raise NotFoundError(f"Expense {expense_id} not found")
    return expense


def get_trip_expenses(db: Session, trip_id: str) -> List[ExpenseWithShares]:
    """
    Get all expenses for a trip with their shares.

    This is the read side the settlement computation consumes. Per-user
    visibility rules are applied by the caller's data access layer, not here.
    """
    expenses = db.query(Expense)\
        .filter(Expense.trip_id == trip_id)\
        .order_by(Expense.created_at, Expense.id)\
        .all()
    return [ExpenseWithShares.model_validate(expense) for expense in expenses]
