"""
Access-control collaborator.

The settlement ledger never evaluates permissions itself; it calls into
these checks and lets AuthorizationError propagate to the caller.
"""
from sqlalchemy.orm import Session
from app.exceptions import AuthorizationError
from app.models.settlements import Settlement


def ensure_settlement_party(settlement: Settlement, user_id: str) -> None:
    """Only the debtor or the creditor may mark a settlement as paid"""
    if user_id not in (settlement.from_user_id, settlement.to_user_id):
        raise AuthorizationError("Only the payer or the recipient can mark this settlement as paid")


def ensure_trip_participant(db: Session, trip_id: str, user_id: str) -> None:
    """Trip-scoped reads and writes are limited to trip participants"""
    from app.services.trip_service import is_trip_participant

    if not is_trip_participant(db, trip_id, user_id):
        raise AuthorizationError("You are not a participant of this trip")
