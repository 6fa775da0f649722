"""
Pytest configuration and fixtures for settlement service tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.database import Base, create_db_engine
from app.models import trips, expenses, settlements  # noqa: F401
from app.models.trips import Trip, TripParticipant
from app.schemas.expense_schema import ExpenseShare, ExpenseWithShares, ShareParticipant, SplitType
from app.utils.share_calculator import calculate_expense_shares


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite, for tests where every thread opens its own connection."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'settlements.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Database session bound to the in-memory engine."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def trip(db_session):
    """EUR trip with alice, bob and carol."""
    trip = Trip(name="Lisbon", base_currency="EUR", created_by="alice")
    db_session.add(trip)
    db_session.flush()
    for user_id in ("alice", "bob", "carol"):
        db_session.add(TripParticipant(trip_id=trip.id, user_id=user_id))
    db_session.commit()
    db_session.refresh(trip)
    return trip


def make_expense(
    expense_id: str,
    payer_id: str,
    amount: int,
    participants: List[str],
    currency: str = "EUR",
    fx_rate: Optional[Decimal] = None,
    split_type: SplitType = SplitType.equal,
    share_values: Optional[Dict[str, Decimal]] = None,
) -> ExpenseWithShares:
    """Build an in-memory expense whose shares come from the share calculator."""
    share_values = share_values or {}
    shares = calculate_expense_shares(
        amount,
        split_type,
        [ShareParticipant(user_id=user_id, share_value=share_values.get(user_id)) for user_id in participants],
        expense_id=expense_id,
    )
    return ExpenseWithShares(
        id=expense_id,
        trip_id="trip-1",
        payer_id=payer_id,
        amount=amount,
        currency=currency,
        fx_rate=fx_rate,
        created_at=datetime(2025, 2, 8, 12, 0, 0),
        participants=shares,
    )


def make_raw_expense(
    expense_id: str, payer_id: str, amount: int, shares: Dict[str, int],
    currency: str = "EUR", fx_rate: Optional[Decimal] = None,
) -> ExpenseWithShares:
    """Build an expense with explicit share rows, bypassing the calculator."""
    return ExpenseWithShares(
        id=expense_id,
        trip_id="trip-1",
        payer_id=payer_id,
        amount=amount,
        currency=currency,
        fx_rate=fx_rate,
        participants=[
            ExpenseShare(expense_id=expense_id, user_id=user_id, share_amount=share, share_type=SplitType.amount,
                         share_value=Decimal(share))
            for user_id, share in shares.items()
        ],
    )


def apply_settlements(balances: Dict[str, int], settlements: List[Dict]) -> Dict[str, int]:
    """
    Apply transfers to balances.

    A debtor paying reduces what they owe; a creditor receiving reduces
    what they are owed.
    """
    remaining = dict(balances)
    for settlement in settlements:
        remaining[settlement["from"]] = remaining.get(settlement["from"], 0) + settlement["amount"]
        remaining[settlement["to"]] = remaining.get(settlement["to"], 0) - settlement["amount"]
    return remaining
