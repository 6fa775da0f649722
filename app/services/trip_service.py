import logging
from sqlalchemy.orm import Session
from typing import List, Optional
from app.exceptions import NotFoundError, ValidationError
from app.models.trips import Trip, TripParticipant
from app.schemas.trip_schema import TripCreate

logger = logging.getLogger(__name__)


def create_trip(db: Session, trip_data: TripCreate, created_by: str) -> Trip:
    """Create a trip; the creator and any listed users become participants"""
    trip = Trip(
        name=trip_data.name,
        base_currency=trip_data.base_currency,
        created_by=created_by
    )
    db.add(trip)
    db.flush()

    for user_id in dict.fromkeys([created_by, *trip_data.participant_ids]):
        db.add(TripParticipant(trip_id=trip.id, user_id=user_id))

    db.commit()
    db.refresh(trip)
    logger.info(f"Created trip {trip.id} with base currency {trip.base_currency}")
    return trip


def get_trip(db: Session, trip_id: str) -> Optional[Trip]:
    """Get a trip by ID"""
    return db.query(Trip).filter(Trip.id == trip_id).first()


def get_trip_or_404(db: Session, trip_id: str) -> Trip:
    trip = get_trip(db, trip_id)
    if not trip:
        raise NotFoundError(f"Trip {trip_id} not found")
    return trip


def resolve_base_currency(db: Session, trip_id: str) -> str:
    """Base currency of a trip, NotFoundError if the trip or its currency is unresolvable"""
    trip = get_trip_or_404(db, trip_id)
    if not trip.base_currency:
        raise NotFoundError(f"Trip {trip_id} has no base currency")
    return trip.base_currency.upper()


def get_trip_participants(db: Session, trip_id: str) -> List[TripParticipant]:
    """Get all participants of a trip"""
    return db.query(TripParticipant).filter(TripParticipant.trip_id == trip_id).all()


def is_trip_participant(db: Session, trip_id: str, user_id: str) -> bool:
    """Check if user is a participant of the trip"""
    return db.query(TripParticipant).filter(
        TripParticipant.trip_id == trip_id,
        TripParticipant.user_id == user_id
    ).first() is not None


def add_trip_participant(db: Session, trip_id: str, user_id: str) -> TripParticipant:
    """Add a participant to a trip"""
    get_trip_or_404(db, trip_id)

    if is_trip_participant(db, trip_id, user_id):
        raise ValidationError(f"User {user_id} is already a participant of this trip")

    participant = TripParticipant(trip_id=trip_id, user_id=user_id)
    db.add(participant)
    db.commit()
    db.refresh(participant)
    return participant
