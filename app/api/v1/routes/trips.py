from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.api.v1.dependencies import get_current_user_id
from app.db.database import get_db
from app.schemas.trip_schema import TripCreate, TripOut, TripParticipantCreate, TripParticipantOut
from app.services.auth.access_control import ensure_trip_participant
from app.services.trip_service import create_trip, add_trip_participant, get_trip_or_404

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("", response_model=TripOut)
def create_new_trip(
    trip_data: TripCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new trip with its base currency"""
    return create_trip(db, trip_data, user_id)


@router.get("/{trip_id}", response_model=TripOut)
def get_trip_details(
    trip_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get a trip"""
    trip = get_trip_or_404(db, trip_id)
    ensure_trip_participant(db, trip_id, user_id)
    return trip


@router.post("/{trip_id}/participants", response_model=TripParticipantOut)
def add_participant(
    trip_id: str,
    participant_data: TripParticipantCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Add a participant to a trip (participants only)"""
    get_trip_or_404(db, trip_id)
    ensure_trip_participant(db, trip_id, user_id)
    return add_trip_participant(db, trip_id, participant_data.user_id)
