import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from app.db.database import Base


class Trip(Base):
    __tablename__ = "trips"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    base_currency = Column(String(3), nullable=False)  # ISO 4217, all balances are expressed in it
    created_by = Column(String, nullable=False)  # Reference to user service
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)


class TripParticipant(Base):
    __tablename__ = "trip_participants"
    __table_args__ = (UniqueConstraint("trip_id", "user_id", name="uq_trip_participant"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    trip_id = Column(String, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)  # Reference to user service
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
