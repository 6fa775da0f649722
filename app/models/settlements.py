import enum
import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, Integer, Text, Enum, ForeignKey, CheckConstraint
from app.db.database import Base


class SettlementStatus(str, enum.Enum):
    pending = "pending"
    settled = "settled"


class Settlement(Base):
    __tablename__ = "settlements"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_settlement_amount_positive"),
        CheckConstraint("from_user_id <> to_user_id", name="ck_settlement_different_users"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    trip_id = Column(String, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    from_user_id = Column(String, nullable=False, index=True)  # Debtor
    to_user_id = Column(String, nullable=False, index=True)  # Creditor
    amount = Column(Integer, nullable=False)  # Minor units, trip base currency
    currency = Column(String(3), nullable=False)
    status = Column(Enum(SettlementStatus), nullable=False, default=SettlementStatus.pending, index=True)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    settled_by = Column(String, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
