import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, Integer, Numeric, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.database import Base


class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_expense_amount_positive"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    trip_id = Column(String, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    amount = Column(Integer, nullable=False)  # Minor units
    currency = Column(String(3), nullable=False)
    fx_rate = Column(Numeric(18, 8), nullable=True)  # Snapshot rate to trip base currency
    payer_id = Column(String, nullable=False, index=True)  # Reference to user service
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    participants = relationship(
        "ExpenseParticipant",
        cascade="all, delete-orphan",
        order_by="ExpenseParticipant.position",
        lazy="selectin",
    )


class ExpenseParticipant(Base):
    __tablename__ = "expense_participants"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    expense_id = Column(String, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)  # Reference to user service
    share_amount = Column(Integer, nullable=False)  # Minor units, in the expense currency
    share_type = Column(String(20), nullable=False)
    share_value = Column(Numeric(18, 6), nullable=True)  # Original percentage, weight or custom amount
    position = Column(Integer, nullable=False, default=0)  # Input order, first holds the equal-split remainder
