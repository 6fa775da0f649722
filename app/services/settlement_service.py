import logging
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from typing import Callable, Iterable, List, Optional
from app.exceptions import NotFoundError
from app.models.settlements import Settlement, SettlementStatus
from app.models.trips import Trip
from app.schemas.expense_schema import ExpenseWithShares
from app.schemas.settlement_schema import (
    OptimizedSettlement, SettlementOut, SettlementPlan, SettlementSummary, UserBalance
)
from app.services.auth.access_control import ensure_settlement_party
from app.services.expense_service import get_trip_expenses
from app.services.trip_locks import get_trip_lock_registry
from app.services.trip_service import resolve_base_currency
from app.rabbitmq.producer import publish_settlement_settled
from app.utils.currency import normalize_expense
from app.utils.min_cash_flow import calculate_balances, min_cash_flow

logger = logging.getLogger(__name__)


def optimize_settlements(balances: List[UserBalance], max_drift: int = 0) -> List[OptimizedSettlement]:
    """
    Optimize settlements using Min-Cash-Flow algorithm.

    Args:
        balances: Net balances, all in the same base currency
        max_drift: Rounding drift the balances may carry

    Returns:
        List of OptimizedSettlement objects representing minimal transactions
    """
    if not balances:
        return []

    currency = balances[0].currency
    settlements_dict = min_cash_flow(
        {balance.user_id: balance.net_balance for balance in balances},
        max_drift=max_drift,
    )

    return [
        OptimizedSettlement(
            from_user_id=settlement["from"],
            to_user_id=settlement["to"],
            amount=settlement["amount"],
            currency=currency
        )
        for settlement in settlements_dict
    ]


def build_settlement_plan(
    expenses: Iterable[ExpenseWithShares],
    base_currency: str,
    settled_transfers: Iterable = (),
) -> SettlementPlan:
    """
    Compute balances and the transfer plan from already-fetched data.

    Pure: no database access, no shared state. Expenses without a usable FX
    rate are left out and reported in excluded_expense_ids.
    """
    base_currency = base_currency.upper()
    converted = []
    excluded_expense_ids = []

    for expense in expenses:
        normalized = normalize_expense(expense, base_currency)
        if normalized.needs_conversion:
            excluded_expense_ids.append(expense.id)
            continue
        converted.append(normalized)

    balances = calculate_balances(converted, base_currency, settled_transfers)
    conversions = sum(1 for expense in converted if expense.converted)
    transfers = optimize_settlements(balances, max_drift=conversions)

    return SettlementPlan(
        base_currency=base_currency,
        balances=balances,
        transfers=transfers,
        total_expenses_used=len(converted),
        excluded_expense_ids=excluded_expense_ids
    )


def get_settlement(db: Session, settlement_id: str) -> Optional[Settlement]:
    """Get a settlement by ID"""
    return db.query(Settlement).filter(Settlement.id == settlement_id).first()


def get_trip_settlements(
    db: Session, trip_id: str, status: Optional[SettlementStatus] = None
) -> List[Settlement]:
    """Get settlements for a trip, optionally filtered by status"""
    query = db.query(Settlement).filter(Settlement.trip_id == trip_id)
    if status is not None:
        query = query.filter(Settlement.status == status)
    return query.order_by(Settlement.created_at, Settlement.id).all()


def _plan_for_trip(
    db: Session,
    trip_id: str,
    expense_loader: Callable[[Session, str], List[ExpenseWithShares]],
) -> SettlementPlan:
    base_currency = resolve_base_currency(db, trip_id)
    settled = get_trip_settlements(db, trip_id, SettlementStatus.settled)
    return build_settlement_plan(expense_loader(db, trip_id), base_currency, settled)


def _summary(db: Session, trip_id: str, plan: SettlementPlan) -> SettlementSummary:
    settlements = get_trip_settlements(db, trip_id)
    return SettlementSummary(
        trip_id=trip_id,
        base_currency=plan.base_currency,
        balances=plan.balances,
        transfers=plan.transfers,
        pending_settlements=[
            SettlementOut.model_validate(s) for s in settlements if s.status == SettlementStatus.pending
        ],
        settled_settlements=[
            SettlementOut.model_validate(s) for s in settlements if s.status == SettlementStatus.settled
        ],
        total_expenses_used=plan.total_expenses_used,
        excluded_expense_ids=plan.excluded_expense_ids
    )


def compute_settlement_summary(
    db: Session,
    trip_id: str,
    expense_loader: Callable[[Session, str], List[ExpenseWithShares]] = get_trip_expenses,
) -> SettlementSummary:
    """
    Read-only settlement summary for a trip.

    Takes no lock: the persisted pending list may be stale relative to the
    freshly computed transfers if a reconciliation is running concurrently.

    Raises:
        NotFoundError: If the trip or its base currency cannot be resolved
    """
    plan = _plan_for_trip(db, trip_id, expense_loader)
    return _summary(db, trip_id, plan)


def reconcile_pending_settlements(
    db: Session, trip_id: str, transfers: List[OptimizedSettlement]
) -> List[Settlement]:
    """
    Replace the trip's pending settlements with the given plan.

    Diff-and-upsert keyed by (from_user_id, to_user_id): matching pending rows
    keep their id and get the new amount, new pairs are inserted and stale
    pending rows are deleted. Every update and delete is conditional on the
    row still being pending, so settled rows are never touched, including
    rows settled while this runs. Caller must hold the trip lock.

    If several pending rows share a pair, the oldest is kept and the others
    are deleted as stale.
    """
    pending = {}
    duplicate_ids = []
    for s in get_trip_settlements(db, trip_id, SettlementStatus.pending):
        pair = (s.from_user_id, s.to_user_id)
        if pair in pending:
            duplicate_ids.append(s.id)
        else:
            pending[pair] = s
    planned_pairs = set()
    inserted = updated = deleted = skipped = 0

    for transfer in transfers:
        pair = (transfer.from_user_id, transfer.to_user_id)
        planned_pairs.add(pair)
        existing = pending.get(pair)

        if existing is None:
            db.add(Settlement(
                trip_id=trip_id,
                from_user_id=transfer.from_user_id,
                to_user_id=transfer.to_user_id,
                amount=transfer.amount,
                currency=transfer.currency,
                status=SettlementStatus.pending
            ))
            inserted += 1
            continue

        if existing.amount == transfer.amount and existing.currency == transfer.currency:
            continue

        rows = db.query(Settlement)\
            .filter(Settlement.id == existing.id, Settlement.status == SettlementStatus.pending)\
            .update(
                {Settlement.amount: transfer.amount, Settlement.currency: transfer.currency},
                synchronize_session=False
            )
        if rows:
            updated += 1
        else:
            skipped += 1

    stale_ids = [s.id for pair, s in pending.items() if pair not in planned_pairs] + duplicate_ids
    if stale_ids:
        deleted = db.query(Settlement)\
            .filter(Settlement.id.in_(stale_ids), Settlement.status == SettlementStatus.pending)\
            .delete(synchronize_session=False)
        skipped += len(stale_ids) - deleted

    db.commit()
    logger.info(
        f"Reconciled settlements for trip {trip_id}: {inserted} inserted, {updated} updated, "
        f"{deleted} deleted, {skipped} skipped (settled concurrently)"
    )
    db.expire_all()
    return get_trip_settlements(db, trip_id, SettlementStatus.pending)


def recalculate_settlements(
    db: Session,
    trip_id: str,
    expense_loader: Callable[[Session, str], List[ExpenseWithShares]] = get_trip_expenses,
) -> SettlementSummary:
    """
    Recompute the plan and reconcile pending rows, serialized per trip.

    The in-process trip lock serializes threads; the row lock on the trip
    serializes processes on databases that support SELECT ... FOR UPDATE.
    """
    with get_trip_lock_registry().hold(trip_id):
        db.query(Trip).filter(Trip.id == trip_id).with_for_update().first()
        plan = _plan_for_trip(db, trip_id, expense_loader)
        reconcile_pending_settlements(db, trip_id, plan.transfers)
        return _summary(db, trip_id, plan)


def mark_settlement_as_paid(
    db: Session,
    settlement_id: str,
    user_id: str,
    note: Optional[str] = None,
    authorize: Callable[[Settlement, str], None] = ensure_settlement_party,
) -> Settlement:
    """
    Transition a pending settlement to settled.

    Idempotent: marking an already-settled row succeeds silently and changes
    nothing, including settled_at, settled_by and note.

    Raises:
        NotFoundError: If the settlement does not exist
        AuthorizationError: Propagated from the authorize collaborator
    """
    settlement = get_settlement(db, settlement_id)
    if not settlement:
        raise NotFoundError(f"Settlement {settlement_id} not found")

    authorize(settlement, user_id)

    if settlement.status == SettlementStatus.settled:
        logger.info(f"Settlement {settlement_id} already settled, nothing to do")
        return settlement

    rows = db.query(Settlement)\
        .filter(Settlement.id == settlement_id, Settlement.status == SettlementStatus.pending)\
        .update(
            {
                Settlement.status: SettlementStatus.settled,
                Settlement.settled_at: datetime.now(timezone.utc),
                Settlement.settled_by: user_id,
                Settlement.note: note,
            },
            synchronize_session=False
        )
    db.commit()
    db.expire_all()

    settlement = get_settlement(db, settlement_id)
    if not settlement:
        # Deleted by a concurrent reconciliation before we could settle it
        raise NotFoundError(f"Settlement {settlement_id} not found")

    if rows:
        logger.info(f"Settlement {settlement_id} marked as paid by {user_id}")
        publish_settlement_settled(settlement)
    else:
        logger.info(f"Settlement {settlement_id} was settled concurrently, nothing to do")

    return settlement
