"""
Currency normalization for expenses.

Converts an expense and its shares into the trip base currency using the
FX rate snapshot stored on the expense. Rates are never fetched here.

Shares are converted cumulatively: share i gets
round_half_up(prefix_i * rate) - round_half_up(prefix_{i-1} * rate), where
prefix_i is the sum of the first i original shares. Each converted share is
within one minor unit of its direct conversion and the converted shares sum
to the converted expense total exactly.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from app.schemas.expense_schema import ConvertedExpense, ExpenseWithShares

logger = logging.getLogger(__name__)


def round_half_up(value: Decimal) -> int:
    """
    Round a Decimal to the nearest integer, halves away from zero.

    Example:
        >>> round_half_up(Decimal("2.5"))
        3
        >>> round_half_up(Decimal("-2.5"))
        -3
    """
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def convert_amount(amount: int, rate: Decimal) -> int:
    """Convert minor units with a snapshot rate (1 unit of source = rate units of base)."""
    return round_half_up(Decimal(amount) * Decimal(str(rate)))


def _usable_rate(rate: Optional[Decimal]) -> bool:
    return rate is not None and Decimal(str(rate)) > 0


def normalize_expense(expense: ExpenseWithShares, base_currency: str) -> ConvertedExpense:
    """
    Express one expense in the trip base currency.

    Returns a ConvertedExpense flagged needs_conversion (with no shares) when
    the expense is in a foreign currency and carries no usable rate. That is
    a soft failure: callers exclude the expense and keep going.
    """
    base_currency = base_currency.upper()
    currency = expense.currency.upper()

    if currency == base_currency:
        return ConvertedExpense(
            expense_id=expense.id,
            payer_id=expense.payer_id,
            amount=expense.amount,
            currency=base_currency,
            rate=Decimal("1"),
            converted=False,
            shares=list(expense.participants),
        )

    if not _usable_rate(expense.fx_rate):
        logger.warning(
            f"Expense {expense.id} in {currency} has no usable FX rate to {base_currency}, excluding it"
        )
        return ConvertedExpense(
            expense_id=expense.id,
            payer_id=expense.payer_id,
            amount=0,
            currency=base_currency,
            rate=None,
            needs_conversion=True,
        )

    rate = Decimal(str(expense.fx_rate))
    converted_total = convert_amount(expense.amount, rate)

    converted_shares = []
    prefix = 0
    converted_prefix = 0
    for share in expense.participants:
        prefix += share.share_amount
        next_converted_prefix = convert_amount(prefix, rate)
        converted_shares.append(
            share.model_copy(update={"share_amount": next_converted_prefix - converted_prefix})
        )
        converted_prefix = next_converted_prefix

    logger.debug(
        f"Converted expense {expense.id}: {expense.amount} {currency} -> {converted_total} {base_currency} @ {rate}"
    )

    return ConvertedExpense(
        expense_id=expense.id,
        payer_id=expense.payer_id,
        amount=converted_total,
        currency=base_currency,
        rate=rate,
        converted=True,
        shares=converted_shares,
    )
