"""
Share Calculator Module

Splits one expense total (integer minor units) among its participants.

Every split type reconstructs the total exactly:
- equal: floor(total / n) each, the first participant in input order also
  takes the remainder
- percentage: floor(total * pct / 100) for all but the last participant,
  the last takes whatever is left
- shares: like percentage, but weighted by arbitrary positive units
- amount: explicit values passed through, validated to sum to the total

Example Usage:
    from app.utils.share_calculator import calculate_expense_shares

    shares = calculate_expense_shares(
        100, SplitType.percentage,
        [ShareParticipant(user_id="A", share_value=60), ShareParticipant(user_id="B", share_value=40)],
    )
    # [60, 40]
"""

import logging
from decimal import Decimal, ROUND_FLOOR
from typing import List, Optional

from app.exceptions import ValidationError
from app.schemas.expense_schema import ExpenseShare, ShareParticipant, SplitType

logger = logging.getLogger(__name__)

ONE_HUNDRED = Decimal("100")


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def _require_values(participants: List[ShareParticipant], split_type: SplitType) -> List[Decimal]:
    values = []
    for participant in participants:
        if participant.share_value is None:
            raise ValidationError(
                f"Participant {participant.user_id} is missing a share value for a {split_type.value} split"
            )
        value = Decimal(str(participant.share_value))
        if value < 0:
            raise ValidationError(
                f"Participant {participant.user_id} has a negative share value: {value}"
            )
        values.append(value)
    return values


def _split_equal(total_amount: int, participants: List[ShareParticipant]) -> List[int]:
    count = len(participants)
    base = total_amount // count
    remainder = total_amount - base * count
    return [base + remainder] + [base] * (count - 1)


def _split_proportional(total_amount: int, weights: List[Decimal], denominator: Decimal) -> List[int]:
    """Floor every share but the last, which absorbs the rounding residue."""
    amounts = []
    running_sum = 0
    for weight in weights[:-1]:
        share = _floor(Decimal(total_amount) * weight / denominator)
        amounts.append(share)
        running_sum += share
    amounts.append(total_amount - running_sum)
    return amounts


def _split_percentage(total_amount: int, participants: List[ShareParticipant]) -> List[int]:
    percentages = _require_values(participants, SplitType.percentage)
    percentage_sum = sum(percentages)
    if percentage_sum != ONE_HUNDRED:
        raise ValidationError(f"Percentages must sum to 100, got {percentage_sum}")
    return _split_proportional(total_amount, percentages, ONE_HUNDRED)


def _split_shares(total_amount: int, participants: List[ShareParticipant]) -> List[int]:
    weights = _require_values(participants, SplitType.shares)
    weight_sum = sum(weights)
    if weight_sum <= 0:
        raise ValidationError("Share weights must sum to a positive number")
    return _split_proportional(total_amount, weights, weight_sum)


def _split_amount(total_amount: int, participants: List[ShareParticipant]) -> List[int]:
    values = _require_values(participants, SplitType.amount)
    amounts = []
    for participant, value in zip(participants, values):
        if value != value.to_integral_value():
            raise ValidationError(
                f"Custom amount for {participant.user_id} must be whole minor units, got {value}"
            )
        amounts.append(int(value))

    amount_sum = sum(amounts)
    if amount_sum != total_amount:
        raise ValidationError(
            f"Custom amounts must sum to the expense total: got {amount_sum}, expected {total_amount}"
        )
    return amounts


_SPLITTERS = {
    SplitType.equal: _split_equal,
    SplitType.percentage: _split_percentage,
    SplitType.shares: _split_shares,
    SplitType.amount: _split_amount,
}


def calculate_expense_shares(
    total_amount: int,
    split_type: SplitType,
    participants: List[ShareParticipant],
    expense_id: Optional[str] = None,
) -> List[ExpenseShare]:
    """
    Split an expense total among participants.

    Args:
        total_amount: Positive total in minor units
        split_type: How to divide the total
        participants: Ordered participants; order decides who holds rounding residue
        expense_id: Optional expense the shares belong to

    Returns:
        List of ExpenseShare in input order, summing exactly to total_amount

    Raises:
        ValidationError: Non-positive total, empty or duplicated participants,
            missing/invalid share values, or custom amounts not matching the total
    """
    if isinstance(total_amount, bool) or not isinstance(total_amount, int):
        raise ValidationError(f"Total amount must be an integer number of minor units, got {total_amount!r}")
    if total_amount <= 0:
        raise ValidationError(f"Total amount must be positive, got {total_amount}")
    if not participants:
        raise ValidationError("An expense needs at least one participant")

    user_ids = [participant.user_id for participant in participants]
    if len(set(user_ids)) != len(user_ids):
        raise ValidationError("Each participant may appear only once per expense")

    split_type = SplitType(split_type)
    amounts = _SPLITTERS[split_type](total_amount, participants)

    shares = [
        ExpenseShare(
            expense_id=expense_id,
            user_id=participant.user_id,
            share_amount=amount,
            share_type=split_type,
            share_value=None if split_type == SplitType.equal else participant.share_value,
        )
        for participant, amount in zip(participants, amounts)
    ]

    logger.debug(f"Split {total_amount} ({split_type.value}) into {[s.share_amount for s in shares]}")
    return shares
