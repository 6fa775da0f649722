"""
Min-Cash-Flow Algorithm Module

This module folds normalized expenses into one net balance per user and
minimizes the number of settlement transactions required to zero the group.

All amounts are integers in minor units of the trip base currency.

The algorithm works by:
1. Calculating net balances for each user (total_funded - total_owed)
2. Picking the largest creditor and the largest debtor (ties: ascending user id)
3. Transferring min(credit, debt) from debtor to creditor
4. Repeating until no creditor or no debtor remains

Each step zeroes at least one side, so N users with non-zero balances are
settled in at most N-1 transfers.

Time Complexity: O(n log n), every user is pushed to a heap at most once per transfer
Space Complexity: O(n)

Example Usage:
    from app.utils.min_cash_flow import min_cash_flow

    settlements = min_cash_flow({"alice": 6000, "bob": -3000, "carol": -3000})
    # [{"from": "bob", "to": "alice", "amount": 3000},
    #  {"from": "carol", "to": "alice", "amount": 3000}]
"""

import heapq
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from app.exceptions import BalanceDriftError
from app.schemas.expense_schema import ConvertedExpense
from app.schemas.settlement_schema import UserBalance

# Configure logger
logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0


def validate_balance_sum(balances: Dict[str, int], tolerance: int = DEFAULT_TOLERANCE) -> None:
    """
    Validate that the sum of all balances is zero within tolerance.

    In a correctly balanced expense system the sum of all net balances is
    zero: no money is created or destroyed. The tolerance is the number of
    minor units of rounding drift the caller can account for.

    Raises:
        BalanceDriftError: If the absolute sum exceeds the tolerance

    Example:
        >>> validate_balance_sum({"A": 50, "B": -50})  # Passes
        >>> validate_balance_sum({"A": 50, "B": -49})  # Raises BalanceDriftError
    """
    total = sum(balances.values())
    if abs(total) > tolerance:
        raise BalanceDriftError(total, tolerance)


def sort_balances(balances: Iterable[UserBalance]) -> List[UserBalance]:
    """Creditors first: descending net balance, ascending user id on ties."""
    return sorted(balances, key=lambda b: (-b.net_balance, b.user_id))


def calculate_balances(
    expenses: List[ConvertedExpense],
    base_currency: str,
    settled_transfers: Iterable = (),
) -> List[UserBalance]:
    """
    Calculate the net balance of every user touched by the given expenses.

    Net balance = total funded - total owed
    - Positive balance: user is owed money (creditor)
    - Negative balance: user owes money (debtor)

    Expenses flagged needs_conversion are skipped entirely. Settled
    transfers (objects with from_user_id, to_user_id, amount) count as
    money the debtor funded and the creditor received.

    The drift bound is one minor unit per currency conversion performed;
    anything larger is a defect and raises instead of being absorbed.

    Args:
        expenses: Expenses already normalized to base_currency
        base_currency: Currency code stamped on every balance
        settled_transfers: Settlements already paid

    Returns:
        List of UserBalance sorted creditors first

    Raises:
        BalanceDriftError: If balances do not sum to zero within the bound

    Example:
        Alice pays 9000 split equally between Alice, Bob and Carol:
        [alice +6000, bob -3000, carol -3000]
    """
    balances: Dict[str, int] = {}
    conversions = 0

    for expense in expenses:
        if expense.needs_conversion:
            continue
        if expense.converted:
            conversions += 1

        # Payer fronted the whole amount
        balances[expense.payer_id] = balances.get(expense.payer_id, 0) + expense.amount

        # Every participant owes their share, payer included
        for share in expense.shares:
            balances[share.user_id] = balances.get(share.user_id, 0) - share.share_amount

    for transfer in settled_transfers:
        balances[transfer.from_user_id] = balances.get(transfer.from_user_id, 0) + transfer.amount
        balances[transfer.to_user_id] = balances.get(transfer.to_user_id, 0) - transfer.amount

    validate_balance_sum(balances, tolerance=conversions)

    return sort_balances(
        UserBalance(user_id=user_id, net_balance=net_balance, currency=base_currency)
        for user_id, net_balance in balances.items()
    )


def min_cash_flow(
    balances: Dict[str, int],
    tolerance: int = DEFAULT_TOLERANCE,
    max_drift: int = 0,
    max_iterations: Optional[int] = None,
) -> List[Dict]:
    """
    Minimize the number of transactions needed to settle all debts.

    Greedy matching: on every step the largest creditor and the largest
    debtor are paired, ties broken by ascending user id so the output is
    reproducible, and min(credit, debt) moves from debtor to creditor.

    Edge Cases Handled:
    - Empty input, a single user or all balances within tolerance: returns []
    - Sum of balances beyond max_drift: raises BalanceDriftError
    - Drift within max_drift: the residue stays with the last open user
    - More steps than users: raises RuntimeError (prevents infinite loops)

    Args:
        balances: Dictionary mapping user_id -> net_balance (minor units)
        tolerance: Balances with magnitude at or below this are treated as settled
        max_drift: Allowed absolute sum of balances
        max_iterations: Loop guard, defaults to the number of open balances

    Returns:
        List of settlement transactions:
        [{"from": str, "to": str, "amount": int}, ...]
    """
    if not balances or len(balances) == 1:
        return []

    validate_balance_sum(balances, max_drift)

    # Heaps keyed by (-magnitude, user_id): largest first, lexicographic ties
    creditors: List[Tuple[int, str]] = []
    debtors: List[Tuple[int, str]] = []
    for user_id, balance in balances.items():
        if balance > tolerance:
            creditors.append((-balance, user_id))
        elif balance < -tolerance:
            debtors.append((balance, user_id))

    # Edge case: no creditors or no debtors
    if not creditors or not debtors:
        return []

    heapq.heapify(creditors)
    heapq.heapify(debtors)

    if max_iterations is None:
        max_iterations = len(creditors) + len(debtors)

    settlements = []
    iterations = 0

    while creditors and debtors:
        iterations += 1

        # Safety check: prevent infinite loops
        if iterations > max_iterations:
            raise RuntimeError(
                f"Settlement loop exceeded max_iterations ({max_iterations}). "
                f"This may indicate malformed input."
            )

        neg_credit, creditor_id = heapq.heappop(creditors)
        neg_debt, debtor_id = heapq.heappop(debtors)
        credit_amount, debt_amount = -neg_credit, -neg_debt

        settlement_amount = min(credit_amount, debt_amount)
        settlements.append({
            "from": debtor_id,
            "to": creditor_id,
            "amount": settlement_amount,
        })
        logger.debug(f"Step {iterations}: {debtor_id} pays {creditor_id} {settlement_amount}")

        credit_amount -= settlement_amount
        debt_amount -= settlement_amount

        # Users still open go back on the heap
        if credit_amount > tolerance:
            heapq.heappush(creditors, (-credit_amount, creditor_id))
        if debt_amount > tolerance:
            heapq.heappush(debtors, (-debt_amount, debtor_id))

    return settlements
