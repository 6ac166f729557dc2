"""
Balance reconciliation: ordering, running balances and the ending balance check.
"""
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from ..models.schema import Statement, Transaction

logger = logging.getLogger(__name__)


def sort_and_sequence(transactions: List[Transaction]) -> List[Transaction]:
    """
    Stable sort by date and renumber sequences 1..N.

    Args:
        transactions: Transactions in document order

    Returns:
        New list in chronological order with dense sequence numbers
    """
    ordered = sorted(transactions, key=lambda txn: txn.date)
    for index, txn in enumerate(ordered, start=1):
        txn.sequence = index
    return ordered


def apply_running_balance(starting_balance: Decimal, transactions: List[Transaction]) -> Decimal:
    """Recompute each transaction's balance from the starting balance."""
    balance = starting_balance
    for txn in transactions:
        balance += txn.amount
        txn.balance = balance
    return balance


def nett_for(total_credit: Decimal, total_debit: Decimal, convention: str = "sum") -> Decimal:
    """
    Combine credit and debit totals.

    "sum" is used where one side is already signed negative, "difference"
    where both totals are positive magnitudes.
    """
    if convention == "difference":
        return total_credit - total_debit
    return total_credit + total_debit


def check_ending_balance(statement: Statement, label: Optional[str] = None) -> bool:
    """
    Compare the calculated ending balance with the stated one.

    A mismatch is logged as a warning and never raised.
    """
    label = label or statement.source or statement.account.number
    if statement.calculated_ending_balance == statement.ending_balance:
        logger.debug(f"{label}: ending balance matches ({statement.ending_balance})")
        return True

    logger.warning(
        f"{label}: ending balance mismatch, stated {statement.ending_balance}, "
        f"calculated {statement.calculated_ending_balance}"
    )
    return False


def reconcile(statement: Statement, warn_when_empty: bool = True) -> Statement:
    """
    Finalize a statement once all its transactions are known.

    Sorts and renumbers the transactions, recomputes running balances and the
    calculated ending balance, sets the transaction date range and checks the
    result against the stated ending balance. Running it twice gives the same
    result.

    Args:
        statement: Statement built by an extractor
        warn_when_empty: Check the ending balance even without transactions

    Returns:
        The same statement, updated in place
    """
    transactions = sort_and_sequence(statement.transactions)
    statement.transactions = transactions
    statement.calculated_ending_balance = apply_running_balance(
        statement.starting_balance, transactions
    )

    if transactions:
        statement.transaction_start_date = transactions[0].date
        statement.transaction_end_date = transactions[-1].date
        check_ending_balance(statement)
    elif warn_when_empty:
        check_ending_balance(statement)

    return statement


def validate_balance(statement: Statement) -> Tuple[bool, str]:
    """
    Describe how a statement reconciles, for display.

    Returns:
        (matches, message)
    """
    difference = statement.calculated_ending_balance - statement.ending_balance
    if difference == 0:
        return True, f"Balance reconciled: {statement.ending_balance}"
    return False, (
        f"Balance mismatch: stated {statement.ending_balance}, "
        f"calculated {statement.calculated_ending_balance} (difference {difference})"
    )
