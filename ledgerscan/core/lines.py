"""
Line-continuation parsing for row-per-transaction bank ledgers.

A transaction starts on a row matching the main pattern and may continue on
following rows matching the continuation pattern (indented description lines).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Pattern, Sequence, Tuple

from ..models.schema import Account, Statement, Transaction, CREDIT, DEBIT
from .config import ExtractionConfig
from .normalize import (
    PLACEHOLDER_YEAR,
    clean_decimal,
    compact_number,
    fix_date_year,
    has_suffix,
    normalize_text,
    parse_date,
    search_value,
    trim_layout,
)
from .reconcile import nett_for, reconcile

logger = logging.getLogger(__name__)

DEFAULT_GROUPS = {"date": 1, "description": 2, "amount": 3}


@dataclass
class LineResult:
    """Transactions and totals from one pass over the rows."""
    transactions: List[Transaction] = field(default_factory=list)
    total_credit: Decimal = Decimal('0')
    total_debit: Decimal = Decimal('0')
    balance: Decimal = Decimal('0')


class LineContinuationParser:
    """State machine over rows: idle until a main row opens a transaction."""

    def __init__(self, config: ExtractionConfig):
        self.config = config
        self.main = config.pattern('main_transaction')
        self.continuation = config.optional_pattern('continuation')

        groups = dict(DEFAULT_GROUPS)
        groups.update(config.constant('groups') or {})
        self.date_group = groups["date"]
        self.description_group = groups["description"]
        self.amount_group = groups["amount"]

        self.date_format = config.constant('date_format', '%d/%m/%y')
        self.amount_suffix = config.constant('amount_suffix', '')
        self.suffix_type = config.constant('amount_suffix_type', DEBIT)
        self.default_type = config.constant('default_type', CREDIT)

    def parse_amount(self, raw: str) -> Tuple[Decimal, str]:
        """
        Turn raw amount text into a signed amount and a transaction type.

        The configured suffix marker makes the amount negative and gives it
        the marker's type; anything else is positive with the default type.
        """
        amount = clean_decimal(raw)
        if has_suffix(raw, self.amount_suffix):
            return -amount, self.suffix_type
        return amount, self.default_type

    def parse(
        self,
        rows: Sequence[str],
        starting_balance: Decimal = Decimal('0'),
        statement_date: Optional[datetime] = None,
    ) -> LineResult:
        """
        Parse transactions from rows in document order.

        Args:
            rows: Text rows of the document or section
            starting_balance: Balance before the first transaction
            statement_date: Reference date used to resolve transaction years

        Returns:
            LineResult with transactions in row order and running totals
        """
        result = LineResult(balance=starting_balance)
        current: Optional[Transaction] = None
        sequence = 0
        warned_year = False

        for row in rows:
            match = self.main.search(row)
            if match:
                if current is not None:
                    result.transactions.append(current)

                current = self._open(match, sequence + 1, statement_date)
                if current is None:
                    continue

                if statement_date is None and current.date.year == PLACEHOLDER_YEAR and not warned_year:
                    logger.warning(f"No statement date found, transaction years left at {PLACEHOLDER_YEAR}")
                    warned_year = True

                sequence += 1
                result.balance += current.amount
                current.balance = result.balance
                if current.type == CREDIT:
                    result.total_credit += current.amount
                else:
                    result.total_debit += current.amount
                continue

            if current is not None and self.continuation is not None and self.continuation.search(row):
                current.descriptions.append(row.strip())

        if current is not None:
            result.transactions.append(current)

        return result

    def _open(self, match, sequence: int, statement_date: Optional[datetime]) -> Optional[Transaction]:
        raw_date = match.group(self.date_group)
        date = parse_date(raw_date, trim_layout(raw_date, self.date_format))
        if date is None:
            logger.warning(f"Skipping row with unparseable date: {match.group(0).strip()}")
            return None

        date = fix_date_year(date, statement_date)
        amount, txn_type = self.parse_amount(match.group(self.amount_group))

        logger.debug(f"Transaction {sequence}: {date.date()} {amount} {txn_type}")
        return Transaction(
            sequence=sequence,
            date=date,
            descriptions=[match.group(self.description_group).strip()],
            type=txn_type,
            amount=amount,
        )


def extract_balance(
    rows: Sequence[str],
    pattern: Optional[Pattern],
    credit_suffix: str = "",
    first_only: bool = False,
) -> Decimal:
    """
    Look up a stated balance.

    Args:
        rows: Text rows to search
        pattern: Balance pattern, the first group holds the amount
        credit_suffix: Marker that makes the balance negative
        first_only: Stop at the first matching row instead of summing all

    Returns:
        Balance, 0 when no row matches
    """
    total = Decimal('0')
    if pattern is None:
        return total

    for row in rows:
        match = pattern.search(row)
        if not match:
            continue

        raw = match.group(1) if pattern.groups else match.group(0)
        amount = clean_decimal(raw)
        if has_suffix(raw, credit_suffix) or has_suffix(row, credit_suffix):
            amount = -amount

        if first_only:
            return amount
        total += amount

    return total


def extract_statement_date(text: str, config: ExtractionConfig) -> Optional[datetime]:
    """First statement date in the text, parsed with the statement layout."""
    value = search_value(config.optional_pattern('statement_date'), text)
    if not value:
        return None
    return parse_date(value, config.constant('statement_date_format', '%d/%m/%y'))


def extract_account(text: str, config: ExtractionConfig) -> Account:
    """Account number, holder name and product type found in the text."""
    return Account(
        number=compact_number(search_value(config.optional_pattern('account_number'), text)),
        name=normalize_text(search_value(config.optional_pattern('account_name'), text)),
        type=normalize_text(search_value(config.optional_pattern('account_type'), text))
        or config.constant('account_type', ''),
        polarity=config.constant('polarity', ''),
        reconciliable=bool(config.constant('reconciliable', False)),
    )


def build_line_statement(source: str, rows: Sequence[str], config: ExtractionConfig) -> Statement:
    """
    Extract a single-account statement from the whole document.

    Args:
        source: Source label for the statement
        rows: Text rows of the document
        config: Format configuration

    Returns:
        Reconciled statement
    """
    text = "\n".join(rows)
    credit_suffix = config.constant('credit_suffix', '')
    statement_date = extract_statement_date(text, config)

    starting = extract_balance(rows, config.optional_pattern('starting_balance'), credit_suffix)
    ending = extract_balance(rows, config.optional_pattern('ending_balance'), credit_suffix)

    result = LineContinuationParser(config).parse(rows, starting, statement_date)

    statement = Statement(
        source=source,
        account=extract_account(text, config),
        starting_balance=starting,
        ending_balance=ending,
        total_credit=result.total_credit,
        total_debit=result.total_debit,
        nett=nett_for(result.total_credit, result.total_debit, config.constant('nett', 'sum')),
        statement_date=statement_date,
        transactions=result.transactions,
    )
    return reconcile(statement)


class LineExtractor:
    """Extractor for formats with one account per document."""
    strategy = "lines"

    def extract(self, source: str, rows: Sequence[str], config: ExtractionConfig) -> List[Statement]:
        return [build_line_statement(source, rows, config)]
