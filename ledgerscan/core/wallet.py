"""
E-wallet statements where a single row may hold several transactions.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from ..models.schema import Account, Statement, Transaction, CREDIT, DEBIT
from .config import ExtractionConfig
from .normalize import normalize_text, parse_date, resolve_timezone, search_value
from .reconcile import nett_for

logger = logging.getLogger(__name__)


class WalletExtractor:
    """
    Extractor for delimited wallet rows.

    Each row is scanned with the transaction pattern; the seven groups are
    description, date, time, location, two reference parts and the signed
    amount text. The amount text is matched again with the amount pattern
    to split sign and magnitude.
    """
    strategy = "wallet"

    def extract(self, source: str, rows: Sequence[str], config: ExtractionConfig) -> List[Statement]:
        text = "\n".join(rows)
        tz = resolve_timezone(config.constant('timezone'))

        statement = Statement(
            source=source,
            account=Account(
                number=search_value(config.optional_pattern('account_number'), text),
                name=normalize_text(search_value(config.optional_pattern('account_name'), text)),
                type=config.constant('account_type', ''),
                polarity=config.constant('polarity', ''),
                reconciliable=bool(config.constant('reconciliable', False)),
            ),
        )

        period_end = search_value(config.optional_pattern('statement_date'), text)
        if period_end:
            statement.statement_date = parse_date(
                period_end, config.constant('statement_date_format', '%d %B %Y'), tz
            )

        pattern = config.pattern('transaction')
        for row in rows:
            for match in pattern.finditer(row):
                txn = self._build_transaction(match, len(statement.transactions) + 1, config, tz)
                if txn is None:
                    continue

                statement.transactions.append(txn)
                if txn.type == DEBIT:
                    statement.total_debit += txn.amount
                else:
                    statement.total_credit += txn.amount
                self._widen_range(statement, txn.date)

        statement.nett = nett_for(statement.total_credit, statement.total_debit, config.constant('nett', 'sum'))
        logger.info(f"{source}: {len(statement.transactions)} wallet transaction(s)")
        return [statement]

    def _build_transaction(self, match, sequence: int, config: ExtractionConfig, tz) -> Optional[Transaction]:
        description = normalize_text(match.group(1))
        location = match.group(4).strip()

        prefix = config.constant('description_split_prefix', '')
        if prefix and description.startswith(prefix):
            descriptions = [prefix.rstrip(': '), description[len(prefix):], location]
        else:
            descriptions = [description, location]

        layout = config.constant('datetime_format', '%d/%m/%Y %H:%M')
        when = parse_date(f"{match.group(2)} {match.group(3)}", layout, tz)
        if when is None:
            return None

        amount_match = config.pattern('amount').search(match.group(7))
        if not amount_match:
            logger.debug(f"No amount in '{match.group(7)}', skipping")
            return None

        sign, magnitude = amount_match.group(1), amount_match.group(2)
        amount = Decimal(sign + magnitude)
        txn_type = DEBIT if sign == config.constant('debit_marker', '-') else CREDIT

        return Transaction(
            sequence=sequence,
            date=when,
            descriptions=descriptions,
            type=txn_type,
            amount=amount,
            reference=match.group(5) + match.group(6),
        )

    @staticmethod
    def _widen_range(statement: Statement, when: datetime) -> None:
        if statement.transaction_start_date is None or when < statement.transaction_start_date:
            statement.transaction_start_date = when
        if statement.transaction_end_date is None or when > statement.transaction_end_date:
            statement.transaction_end_date = when
