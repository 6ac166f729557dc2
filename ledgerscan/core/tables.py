"""
Grouped tabular parsing for wallet transaction exports.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
import logging

from ..models.schema import Account, Statement, Transaction, CREDIT, DEBIT
from .config import ExtractionConfig
from .normalize import resolve_timezone, to_decimal
from .reconcile import check_ending_balance, nett_for, sort_and_sequence

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    "mfg_number",
    "trans_no",
    "trans_datetime",
    "posted_date",
    "trans_type",
    "sector",
    "entry_location",
    "entry_sp",
    "exit_location",
    "exit_sp",
    "reload_location",
    "trans_amount",
    "balance",
    "vehicle_class",
    "device_no",
    "transaction_id",
    "vehicle_number",
)

# Columns copied into Transaction.data
DATA_COLUMNS = (
    "mfg_number",
    "trans_no",
    "sector",
    "entry_location",
    "entry_sp",
    "exit_location",
    "exit_sp",
    "reload_location",
    "vehicle_class",
    "device_no",
    "vehicle_number",
)


class ExportRow:
    """One decoded export row with typed timestamp and money columns."""
    def __init__(self, data: Dict[str, Any]):
        self.data = data

    def get(self, column: str, default=None):
        return self.data.get(column, default)

    @property
    def account(self) -> str:
        return self.data["mfg_number"]

    @property
    def when(self) -> datetime:
        return self.data["trans_datetime"]

    @property
    def amount(self):
        return self.data["trans_amount"]

    @property
    def balance(self):
        return self.data["balance"]

    @classmethod
    def from_record(cls, record: Sequence[str], layout: str, tz=None) -> "ExportRow":
        """
        Decode a raw record.

        Raises:
            ValueError: If the record is short or a required column is invalid
        """
        if len(record) < len(EXPORT_COLUMNS):
            raise ValueError(f"insufficient columns: {len(record)}")

        data = {name: str(record[index]).strip() for index, name in enumerate(EXPORT_COLUMNS)}

        try:
            data["trans_datetime"] = datetime.strptime(data["trans_datetime"], layout)
        except ValueError:
            raise ValueError(f"invalid transaction datetime: {data['trans_datetime']!r}") from None

        try:
            data["posted_date"] = datetime.strptime(data["posted_date"], layout)
        except ValueError:
            data["posted_date"] = None

        if tz is not None:
            data["trans_datetime"] = data["trans_datetime"].replace(tzinfo=tz)
            if data["posted_date"] is not None:
                data["posted_date"] = data["posted_date"].replace(tzinfo=tz)

        data["trans_amount"] = to_decimal(data["trans_amount"])
        data["balance"] = to_decimal(data["balance"])
        return cls(data)

    def __repr__(self):
        return f"ExportRow({self.account}, {self.when}, {self.amount})"


class TabularExtractor:
    """
    Extractor for the 17-column wallet export.

    Rows are grouped by account identifier and each group becomes one
    statement. The export only states post-transaction balances, so the
    starting balance is derived from the oldest row.
    """
    strategy = "tabular"

    def extract(self, source: str, rows: Sequence[Sequence[str]], config: ExtractionConfig) -> List[Statement]:
        layout = config.constant('datetime_format', '%Y-%m-%d %H:%M:%S')
        tz = resolve_timezone(config.constant('timezone'))

        groups: Dict[str, List[ExportRow]] = {}
        for line_no, record in enumerate(rows, start=1):
            try:
                row = ExportRow.from_record(record, layout, tz)
            except ValueError as e:
                logger.warning(f"{source}: skipping row {line_no}: {e}")
                continue
            groups.setdefault(row.account, []).append(row)

        if not groups:
            logger.warning(f"{source}: no valid transactions found")

        return [self._build_statement(source, account, group, config) for account, group in groups.items()]

    def _build_statement(self, source: str, account: str, rows: List[ExportRow], config: ExtractionConfig) -> Statement:
        credit_label = config.constant('credit_label', 'reload').lower()
        transactions = []
        for row in rows:
            txn_type = CREDIT if row.get("trans_type").lower() == credit_label else DEBIT
            transactions.append(Transaction(
                sequence=1,
                date=row.when,
                descriptions=self._descriptions(row),
                type=txn_type,
                amount=row.amount,
                balance=row.balance,
                reference=row.get("transaction_id"),
                tags=[row.get("sector"), row.get("trans_type")],
                data=self._data(row),
            ))

        # Stated balances are kept, only order and sequence change.
        transactions = sort_and_sequence(transactions)

        total_credit = sum((t.amount for t in transactions if t.type == CREDIT), Decimal('0'))
        total_debit = sum((t.amount for t in transactions if t.type == DEBIT), Decimal('0'))

        oldest, newest = transactions[0], transactions[-1]
        if oldest.type == CREDIT:
            starting = oldest.balance - oldest.amount
        else:
            starting = oldest.balance + oldest.amount

        statement = Statement(
            source=source,
            account=Account(
                number=account,
                type=config.constant('account_type', ''),
                polarity=config.constant('polarity', ''),
                reconciliable=bool(config.constant('reconciliable', False)),
            ),
            starting_balance=starting,
            ending_balance=newest.balance,
            calculated_ending_balance=starting + total_credit - total_debit,
            total_credit=total_credit,
            total_debit=total_debit,
            nett=nett_for(total_credit, total_debit, config.constant('nett', 'difference')),
            statement_date=newest.date,
            transaction_start_date=oldest.date,
            transaction_end_date=newest.date,
            transactions=transactions,
        )
        check_ending_balance(statement, label=f"{source} [{account}]")
        return statement

    @staticmethod
    def _descriptions(row: ExportRow) -> List[str]:
        descriptions = [row.get("trans_type")]
        if row.get("sector"):
            descriptions.append(row.get("sector"))
        if row.get("entry_location"):
            descriptions.append(row.get("entry_location"))
        exit_location = row.get("exit_location")
        if exit_location and exit_location != row.get("entry_location"):
            descriptions.append(f"to {exit_location}")
        return descriptions

    @staticmethod
    def _data(row: ExportRow) -> Dict[str, Any]:
        data = {name: row.get(name) for name in DATA_COLUMNS}
        posted = row.get("posted_date")
        data["posted_date"] = posted.isoformat() if posted is not None else ""
        return data
