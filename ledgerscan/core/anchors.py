"""
Anchor-block scanning for statements rendered as free text (e-mail receipts).

Every transaction starts at an anchor match; the text after the anchor up to
the next boundary is its continuation block.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Pattern, Sequence
import logging

from ..models.schema import Account, Statement, Transaction, CREDIT, DEBIT
from .config import ExtractionConfig
from .normalize import normalize_text, parse_date, search_value, strip_prefix
from .reconcile import nett_for

logger = logging.getLogger(__name__)


class AnchorBlock:
    """An anchor match together with the continuation text that follows it."""
    def __init__(self, match, continuation: str):
        self.match = match
        self.continuation = continuation

    def continuation_lines(self) -> List[str]:
        return [line.strip() for line in self.continuation.split("\n") if line.strip()]

    def __repr__(self):
        return f"AnchorBlock({self.match.group(0)[:30]!r}, continuation={self.continuation[:30]!r})"


def block_end(text: str, start: int, end: int, boundaries: Sequence[Pattern]) -> int:
    """
    Find where a continuation block stops.

    Args:
        text: Full text
        start: End of the anchor match
        end: Start of the next anchor, or end of text
        boundaries: Secondary boundary patterns in priority order

    Returns:
        Earliest boundary position inside [start, end), or end. On an exact
        tie the earlier pattern in boundaries wins.
    """
    best = end
    for boundary in boundaries:
        found = boundary.search(text, start, end)
        if found and found.start() < best:
            best = found.start()
    return best


def find_blocks(text: str, anchor: Pattern, boundaries: Sequence[Pattern]) -> List[AnchorBlock]:
    """
    Split text into anchor blocks.

    Args:
        text: Full document text
        anchor: Transaction anchor pattern
        boundaries: Secondary boundary patterns, highest priority first

    Returns:
        One AnchorBlock per anchor match, in text order
    """
    matches = list(anchor.finditer(text))
    blocks = []
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        end = block_end(text, match.end(), end, boundaries)
        blocks.append(AnchorBlock(match, text[match.end():end].strip()))
    return blocks


class AnchorBlockExtractor:
    """Extractor for anchor-block formats."""
    strategy = "anchors"

    def extract(self, source: str, rows: Sequence[str], config: ExtractionConfig) -> List[Statement]:
        text = "\n".join(rows)
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

        blocks = find_blocks(
            text,
            config.pattern('transaction'),
            # next-entry first: it wins a tie with the terminator
            [config.pattern('next_entry'), config.pattern('terminator')],
        )

        credit_types = set(config.constant_list('credit_types'))
        for block in blocks:
            txn = self._build_transaction(block, len(statement.transactions) + 1, credit_types, config)
            if txn is None:
                continue
            statement.transactions.append(txn)
            if txn.type == CREDIT:
                statement.total_credit += txn.amount
            else:
                statement.total_debit += txn.amount

        statement.nett = nett_for(
            statement.total_credit, statement.total_debit, config.constant('nett', 'difference')
        )

        if statement.transactions:
            statement.transaction_start_date = statement.transactions[0].date
            statement.transaction_end_date = statement.transactions[-1].date
            if statement.statement_date is None:
                statement.statement_date = statement.transaction_end_date

        logger.info(f"{source}: {len(statement.transactions)} transaction block(s)")
        return [statement]

    def _build_transaction(self, block: AnchorBlock, sequence: int, credit_types, config) -> Optional[Transaction]:
        match = block.match
        when = self._block_datetime(block, config)
        if when is None:
            logger.warning(f"Skipping block with unparseable date: {match.group(1)}")
            return None

        prefix = config.constant('currency_prefix', 'RM')
        try:
            amount = Decimal(strip_prefix(match.group(6), prefix))
            balance = Decimal(strip_prefix(match.group(7), prefix))
        except InvalidOperation:
            logger.warning(f"Skipping block with invalid amount: {match.group(0).strip()}")
            return None

        references = [match.group(4)]
        details = []
        for line in block.continuation_lines():
            head, _, rest = line.partition(" ")
            references.append(head)
            if rest.strip():
                details.append(rest.strip())

        label = match.group(3)
        return Transaction(
            sequence=sequence,
            date=when,
            descriptions=[label, match.group(5), " ".join(details)],
            type=CREDIT if label in credit_types else DEBIT,
            amount=amount,
            balance=balance,
            reference="".join(references).strip(),
        )

    @staticmethod
    def _block_datetime(block: AnchorBlock, config: ExtractionConfig) -> Optional[datetime]:
        pattern = config.optional_pattern('datetime')
        if pattern is not None:
            found = pattern.search(block.continuation)
            if found:
                when = parse_date(found.group(0), config.constant('datetime_format', '%d/%m/%Y %I:%M %p'))
                if when is not None:
                    return when
        return parse_date(block.match.group(1), config.constant('date_format', '%d/%m/%Y'))
