"""
Multi-account splitting for documents that carry several cards or accounts.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..models.schema import Account, Statement
from .config import ExtractionConfig
from .lines import (
    LineContinuationParser,
    build_line_statement,
    extract_account,
    extract_balance,
    extract_statement_date,
)
from .normalize import compact_number, normalize_text
from .reconcile import nett_for, reconcile

logger = logging.getLogger(__name__)


@dataclass
class AccountSection:
    """Text belonging to one account header."""
    number: str
    account_type: str
    lines: List[str] = field(default_factory=list)


def split_sections(text: str, config: ExtractionConfig) -> List[AccountSection]:
    """
    Split the document text at each account header.

    A section runs from the end of its header to the start of the next one
    (or the end of the text). When the closing marker occurs inside it, the
    section is cut a fixed number of characters after the marker so the
    closing amount stays in.

    Args:
        text: Full document text
        config: Format configuration with section_header / section_end

    Returns:
        Sections in document order, one per header
    """
    header = config.pattern('section_header')
    end_marker = config.optional_pattern('section_end')
    offset = int(config.constant('section_end_offset', 50))

    matches = list(header.finditer(text))
    sections = []
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        body = text[match.end():end]

        if end_marker is not None:
            closing = end_marker.search(body)
            if closing:
                body = body[:closing.end() + offset]

        sections.append(AccountSection(
            number=compact_number(_group(match, "number", 2)),
            account_type=normalize_text(_group(match, "type", 1)),
            lines=body.split("\n"),
        ))

    logger.debug(f"Found {len(sections)} account section(s)")
    return sections


def _group(match, name: str, index: int) -> str:
    if name in match.re.groupindex:
        return match.group(name) or ""
    return match.group(index) or ""


class SectionExtractor:
    """Extractor producing one statement per account section."""
    strategy = "sections"

    def extract(self, source: str, rows: Sequence[str], config: ExtractionConfig) -> List[Statement]:
        text = "\n".join(rows)
        sections = split_sections(text, config)

        if not sections:
            logger.info(f"{source}: no account headers found, extracting as a single account")
            statement = build_line_statement(source, rows, config)
            return [statement] if statement.has_useful_output else []

        statement_date = extract_statement_date(text, config)
        holder = extract_account(text, config).name

        merged: Dict[str, AccountSection] = {}
        for section in sections:
            if not section.number:
                logger.debug("Dropping section without an account number")
                continue
            if section.number in merged:
                logger.info(f"{source}: merging repeated section for account {section.number}")
                merged[section.number].lines.extend(section.lines)
            else:
                merged[section.number] = section

        return [
            self._build(source, section, holder, statement_date, config)
            for section in merged.values()
        ]

    def _build(self, source, section: AccountSection, holder: str, statement_date, config) -> Statement:
        credit_suffix = config.constant('credit_suffix', '')
        starting = extract_balance(
            section.lines, config.optional_pattern('starting_balance'), credit_suffix, first_only=True
        )
        ending = extract_balance(
            section.lines, config.optional_pattern('ending_balance'), credit_suffix, first_only=True
        )

        result = LineContinuationParser(config).parse(section.lines, starting, statement_date)

        statement = Statement(
            source=source,
            account=Account(
                number=section.number,
                name=holder,
                type=section.account_type,
                polarity=config.constant('polarity', ''),
                reconciliable=bool(config.constant('reconciliable', False)),
            ),
            starting_balance=starting,
            ending_balance=ending,
            total_credit=result.total_credit,
            total_debit=result.total_debit,
            nett=nett_for(result.total_credit, result.total_debit, config.constant('nett', 'sum')),
            statement_date=statement_date,
            transactions=result.transactions,
        )
        # Card sections without activity often carry no balances at all.
        return reconcile(statement, warn_when_empty=False)
