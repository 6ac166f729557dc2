"""
End-to-end extraction orchestration: format dispatch, account resolution and
statement assembly.
"""
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence
import logging

from .anchors import AnchorBlockExtractor
from .config import AccountDefinition, ConfigurationError, ExtractionConfig, Settings, load_settings
from .detectors import FormatRegistry
from .lines import LineExtractor
from .loader import read_export_rows, read_pdf_rows, read_text_rows
from .normalize import source_name
from .sections import SectionExtractor
from .tables import TabularExtractor
from .wallet import WalletExtractor
from ..models.schema import Account, Statement

logger = logging.getLogger(__name__)

# Text formats tried, in order, when nothing else selects one.
TRIAL_ORDER = ("MAYBANK_CASA_AND_MAE", "MAYBANK_2_CC", "TNG", "TNG_EMAIL")

EXPORT_FORMAT = "TNG_CSV_EXPORT"


class Extractor(Protocol):
    strategy: str

    def extract(self, source: str, rows: Sequence[Any], config: ExtractionConfig) -> List[Statement]:
        ...


EXTRACTORS: Dict[str, Extractor] = {
    extractor.strategy: extractor
    for extractor in (
        LineExtractor(),
        SectionExtractor(),
        WalletExtractor(),
        AnchorBlockExtractor(),
        TabularExtractor(),
    )
}


def assemble(statement: Statement, definition: Optional[AccountDefinition], keep_number: bool = False) -> Statement:
    """
    Attach configured account metadata to an extracted statement.

    Non-empty configured fields win over extracted ones; empty configured
    fields keep what the extractor found. Reconciliability always comes from
    the definition.

    Args:
        statement: Statement produced by an extractor
        definition: Matching account definition, or None
        keep_number: Keep the extracted account number (multi-account documents)

    Returns:
        A copy of the statement with the merged account
    """
    if definition is None:
        return statement

    configured = definition.to_account()
    extracted = statement.account
    account = Account(
        number=extracted.number if keep_number else (configured.number or extracted.number),
        name=configured.name or extracted.name,
        type=configured.type or extracted.type,
        polarity=configured.polarity or extracted.polarity,
        reconciliable=configured.reconciliable,
    )
    return statement.model_copy(update={"account": account})


def assemble_all(statements: List[Statement], definition: Optional[AccountDefinition]) -> List[Statement]:
    if definition is None or len(statements) <= 1:
        return [assemble(statement, definition) for statement in statements]

    # Several accounts from one document: only the one with the configured
    # number takes the configured number.
    return [
        assemble(statement, definition, keep_number=statement.account.number != definition.number)
        for statement in statements
    ]


class StatementRunner:
    """Selects a format and account for each document and runs the extractor."""

    def __init__(self, registry: FormatRegistry = None, accounts: Sequence[AccountDefinition] = ()):
        self.registry = registry or FormatRegistry()
        self.accounts = list(accounts)

        for format_id in self.registry.list_formats():
            strategy = self.registry.get(format_id).strategy
            if strategy not in EXTRACTORS:
                raise ConfigurationError(f"No extractor for strategy '{strategy}' ({format_id})")

    @classmethod
    def from_settings(cls, settings: Settings = None, templates_dir: Path = None) -> "StatementRunner":
        settings = settings or Settings()
        registry = FormatRegistry(templates_dir, overrides=settings.formats)
        return cls(registry, settings.accounts)

    def extractor_for(self, format_id: str) -> Optional[Extractor]:
        config = self.registry.get(format_id)
        if config is None:
            return None
        return EXTRACTORS[config.strategy]

    def run_format(self, format_id: str, source: str, rows: Sequence[Any],
                   definition: Optional[AccountDefinition] = None) -> List[Statement]:
        """
        Run one format's extractor and attach account metadata.

        Returns:
            Extracted statements, empty when the format is unknown
        """
        extractor = self.extractor_for(format_id)
        if extractor is None:
            logger.warning(f"Unknown statement format: {format_id}")
            return []

        statements = extractor.extract(source, rows, self.registry.get(format_id))
        return assemble_all(statements, definition)

    def process_rows(self, source: str, rows: Sequence[str], statement_type: str = None) -> List[Statement]:
        """
        Extract statements from the text rows of one document.

        Args:
            source: Source label for the statements
            rows: Ordered text rows
            statement_type: Explicit format override

        Returns:
            Statements found, empty when nothing matched
        """
        if statement_type:
            return self._run_override(statement_type, source, rows)

        if self.accounts:
            text = "\n".join(rows)
            for definition in self.accounts:
                if definition.regex_identifier.search(text):
                    logger.info(f"{source}: matched account '{definition.name}' ({definition.statement_config})")
                    return self.run_format(definition.statement_config, source, rows, definition)
            logger.warning(f"{source}: no configured account matched")
            return []

        return self._try_all(source, rows)

    def _run_override(self, statement_type: str, source: str, rows: Sequence[str]) -> List[Statement]:
        if statement_type not in self.registry:
            logger.warning(f"{source}: unknown statement type override '{statement_type}'")
            return []

        definition = next(
            (d for d in self.accounts if d.statement_config == statement_type), None
        )
        if definition is None:
            logger.warning(f"{source}: no account configured for {statement_type}, extracting without account metadata")
        else:
            logger.info(f"{source}: using account '{definition.name}' for {statement_type}")
        return self.run_format(statement_type, source, rows, definition)

    def _try_all(self, source: str, rows: Sequence[str]) -> List[Statement]:
        for format_id in TRIAL_ORDER:
            if format_id not in self.registry:
                continue
            statements = self.run_format(format_id, source, rows)
            useful = [statement for statement in statements if statement.has_useful_output]
            if useful:
                logger.info(f"{source}: extracted as {format_id}")
                return useful
            logger.debug(f"{source}: {format_id} produced nothing useful")

        logger.warning(f"{source}: no known format produced output")
        return []

    def process_export(self, source: str, records: Sequence[Sequence[str]]) -> List[Statement]:
        """Extract one statement per account from tabular export rows."""
        statements = self.run_format(EXPORT_FORMAT, source, records)
        return [self._assemble_export(statement) for statement in statements]

    def _assemble_export(self, statement: Statement) -> Statement:
        for definition in self.accounts:
            if definition.statement_config != EXPORT_FORMAT:
                continue
            number = statement.account.number
            if definition.number == number or definition.regex_identifier.search(number):
                return assemble(statement, definition)
        return statement


def process_path(path: Path, statement_type: str = None, settings: Settings = None,
                 runner: StatementRunner = None, source: str = None) -> List[Statement]:
    """
    Read a document and extract its statements.

    The reader is chosen by suffix: .csv exports, .txt pre-extracted text,
    anything else is read as a PDF.

    Args:
        path: Document path
        statement_type: Explicit format override
        settings: User settings, loaded from the default locations when None
        runner: Runner to reuse across documents
        source: Source label, the file name without extension when None

    Returns:
        Statements found in the document
    """
    path = Path(path)
    if runner is None:
        runner = StatementRunner.from_settings(settings if settings is not None else load_settings())

    started = time.perf_counter()
    source = source or source_name(path)
    suffix = path.suffix.lower()

    if suffix == ".csv":
        statements = runner.process_export(source, read_export_rows(path))
    else:
        rows = read_text_rows(path) if suffix == ".txt" else read_pdf_rows(path)
        statements = runner.process_rows(source, rows, statement_type)

    logger.info(f"Processed {path.name}: {len(statements)} statement(s) in {time.perf_counter() - started:.2f}s")
    return statements


def collect_output(statements: Sequence[Statement], transactions_only: bool = False,
                   statement_only: bool = False) -> Any:
    """
    Shape several statements for output.

    Statements without useful output are left out; with transactions_only the
    transactions of all statements are flattened into one list.
    """
    useful = [statement for statement in statements if statement.has_useful_output]
    if transactions_only:
        flattened = []
        for statement in useful:
            flattened.extend(statement.to_output(transactions_only=True))
        return flattened
    return [statement.to_output(statement_only=statement_only) for statement in useful]
