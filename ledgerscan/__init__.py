"""
ledgerscan

Statement extraction and reconciliation for bank and e-wallet documents.
Text rows (PDF or pre-extracted text) and tabular exports are turned into
normalized statements with signed transactions and a reconciled balance
history.
"""

__version__ = "1.0.0"
__author__ = "ledgerscan Team"

from .core.config import AccountDefinition, ConfigurationError, ExtractionConfig, Settings, load_settings
from .core.detectors import FormatRegistry, detect_format
from .core.runner import StatementRunner, process_path
from .models.schema import Account, Statement, Transaction

__all__ = [
    "process_path",
    "detect_format",
    "load_settings",
    "StatementRunner",
    "FormatRegistry",
    "ExtractionConfig",
    "AccountDefinition",
    "Settings",
    "ConfigurationError",
    "Account",
    "Statement",
    "Transaction"
]
