"""
Extraction configuration values and user settings.
"""
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Pattern

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..models.schema import Account, CREDIT, DEBIT

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LEDGERSCAN_CONFIG"
CONFIG_FILENAME = ".ledgerscan.yaml"

# Pattern names each parsing strategy cannot run without.
REQUIRED_PATTERNS = {
    "lines": ("main_transaction",),
    "sections": ("main_transaction", "section_header"),
    "wallet": ("transaction", "amount"),
    "anchors": ("transaction", "next_entry", "terminator"),
    "tabular": (),
}
KNOWN_STRATEGIES = tuple(REQUIRED_PATTERNS)


class ConfigurationError(ValueError):
    """Raised when a format template or settings file is malformed."""


def _frozen(mapping: Optional[Mapping] = None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ExtractionConfig:
    """Read-only bag of compiled patterns and constants for one format."""
    format_id: str
    strategy: str
    bank: str = ""
    patterns: Mapping[str, Pattern] = field(default_factory=_frozen)
    constants: Mapping[str, Any] = field(default_factory=_frozen)
    must_contain: tuple = ()
    fuzzy_threshold: float = 85

    def pattern(self, name: str) -> Pattern:
        try:
            return self.patterns[name]
        except KeyError:
            raise ConfigurationError(
                f"Format {self.format_id} has no pattern '{name}'"
            ) from None

    def optional_pattern(self, name: str) -> Optional[Pattern]:
        return self.patterns.get(name)

    def constant(self, name: str, default: Any = None) -> Any:
        return self.constants.get(name, default)

    def constant_list(self, name: str) -> List[str]:
        """Constants may be written as a YAML list or a comma separated string."""
        value = self.constants.get(name)
        if value is None:
            return []
        if isinstance(value, str):
            return [item for item in value.split(",") if item]
        return [str(item) for item in value]


def compile_patterns(format_id: str, raw: Mapping[str, Any]) -> Dict[str, Pattern]:
    """
    Compile the named patterns of a template.

    Args:
        format_id: Format the patterns belong to (for error messages)
        raw: Mapping of pattern name to regular expression source

    Returns:
        Mapping of pattern name to compiled pattern

    Raises:
        ConfigurationError: If any pattern is not a valid regular expression
    """
    compiled = {}
    for name, source in (raw or {}).items():
        if not isinstance(source, str) or not source:
            raise ConfigurationError(f"Pattern '{name}' for {format_id} must be a non-empty string")
        try:
            compiled[name] = re.compile(source)
        except re.error as e:
            raise ConfigurationError(f"Invalid pattern '{name}' for {format_id}: {e}") from e
    return compiled


def build_config(template: Mapping[str, Any], origin: str = "<template>") -> ExtractionConfig:
    """Validate a raw template mapping and turn it into an ExtractionConfig."""
    format_id = template.get("format_id")
    if not format_id:
        raise ConfigurationError(f"Template {origin} has no format_id")

    strategy = template.get("strategy")
    if strategy not in KNOWN_STRATEGIES:
        raise ConfigurationError(
            f"Template {origin} uses unknown strategy '{strategy}' "
            f"(expected one of {', '.join(KNOWN_STRATEGIES)})"
        )

    patterns = compile_patterns(format_id, template.get("patterns") or {})
    missing = [name for name in REQUIRED_PATTERNS[strategy] if name not in patterns]
    if missing:
        raise ConfigurationError(
            f"Format {format_id} is missing required patterns: {', '.join(missing)}"
        )

    constants = template.get("constants") or {}
    if constants.get("nett", "sum") not in ("sum", "difference"):
        raise ConfigurationError(f"Format {format_id} has unknown nett convention '{constants['nett']}'")

    detect = template.get("detect") or {}
    return ExtractionConfig(
        format_id=format_id,
        strategy=strategy,
        bank=template.get("bank", ""),
        patterns=_frozen(patterns),
        constants=_frozen(constants),
        must_contain=tuple(detect.get("must_contain") or ()),
        fuzzy_threshold=detect.get("fuzzy_threshold", 85),
    )


class AccountDefinition(BaseModel):
    """A known account: how to recognise its documents and what to call it."""
    model_config = ConfigDict(frozen=True)

    name: str
    number: str = ""
    type: str = ""
    drcr: str = ""
    reconciliable: bool = False
    regex_identifier: Pattern
    statement_config: str

    @field_validator("drcr")
    @classmethod
    def validate_drcr(cls, v):
        v = (v or "").lower()
        if v not in ("", CREDIT, DEBIT):
            raise ValueError(f"drcr must be '{CREDIT}', '{DEBIT}' or empty, got '{v}'")
        return v

    def to_account(self) -> Account:
        return Account(
            number=self.number,
            name=self.name,
            type=self.type,
            polarity=self.drcr,
            reconciliable=self.reconciliable,
        )


class Settings(BaseModel):
    """User settings: known accounts and per-format template overrides."""
    accounts: List[AccountDefinition] = Field(default_factory=list)
    formats: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("accounts", "formats", mode="before")
    @classmethod
    def none_as_empty(cls, v, info):
        if v is None:
            return [] if info.field_name == "accounts" else {}
        return v


def find_settings_file(explicit: Optional[Path] = None) -> Optional[Path]:
    """
    Locate the settings file.

    Order: explicit path, $LEDGERSCAN_CONFIG, ./.ledgerscan.yaml, ~/.ledgerscan.yaml.
    An explicit path that does not exist is an error; the others are optional.
    """
    if explicit is not None:
        explicit = Path(explicit)
        if not explicit.exists():
            raise ConfigurationError(f"Config file not found: {explicit}")
        return explicit

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path)
        if not path.exists():
            raise ConfigurationError(f"{CONFIG_ENV_VAR} points to a missing file: {path}")
        return path

    for candidate in (Path.cwd() / CONFIG_FILENAME, Path.home() / CONFIG_FILENAME):
        if candidate.exists():
            return candidate
    return None


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load user settings, falling back to empty settings when no file exists.

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    settings_file = find_settings_file(path)
    if settings_file is None:
        logger.debug("No settings file found, using bundled templates without accounts")
        return Settings()

    try:
        with open(settings_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Settings file {settings_file} is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {settings_file} must contain a mapping")

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings in {settings_file}: {e}") from e

    logger.info(f"Loaded settings from {settings_file}: {len(settings.accounts)} account(s)")
    return settings
