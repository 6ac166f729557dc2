"""
Format template loading and detection.
"""
import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Mapping, Sequence
from rapidfuzz import fuzz
import logging

from .config import ConfigurationError, ExtractionConfig, build_config

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"


def merge_template(template: Dict[str, Any], override: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Overlay user overrides on a bundled template.

    Nested mappings (patterns, constants, detect) merge key by key; other
    values replace the template's.
    """
    merged = copy.deepcopy(template)
    for key, value in (override or {}).items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


class FormatRegistry:
    """Loads format templates and detects which format a document matches."""

    def __init__(self, templates_dir: Path = None, overrides: Mapping[str, Mapping[str, Any]] = None):
        self.templates_dir = Path(templates_dir) if templates_dir else TEMPLATES_DIR
        self.overrides = dict(overrides or {})
        self.formats: Dict[str, ExtractionConfig] = {}
        self._load_templates()

    def _load_templates(self):
        """
        Load and validate every template.

        Raises:
            ConfigurationError: If a template is unreadable or invalid
        """
        if not self.templates_dir.exists():
            raise ConfigurationError(f"Templates directory not found: {self.templates_dir}")

        for yaml_file in sorted(self.templates_dir.glob("*.yaml")):
            try:
                with open(yaml_file, 'r', encoding='utf-8') as f:
                    template_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Error loading template {yaml_file}: {e}") from e

            format_id = template_data.get('format_id')
            template_data = merge_template(template_data, self.overrides.get(format_id))
            config = build_config(template_data, origin=str(yaml_file))

            if config.format_id in self.formats:
                raise ConfigurationError(f"Duplicate format id {config.format_id} in {yaml_file}")
            self.formats[config.format_id] = config
            logger.debug(f"Loaded format: {config.format_id} ({config.strategy})")

        unknown = set(self.overrides) - set(self.formats)
        for format_id in sorted(unknown):
            logger.warning(f"Ignoring overrides for unknown format: {format_id}")

    def detect_format(self, rows: Sequence[str]) -> Optional[str]:
        """
        Detect which format matches the document rows.

        Args:
            rows: Text rows of the document

        Returns:
            Format ID if found, None otherwise
        """
        lowered = [row.lower() for row in rows if row.strip()]
        for format_id, config in self.formats.items():
            if self._matches_format(lowered, config):
                logger.info(f"Document matches format: {format_id}")
                return format_id

        logger.warning("No matching format found")
        return None

    def _matches_format(self, rows: List[str], config: ExtractionConfig) -> bool:
        """True when every marker of the format is found in some row."""
        if not config.must_contain:
            logger.debug(f"Format {config.format_id} has no detection markers")
            return False

        for marker in config.must_contain:
            target = marker.lower()
            # Exact substring first, fuzzy otherwise
            if not any(target in row or fuzz.partial_ratio(target, row) >= config.fuzzy_threshold
                       for row in rows):
                logger.debug(f"{config.format_id}: marker '{marker}' not found")
                return False

        return True

    def get(self, format_id: str) -> Optional[ExtractionConfig]:
        """Get format configuration by ID."""
        return self.formats.get(format_id)

    def __contains__(self, format_id: str) -> bool:
        return format_id in self.formats

    def list_formats(self) -> List[str]:
        """List all available format IDs."""
        return list(self.formats.keys())


def detect_format(rows: Sequence[str], registry: FormatRegistry = None) -> Optional[str]:
    """
    Convenience function to detect the format of document rows.

    Args:
        rows: Text rows of the document
        registry: Registry to use, the bundled templates when None

    Returns:
        Format ID if found, None otherwise
    """
    registry = registry or FormatRegistry()
    return registry.detect_format(rows)
