"""
Configuration Loading

YAML rule files live in the repository's config/ directory.
"""

import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).parent.parent.parent / "config"

MATCHING_RULES_FILE = "matching_rules.yaml"
CATEGORY_RULES_FILE = "category_rules.yaml"


def resolve_config_dir(config_dir: Path | str | None) -> Path:
    return Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR


def load_rules(config_dir: Path | str | None, filename: str, section: str | None = None) -> dict:
    """Load a YAML rules file, or one top-level section of it.

    Args:
        config_dir: Configuration directory, defaults to the repository config/
        filename: YAML file name
        section: Optional top-level key to return

    Returns:
        Parsed mapping; empty if the file is missing or malformed
    """
    config_file = resolve_config_dir(config_dir) / filename

    if not config_file.exists():
        logger.debug(f"Config file not found, using defaults: {config_file}")
        return {}

    try:
        with open(config_file, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load {config_file}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Expected a mapping in {config_file}")
        return {}

    if section is None:
        return data

    values = data.get(section) or {}
    return values if isinstance(values, dict) else {}
