"""Configuration management for cdalens.

Handles loading and generating the TOML config file that tunes extraction
strictness, analysis limits and batch discovery.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path

from cdalens.sources.base import SourceConfig

DEFAULT_CONFIG_PATH = "cdalens.toml"

DEFAULT_CONFIG_TEMPLATE = """\
# cdalens configuration
# Edit freely; missing keys fall back to the defaults shown here.

[extraction]
# Keep "failed to parse" (absent) distinct from a real zero in numeric fields
strict_numeric = false
# Use the recovering XML parser for slightly broken markup
recover_xml = false

[analysis]
# Maximum number of clinical relationships reported per document
max_relationships = 10
# Sample codes kept per terminology system
max_samples = 5

[statistics]
# Length of the top diagnoses / medications lists
top_n = 5

[batch]
# Regex (case-insensitive) for files picked up from input directories
file_pattern = '.*\\.xml$'
"""


def _default_config() -> dict:
    """Return default configuration."""
    return {
        "extraction": {
            "strict_numeric": False,
            "recover_xml": False,
        },
        "analysis": {
            "max_relationships": 10,
            "max_samples": 5,
        },
        "statistics": {
            "top_n": 5,
        },
        "batch": {
            "file_pattern": r".*\.xml$",
        },
    }


def load_config(config_path: str = DEFAULT_CONFIG_PATH, quiet: bool = False) -> dict:
    """Load configuration from a TOML file.

    Returns the default tables overlaid with the file's values. Unknown
    tables are ignored. Falls back to defaults if the config file doesn't
    exist.
    """
    path = Path(config_path)
    if not path.exists():
        if not quiet:
            print(
                f"Warning: Config file '{config_path}' not found, using defaults. "
                f"Run 'cdalens init-config' to generate one.",
                file=sys.stderr,
            )
        return _default_config()

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    config = _default_config()
    for table, values in config.items():
        if isinstance(raw.get(table), dict):
            values.update(raw[table])
    return config


def source_config(config: dict) -> SourceConfig:
    """Build the SourceConfig used by batch processing."""
    return SourceConfig(
        file_pattern=config["batch"]["file_pattern"],
        recover_xml=bool(config["extraction"]["recover_xml"]),
    )


def write_default_config(config_path: str = DEFAULT_CONFIG_PATH) -> str:
    """Write the commented default config file. Returns its path."""
    Path(config_path).write_text(DEFAULT_CONFIG_TEMPLATE)
    return config_path
