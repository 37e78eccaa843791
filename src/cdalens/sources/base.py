"""Source configuration and file discovery for CDA inputs."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass


@dataclass
class SourceConfig:
    """How to find and read CDA documents."""

    # File discovery
    file_pattern: str = r".*\.xml$"
    # Whether to use recovery mode for XML parsing
    recover_xml: bool = False


DEFAULT_CONFIG = SourceConfig()


def discover_files(input_dir: str, pattern: str) -> list[str]:
    """Find files matching a regex pattern in a directory."""
    files = []
    for f in os.listdir(input_dir):
        if re.match(pattern, f, re.IGNORECASE):
            files.append(os.path.join(input_dir, f))
    return sorted(files)


def collect_inputs(paths: list[str], pattern: str = DEFAULT_CONFIG.file_pattern) -> list[str]:
    """Expand a mix of files and directories into an ordered list of files.

    Files are kept in the given order; each directory contributes its
    matching files sorted by name.
    """
    files = []
    for path in paths:
        if os.path.isdir(path):
            files.extend(discover_files(path, pattern))
        else:
            files.append(path)
    return files


def read_document(filepath: str) -> bytes:
    """Read one document's raw bytes; the XML parser handles decoding."""
    with open(filepath, "rb") as f:
        return f.read()
