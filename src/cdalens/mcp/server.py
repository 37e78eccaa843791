"""MCP server for cdalens: extraction, analysis and batch statistics tools.

Run with: cdalens serve-mcp (or python -m cdalens.mcp.server)
Configure env: CDALENS_CONFIG=/path/to/cdalens.toml
"""

from __future__ import annotations

import os

from mcp.server.fastmcp import FastMCP

from cdalens.analysis.semantic import analyze
from cdalens.analysis.validation import is_valid, structure_summary, validate_tree
from cdalens.config import load_config, source_config
from cdalens.core.cda import parse_doc
from cdalens.errors import CdaError
from cdalens.export import transform_to_json
from cdalens.models import to_json_dict
from cdalens.sources.base import read_document
from cdalens.sources.batch import process_batch
from cdalens.sources.cda_document import parse_and_extract

CONFIG_PATH = os.environ.get("CDALENS_CONFIG", "cdalens.toml")

mcp = FastMCP(
    "cdalens",
    instructions=(
        "HL7 CDA R2 document tools. All tools take paths to XML files on the "
        "server's filesystem.\n\n"
        "Key capabilities:\n"
        "- extract_cda: Typed document model (header, participants, sections, entries)\n"
        "- analyze_cda: Document type, clinical domains, terminologies, data types, "
        "templates, relationships and quality scores\n"
        "- transform_cda: Flattened CDA-to-JSON view with structure counters\n"
        "- validate_cda: Required-structure checklist\n"
        "- batch_statistics: Patient, diagnosis and medication statistics over many files\n\n"
        "Use validate_cda first when a document fails to extract."
    ),
)


def _config() -> dict:
    return load_config(CONFIG_PATH, quiet=True)


def _extract(file_path: str, config: dict):
    extraction = config["extraction"]
    return parse_and_extract(
        read_document(file_path),
        strict_numeric=extraction["strict_numeric"],
        recover=extraction["recover_xml"],
    )


@mcp.tool()
def extract_cda(file_path: str) -> dict | str:
    """Extract the typed clinical document model from a CDA XML file.

    Keys are camelCase; absent fields are omitted.
    """
    try:
        return to_json_dict(_extract(file_path, _config()))
    except OSError as e:
        return f"Error: cannot read {file_path}: {e}"
    except CdaError as e:
        return f"Error: {e.message}"


@mcp.tool()
def analyze_cda(file_path: str) -> dict | str:
    """Semantic analysis of a CDA document.

    Returns documentType, clinicalDomains, terminologies (per code system with
    sample codes), dataTypes, templates, relationships (capped) and
    qualityMetrics (completeness, consistency, standardsCompliance,
    dataRichness; each 0-100).
    """
    config = _config()
    try:
        doc = _extract(file_path, config)
    except OSError as e:
        return f"Error: cannot read {file_path}: {e}"
    except CdaError as e:
        return f"Error: {e.message}"
    return to_json_dict(analyze(
        doc,
        max_relationships=config["analysis"]["max_relationships"],
        max_samples=config["analysis"]["max_samples"],
    ))


@mcp.tool()
def transform_cda(file_path: str) -> dict | str:
    """Transform a CDA document into the flattened CDA-to-JSON view."""
    try:
        return transform_to_json(_extract(file_path, _config()))
    except OSError as e:
        return f"Error: cannot read {file_path}: {e}"
    except CdaError as e:
        return f"Error: {e.message}"


@mcp.tool()
def validate_cda(file_path: str) -> dict | str:
    """Check a CDA file for the root element, HL7 namespace, required header
    elements, patient and author.

    Returns {"valid": bool, "results": [{"rule", "valid", "message"}, ...],
    "structure": {element counts, depth, namespaces}}.
    """
    try:
        tree = parse_doc(file_path)
    except OSError as e:
        return f"Error: cannot read {file_path}: {e}"
    except CdaError as e:
        return f"Error: {e.message}"
    results = validate_tree(tree)
    return {
        "valid": is_valid(results),
        "results": to_json_dict(results),
        "structure": structure_summary(tree),
    }


@mcp.tool()
def batch_statistics(paths: list[str], top_n: int = 0) -> dict:
    """Aggregate statistics over CDA files and/or directories of them.

    Args:
        paths: Files or directories (directories contribute matching .xml files).
        top_n: Length of the top diagnoses/medications lists (0 = configured default).

    Returns totalDocuments, totalPatients, averageAge, genderDistribution,
    topDiagnoses, topMedications, processingTimeMs, plus the per-file errors
    of documents that were skipped.
    """
    config = _config()
    result = process_batch(
        paths,
        config=source_config(config),
        top_n=top_n or config["statistics"]["top_n"],
    )
    return {
        "statistics": to_json_dict(result.statistics),
        "errors": result.errors,
    }


if __name__ == "__main__":
    mcp.run()
