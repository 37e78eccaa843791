"""Sequential batch processing of CDA documents into statistics.

Documents are processed one at a time in input order. A document that
cannot be read or parsed is recorded in BatchResult.errors and left out of
the statistics; the rest of the batch continues.
"""

from __future__ import annotations

import os
import time
from typing import Iterable

from cdalens.analysis.statistics import DEFAULT_TOP_N, aggregate
from cdalens.core.cda import parse_text
from cdalens.errors import CdaError
from cdalens.models import BatchResult
from cdalens.sources.base import DEFAULT_CONFIG, SourceConfig, collect_inputs, read_document
from cdalens.sources.heuristic import extract_simplified


def _process(
    items: Iterable[tuple[str, str | bytes]],
    errors: list[dict[str, str]],
    config: SourceConfig,
    top_n: int,
    current_year: int | None,
    verbose: bool,
) -> BatchResult:
    start = time.perf_counter()
    documents = []

    for file_name, xml_text in items:
        try:
            tree = parse_text(xml_text, recover=config.recover_xml)
            doc = extract_simplified(file_name, tree, current_year=current_year)
        except CdaError as e:
            errors.append({"file_name": file_name, "error": e.message})
            if verbose:
                print(f"  ERROR {file_name}: {e.message}")
            continue
        documents.append(doc)
        if verbose:
            print(f"  {file_name}: {len(doc.diagnoses)} diagnoses, "
                  f"{len(doc.medications)} medications")

    elapsed_ms = int(round((time.perf_counter() - start) * 1000))
    statistics = aggregate(documents, top_n=top_n, processing_time_ms=elapsed_ms)
    return BatchResult(documents=documents, errors=errors, statistics=statistics)


def process_texts(
    items: Iterable[tuple[str, str | bytes]],
    config: SourceConfig | None = None,
    top_n: int = DEFAULT_TOP_N,
    current_year: int | None = None,
    verbose: bool = False,
) -> BatchResult:
    """Extract and aggregate already-loaded documents.

    Args:
        items: (file_name, xml_text) pairs, processed in order.
        config: Source settings (XML recovery mode).
        top_n: Length of the top diagnoses/medications lists.
        current_year: Reference year for age calculation (defaults to today).
        verbose: Print a progress line per document.
    """
    return _process(items, [], config or DEFAULT_CONFIG, top_n, current_year, verbose)


def _read_all(files: list[str], errors: list[dict[str, str]], verbose: bool):
    for filepath in files:
        file_name = os.path.basename(filepath)
        try:
            content = read_document(filepath)
        except OSError as e:
            errors.append({"file_name": file_name, "error": str(e)})
            if verbose:
                print(f"  ERROR {file_name}: {e}")
            continue
        yield file_name, content


def process_batch(
    paths: list[str],
    config: SourceConfig | None = None,
    top_n: int = DEFAULT_TOP_N,
    current_year: int | None = None,
    verbose: bool = False,
) -> BatchResult:
    """Read, extract and aggregate CDA files (directories are expanded).

    Each file is read right before it is processed, so at most one
    document is held in memory at a time. Read and parse failures share
    one error list in input order.
    """
    config = config or DEFAULT_CONFIG
    files = collect_inputs(paths, config.file_pattern)
    if verbose:
        print(f"Found {len(files)} CDA documents to process")

    errors: list[dict[str, str]] = []
    return _process(_read_all(files, errors, verbose), errors, config, top_n, current_year, verbose)
