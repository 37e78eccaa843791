"""Batch statistics over simplified per-document extractions.

Diagnoses and medications are counted once per document (each document's
lists are already de-duplicated case-insensitively) but are not merged
across documents, so a diagnosis present in N documents counts N. Top-N
lists are ordered by count, ties keeping first-encountered order.
"""

from __future__ import annotations

from cdalens.core.utils import deduplicate_by_key
from cdalens.models import BatchStatistics, NameCount, SimplifiedDocument

DEFAULT_TOP_N = 5
UNKNOWN_GENDER = "Unknown"


def _top_n(counts: dict[str, int], n: int) -> list[NameCount]:
    # sorted() is stable and dicts keep insertion order, so ties stay in
    # first-encountered order.
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [NameCount(name=name, count=count) for name, count in ranked[:n]]


def _tally(counts: dict[str, int], names: list[str]) -> None:
    for name in deduplicate_by_key(names, str.lower):
        counts[name] = counts.get(name, 0) + 1


def aggregate(
    documents: list[SimplifiedDocument],
    top_n: int = DEFAULT_TOP_N,
    processing_time_ms: int = 0,
) -> BatchStatistics:
    """Fold per-document extractions into batch-level statistics.

    Args:
        documents: Successfully extracted documents; failed ones are left out.
        top_n: Length of the top diagnoses/medications lists.
        processing_time_ms: Wall-clock time of the batch run, if measured.
    """
    gender_distribution: dict[str, int] = {}
    diagnosis_counts: dict[str, int] = {}
    medication_counts: dict[str, int] = {}
    total_age = 0
    age_count = 0

    for doc in documents:
        gender = doc.patient.gender or UNKNOWN_GENDER
        gender_distribution[gender] = gender_distribution.get(gender, 0) + 1

        if doc.patient.age is not None:
            total_age += doc.patient.age
            age_count += 1

        _tally(diagnosis_counts, [d.name for d in doc.diagnoses])
        _tally(medication_counts, [m.name for m in doc.medications])

    return BatchStatistics(
        total_documents=len(documents),
        total_patients=len(documents),
        average_age=total_age / age_count if age_count else 0.0,
        gender_distribution=gender_distribution,
        top_diagnoses=_top_n(diagnosis_counts, top_n),
        top_medications=_top_n(medication_counts, top_n),
        processing_time_ms=processing_time_ms,
    )
