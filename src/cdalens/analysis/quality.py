"""Document quality scores: completeness, standards compliance, data richness.

Consistency is not measured independently; it is the unweighted mean of
the other three scores. All scores are integers in [0, 100], rounded half
up.
"""

from __future__ import annotations

import math

from cdalens.analysis.vocabulary import CDA_TYPE_ID_ROOT
from cdalens.models import ClinicalDocument, Entry, QualityMetrics

COMPLETENESS_FIELDS = ("id", "code", "title", "effective_time", "record_targets", "authors")
COMPLIANCE_CHECK_POINTS = 25


def _round_score(value: float) -> int:
    return int(math.floor(value + 0.5))


def completeness_score(doc: ClinicalDocument) -> float:
    """Share of populated header fields among COMPLETENESS_FIELDS, 0-100."""
    present = sum(1 for name in COMPLETENESS_FIELDS if getattr(doc, name))
    return present / len(COMPLETENESS_FIELDS) * 100


def standards_compliance_score(doc: ClinicalDocument) -> float:
    """Four independent 25-point checks."""
    score = 0
    if doc.type_id is not None and doc.type_id.root == CDA_TYPE_ID_ROOT:
        score += COMPLIANCE_CHECK_POINTS
    if doc.template_ids:
        score += COMPLIANCE_CHECK_POINTS
    if doc.record_targets and doc.record_targets[0].patient_role.patient is not None:
        score += COMPLIANCE_CHECK_POINTS
    if doc.component is not None and doc.component.structured_body is not None:
        score += COMPLIANCE_CHECK_POINTS
    return score


def is_coded_entry(entry: Entry) -> bool:
    """True if the entry's observation, procedure or medication material has a code."""
    if entry.observation is not None and entry.observation.code is not None:
        return True
    if entry.procedure is not None and entry.procedure.code is not None:
        return True
    sa = entry.substance_administration
    return sa is not None and sa.medication_code is not None


def data_richness_score(doc: ClinicalDocument) -> float:
    """Percentage of coded entries among top-level sections' direct entries."""
    total = 0
    coded = 0
    for section in doc.top_level_sections():
        total += len(section.entries)
        coded += sum(1 for entry in section.entries if is_coded_entry(entry))
    return coded / total * 100 if total else 0.0


def quality_metrics(doc: ClinicalDocument) -> QualityMetrics:
    completeness = completeness_score(doc)
    compliance = standards_compliance_score(doc)
    richness = data_richness_score(doc)
    consistency = (completeness + compliance + richness) / 3

    return QualityMetrics(
        completeness=_round_score(completeness),
        consistency=_round_score(consistency),
        standards_compliance=_round_score(compliance),
        data_richness=_round_score(richness),
    )
