"""Semantic analysis of an extracted ClinicalDocument.

Classifies the document, detects clinical domains, inventories coding
systems, value data types and templates, extracts observation/medication
relationships, and scores quality. Every sub-analysis degrades to an empty
result when its input is missing; analyze() never raises.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any, Iterator

from cdalens.analysis.quality import quality_metrics
from cdalens.analysis.vocabulary import (
    DATA_TYPE_DESCRIPTIONS,
    DOCUMENT_TYPES,
    RELATIONSHIP_OBSERVATION_CODE,
    RELATIONSHIP_PATIENT_MEDICATION,
    SECTION_DOMAINS,
    TEMPLATE_NAMES,
    TERMINOLOGY_SYSTEMS,
    UNKNOWN_DATA_TYPE,
    UNKNOWN_DOCUMENT_TYPE,
    UNKNOWN_TEMPLATE,
    UNKNOWN_TERMINOLOGY,
)
from cdalens.models import (
    ClinicalDocument,
    ClinicalRelationship,
    Code,
    DataTypeUsage,
    ObservationValue,
    SemanticAnalysis,
    TemplateId,
    TemplateUsage,
    TerminologyUsage,
)

DEFAULT_MAX_RELATIONSHIPS = 10
DEFAULT_MAX_SAMPLES = 5


def walk(node: Any) -> Iterator[Any]:
    """Yield every model record reachable from node, pre-order, in field order."""
    if isinstance(node, list):
        for item in node:
            yield from walk(item)
        return
    if not is_dataclass(node) or isinstance(node, type):
        return
    yield node
    for f in fields(node):
        value = getattr(node, f.name)
        if value is not None and (isinstance(value, list) or is_dataclass(value)):
            yield from walk(value)


def iter_coded_concepts(node: Any) -> Iterator[Code]:
    """Every fully coded concept (code + codeSystem) under node.

    Coded observation values are reported as Code records.
    """
    for item in walk(node):
        if isinstance(item, Code) and item.fully_coded:
            yield item
        elif isinstance(item, ObservationValue) and item.code and item.code_system:
            yield Code(code=item.code, code_system=item.code_system, display_name=item.display_name)


def classify_document(doc: ClinicalDocument) -> str:
    """Label the document from its LOINC type code."""
    code = doc.code
    if code is None or not (code.code or code.display_name):
        return UNKNOWN_DOCUMENT_TYPE
    if code.code in DOCUMENT_TYPES:
        return DOCUMENT_TYPES[code.code]
    return f"Documento CDA ({code.display_name or code.code})"


def clinical_domains(doc: ClinicalDocument) -> list[str]:
    """Distinct domains of the top-level sections; unmapped codes are dropped."""
    domains: list[str] = []
    for section in doc.top_level_sections():
        if section.code is None or not section.code.code:
            continue
        domain = SECTION_DOMAINS.get(section.code.code)
        if domain and domain not in domains:
            domains.append(domain)
    return domains


def terminology_inventory(
    doc: ClinicalDocument, max_samples: int = DEFAULT_MAX_SAMPLES
) -> list[TerminologyUsage]:
    """Group coded concepts by code system OID, keeping the first samples."""
    by_system: dict[str, list[Code]] = {}
    for code in iter_coded_concepts(doc):
        by_system.setdefault(code.code_system, []).append(code)

    return [
        TerminologyUsage(
            system=system,
            system_name=TERMINOLOGY_SYSTEMS.get(system, UNKNOWN_TERMINOLOGY),
            codes_count=len(codes),
            samples=codes[:max_samples],
        )
        for system, codes in by_system.items()
    ]


def data_type_inventory(doc: ClinicalDocument) -> list[DataTypeUsage]:
    """Count observation values in the structured body per type tag."""
    if doc.component is None or doc.component.structured_body is None:
        return []
    counts: dict[str, int] = {}
    for item in walk(doc.component.structured_body):
        if isinstance(item, ObservationValue):
            counts[item.type] = counts.get(item.type, 0) + 1
    return [
        DataTypeUsage(
            type=value_type,
            count=count,
            description=DATA_TYPE_DESCRIPTIONS.get(value_type, UNKNOWN_DATA_TYPE),
        )
        for value_type, count in counts.items()
    ]


def template_inventory(doc: ClinicalDocument) -> list[TemplateUsage]:
    """Count templateId occurrences anywhere in the document by root OID."""
    counts: dict[str, int] = {}
    for item in walk(doc):
        if isinstance(item, TemplateId):
            counts[item.root] = counts.get(item.root, 0) + 1
    return [
        TemplateUsage(
            oid=oid,
            name=TEMPLATE_NAMES.get(oid, UNKNOWN_TEMPLATE),
            count=count,
            description=f"Usado {count} veces en el documento",
        )
        for oid, count in counts.items()
    ]


def clinical_relationships(
    doc: ClinicalDocument, limit: int = DEFAULT_MAX_RELATIONSHIPS
) -> list[ClinicalRelationship]:
    """First `limit` relationships across top-level section entries, in document order."""
    relationships: list[ClinicalRelationship] = []

    for section in doc.top_level_sections():
        for entry in section.entries:
            obs = entry.observation
            if obs is not None:
                for value in obs.values:
                    if value.type == "CD" and value.code:
                        relationships.append(ClinicalRelationship(
                            type=RELATIONSHIP_OBSERVATION_CODE,
                            source=(obs.code.display_name if obs.code else None) or "Observación",
                            target=value.display_name or value.code,
                            description="Observación clínica con valor codificado",
                        ))

            sa = entry.substance_administration
            med_code = sa.medication_code if sa is not None else None
            if med_code is not None:
                relationships.append(ClinicalRelationship(
                    type=RELATIONSHIP_PATIENT_MEDICATION,
                    source="Paciente",
                    target=med_code.display_name or med_code.code or "Medicamento",
                    description="Administración de medicamento al paciente",
                ))

            if len(relationships) >= limit:
                return relationships[:limit]

    return relationships[:limit]


def analyze(
    doc: ClinicalDocument,
    max_relationships: int = DEFAULT_MAX_RELATIONSHIPS,
    max_samples: int = DEFAULT_MAX_SAMPLES,
) -> SemanticAnalysis:
    """Run every semantic sub-analysis over one document."""
    return SemanticAnalysis(
        document_type=classify_document(doc),
        clinical_domains=clinical_domains(doc),
        terminologies=terminology_inventory(doc, max_samples=max_samples),
        data_types=data_type_inventory(doc),
        templates=template_inventory(doc),
        relationships=clinical_relationships(doc, limit=max_relationships),
        quality_metrics=quality_metrics(doc),
    )
