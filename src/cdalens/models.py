"""Data model for extracted CDA documents, analyses and batch statistics.

Every record is a frozen dataclass created once during extraction or
analysis. ClinicalDocument mirrors the CDA R2 header/body structure; the
Simplified* records are the reduced projection used for batch statistics.
to_json_dict() renders any of them with camelCase keys, omitting absent
(None) fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeId:
    """The CDA typeId (root is the canonical CDA type OID)."""

    root: str = ""
    extension: str | None = None


@dataclass(frozen=True)
class TemplateId:
    """Implementation guide template OID."""

    root: str = ""
    extension: str | None = None


@dataclass(frozen=True)
class Identifier:
    """An instance identifier. root defaults to '' rather than None."""

    root: str = ""
    extension: str | None = None
    assigning_authority_name: str | None = None


@dataclass(frozen=True)
class Code:
    """A terminology-coded concept; any field may be absent."""

    code: str | None = None
    code_system: str | None = None
    code_system_name: str | None = None
    display_name: str | None = None

    @property
    def fully_coded(self) -> bool:
        return bool(self.code and self.code_system)


@dataclass(frozen=True)
class Name:
    use: str | None = None
    given: list[str] = field(default_factory=list)
    family: str | None = None
    prefix: str | None = None
    suffix: str | None = None


@dataclass(frozen=True)
class Address:
    use: str | None = None
    street_address_line: list[str] = field(default_factory=list)
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


@dataclass(frozen=True)
class Telecom:
    use: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class EffectiveTime:
    """Point or interval timestamp (raw HL7 strings, no date parsing)."""

    value: str | None = None
    low: str | None = None
    high: str | None = None
    center: str | None = None
    width: str | None = None


@dataclass(frozen=True)
class Quantity:
    value: float | None = None  # None when unparsable or zero (lenient mode)
    unit: str | None = None


# ---------------------------------------------------------------------------
# Header participants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Patient:
    names: list[Name] = field(default_factory=list)
    administrative_gender_code: Code | None = None
    birth_time: str | None = None
    ethnic_group_code: Code | None = None
    race_code: Code | None = None


@dataclass(frozen=True)
class PatientRole:
    ids: list[Identifier] = field(default_factory=list)
    addresses: list[Address] = field(default_factory=list)
    telecoms: list[Telecom] = field(default_factory=list)
    patient: Patient | None = None


@dataclass(frozen=True)
class RecordTarget:
    patient_role: PatientRole


@dataclass(frozen=True)
class Person:
    names: list[Name] = field(default_factory=list)


@dataclass(frozen=True)
class Organization:
    ids: list[Identifier] = field(default_factory=list)
    names: list[str] = field(default_factory=list)
    telecoms: list[Telecom] = field(default_factory=list)
    addresses: list[Address] = field(default_factory=list)


@dataclass(frozen=True)
class AssignedAuthor:
    ids: list[Identifier] = field(default_factory=list)
    code: Code | None = None
    addresses: list[Address] = field(default_factory=list)
    telecoms: list[Telecom] = field(default_factory=list)
    assigned_person: Person | None = None
    represented_organization: Organization | None = None


@dataclass(frozen=True)
class Author:
    assigned_author: AssignedAuthor
    time: str = ""


@dataclass(frozen=True)
class AssignedCustodian:
    represented_custodian_organization: Organization | None = None


@dataclass(frozen=True)
class Custodian:
    assigned_custodian: AssignedCustodian


# ---------------------------------------------------------------------------
# Clinical statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ObservationValue:
    """Typed observation value; type is one of PQ, CD, ST, INT, REAL, TS, ED.

    Unrecognized xsi:type tags are kept verbatim with no fields populated.
    """

    type: str = "ST"
    value: str | float | None = None
    unit: str | None = None
    code: str | None = None
    code_system: str | None = None
    display_name: str | None = None


@dataclass(frozen=True)
class Observation:
    class_code: str | None = None
    mood_code: str | None = None
    template_ids: list[TemplateId] = field(default_factory=list)
    ids: list[Identifier] = field(default_factory=list)
    code: Code | None = None
    text: str | None = None
    status_code: Code | None = None
    effective_time: EffectiveTime | None = None
    values: list[ObservationValue] = field(default_factory=list)


@dataclass(frozen=True)
class Procedure:
    class_code: str | None = None
    mood_code: str | None = None
    template_ids: list[TemplateId] = field(default_factory=list)
    ids: list[Identifier] = field(default_factory=list)
    code: Code | None = None
    text: str | None = None
    status_code: Code | None = None
    effective_time: EffectiveTime | None = None


@dataclass(frozen=True)
class ManufacturedMaterial:
    code: Code | None = None
    name: str | None = None
    lot_number_text: str | None = None


@dataclass(frozen=True)
class ManufacturedProduct:
    template_ids: list[TemplateId] = field(default_factory=list)
    manufactured_material: ManufacturedMaterial | None = None


@dataclass(frozen=True)
class Consumable:
    manufactured_product: ManufacturedProduct


@dataclass(frozen=True)
class SubstanceAdministration:
    class_code: str | None = None
    mood_code: str | None = None
    template_ids: list[TemplateId] = field(default_factory=list)
    ids: list[Identifier] = field(default_factory=list)
    text: str | None = None
    status_code: Code | None = None
    route_code: Code | None = None
    dose_quantity: Quantity | None = None
    consumable: Consumable | None = None

    @property
    def medication_code(self) -> Code | None:
        """Code of the administered manufactured material, if any."""
        if self.consumable is None:
            return None
        material = self.consumable.manufactured_product.manufactured_material
        return material.code if material is not None else None


@dataclass(frozen=True)
class Act:
    class_code: str | None = None
    mood_code: str | None = None
    ids: list[Identifier] = field(default_factory=list)
    code: Code | None = None
    text: str | None = None
    effective_time: EffectiveTime | None = None


@dataclass(frozen=True)
class Entry:
    """A clinical statement; at most one payload variant is populated."""

    type_code: str | None = None
    context_conduction_indicator: bool = False
    observation: Observation | None = None
    substance_administration: SubstanceAdministration | None = None
    procedure: Procedure | None = None
    act: Act | None = None

    @property
    def kind(self) -> str | None:
        for name in ("observation", "substance_administration", "procedure", "act"):
            if getattr(self, name) is not None:
                return name
        return None


# ---------------------------------------------------------------------------
# Body
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Section:
    template_ids: list[TemplateId] = field(default_factory=list)
    id: Identifier | None = None
    code: Code | None = None
    title: str | None = None
    text: str | None = None
    entries: list[Entry] = field(default_factory=list)
    components: list[SectionComponent] = field(default_factory=list)


@dataclass(frozen=True)
class SectionComponent:
    section: Section


@dataclass(frozen=True)
class StructuredBody:
    components: list[SectionComponent] = field(default_factory=list)


@dataclass(frozen=True)
class NonXMLBody:
    text: str = ""


@dataclass(frozen=True)
class Component:
    """Document body: structured_body XOR non_xml_body (or neither)."""

    structured_body: StructuredBody | None = None
    non_xml_body: NonXMLBody | None = None

    def __post_init__(self):
        if self.structured_body is not None and self.non_xml_body is not None:
            raise ValueError("Component cannot hold both structuredBody and nonXMLBody")


@dataclass(frozen=True)
class ClinicalDocument:
    """Root record of an extracted CDA document."""

    type_id: TypeId | None = None
    template_ids: list[TemplateId] = field(default_factory=list)
    id: Identifier | None = None
    code: Code | None = None
    title: str | None = None
    effective_time: str | None = None
    confidentiality_code: Code | None = None
    language_code: Code | None = None
    record_targets: list[RecordTarget] = field(default_factory=list)
    authors: list[Author] = field(default_factory=list)
    custodian: Custodian | None = None
    component: Component | None = None

    def top_level_sections(self) -> list[Section]:
        """Sections directly under the structured body (nested ones excluded)."""
        if self.component is None or self.component.structured_body is None:
            return []
        return [c.section for c in self.component.structured_body.components]


# ---------------------------------------------------------------------------
# Semantic analysis
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TerminologyUsage:
    system: str
    system_name: str
    codes_count: int
    samples: list[Code] = field(default_factory=list)


@dataclass(frozen=True)
class DataTypeUsage:
    type: str
    count: int
    description: str


@dataclass(frozen=True)
class TemplateUsage:
    oid: str
    name: str
    count: int
    description: str


@dataclass(frozen=True)
class ClinicalRelationship:
    type: str
    source: str
    target: str
    description: str


@dataclass(frozen=True)
class QualityMetrics:
    """0-100 integer scores. consistency is the mean of the other three."""

    completeness: int = 0
    consistency: int = 0
    standards_compliance: int = 0
    data_richness: int = 0


@dataclass(frozen=True)
class SemanticAnalysis:
    document_type: str
    clinical_domains: list[str] = field(default_factory=list)
    terminologies: list[TerminologyUsage] = field(default_factory=list)
    data_types: list[DataTypeUsage] = field(default_factory=list)
    templates: list[TemplateUsage] = field(default_factory=list)
    relationships: list[ClinicalRelationship] = field(default_factory=list)
    quality_metrics: QualityMetrics = field(default_factory=QualityMetrics)


@dataclass(frozen=True)
class ValidationResult:
    rule: str
    valid: bool
    message: str


# ---------------------------------------------------------------------------
# Batch path
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatientSummary:
    id: str | None = None
    name: str | None = None
    gender: str | None = None  # M, F, Unknown
    birth_date: str | None = None
    age: int | None = None


@dataclass(frozen=True)
class Diagnosis:
    name: str
    code: str | None = None
    code_system: str | None = None  # OID, or a provenance tag like filename_inferred


@dataclass(frozen=True)
class Medication:
    name: str
    medication_type: str = "structured"  # structured, text_extracted, filename_inferred


@dataclass(frozen=True)
class SimplifiedDocument:
    """Reduced per-document projection used for batch statistics."""

    file_name: str
    patient: PatientSummary = field(default_factory=PatientSummary)
    diagnoses: list[Diagnosis] = field(default_factory=list)
    medications: list[Medication] = field(default_factory=list)
    document_date: str | None = None
    author: str | None = None


@dataclass(frozen=True)
class NameCount:
    name: str
    count: int


@dataclass(frozen=True)
class BatchStatistics:
    total_documents: int = 0
    total_patients: int = 0
    average_age: float = 0.0
    gender_distribution: dict[str, int] = field(default_factory=dict)
    top_diagnoses: list[NameCount] = field(default_factory=list)
    top_medications: list[NameCount] = field(default_factory=list)
    processing_time_ms: int = 0


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a batch run: parsed documents, per-file failures, statistics."""

    documents: list[SimplifiedDocument] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)
    statistics: BatchStatistics = field(default_factory=BatchStatistics)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_json_dict(obj: Any) -> Any:
    """Convert a record (or list/dict of records) to JSON-ready structures.

    Keys become camelCase and None-valued fields are omitted.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        result = {}
        for f in fields(obj):
            value = getattr(obj, f.name)
            if value is None:
                continue
            result[_camel(f.name)] = to_json_dict(value)
        return result
    if isinstance(obj, (list, tuple)):
        return [to_json_dict(v) for v in obj]
    if isinstance(obj, dict):
        return {k: to_json_dict(v) for k, v in obj.items()}
    return obj
