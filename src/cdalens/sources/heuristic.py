"""Heuristic, low-confidence extraction for batch statistics.

Unlike sources.cda_document this never requires a complete CDA structure:
missing elements just leave fields empty. Besides structured codes it
mines free text for diagnosis keywords and known drug names, and infers
diagnoses/medications from the file name. Every diagnosis and medication
carries a provenance tag so consumers can weight confidence:

- diagnoses.code_system: the code's OID, "structured", "observation_value",
  "text_extracted", "filename_inferred" or "medication_inferred"
- medications.medication_type: "structured", "text_extracted" or
  "filename_inferred"

Names are de-duplicated case-insensitively within one document.
"""

from __future__ import annotations

import re

from lxml import etree

from cdalens.core.cda import (
    attribute,
    el_text,
    find_root,
    first_child,
    first_match,
    local_name,
    text_content,
)
from cdalens.core.utils import calculate_age
from cdalens.models import Diagnosis, Medication, PatientSummary, SimplifiedDocument

DIAGNOSIS_KEYWORDS = [
    "diabetes", "diabético", "hipertension", "hipertenso", "asma",
    "pneumonia", "infection", "fracture", "cancer", "depression",
    "anxiety", "arthritis", "hipercolesterolemia", "bronchitis",
    "gastritis", "dermatitis", "nephritis",
]

FILENAME_DIAGNOSES = {
    "hipertenso": "Hipertensión arterial",
    "diabetico": "Diabetes mellitus",
    "diabetes": "Diabetes mellitus tipo 2",
    "hipertension": "Hipertensión arterial",
    "asma": "Asma bronquial",
    "hipercolesterolemia": "Hipercolesterolemia",
    "anticoagulacion": "Trastorno de coagulación",
}

FILENAME_MEDICATIONS = {
    "diabetico": "Metformina",
    "diabetes": "Metformina",
    "hipertenso": "Enalapril",
    "hipertension": "Enalapril",
    "hipercolesterolemia": "Atorvastatina",
    "asma": "Salbutamol",
    "anticoagulacion": "Warfarina",
}

# Lowercase drug name (Spanish or English) -> canonical display name
MEDICATION_NAMES = {
    "metformina": "Metformina",
    "metformin": "Metformina",
    "enalapril": "Enalapril",
    "atorvastatina": "Atorvastatina",
    "atorvastatin": "Atorvastatina",
    "salbutamol": "Salbutamol",
    "budesonida": "Budesonida",
    "budesonide": "Budesonida",
    "warfarina": "Warfarina",
    "warfarin": "Warfarina",
    "aspirin": "Aspirin",
    "ibuprofen": "Ibuprofen",
    "paracetamol": "Paracetamol",
}

MEDICATION_DIAGNOSES = {
    "metformina": "Diabetes mellitus tipo 2",
    "metformin": "Diabetes mellitus tipo 2",
    "enalapril": "Hipertensión arterial",
    "atorvastatina": "Hipercolesterolemia",
    "atorvastatin": "Hipercolesterolemia",
    "salbutamol": "Asma bronquial",
    "budesonida": "Asma bronquial",
    "budesonide": "Asma bronquial",
    "warfarina": "Trastorno de coagulación",
    "warfarin": "Trastorno de coagulación",
}

_MEDICATION_PATTERN = re.compile(
    r"\b(" + "|".join(sorted(MEDICATION_NAMES, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)

DIAGNOSIS_CONTEXTS = ("observation", "act", "encounter")
MEDICATION_CONTEXTS = ("substanceAdministration", "supply", "manufacturedProduct")
FREE_TEXT_TAGS = ("text", "title", "caption")


class _NamedCollector:
    """Accumulates items whose names are unique ignoring case."""

    def __init__(self):
        self.items: list = []
        self._seen: set[str] = set()

    def add(self, item) -> bool:
        key = item.name.lower()
        if not item.name or key in self._seen:
            return False
        self._seen.add(key)
        self.items.append(item)
        return True


def normalize_gender(code: str | None) -> str:
    """Map an administrative gender code to M, F or Unknown."""
    if not code:
        return "Unknown"
    upper = code.strip().upper()
    if upper in ("M", "MALE"):
        return "M"
    if upper in ("F", "FEMALE"):
        return "F"
    return "Unknown"


def normalize_medication_name(name: str) -> str:
    cleaned = " ".join(name.split())
    return MEDICATION_NAMES.get(cleaned.lower(), cleaned)


def _iter_elements(tree: etree._Element, tags: tuple[str, ...]):
    for el in tree.iter():
        if local_name(el) in tags:
            yield el


def _element_value(el: etree._Element | None) -> str | None:
    if el is None:
        return None
    return attribute(el, "value") or el_text(el) or None


def extract_patient(tree: etree._Element, current_year: int | None = None) -> PatientSummary:
    """Best-effort patient demographics from the first recordTarget."""
    record_target = first_match(tree, "recordTarget")
    scope = record_target if record_target is not None else tree

    # The document's own <id> never identifies the patient.
    id_scope = record_target
    for tag in ("patientRole", "patient"):
        if id_scope is None:
            id_scope = first_match(tree, tag)

    patient_id = None
    id_el = first_match(id_scope, "id") if id_scope is not None else None
    if id_el is not None:
        patient_id = attribute(id_el, "extension") or attribute(id_el, "root") or el_text(id_el) or None

    name = None
    patient_el = first_match(scope, "patient")
    if patient_el is not None:
        parts: list[str] = []
        for tag in ("given", "family"):
            for part_el in _iter_elements(patient_el, (tag,)):
                text = el_text(part_el)
                if text and text not in parts:
                    parts.append(text)
        name = " ".join(" ".join(parts).split()) or None

    gender = None
    gender_el = first_match(tree, "administrativeGenderCode")
    if gender_el is not None:
        gender = normalize_gender(attribute(gender_el, "code") or _element_value(gender_el))

    birth_date = _element_value(first_match(tree, "birthTime"))
    return PatientSummary(
        id=patient_id,
        name=name,
        gender=gender,
        birth_date=birth_date,
        age=calculate_age(birth_date, current_year=current_year),
    )


def _free_texts(tree: etree._Element) -> list[str]:
    return [text_content(el) or "" for el in _iter_elements(tree, FREE_TEXT_TAGS)]


def extract_diagnoses(
    tree: etree._Element, file_name: str, medications: list[Medication] | None = None
) -> list[Diagnosis]:
    """Diagnoses from coded statements, free text and the file name."""
    found = _NamedCollector()

    for el in _iter_elements(tree, DIAGNOSIS_CONTEXTS):
        code_el = first_child(el, "code")
        if code_el is not None:
            display = attribute(code_el, "displayName")
            if display:
                found.add(Diagnosis(
                    name=display.strip(),
                    code=attribute(code_el, "code"),
                    code_system=attribute(code_el, "codeSystem") or "structured",
                ))
        value_el = first_child(el, "value")
        if value_el is not None:
            display = attribute(value_el, "displayName")
            if display:
                found.add(Diagnosis(
                    name=display.strip(),
                    code=attribute(value_el, "code"),
                    code_system="observation_value",
                ))

    for text in _free_texts(tree):
        lowered = text.lower()
        for keyword in DIAGNOSIS_KEYWORDS:
            if keyword in lowered:
                found.add(Diagnosis(name=keyword.capitalize(), code_system="text_extracted"))

    lowered_name = file_name.lower()
    for keyword, diagnosis in FILENAME_DIAGNOSES.items():
        if keyword in lowered_name:
            found.add(Diagnosis(name=diagnosis, code_system="filename_inferred"))

    if not found.items and medications:
        for med in medications:
            med_lower = med.name.lower()
            for keyword, diagnosis in MEDICATION_DIAGNOSES.items():
                if keyword in med_lower:
                    found.add(Diagnosis(name=diagnosis, code_system="medication_inferred"))

    return found.items


def extract_medications(tree: etree._Element, file_name: str) -> list[Medication]:
    """Medications from manufactured materials, free text and the file name."""
    found = _NamedCollector()

    for el in _iter_elements(tree, MEDICATION_CONTEXTS):
        material = first_match(el, "manufacturedMaterial")
        if material is None:
            continue
        name = el_text(first_child(material, "name"))
        if not name:
            code_el = first_child(material, "code")
            name = (attribute(code_el, "displayName") or "") if code_el is not None else ""
        if name:
            found.add(Medication(name=normalize_medication_name(name), medication_type="structured"))

    for text in _free_texts(tree):
        for match in _MEDICATION_PATTERN.finditer(text):
            found.add(Medication(
                name=normalize_medication_name(match.group(1)),
                medication_type="text_extracted",
            ))

    lowered_name = file_name.lower()
    for keyword, medication in FILENAME_MEDICATIONS.items():
        if keyword in lowered_name:
            found.add(Medication(name=medication, medication_type="filename_inferred"))

    return found.items


def extract_document_date(tree: etree._Element) -> str | None:
    root = find_root(tree)
    if root is not None:
        value = _element_value(first_child(root, "effectiveTime"))
        if value:
            return value
    for tag in ("effectiveTime", "time", "creationTime"):
        value = _element_value(first_match(tree, tag))
        if value:
            return value
    return None


def extract_author(tree: etree._Element) -> str | None:
    for scope_tag in ("assignedPerson", "author", "authenticator"):
        scope = first_match(tree, scope_tag)
        if scope is None:
            continue
        name_el = first_match(scope, "name")
        if name_el is None:
            continue
        parts = [el_text(part) for part in name_el if el_text(part)]
        name = " ".join(parts) if parts else el_text(name_el)
        if name:
            return name
    return None


def extract_simplified(
    file_name: str, tree: etree._Element, current_year: int | None = None
) -> SimplifiedDocument:
    """Build the reduced projection of one parsed document."""
    medications = extract_medications(tree, file_name)
    return SimplifiedDocument(
        file_name=file_name,
        patient=extract_patient(tree, current_year=current_year),
        diagnoses=extract_diagnoses(tree, file_name, medications=medications),
        medications=medications,
        document_date=extract_document_date(tree),
        author=extract_author(tree),
    )
