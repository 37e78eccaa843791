"""Export an extracted ClinicalDocument as a flattened CDA-to-JSON view.

Unlike models.to_json_dict (a faithful dump of the record tree) this is a
consumer-oriented summary: document header, first patient, top-level
sections with one summary per entry, and structure counters.
"""

from __future__ import annotations

from datetime import datetime, timezone

from cdalens.analysis.semantic import walk
from cdalens.models import (
    Address,
    ClinicalDocument,
    Entry,
    Identifier,
    Section,
)

EXPORT_VERSION = "1.0"
EXPORT_FORMAT = "CDA-to-JSON"
IDENTIFIER_SEPARATOR = "^"


def format_identifier(identifier: Identifier | None) -> str | None:
    """Render an identifier as root^extension (just root without extension)."""
    if identifier is None:
        return None
    if identifier.extension:
        return f"{identifier.root}{IDENTIFIER_SEPARATOR}{identifier.extension}"
    return identifier.root


def split_identifier(value: str) -> Identifier:
    """Inverse of format_identifier: split on the first '^'."""
    root, sep, extension = value.partition(IDENTIFIER_SEPARATOR)
    return Identifier(root=root, extension=extension if sep and extension else None)


def _code_value(code) -> str | None:
    return code.code if code is not None else None


def _code_display(code) -> str | None:
    return code.display_name if code is not None else None


def _document(doc: ClinicalDocument) -> dict:
    return {
        "id": format_identifier(doc.id),
        "title": doc.title,
        "type": {
            "code": _code_value(doc.code),
            "display": _code_display(doc.code),
            "system": doc.code.code_system if doc.code is not None else None,
        },
        "date": doc.effective_time,
        "confidentiality": _code_value(doc.confidentiality_code),
        "language": _code_value(doc.language_code),
        "templates": [t.root for t in doc.template_ids],
    }


def _address(addr: Address) -> dict:
    return {
        "street": ", ".join(addr.street_address_line) or None,
        "city": addr.city,
        "state": addr.state,
        "postalCode": addr.postal_code,
        "country": addr.country,
    }


def _patient(doc: ClinicalDocument) -> dict | None:
    if not doc.record_targets:
        return None
    role = doc.record_targets[0].patient_role
    patient = role.patient

    name = patient.names[0] if patient is not None and patient.names else None
    given = " ".join(name.given) if name is not None else ""
    family = (name.family or "") if name is not None else ""

    gender = None
    if patient is not None and patient.administrative_gender_code is not None:
        code = patient.administrative_gender_code
        gender = code.display_name or code.code

    return {
        "id": role.ids[0].extension if role.ids else None,
        "name": {
            "given": given or None,
            "family": family or None,
            "full": f"{given} {family}".strip(),
        },
        "gender": gender,
        "birthDate": patient.birth_time if patient is not None else None,
        "address": _address(role.addresses[0]) if role.addresses else None,
    }


def _entry(entry: Entry) -> dict:
    if entry.observation is not None:
        obs = entry.observation
        return {
            "type": "observation",
            "code": _code_value(obs.code),
            "display": _code_display(obs.code),
            "value": [
                {"type": v.type, "value": v.value, "unit": v.unit, "display": v.display_name}
                for v in obs.values
            ],
            "status": _code_value(obs.status_code),
            "effectiveTime": obs.effective_time.value if obs.effective_time else None,
        }

    if entry.substance_administration is not None:
        sa = entry.substance_administration
        material = None
        if sa.consumable is not None:
            material = sa.consumable.manufactured_product.manufactured_material
        dose = sa.dose_quantity
        return {
            "type": "medication",
            "medication": {
                "code": _code_value(material.code) if material else None,
                "display": _code_display(material.code) if material else None,
                "name": material.name if material else None,
            },
            "dose": {
                "value": dose.value if dose else None,
                "unit": dose.unit if dose else None,
            },
            "route": _code_display(sa.route_code),
            "status": _code_value(sa.status_code),
        }

    if entry.procedure is not None:
        proc = entry.procedure
        return {
            "type": "procedure",
            "code": _code_value(proc.code),
            "display": _code_display(proc.code),
            "status": _code_value(proc.status_code),
            "effectiveTime": proc.effective_time.value if proc.effective_time else None,
        }

    if entry.act is not None:
        act = entry.act
        return {
            "type": "act",
            "code": _code_value(act.code),
            "display": _code_display(act.code),
            "effectiveTime": act.effective_time.value if act.effective_time else None,
        }

    return {"type": "unknown", "typeCode": entry.type_code}


def _section(section: Section) -> dict:
    return {
        "title": section.title,
        "code": _code_value(section.code),
        "display": _code_display(section.code),
        "text": section.text,
        "entries": [_entry(e) for e in section.entries],
    }


def _clinical(doc: ClinicalDocument) -> dict | None:
    if doc.component is None or doc.component.structured_body is None:
        return None
    return {"sections": [_section(s) for s in doc.top_level_sections()]}


def _structure(doc: ClinicalDocument) -> dict:
    total = 0
    coded = 0
    templated = 0
    for record in walk(doc):
        total += 1
        if getattr(record, "code", None) or getattr(record, "code_system", None):
            coded += 1
        if getattr(record, "template_ids", None):
            templated += 1

    sections = doc.top_level_sections()
    return {
        "totalElements": total,
        "codedElements": coded,
        "templateCount": templated,
        "codingRatio": coded / total if total else 0,
        "sectionsCount": len(sections),
        "entriesCount": sum(len(s.entries) for s in sections),
    }


def transform_to_json(doc: ClinicalDocument, now: datetime | None = None) -> dict:
    """Build the CDA-to-JSON view of one document.

    Args:
        doc: Extracted document.
        now: Timestamp for meta.transformedAt (defaults to the current UTC time).

    templateCount counts records that carry at least one templateId, not
    individual templateIds. patient is None without a recordTarget and
    clinical is None without a structured body.
    """
    now = now or datetime.now(timezone.utc)
    return {
        "meta": {
            "transformedAt": now.isoformat(),
            "version": EXPORT_VERSION,
            "format": EXPORT_FORMAT,
        },
        "document": _document(doc),
        "patient": _patient(doc),
        "clinical": _clinical(doc),
        "structure": _structure(doc),
    }
