"""Structural checks on a parsed CDA tree.

The report is informational: every rule is evaluated and returned in a
fixed order, nothing is raised. Checks run on the raw tree, so they also
work on documents the extractor would reject.
"""

from __future__ import annotations

from lxml import etree

from cdalens.core.cda import NS, find_root, first_match, local_name
from cdalens.models import ValidationResult

REQUIRED_HEADER_ELEMENTS = (
    "typeId",
    "templateId",
    "id",
    "code",
    "title",
    "effectiveTime",
    "confidentialityCode",
    "languageCode",
)


def _check(rule: str, valid: bool, ok: str, missing: str) -> ValidationResult:
    return ValidationResult(rule=rule, valid=valid, message=ok if valid else missing)


def validate_tree(tree: etree._Element) -> list[ValidationResult]:
    """Run the structural checks; only the root check runs without a root."""
    root = find_root(tree)
    results = [_check(
        "Elemento raíz ClinicalDocument",
        root is not None,
        "Elemento raíz válido",
        "Falta elemento raíz ClinicalDocument",
    )]
    if root is None:
        return results

    namespace = etree.QName(root).namespace
    results.append(ValidationResult(
        rule="Namespace HL7 CDA",
        valid=namespace == NS,
        message=f"Namespace: {namespace}" if namespace else "Namespace HL7 requerido",
    ))

    for name in REQUIRED_HEADER_ELEMENTS:
        results.append(_check(
            f"Elemento {name}",
            first_match(root, name) is not None,
            f"{name} presente",
            f"{name} faltante",
        ))

    record_target = first_match(root, "recordTarget")
    patient = first_match(record_target, "patient") if record_target is not None else None
    results.append(_check(
        "Información del paciente",
        patient is not None,
        "Paciente identificado",
        "Información del paciente faltante",
    ))
    results.append(_check(
        "Información del autor",
        first_match(root, "author") is not None,
        "Autor identificado",
        "Información del autor faltante",
    ))
    return results


def is_valid(results: list[ValidationResult]) -> bool:
    return all(r.valid for r in results)


def _max_depth(el: etree._Element, depth: int = 0) -> int:
    children = [child for child in el if isinstance(child.tag, str)]
    return max((_max_depth(child, depth + 1) for child in children), default=depth)


def _count(root: etree._Element, tag: str) -> int:
    return sum(1 for el in root.iter() if local_name(el) == tag)


def structure_summary(tree: etree._Element) -> dict:
    """Element counts, nesting depth and namespace declarations of the tree.

    Counts include the root itself; depth is 0 for a childless root.
    Namespaces are listed as "xmlns: uri" / "xmlns:prefix: uri".
    """
    namespaces = [
        f"xmlns:{prefix}: {uri}" if prefix else f"xmlns: {uri}"
        for prefix, uri in tree.nsmap.items()
    ]
    return {
        "totalElements": sum(1 for el in tree.iter() if isinstance(el.tag, str)),
        "sections": _count(tree, "section"),
        "entries": _count(tree, "entry"),
        "observations": _count(tree, "observation"),
        "procedures": _count(tree, "procedure"),
        "medications": _count(tree, "substanceAdministration"),
        "depth": _max_depth(tree),
        "namespaces": namespaces,
    }
