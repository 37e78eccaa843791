"""Full structural extraction of a CDA R2 document into typed records.

Key rules:
- Singular fields come from the first matching direct child; absent
  elements and empty strings become None (Identifier.root becomes '').
- Repeated fields (ids, templateIds, names, values...) gather every matching
  descendant in document order.
- Section components and section entries are taken from direct children
  only, so entries of nested sub-sections are never pulled into the parent.
- An entry carries one payload, picked in the order observation,
  substanceAdministration, procedure, act.
- recordTarget/author/custodian elements must contain patientRole/
  assignedAuthor/assignedCustodian or extraction fails with StructuralError.
"""

from __future__ import annotations

from lxml import etree

from cdalens.core.cda import (
    all_matches,
    attribute,
    direct_children,
    find_root,
    first_child,
    parse_text,
    text_content,
)
from cdalens.core.utils import parse_float_or_zero, try_parse_numeric
from cdalens.errors import StructuralError
from cdalens.models import (
    Act,
    Address,
    AssignedAuthor,
    AssignedCustodian,
    Author,
    ClinicalDocument,
    Code,
    Component,
    Consumable,
    Custodian,
    EffectiveTime,
    Entry,
    Identifier,
    ManufacturedMaterial,
    ManufacturedProduct,
    Name,
    NonXMLBody,
    Observation,
    ObservationValue,
    Organization,
    Patient,
    PatientRole,
    Person,
    Procedure,
    Quantity,
    RecordTarget,
    Section,
    SectionComponent,
    StructuredBody,
    SubstanceAdministration,
    TemplateId,
    Telecom,
    TypeId,
)

NUMERIC_VALUE_TYPES = ("PQ", "INT", "REAL")


def parse_and_extract(
    xml_text: str | bytes, strict_numeric: bool = False, recover: bool = False
) -> ClinicalDocument:
    """Parse raw XML text and extract the ClinicalDocument.

    Raises MalformedDocumentError for non-XML input and StructuralError for
    missing mandatory elements.
    """
    return extract_document(parse_text(xml_text, recover=recover), strict_numeric=strict_numeric)


def extract_document(tree: etree._Element, strict_numeric: bool = False) -> ClinicalDocument:
    """Extract a ClinicalDocument from a parsed element tree.

    Args:
        tree: The parsed root element (or any ancestor of ClinicalDocument).
        strict_numeric: Keep "parsed as zero" distinct from "failed to parse":
            unparsable numbers become None and a genuine zero quantity is kept.
    """
    return CdaExtractor(strict_numeric=strict_numeric).extract(tree)


def _attr(el: etree._Element, name: str) -> str | None:
    return attribute(el, name) or None


def _text(el: etree._Element | None) -> str | None:
    if el is None:
        return None
    return (text_content(el) or "").strip() or None


class CdaExtractor:
    """Recursive-descent extractor; stateless apart from its numeric policy."""

    def __init__(self, strict_numeric: bool = False):
        self.strict_numeric = strict_numeric

    # -- document ---------------------------------------------------------

    def extract(self, tree: etree._Element) -> ClinicalDocument:
        root = find_root(tree)
        if root is None:
            raise StructuralError("No ClinicalDocument element found")

        custodian_el = first_child(root, "custodian")
        component_el = first_child(root, "component")

        return ClinicalDocument(
            type_id=self._type_id(first_child(root, "typeId")),
            template_ids=self._template_ids(root),
            id=self._identifier(first_child(root, "id")),
            code=self._code(first_child(root, "code")),
            title=_text(first_child(root, "title")),
            effective_time=self._time_value(first_child(root, "effectiveTime")),
            confidentiality_code=self._code(first_child(root, "confidentialityCode")),
            language_code=self._code(first_child(root, "languageCode")),
            record_targets=[self._record_target(el) for el in all_matches(root, "recordTarget")],
            authors=[self._author(el) for el in all_matches(root, "author")],
            custodian=self._custodian(custodian_el) if custodian_el is not None else None,
            component=self._component(component_el) if component_el is not None else None,
        )

    # -- data types -------------------------------------------------------

    def _type_id(self, el: etree._Element | None) -> TypeId | None:
        if el is None:
            return None
        return TypeId(root=attribute(el, "root") or "", extension=_attr(el, "extension"))

    def _template_ids(self, scope: etree._Element) -> list[TemplateId]:
        return [
            TemplateId(root=attribute(el, "root") or "", extension=_attr(el, "extension"))
            for el in all_matches(scope, "templateId")
        ]

    def _identifier(self, el: etree._Element | None) -> Identifier | None:
        if el is None:
            return None
        return Identifier(
            root=attribute(el, "root") or "",
            extension=_attr(el, "extension"),
            assigning_authority_name=_attr(el, "assigningAuthorityName"),
        )

    def _identifiers(self, scope: etree._Element) -> list[Identifier]:
        return [self._identifier(el) for el in all_matches(scope, "id")]

    def _code(self, el: etree._Element | None) -> Code | None:
        if el is None:
            return None
        return Code(
            code=_attr(el, "code"),
            code_system=_attr(el, "codeSystem"),
            code_system_name=_attr(el, "codeSystemName"),
            display_name=_attr(el, "displayName"),
        )

    def _time_value(self, el: etree._Element | None) -> str | None:
        """Simple timestamp: value attribute, falling back to text content."""
        if el is None:
            return None
        return _attr(el, "value") or _text(el)

    def _effective_time(self, el: etree._Element | None) -> EffectiveTime | None:
        if el is None:
            return None

        def bound(tag: str) -> str | None:
            child = first_child(el, tag)
            return _attr(child, "value") if child is not None else None

        return EffectiveTime(
            value=_attr(el, "value"),
            low=bound("low"),
            high=bound("high"),
            center=bound("center"),
            width=bound("width"),
        )

    def _names(self, scope: etree._Element) -> list[Name]:
        return [
            Name(
                use=_attr(el, "use"),
                given=[_text(g) or "" for g in all_matches(el, "given")],
                family=_text(first_child(el, "family")),
                prefix=_text(first_child(el, "prefix")),
                suffix=_text(first_child(el, "suffix")),
            )
            for el in all_matches(scope, "name")
        ]

    def _addresses(self, scope: etree._Element) -> list[Address]:
        return [
            Address(
                use=_attr(el, "use"),
                street_address_line=[_text(s) or "" for s in all_matches(el, "streetAddressLine")],
                city=_text(first_child(el, "city")),
                state=_text(first_child(el, "state")),
                postal_code=_text(first_child(el, "postalCode")),
                country=_text(first_child(el, "country")),
            )
            for el in all_matches(scope, "addr")
        ]

    def _telecoms(self, scope: etree._Element) -> list[Telecom]:
        return [
            Telecom(use=_attr(el, "use"), value=_attr(el, "value"))
            for el in all_matches(scope, "telecom")
        ]

    def _number(self, raw: str | None) -> float | None:
        if self.strict_numeric:
            return try_parse_numeric(raw)
        return parse_float_or_zero(raw)

    def _quantity(self, el: etree._Element | None) -> Quantity | None:
        if el is None:
            return None
        value = self._number(_attr(el, "value"))
        if not self.strict_numeric and value == 0:
            # Lenient mode: a zero (parsed or coerced) means "no value".
            value = None
        return Quantity(value=value, unit=_attr(el, "unit"))

    def _observation_value(self, el: etree._Element) -> ObservationValue:
        value_type = (attribute(el, "xsi:type") or "ST").split(":")[-1]

        if value_type == "PQ":
            return ObservationValue(
                type=value_type,
                value=self._number(_attr(el, "value")),
                unit=_attr(el, "unit"),
            )
        if value_type == "CD":
            return ObservationValue(
                type=value_type,
                code=_attr(el, "code"),
                code_system=_attr(el, "codeSystem"),
                display_name=_attr(el, "displayName"),
            )
        if value_type in ("ST", "ED"):
            return ObservationValue(type=value_type, value=text_content(el) or None)
        if value_type in ("INT", "REAL"):
            return ObservationValue(type=value_type, value=self._number(_attr(el, "value")))
        if value_type == "TS":
            return ObservationValue(type=value_type, value=_attr(el, "value"))
        return ObservationValue(type=value_type)

    # -- header participants ----------------------------------------------

    def _record_target(self, el: etree._Element) -> RecordTarget:
        role_el = first_child(el, "patientRole")
        if role_el is None:
            raise StructuralError("recordTarget is missing its patientRole")
        patient_el = first_child(role_el, "patient")
        return RecordTarget(
            patient_role=PatientRole(
                ids=self._identifiers(role_el),
                addresses=self._addresses(role_el),
                telecoms=self._telecoms(role_el),
                patient=self._patient(patient_el) if patient_el is not None else None,
            )
        )

    def _patient(self, el: etree._Element) -> Patient:
        return Patient(
            names=self._names(el),
            administrative_gender_code=self._code(first_child(el, "administrativeGenderCode")),
            birth_time=self._time_value(first_child(el, "birthTime")),
            ethnic_group_code=self._code(first_child(el, "ethnicGroupCode")),
            race_code=self._code(first_child(el, "raceCode")),
        )

    def _person(self, el: etree._Element | None) -> Person | None:
        if el is None:
            return None
        return Person(names=self._names(el))

    def _organization(self, el: etree._Element | None) -> Organization | None:
        if el is None:
            return None
        return Organization(
            ids=self._identifiers(el),
            names=[_text(n) or "" for n in all_matches(el, "name")],
            telecoms=self._telecoms(el),
            addresses=self._addresses(el),
        )

    def _author(self, el: etree._Element) -> Author:
        assigned_el = first_child(el, "assignedAuthor")
        if assigned_el is None:
            raise StructuralError("author is missing its assignedAuthor")
        return Author(
            time=self._time_value(first_child(el, "time")) or "",
            assigned_author=AssignedAuthor(
                ids=self._identifiers(assigned_el),
                code=self._code(first_child(assigned_el, "code")),
                addresses=self._addresses(assigned_el),
                telecoms=self._telecoms(assigned_el),
                assigned_person=self._person(first_child(assigned_el, "assignedPerson")),
                represented_organization=self._organization(
                    first_child(assigned_el, "representedOrganization")
                ),
            ),
        )

    def _custodian(self, el: etree._Element) -> Custodian:
        assigned_el = first_child(el, "assignedCustodian")
        if assigned_el is None:
            raise StructuralError("custodian is missing its assignedCustodian")
        return Custodian(
            assigned_custodian=AssignedCustodian(
                represented_custodian_organization=self._organization(
                    first_child(assigned_el, "representedCustodianOrganization")
                )
            )
        )

    # -- body -------------------------------------------------------------

    def _component(self, el: etree._Element) -> Component:
        body_el = first_child(el, "structuredBody")
        if body_el is not None:
            return Component(
                structured_body=StructuredBody(components=self._section_components(body_el))
            )
        non_xml_el = first_child(el, "nonXMLBody")
        if non_xml_el is not None:
            return Component(non_xml_body=NonXMLBody(text=text_content(non_xml_el) or ""))
        return Component()

    def _section_components(self, parent: etree._Element) -> list[SectionComponent]:
        components = []
        for comp_el in direct_children(parent, "component"):
            section_el = first_child(comp_el, "section")
            if section_el is None:
                continue
            components.append(SectionComponent(section=self._section(section_el)))
        return components

    def _section(self, el: etree._Element) -> Section:
        return Section(
            template_ids=self._template_ids(el),
            id=self._identifier(first_child(el, "id")),
            code=self._code(first_child(el, "code")),
            title=_text(first_child(el, "title")),
            text=_text(first_child(el, "text")),
            entries=[self._entry(e) for e in direct_children(el, "entry")],
            components=self._section_components(el),
        )

    def _entry(self, el: etree._Element) -> Entry:
        type_code = _attr(el, "typeCode")
        conduction = attribute(el, "contextConductionInd") == "true"

        obs_el = first_child(el, "observation")
        if obs_el is not None:
            return Entry(type_code, conduction, observation=self._observation(obs_el))
        sa_el = first_child(el, "substanceAdministration")
        if sa_el is not None:
            return Entry(
                type_code, conduction, substance_administration=self._substance_administration(sa_el)
            )
        proc_el = first_child(el, "procedure")
        if proc_el is not None:
            return Entry(type_code, conduction, procedure=self._procedure(proc_el))
        act_el = first_child(el, "act")
        if act_el is not None:
            return Entry(type_code, conduction, act=self._act(act_el))
        return Entry(type_code, conduction)

    def _observation(self, el: etree._Element) -> Observation:
        return Observation(
            class_code=_attr(el, "classCode"),
            mood_code=_attr(el, "moodCode"),
            template_ids=self._template_ids(el),
            ids=self._identifiers(el),
            code=self._code(first_child(el, "code")),
            text=_text(first_child(el, "text")),
            status_code=self._code(first_child(el, "statusCode")),
            effective_time=self._effective_time(first_child(el, "effectiveTime")),
            values=[self._observation_value(v) for v in all_matches(el, "value")],
        )

    def _substance_administration(self, el: etree._Element) -> SubstanceAdministration:
        return SubstanceAdministration(
            class_code=_attr(el, "classCode"),
            mood_code=_attr(el, "moodCode"),
            template_ids=self._template_ids(el),
            ids=self._identifiers(el),
            text=_text(first_child(el, "text")),
            status_code=self._code(first_child(el, "statusCode")),
            route_code=self._code(first_child(el, "routeCode")),
            dose_quantity=self._quantity(first_child(el, "doseQuantity")),
            consumable=self._consumable(first_child(el, "consumable")),
        )

    def _consumable(self, el: etree._Element | None) -> Consumable | None:
        if el is None:
            return None
        product_el = first_child(el, "manufacturedProduct")
        if product_el is None:
            return None
        material_el = first_child(product_el, "manufacturedMaterial")
        material = None
        if material_el is not None:
            material = ManufacturedMaterial(
                code=self._code(first_child(material_el, "code")),
                name=_text(first_child(material_el, "name")),
                lot_number_text=_text(first_child(material_el, "lotNumberText")),
            )
        return Consumable(
            manufactured_product=ManufacturedProduct(
                template_ids=self._template_ids(product_el),
                manufactured_material=material,
            )
        )

    def _procedure(self, el: etree._Element) -> Procedure:
        return Procedure(
            class_code=_attr(el, "classCode"),
            mood_code=_attr(el, "moodCode"),
            template_ids=self._template_ids(el),
            ids=self._identifiers(el),
            code=self._code(first_child(el, "code")),
            text=_text(first_child(el, "text")),
            status_code=self._code(first_child(el, "statusCode")),
            effective_time=self._effective_time(first_child(el, "effectiveTime")),
        )

    def _act(self, el: etree._Element) -> Act:
        return Act(
            class_code=_attr(el, "classCode"),
            mood_code=_attr(el, "moodCode"),
            ids=self._identifiers(el),
            code=self._code(first_child(el, "code")),
            text=_text(first_child(el, "text")),
            effective_time=self._effective_time(first_child(el, "effectiveTime")),
        )
