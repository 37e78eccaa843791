"""CDA R2 XML navigation utilities shared by the extractors.

Selectors are plain tag names matched on the element's local name, so
documents with the HL7 v3 default namespace and documents without any
namespace are navigated the same way.
"""

from lxml import etree

from cdalens.errors import MalformedDocumentError

NS = "urn:hl7-org:v3"

ROOT_TAG = "ClinicalDocument"


def parse_text(xml_text: str | bytes, recover: bool = False) -> etree._Element:
    """Parse raw CDA XML text and return the root element.

    Args:
        xml_text: Document content as str or UTF-8 bytes.
        recover: If True, use lxml's recovery mode for broken markup.

    Raises MalformedDocumentError when the text is not well-formed XML.
    """
    if isinstance(xml_text, str):
        xml_text = xml_text.encode("utf-8")
    if not xml_text.strip():
        raise MalformedDocumentError("Empty document")
    parser = etree.XMLParser(recover=recover, encoding="utf-8", resolve_entities=False)
    try:
        root = etree.fromstring(xml_text, parser)
    except etree.XMLSyntaxError as e:
        raise MalformedDocumentError(f"XML parse error: {e}") from e
    if root is None:
        raise MalformedDocumentError("No element could be recovered from the document")
    return root


def parse_doc(filepath: str, recover: bool = False) -> etree._Element:
    """Parse a CDA XML file and return the root element."""
    with open(filepath, "rb") as f:
        return parse_text(f.read(), recover=recover)


def local_name(el: etree._Element) -> str:
    """Return the tag name without its namespace ('' for comments/PIs)."""
    if not isinstance(el.tag, str):
        return ""
    return etree.QName(el).localname


def first_match(scope: etree._Element, selector: str) -> etree._Element | None:
    """First descendant of scope named selector, in document order."""
    for el in scope.iterdescendants():
        if local_name(el) == selector:
            return el
    return None


def all_matches(scope: etree._Element, selector: str) -> list[etree._Element]:
    """All descendants of scope named selector, in document order."""
    return [el for el in scope.iterdescendants() if local_name(el) == selector]


def direct_children(scope: etree._Element, selector: str) -> list[etree._Element]:
    """Direct children of scope named selector, in document order."""
    return [el for el in scope if local_name(el) == selector]


def first_child(scope: etree._Element, selector: str) -> etree._Element | None:
    """First direct child of scope named selector."""
    for el in scope:
        if local_name(el) == selector:
            return el
    return None


def find_root(tree: etree._Element) -> etree._Element | None:
    """Locate the ClinicalDocument element (the tree root or a descendant)."""
    if local_name(tree) == ROOT_TAG:
        return tree
    return first_match(tree, ROOT_TAG)


def attribute(el: etree._Element, name: str) -> str | None:
    """Look up an attribute by local name (``xsi:type`` is found as ``type``)."""
    if ":" in name:
        name = name.split(":", 1)[1]
    value = el.get(name)
    if value is not None:
        return value
    for key, val in el.attrib.items():
        if etree.QName(key).localname == name:
            return val
    return None


def text_content(el: etree._Element | None) -> str | None:
    """Concatenated text of an element and its descendants, or None if absent."""
    if el is None:
        return None
    return "".join(el.itertext())


def el_text(el: etree._Element | None) -> str:
    """Get text content of an element, stripping whitespace."""
    return (text_content(el) or "").strip()
