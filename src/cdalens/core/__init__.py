"""Core utilities for CDA parsing and navigation."""

from cdalens.core.cda import (
    NS,
    all_matches,
    attribute,
    direct_children,
    el_text,
    find_root,
    first_child,
    first_match,
    parse_doc,
    parse_text,
    text_content,
)
from cdalens.core.utils import calculate_age, deduplicate_by_key, try_parse_numeric
