"""cdalens: Extract, normalize and analyze HL7 CDA clinical documents.

Parses CDA R2 XML into typed records, derives semantic annotations and
quality scores per document, and folds batches into summary statistics.
"""

__version__ = "0.3.0"
