"""Exception types raised while reading CDA documents."""


class CdaError(Exception):
    """Base class for all cdalens errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedDocumentError(CdaError):
    """The input is not well-formed XML."""


class StructuralError(CdaError):
    """Well-formed XML that is missing a mandatory clinical element."""
