"""
Consent Errors.

- Load errors (ConsentLoadError): bad input, recoverable by the caller
- Section construction errors: malformed custom elements, wrapped into a
  ConsentParseError by the parser
- Export errors (ConsentExportError): rendering failed or already running
- UnregisteredSectionError: a caller/core contract violation, not meant to be caught
"""

from dataclasses import dataclass
from enum import Enum


class ConsentError(Exception):
    """Base class for consent document errors."""


# =============================================================================
# Parsing
# =============================================================================

@dataclass(frozen=True, order=True)
class SourceLocation:
    """0-based line and column within a markdown document."""
    line: int = 0
    column: int = 0


class ParseErrorKind(Enum):
    NON_UTF8_INPUT = "non_utf8_input"
    EOF = "eof"
    UNEXPECTED_CHARACTER = "unexpected_character"
    OTHER = "other"


class ConsentParseError(ConsentError):
    """The parser could not process the input."""

    def __init__(self, kind: ParseErrorKind, location: SourceLocation, message: str = ""):
        self.kind = kind
        self.location = location
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"{kind.value} at line {location.line}, column {location.column}{detail}")


class SectionConstructionError(ConsentError):
    """A custom element could not be turned into a section."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{type(self).__name__}({name!r})")


class MissingAttribute(SectionConstructionError):
    """A required attribute is absent or empty."""


class MissingField(SectionConstructionError):
    """Required content (prompt, option title, id) is absent."""


class UnexpectedElement(SectionConstructionError):
    """A child element that is not allowed at this position."""


class InvalidElement(SectionConstructionError):
    """Any other construction problem, e.g. a reference to a nonexistent option."""


# =============================================================================
# Loading
# =============================================================================

class ConsentLoadError(ConsentError):
    """A ConsentDocument could not be created from its input."""


class InputNotUTF8(ConsentLoadError):
    def __init__(self):
        super().__init__("Input is not valid UTF-8 text")


class FailedToParse(ConsentLoadError):
    def __init__(self, parse_error: ConsentParseError):
        self.parse_error = parse_error
        super().__init__(f"Failed to parse consent document: {parse_error}")


class DuplicateElementId(ConsentLoadError):
    def __init__(self, element_id: str):
        self.element_id = element_id
        super().__init__(f"Consent document contains multiple elements with id '{element_id}'")


# =============================================================================
# Document state
# =============================================================================

class UnregisteredSectionError(LookupError):
    """Read or write of a section that is not part of the document."""

    def __init__(self, section_id: str):
        self.section_id = section_id
        super().__init__(f"Attempting to access value for unregistered section '{section_id}'")


class DocumentIncompleteError(ConsentError):
    def __init__(self, first_incomplete_id: str):
        self.first_incomplete_id = first_incomplete_id
        super().__init__(f"Consent document is incomplete (first incomplete element: '{first_incomplete_id}')")


# =============================================================================
# Export
# =============================================================================

class ConsentExportError(ConsentError):
    """Exporting a consent document failed."""


class UnableToProducePDF(ConsentExportError):
    def __init__(self, reason: str = ""):
        detail = f": {reason}" if reason else ""
        super().__init__(f"Unable to produce PDF{detail}. Please try exporting again.")


class ExportInProgressError(ConsentExportError):
    def __init__(self):
        super().__init__("The consent document is already being exported")
