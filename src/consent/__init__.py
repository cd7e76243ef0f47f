"""
Consent Documents.

Markdown consent documents with interactive elements:

1. Parsing - frontmatter plus markdown interleaved with <toggle>, <select>
   and <signature> elements
2. Document state - responses, completion, signature capture
3. Export - deterministic PDF rendering and hand-off to a consent store
"""

__version__ = "1.0.0"

from .document import (
    Complete,
    CompletionState,
    ConsentDocument,
    DocumentSnapshot,
    Incomplete,
    SemanticVersion,
)
from .errors import (
    ConsentError,
    ConsentExportError,
    ConsentLoadError,
    ConsentParseError,
    DocumentIncompleteError,
    DuplicateElementId,
    ExportInProgressError,
    FailedToParse,
    InputNotUTF8,
    ParseErrorKind,
    SourceLocation,
    UnableToProducePDF,
    UnregisteredSectionError,
)
from .export import ExportConfiguration, FontSettings, FontSpec, PaperSize
from .sections import (
    AnySelection,
    MarkdownSection,
    OptionSelection,
    SelectionOption,
    SelectSection,
    SignatureSection,
    ToggleSection,
)
from .signature import InkSignature, PersonName, SignatureMode, SignatureStorage, TypedSignature
from .store import ConsentConstraint, FileConsentStore, submit_document

__all__ = [
    "AnySelection",
    "Complete",
    "CompletionState",
    "ConsentConstraint",
    "ConsentDocument",
    "ConsentError",
    "ConsentExportError",
    "ConsentLoadError",
    "ConsentParseError",
    "DocumentIncompleteError",
    "DocumentSnapshot",
    "DuplicateElementId",
    "ExportConfiguration",
    "ExportInProgressError",
    "FailedToParse",
    "FileConsentStore",
    "FontSettings",
    "FontSpec",
    "Incomplete",
    "InkSignature",
    "InputNotUTF8",
    "MarkdownSection",
    "OptionSelection",
    "PaperSize",
    "ParseErrorKind",
    "PersonName",
    "SelectSection",
    "SelectionOption",
    "SemanticVersion",
    "SignatureMode",
    "SignatureSection",
    "SignatureStorage",
    "SourceLocation",
    "ToggleSection",
    "TypedSignature",
    "UnableToProducePDF",
    "UnregisteredSectionError",
    "submit_document",
]
