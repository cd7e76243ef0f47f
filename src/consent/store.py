"""
Consent storage.

Hosts supply a ConsentConstraint that persists exported consent PDFs.
submit_document only hands a document to the store once it is complete.
"""

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from .document import ConsentDocument, Incomplete
from .errors import ConsentError, DocumentIncompleteError
from .export import ExportConfiguration

logger = logging.getLogger(__name__)


@runtime_checkable
class ConsentConstraint(Protocol):
    """Anything that can persist an exported consent document."""

    def store(self, document: bytes, identifier: str) -> None:
        ...


class FileConsentStore:
    """Writes each consent document to `<directory>/<identifier>.pdf`."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def path_for(self, identifier: str) -> Path:
        if not identifier or "/" in identifier or "\\" in identifier or identifier in (".", ".."):
            raise ValueError(f"Invalid consent identifier: {identifier!r}")
        return self.directory / f"{identifier}.pdf"

    def store(self, document: bytes, identifier: str) -> None:
        path = self.path_for(identifier)
        self.directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(document)
        logger.info(f"Stored consent document '{identifier}' ({len(document)} bytes) at {path}")


class InMemoryConsentStore:
    """Keeps exported documents in a dict. Used by the HTTP surface and tests."""

    def __init__(self) -> None:
        self.documents: dict[str, bytes] = {}

    def store(self, document: bytes, identifier: str) -> None:
        self.documents[identifier] = document


def submit_document(
    document: ConsentDocument,
    store: ConsentConstraint,
    identifier: str,
    config: ExportConfiguration | None = None,
) -> bytes:
    """
    Export a complete document and hand it to the store.

    Raises:
        DocumentIncompleteError: a response is missing or does not match
        UnableToProducePDF: rendering failed
    """
    state = document.completion_state
    if isinstance(state, Incomplete):
        raise DocumentIncompleteError(state.first_incomplete_id)

    pdf = document.export(config)
    try:
        store.store(pdf, identifier)
    except OSError as e:
        logger.error(f"Failed to store consent document '{identifier}': {e}")
        raise ConsentError(f"Failed to store consent document '{identifier}': {e}") from e
    return pdf
