"""
Consent Document.

Holds the parsed sections (immutable) and the user's responses (mutable),
keyed by section id:

    toggle    -> bool
    select    -> option id, or "" for no selection
    signature -> SignatureStorage

Completion is derived from the responses in document order. Changes notify
subscribers so a host UI can re-render.
"""

import copy
import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterator, Union

from onboarding.observers import ChangeNotifier

from .config import ConsentSettings, get_settings
from .errors import (
    ConsentParseError,
    DuplicateElementId,
    ExportInProgressError,
    FailedToParse,
    UnregisteredSectionError,
)
from .export import ExportConfiguration
from .parser import decode_utf8, parse
from .render import render_document
from .sections import (
    InteractiveSection,
    Section,
    SelectSection,
    SignatureSection,
    ToggleSection,
    is_interactive,
)
from .signature import PersonName, SignatureStorage

logger = logging.getLogger(__name__)


# =============================================================================
# Derived state
# =============================================================================

@dataclass(frozen=True)
class Complete:
    pass


@dataclass(frozen=True)
class Incomplete:
    first_incomplete_id: str


CompletionState = Union[Complete, Incomplete]


_VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


@dataclass(frozen=True, order=True)
class SemanticVersion:
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, raw: str | None) -> "SemanticVersion | None":
        """Parse 'MAJOR.MINOR.PATCH'; None when absent or malformed."""
        if not raw:
            return None
        match = _VERSION_PATTERN.match(raw.strip())
        if not match:
            return None
        return cls(*(int(part) for part in match.groups()))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time copy of a document, safe to hand to another thread."""
    frontmatter: dict[str, str]
    sections: tuple[Section, ...]
    responses: dict[str, Any]
    signature_date: str | None = None

    @property
    def title(self) -> str | None:
        return self.frontmatter.get("title")


SectionRef = Union[str, InteractiveSection]


# =============================================================================
# Document
# =============================================================================

class ConsentDocument:
    """
    A consent document and the responses entered into it.

    Raises:
        FailedToParse: the markdown is malformed
        DuplicateElementId: two interactive sections share an id
    """

    def __init__(
        self,
        markdown: str,
        initial_name: PersonName | None = None,
        enable_custom_elements: bool = True,
        settings: ConsentSettings | None = None,
    ):
        self.settings = settings or get_settings()
        try:
            result = parse(markdown, enable_custom_elements)
        except ConsentParseError as e:
            raise FailedToParse(e) from e

        self.frontmatter: dict[str, str] = result.frontmatter
        self.sections: tuple[Section, ...] = result.sections
        self.custom_elements_enabled = enable_custom_elements
        self.signature_date: str | None = None
        self.is_signing = False
        self.is_exporting = False
        self._responses: dict[str, Any] = {}
        self._notifier = ChangeNotifier()

        for section in self.interactive_sections:
            if section.id in self._responses:
                raise DuplicateElementId(section.id)
            self._responses[section.id] = self._initial_value(section, initial_name)

        logger.info(
            f"Loaded consent document: {len(self.sections)} sections, "
            f"{len(self._responses)} interactive"
        )

    @classmethod
    def from_bytes(cls, data: bytes, **kwargs) -> "ConsentDocument":
        """Create from UTF-8 bytes. Raises InputNotUTF8 if decoding fails."""
        return cls(decode_utf8(data), **kwargs)

    @classmethod
    def from_file(cls, path: str | Path, **kwargs) -> "ConsentDocument":
        return cls.from_bytes(Path(path).read_bytes(), **kwargs)

    def _initial_value(self, section: InteractiveSection, initial_name: PersonName | None) -> Any:
        if isinstance(section, SignatureSection):
            return SignatureStorage.empty(self.settings.signature_mode, section.initial_name or initial_name)
        return section.initial_value

    # =========================================================================
    # Metadata
    # =========================================================================

    @property
    def title(self) -> str | None:
        return self.frontmatter.get("title")

    @property
    def version(self) -> SemanticVersion | None:
        return SemanticVersion.parse(self.frontmatter.get("version"))

    @property
    def interactive_sections(self) -> list[InteractiveSection]:
        return [section for section in self.sections if is_interactive(section)]

    # =========================================================================
    # Responses
    # =========================================================================

    def _section(self, ref: SectionRef) -> InteractiveSection:
        section_id = ref if isinstance(ref, str) else ref.id
        if section_id not in self._responses:
            raise UnregisteredSectionError(section_id)
        for section in self.interactive_sections:
            if section.id == section_id:
                return section
        raise UnregisteredSectionError(section_id)

    def value(self, ref: SectionRef) -> Any:
        """
        Current response of a toggle, select or signature section.

        Signatures come back as a copy; write changes with set_value() so
        subscribers are notified.
        """
        value = self._responses[self._section(ref).id]
        if isinstance(value, SignatureStorage):
            return copy.deepcopy(value)
        return value

    def set_value(self, ref: SectionRef, value: Any) -> None:
        """
        Set the response of a section.

        Raises:
            UnregisteredSectionError: no interactive section has this id
            ValueError: the value does not fit the section
        """
        section = self._section(ref)
        if isinstance(section, ToggleSection):
            if not isinstance(value, bool):
                raise ValueError(f"Toggle '{section.id}' expects a bool, got {type(value).__name__}")
        elif isinstance(section, SelectSection):
            if not isinstance(value, str):
                raise ValueError(f"Select '{section.id}' expects an option id, got {type(value).__name__}")
            if not section.is_valid_value(value):
                raise ValueError(f"Select '{section.id}' has no option '{value}'")
        elif not isinstance(value, SignatureStorage):
            raise ValueError(f"Signature '{section.id}' expects a SignatureStorage, got {type(value).__name__}")

        self._responses[section.id] = value
        logger.debug(f"Set value for '{section.id}'")
        self._notifier.notify()

    def clear_signature(self, ref: SectionRef) -> None:
        """Remove the drawn/typed signature. Entered names are kept."""
        section = self._section(ref)
        if not isinstance(section, SignatureSection):
            raise ValueError(f"Section '{section.id}' is not a signature")
        self._responses[section.id].clear_signature()
        self._notifier.notify()

    def stamp_signature_date(self, when: datetime | None = None) -> str:
        """Set the signature date shown below each signature."""
        when = when or datetime.now()
        self.signature_date = when.strftime(self.settings.signature_date_format)
        self._notifier.notify()
        return self.signature_date

    @contextmanager
    def signing(self) -> Iterator["ConsentDocument"]:
        """Mark the document as being signed for the duration of the block."""
        self.is_signing = True
        self._notifier.notify()
        try:
            yield self
        finally:
            self.is_signing = False
            self._notifier.notify()

    # =========================================================================
    # Completion
    # =========================================================================

    @property
    def completion_state(self) -> CompletionState:
        for section in self.interactive_sections:
            if not self.is_section_complete(section):
                return Incomplete(first_incomplete_id=section.id)
        return Complete()

    @property
    def is_complete(self) -> bool:
        return isinstance(self.completion_state, Complete)

    def is_section_complete(self, section: InteractiveSection) -> bool:
        value = self._responses[section.id]
        if isinstance(section, (ToggleSection, SelectSection)):
            return section.value_matches_expected(value)
        return value.did_enter_names and value.is_signed

    # =========================================================================
    # Export
    # =========================================================================

    def snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(
            frontmatter=dict(self.frontmatter),
            sections=self.sections,
            responses=copy.deepcopy(self._responses),
            signature_date=self.signature_date,
        )

    @contextmanager
    def exporting(self) -> Iterator[DocumentSnapshot]:
        """
        Hold the export flag and yield a snapshot to render.

        Raises ExportInProgressError if an export is already running. The
        flag is cleared even when rendering fails.
        """
        if self.is_exporting:
            raise ExportInProgressError()
        self.is_exporting = True
        self._notifier.notify()
        try:
            yield self.snapshot()
        finally:
            self.is_exporting = False
            self._notifier.notify()

    def export(
        self,
        config: ExportConfiguration | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> bytes:
        """Export to PDF bytes. Raises UnableToProducePDF on backend failure."""
        config = config or ExportConfiguration.from_settings(self.settings)
        with self.exporting() as snapshot:
            return render_document(snapshot, config, self.settings, clock)

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, observer: Callable[[], None]) -> Callable[[], None]:
        """Register a change callback. Returns an unsubscribe function."""
        return self._notifier.subscribe(observer)
