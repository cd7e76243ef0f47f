"""
Consent Document Sections.

A parsed document is an ordered tuple of sections. Markdown sections are
static text; toggle, select and signature sections are interactive and carry
an id that keys the user's response.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from .signature import PersonName


@dataclass(frozen=True)
class MarkdownSection:
    text: str


@dataclass(frozen=True)
class ToggleSection:
    """Yes/No question. expected_value None means any answer is fine."""
    id: str
    prompt: str
    initial_value: bool = False
    expected_value: bool | None = None

    def value_matches_expected(self, value: bool) -> bool:
        return self.expected_value is None or value == self.expected_value


@dataclass(frozen=True)
class SelectionOption:
    id: str
    title: str


@dataclass(frozen=True)
class AnySelection:
    """Anything goes; allow_empty controls whether no selection is acceptable."""
    allow_empty: bool = True


@dataclass(frozen=True)
class OptionSelection:
    """Exactly this option must be selected."""
    option_id: str


ExpectedSelection = Union[AnySelection, OptionSelection]

EMPTY_SELECTION = ""


@dataclass(frozen=True)
class SelectSection:
    """Single choice from a list of options; the value is the selected option id."""
    id: str
    prompt: str
    options: tuple[SelectionOption, ...] = ()
    initial_value: str = EMPTY_SELECTION
    expected_selection: ExpectedSelection = field(default_factory=AnySelection)

    def value_matches_expected(self, value: str) -> bool:
        expected = self.expected_selection
        if isinstance(expected, AnySelection):
            return expected.allow_empty or value != EMPTY_SELECTION
        return value != EMPTY_SELECTION and value == expected.option_id

    def option(self, option_id: str) -> SelectionOption | None:
        return next((option for option in self.options if option.id == option_id), None)

    def is_valid_value(self, value: str) -> bool:
        return value == EMPTY_SELECTION or self.option(value) is not None


@dataclass(frozen=True)
class SignatureSection:
    id: str
    initial_name: PersonName | None = None


Section = Union[MarkdownSection, ToggleSection, SelectSection, SignatureSection]
InteractiveSection = Union[ToggleSection, SelectSection, SignatureSection]

DEFAULT_SIGNATURE_ID = "default-signature"


def is_interactive(section: Any) -> bool:
    return isinstance(section, (ToggleSection, SelectSection, SignatureSection))


def section_kind(section: Section) -> str:
    """Short name of a section's variant ('markdown', 'toggle', ...)."""
    return {
        MarkdownSection: "markdown",
        ToggleSection: "toggle",
        SelectSection: "select",
        SignatureSection: "signature",
    }[type(section)]
