"""
Consent Document Parser.

Turns decoded markup into frontmatter plus an ordered tuple of Sections.
Markdown runs between custom elements are trimmed and whitespace-only runs
are dropped, so two markdown sections are never adjacent.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .errors import (
    ConsentParseError,
    InputNotUTF8,
    InvalidElement,
    MissingAttribute,
    MissingField,
    ParseErrorKind,
    SectionConstructionError,
    UnexpectedElement,
)
from .markup import CustomElement, decode_markup
from .sections import (
    DEFAULT_SIGNATURE_ID,
    EMPTY_SELECTION,
    AnySelection,
    ExpectedSelection,
    MarkdownSection,
    OptionSelection,
    Section,
    SelectionOption,
    SelectSection,
    SignatureSection,
    ToggleSection,
)

logger = logging.getLogger(__name__)

_BOOLEANS = {"true": True, "false": False}


@dataclass(frozen=True)
class ParseResult:
    frontmatter: dict[str, str]
    sections: tuple[Section, ...]


# =============================================================================
# Section Builders
# =============================================================================

def _required_id(element: CustomElement) -> str | None:
    value = element.attribute("id")
    return value if value else None


def _first_text(element: CustomElement) -> str | None:
    if element.content and isinstance(element.content[0], str):
        return element.content[0]
    return None


def build_toggle(element: CustomElement) -> ToggleSection:
    section_id = _required_id(element)
    if section_id is None:
        raise MissingAttribute("id")
    prompt = _first_text(element)
    if prompt is None:
        raise MissingField("prompt")
    initial = _BOOLEANS.get(element.attribute("initial-value") or "", False)
    expected = _BOOLEANS.get(element.attribute("expected-value") or "")
    return ToggleSection(id=section_id, prompt=prompt, initial_value=initial, expected_value=expected)


def build_select(element: CustomElement) -> SelectSection:
    section_id = _required_id(element)
    if section_id is None:
        raise MissingAttribute("id")

    prompt_parts: list[str] = []
    options: list[SelectionOption] = []
    for child in element.content:
        if isinstance(child, str):
            prompt_parts.append(child)
            continue
        if child.name != "option":
            raise UnexpectedElement(child.name)
        option_id = _required_id(child)
        if option_id is None:
            raise MissingAttribute("option.id")
        title = _first_text(child)
        if title is None:
            raise MissingField("option.content")
        options.append(SelectionOption(id=option_id, title=title))

    option_ids = {option.id for option in options}
    initial = element.attribute("initial-value") or EMPTY_SELECTION
    if initial != EMPTY_SELECTION and initial not in option_ids:
        raise InvalidElement(f"initial value references nonexistent option id '{initial}'")

    return SelectSection(
        id=section_id,
        prompt=" ".join(prompt_parts),
        options=tuple(options),
        initial_value=initial,
        expected_selection=_expected_selection(element.attribute("expected-value"), option_ids),
    )


def _expected_selection(raw: str | None, option_ids: set[str]) -> ExpectedSelection:
    if raw is None:
        return AnySelection(allow_empty=True)
    if raw == "":
        raise MissingAttribute("expected-value")
    if raw == "*":
        return AnySelection(allow_empty=False)
    if raw not in option_ids:
        raise InvalidElement(f"expected value references nonexistent option id '{raw}'")
    return OptionSelection(option_id=raw)


def build_signature(element: CustomElement) -> SignatureSection:
    section_id = _required_id(element)
    if section_id is None:
        raise MissingField("id")
    return SignatureSection(id=section_id)


SECTION_BUILDERS: dict[str, Callable[[CustomElement], Section]] = {
    "toggle": build_toggle,
    "select": build_select,
    "signature": build_signature,
}


# =============================================================================
# Parsing
# =============================================================================

def parse(text: str, enable_custom_elements: bool = True) -> ParseResult:
    """
    Parse a consent document.

    With enable_custom_elements=False the whole input is a single markdown
    section followed by a default signature section.

    Raises ConsentParseError on malformed input.
    """
    if not enable_custom_elements:
        return ParseResult(
            frontmatter={},
            sections=(MarkdownSection(text), SignatureSection(id=DEFAULT_SIGNATURE_ID)),
        )

    document = decode_markup(text)
    sections: list[Section] = []
    for block in document.blocks:
        if isinstance(block, str):
            markdown = block.strip()
            if markdown:
                sections.append(MarkdownSection(markdown))
            continue
        builder = SECTION_BUILDERS.get(block.name)
        if builder is None:
            raise ConsentParseError(
                ParseErrorKind.OTHER,
                block.location,
                f"Unexpected top-level custom element: {block.describe()}",
            )
        try:
            sections.append(builder(block))
        except SectionConstructionError as e:
            raise ConsentParseError(
                ParseErrorKind.OTHER,
                block.location,
                f"Unable to construct {block.name.capitalize()} element from {block.describe()}: {e}",
            ) from e

    logger.debug(f"Parsed consent document: {len(sections)} sections")
    return ParseResult(frontmatter=document.frontmatter, sections=tuple(sections))


def decode_utf8(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InputNotUTF8() from e


def parse_bytes(data: bytes, enable_custom_elements: bool = True) -> ParseResult:
    """Parse UTF-8 encoded bytes. Raises InputNotUTF8 if decoding fails."""
    return parse(decode_utf8(data), enable_custom_elements)


def parse_file(path: str | Path, enable_custom_elements: bool = True) -> ParseResult:
    return parse_bytes(Path(path).read_bytes(), enable_custom_elements)
