"""
Markdown-with-custom-elements decoder.

Splits a consent document into:
- frontmatter: a leading block of `key: value` lines between two `---` lines
- blocks: raw markdown runs interleaved with custom elements

Custom elements use an HTML-like syntax and must start at the beginning of a
line:

    <toggle id=share expected-value=true>I agree to share my data</toggle>
    <select id=arm initial-value="a">
        Pick a study arm
        <option id=a>Arm A</>
        <option id=b>Arm B</option>
    </select>
    <signature id=participant />

Attribute values are bare words or double-quoted strings (with backslash
escapes). Elements close with `</name>`, `</>` or `/>`.

Markdown itself is passed through untouched.
"""

import logging
import re
import string
from dataclasses import dataclass, field
from typing import Union

from .errors import ConsentParseError, ParseErrorKind, SourceLocation

logger = logging.getLogger(__name__)

_IDENT_START = frozenset(string.ascii_letters + "_")
_IDENT_CHARS = _IDENT_START | frozenset(string.digits + "-")
_UNQUOTED_STOP = frozenset('>/"=<')

FRONTMATTER_DELIMITER = "---"
_FRONTMATTER_ENTRY = re.compile(r"^([A-Za-z_][A-Za-z0-9_-]*):(.*)$")


@dataclass
class CustomElement:
    """A decoded custom element with its attributes and children."""
    name: str
    attributes: list[tuple[str, str]] = field(default_factory=list)
    content: list[Union[str, "CustomElement"]] = field(default_factory=list)
    location: SourceLocation = field(default_factory=SourceLocation)

    def attribute(self, key: str) -> str | None:
        """First value of attribute `key`, or None if absent."""
        for name, value in self.attributes:
            if name == key:
                return value
        return None

    def describe(self) -> str:
        attrs = " ".join(f'{name}="{value}"' for name, value in self.attributes)
        return f"<{self.name}{' ' + attrs if attrs else ''}>"


Block = Union[str, CustomElement]


@dataclass
class MarkupDocument:
    frontmatter: dict[str, str]
    blocks: list[Block]


class MarkupDecoder:
    """Single-pass decoder over the document text."""

    def __init__(self, text: str):
        self.text = text.replace("\r\n", "\n")
        self.pos = 0

    def decode(self) -> MarkupDocument:
        frontmatter = self._parse_frontmatter()
        blocks: list[Block] = []
        run: list[str] = []
        while self._current is not None:
            if self._current == "<" and self._at_line_start:
                element = self._parse_element()
                if element is not None:
                    blocks.append("".join(run))
                    run = []
                    blocks.append(element)
                    continue
            run.append(self._current)
            self.pos += 1
        blocks.append("".join(run))
        return MarkupDocument(frontmatter=frontmatter, blocks=blocks)

    # =========================================================================
    # Frontmatter
    # =========================================================================

    def _parse_frontmatter(self) -> dict[str, str]:
        if self._current_line is None or self._current_line.rstrip() != FRONTMATTER_DELIMITER:
            return {}
        self._consume_line()
        frontmatter: dict[str, str] = {}
        while self._current_line is not None:
            entry = _FRONTMATTER_ENTRY.match(self._current_line)
            if entry is None:
                break
            key, value = entry.groups()
            self._consume_line()
            frontmatter[key] = value.strip()
        if self._current_line is None or self._current_line.rstrip() != FRONTMATTER_DELIMITER:
            raise self._error(ParseErrorKind.OTHER, "Unable to find end of frontmatter")
        self._consume_line()
        logger.debug(f"Parsed frontmatter keys: {sorted(frontmatter)}")
        return frontmatter

    # =========================================================================
    # Elements
    # =========================================================================

    def _parse_element(self) -> CustomElement | None:
        next_char = self._peek()
        if self._current != "<" or next_char is None or next_char not in _IDENT_START:
            return None
        location = self._location()
        self.pos += 1
        element = CustomElement(name=self._parse_identifier(), location=location)

        # Opening tag
        while self._current is not None:
            char = self._current
            if char == ">":
                self.pos += 1
                break
            if char == "/":
                self.pos += 1
                if self._current == ">":
                    self.pos += 1
                    return element
                continue
            if char.isspace():
                self.pos += 1
                continue
            attr_name = self._parse_identifier()
            attr_value = ""
            if self._current == "=":
                self.pos += 1
                attr_value = self._parse_attr_value()
            element.attributes.append((attr_name, attr_value))

        if self._try_close(element):
            return element

        # Children
        while True:
            self._skip_whitespace()
            if self._try_close(element):
                return element
            child = self._parse_element()
            if child is not None:
                element.content.append(child)
                continue
            text = self._parse_text_content()
            if text:
                element.content.append(text)
                continue
            raise self._error(ParseErrorKind.OTHER, f"Unable to find closing tag for {element.describe()}")

    def _try_close(self, element: CustomElement) -> bool:
        for tag in ("</>", f"</{element.name}>"):
            if self.text.startswith(tag, self.pos):
                self.pos += len(tag)
                return True
        return False

    def _parse_text_content(self) -> str:
        start = self.pos
        while self._current is not None and self._current != "<":
            self.pos += 1
        return self.text[start:self.pos].strip()

    # =========================================================================
    # Tokens
    # =========================================================================

    def _parse_identifier(self) -> str:
        if self._current is None:
            raise self._error(ParseErrorKind.EOF, "Expected identifier")
        if self._current not in _IDENT_START:
            raise self._error(
                ParseErrorKind.UNEXPECTED_CHARACTER, f"Expected identifier, found {self._current!r}"
            )
        start = self.pos
        while self._current is not None and self._current in _IDENT_CHARS:
            self.pos += 1
        return self.text[start:self.pos]

    def _parse_attr_value(self) -> str:
        if self._current == '"':
            return self._parse_string_literal()
        start = self.pos
        while (
            self._current is not None
            and not self._current.isspace()
            and self._current not in _UNQUOTED_STOP
        ):
            self.pos += 1
        return self.text[start:self.pos]

    def _parse_string_literal(self) -> str:
        self._expect('"')
        chars: list[str] = []
        while True:
            char = self._current
            if char is None:
                raise self._error(ParseErrorKind.EOF, "Unterminated string literal")
            if char == "\\" and self._peek() is not None:
                chars.append(self._peek())
                self.pos += 2
                continue
            if char == '"':
                self.pos += 1
                return "".join(chars)
            chars.append(char)
            self.pos += 1

    # =========================================================================
    # Cursor helpers
    # =========================================================================

    @property
    def _current(self) -> str | None:
        if self.pos < len(self.text):
            return self.text[self.pos]
        return None

    def _peek(self, offset: int = 1) -> str | None:
        index = self.pos + offset
        if index < len(self.text):
            return self.text[index]
        return None

    @property
    def _current_line(self) -> str | None:
        if self.pos >= len(self.text):
            return None
        end = self.text.find("\n", self.pos)
        return self.text[self.pos:] if end == -1 else self.text[self.pos:end]

    @property
    def _at_line_start(self) -> bool:
        return self.pos == 0 or self.text[self.pos - 1] == "\n"

    def _skip_whitespace(self) -> None:
        while self._current is not None and self._current.isspace():
            self.pos += 1

    def _consume_line(self) -> None:
        end = self.text.find("\n", self.pos)
        self.pos = len(self.text) if end == -1 else end + 1

    def _expect(self, char: str) -> None:
        if self._current != char:
            raise self._error(
                ParseErrorKind.UNEXPECTED_CHARACTER, f"Expected {char!r}, found {self._current!r}"
            )
        self.pos += 1

    def _location(self) -> SourceLocation:
        line = self.text.count("\n", 0, self.pos)
        column = self.pos - (self.text.rfind("\n", 0, self.pos) + 1)
        return SourceLocation(line=line, column=column)

    def _error(self, kind: ParseErrorKind, message: str = "") -> ConsentParseError:
        return ConsentParseError(kind, self._location(), message)


def decode_markup(text: str) -> MarkupDocument:
    """Decode a consent document into frontmatter and blocks."""
    return MarkupDecoder(text).decode()
