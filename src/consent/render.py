"""
Consent PDF Renderer.

Lays out a document snapshot on PDF pages with PyMuPDF:
  optional export timestamp (right aligned)
  optional title header (centered)
  one block per section:
    markdown  -> wrapped inline-styled text, flowing across pages
    toggle    -> prompt | Yes/No        (0.8 / 0.2)
    select    -> prompt | option title  (0.75 / 0.25)
    signature -> unbreakable block: ink strokes or typed text after an "X",
                 a rule, then a caption row with name and signature date

Output is deterministic for identical input and clock: base-14 fonts plus
one built-in Unicode fallback font, no creation dates, no random file
identifier.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import TYPE_CHECKING, Callable

import fitz  # PyMuPDF

from .config import ConsentSettings, get_settings
from .errors import UnableToProducePDF
from .export import UNICODE_FALLBACK_FONT, ExportConfiguration, FontSpec
from .inline_markdown import MarkdownFormatError, Run, format_inline_markdown
from .sections import MarkdownSection, SelectSection, Section, SignatureSection, ToggleSection
from .signature import InkSignature, SignatureStorage, TypedSignature

if TYPE_CHECKING:
    from .document import DocumentSnapshot

logger = logging.getLogger(__name__)

PAGE_MARGIN = 50.0
LINE_SPACING = 1.25
SECTION_SPACING = 12.0
CELL_PADDING = 4.0
RULE_GAP = 6.0

TOGGLE_COLUMNS = (0.8, 0.2)
SELECT_COLUMNS = (0.75, 0.25)
SIGNATURE_CAPTION_COLUMNS = (0.5, 0.5)
SIGNATURE_PADDING_TOP = 50.0
SIGNATURE_PADDING_LEFT = 50.0
SIGNATURE_PADDING_RIGHT = 100.0

TEXT_COLOR = (0, 0, 0)
LINK_COLOR = (0, 0, 0.8)
INK_WIDTH = 1.5

_TOKENS = re.compile(r"\n|[ \t]+|[^\s]+")
_SCRIPT_SEGMENTS = re.compile(r"[\x00-\xff]+|[^\x00-\xff]+")

FALLBACK_FONT_NAME = "F-unicode"


# =============================================================================
# Line layout
# =============================================================================

@dataclass
class _Fragment:
    text: str
    font: FontSpec
    run: Run
    x: float
    width: float
    fallback: bool = False


@dataclass
class _Line:
    size: float
    fragments: list[_Fragment] = field(default_factory=list)

    @property
    def height(self) -> float:
        return max([self.size] + [f.font.size for f in self.fragments]) * LINE_SPACING

    @property
    def width(self) -> float:
        visible = [f for f in self.fragments if not f.text.isspace()]
        return visible[-1].x + visible[-1].width if visible else 0.0


@lru_cache(maxsize=1)
def fallback_font() -> fitz.Font:
    """The Unicode font used for characters the base-14 fonts cannot encode."""
    return fitz.Font(UNICODE_FALLBACK_FONT)


def _segments(token: str) -> list[tuple[str, bool]]:
    """Split a token into (text, needs_fallback) pieces."""
    return [(piece, ord(piece[0]) > 0xFF) for piece in _SCRIPT_SEGMENTS.findall(token)]


def _text_length(text: str, font: FontSpec, fallback: bool) -> float:
    if fallback:
        return fallback_font().text_length(text, fontsize=font.size)
    return fitz.get_text_length(text, fontname=font.name, fontsize=font.size)


def _font_for(run: Run, base: FontSpec) -> FontSpec:
    if not (run.bold or run.italic or run.code):
        return base
    return base.variant(bold=run.bold, italic=run.italic, monospace=run.code)


def wrap_runs(runs: list[Run], base: FontSpec, width: float) -> list[_Line]:
    """
    Break styled runs into lines no wider than `width`.

    Explicit newlines always break. Whitespace is kept as written except
    where a line wraps on it.
    """
    lines: list[_Line] = []
    line = _Line(base.size)
    x = 0.0
    for run in runs:
        font = _font_for(run, base)
        for token in _TOKENS.findall(run.text):
            if token == "\n":
                lines.append(line)
                line, x = _Line(base.size), 0.0
                continue
            token = token.replace("\t", "    ")
            pieces = [(text, fallback, _text_length(text, font, fallback)) for text, fallback in _segments(token)]
            advance = sum(piece_width for _, _, piece_width in pieces)
            if x + advance > width and line.fragments:
                lines.append(line)
                line, x = _Line(base.size), 0.0
                if token.isspace():
                    continue
            for text, fallback, piece_width in pieces:
                line.fragments.append(_Fragment(text, font, run, x, piece_width, fallback))
                x += piece_width
    lines.append(line)
    return lines


def _styled_groups(fragments: list[_Fragment]) -> list[_Fragment]:
    """Join neighbouring fragments of one run so each is drawn as a single text object."""
    groups: list[_Fragment] = []
    for fragment in fragments:
        last = groups[-1] if groups else None
        if (
            last is not None
            and last.run is fragment.run
            and last.font == fragment.font
            and last.fallback == fragment.fallback
        ):
            groups[-1] = _Fragment(
                last.text + fragment.text, last.font, last.run, last.x, last.width + fragment.width, last.fallback
            )
        else:
            groups.append(fragment)
    return groups


def _block_height(lines: list[_Line]) -> float:
    return sum(line.height for line in lines)


# =============================================================================
# Page writer
# =============================================================================

class _PageWriter:
    """Tracks the current page and vertical cursor."""

    def __init__(self, doc: fitz.Document, paper: tuple[float, float]):
        self.doc = doc
        self.page_width, self.page_height = paper
        self.left = PAGE_MARGIN
        self.right = self.page_width - PAGE_MARGIN
        self.bottom = self.page_height - PAGE_MARGIN
        self.page = None
        self.y = PAGE_MARGIN
        self._fallback_on_page = False
        self.new_page()

    @property
    def content_width(self) -> float:
        return self.right - self.left

    def new_page(self) -> None:
        self.page = self.doc.new_page(width=self.page_width, height=self.page_height)
        self.y = PAGE_MARGIN
        self._fallback_on_page = False

    def ensure_space(self, height: float) -> None:
        """Start a new page unless `height` fits below the cursor (or the page is still empty)."""
        if self.y + height > self.bottom and self.y > PAGE_MARGIN:
            self.new_page()

    def write_lines(self, lines: list[_Line], align: str = "left") -> None:
        """Write lines at the cursor, breaking pages between lines."""
        for line in lines:
            self.ensure_space(line.height)
            self.draw_line(line, self.left, self.content_width, self.y, align)
            self.y += line.height

    def draw_lines(self, lines: list[_Line], x0: float, width: float, top: float, align: str = "left") -> None:
        """Draw lines at a fixed position without moving the cursor."""
        for line in lines:
            self.draw_line(line, x0, width, top, align)
            top += line.height

    def draw_line(self, line: _Line, x0: float, width: float, top: float, align: str) -> None:
        offset = 0.0
        if align == "right":
            offset = max(width - line.width, 0.0)
        elif align == "center":
            offset = max((width - line.width) / 2, 0.0)

        baseline = top + max([line.size] + [f.font.size for f in line.fragments])
        for fragment in _styled_groups(line.fragments):
            x = x0 + offset + fragment.x
            color = LINK_COLOR if fragment.run.link else TEXT_COLOR
            if not fragment.text.isspace():
                self.page.insert_text(
                    (x, baseline),
                    fragment.text,
                    fontname=self._fontname(fragment),
                    fontsize=fragment.font.size,
                    color=color,
                )
            if fragment.run.strikethrough:
                y = baseline - fragment.font.size * 0.3
                self.page.draw_line((x, y), (x + fragment.width, y), color=color, width=0.5)
            if fragment.run.link:
                self.page.draw_line((x, baseline + 1), (x + fragment.width, baseline + 1), color=color, width=0.5)
                self.page.insert_link({
                    "kind": fitz.LINK_URI,
                    "from": fitz.Rect(x, top, x + fragment.width, top + line.height),
                    "uri": fragment.run.link,
                })

    def _fontname(self, fragment: _Fragment) -> str:
        if not fragment.fallback:
            return fragment.font.name
        if not self._fallback_on_page:
            self.page.insert_font(fontname=FALLBACK_FONT_NAME, fontbuffer=fallback_font().buffer)
            self._fallback_on_page = True
        return FALLBACK_FONT_NAME

    def rule(self, x0: float, x1: float, y: float) -> None:
        self.page.draw_line((x0, y), (x1, y), color=TEXT_COLOR, width=0.75)


# =============================================================================
# Renderer
# =============================================================================

class ConsentPDFRenderer:
    """Renders DocumentSnapshots to PDF bytes for one export configuration."""

    def __init__(
        self,
        config: ExportConfiguration | None = None,
        settings: ConsentSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.settings = settings or get_settings()
        self.config = config or ExportConfiguration.from_settings(self.settings)
        self.clock = clock or datetime.now

    def render(self, snapshot: "DocumentSnapshot") -> bytes:
        """
        Render a snapshot to PDF.

        Raises UnableToProducePDF if the backend fails or produces nothing.
        """
        try:
            data = self._render_pdf(snapshot)
        except Exception as e:
            logger.error(f"PDF rendering failed: {e}")
            raise UnableToProducePDF(str(e)) from e

        if not data:
            raise UnableToProducePDF("renderer produced no output")
        logger.info(f"Rendered consent PDF: {len(snapshot.sections)} sections, {len(data)} bytes")
        return data

    def _render_pdf(self, snapshot: "DocumentSnapshot") -> bytes:
        title = self.config.title_override or snapshot.title
        doc = fitz.open()
        try:
            writer = _PageWriter(doc, self.config.paper_size.dimensions)
            if self.config.including_timestamp:
                self._write_timestamp(writer)
            if title:
                self._write_title(writer, title)
            for section in snapshot.sections:
                self._write_section(writer, section, snapshot)

            doc.set_metadata({
                "title": title or "",
                "creator": self.settings.pdf_creator,
                "producer": self.settings.pdf_creator,
                "creationDate": "",
                "modDate": "",
            })
            return doc.tobytes(garbage=3, deflate=True, no_new_id=True)
        finally:
            doc.close()

    # =========================================================================
    # Header
    # =========================================================================

    def _write_timestamp(self, writer: _PageWriter) -> None:
        stamp = self.clock().strftime(self.settings.timestamp_format)
        text = f"{self.settings.exported_label}: {stamp}\n\n\n\n"
        font = self.config.font_settings.header_export_timestamp_font
        writer.write_lines(wrap_runs([Run(text)], font, writer.content_width), align="right")

    def _write_title(self, writer: _PageWriter, title: str) -> None:
        font = self.config.font_settings.header_title_font
        writer.write_lines(wrap_runs([Run(title)], font, writer.content_width), align="center")
        writer.y += SECTION_SPACING

    # =========================================================================
    # Sections
    # =========================================================================

    def _write_section(self, writer: _PageWriter, section: Section, snapshot: "DocumentSnapshot") -> None:
        if isinstance(section, MarkdownSection):
            self._write_markdown(writer, section)
        elif isinstance(section, ToggleSection):
            answer = self.settings.yes_label if snapshot.responses[section.id] else self.settings.no_label
            self._write_row(writer, [(section.prompt, TOGGLE_COLUMNS[0]), (answer, TOGGLE_COLUMNS[1])])
        elif isinstance(section, SelectSection):
            option = section.option(snapshot.responses[section.id])
            choice = option.title if option else ""
            self._write_row(writer, [(section.prompt, SELECT_COLUMNS[0]), (choice, SELECT_COLUMNS[1])])
        elif isinstance(section, SignatureSection):
            self._write_signature(writer, snapshot.responses[section.id], snapshot.signature_date)

    def _write_markdown(self, writer: _PageWriter, section: MarkdownSection) -> None:
        try:
            runs = format_inline_markdown(section.text)
        except MarkdownFormatError as e:
            logger.warning(f"Replacing unformattable markdown section: {e}")
            runs = [Run(self.settings.markdown_loading_error)]
        font = self.config.font_settings.document_content_font
        writer.write_lines(wrap_runs(runs, font, writer.content_width))
        writer.y += SECTION_SPACING

    def _write_row(self, writer: _PageWriter, cells: list[tuple[str, float]]) -> None:
        """Two-column table row; cells never split across pages."""
        font = self.config.font_settings.document_content_font
        laid_out = []
        for text, fraction in cells:
            width = writer.content_width * fraction - CELL_PADDING
            laid_out.append((wrap_runs([Run(text)], font, width), width))

        height = max(_block_height(lines) for lines, _ in laid_out)
        writer.ensure_space(height)
        x = writer.left
        for lines, width in laid_out:
            writer.draw_lines(lines, x, width, writer.y)
            x += width + CELL_PADDING
        writer.y += height + SECTION_SPACING

    def _write_signature(
        self, writer: _PageWriter, storage: SignatureStorage, signature_date: str | None
    ) -> None:
        fonts = self.config.font_settings
        x0 = writer.left + SIGNATURE_PADDING_LEFT
        inner_width = writer.content_width - SIGNATURE_PADDING_LEFT - SIGNATURE_PADDING_RIGHT

        prefix = "X"
        if isinstance(storage.signature, TypedSignature) and storage.signature.text:
            prefix = f"X {storage.signature.text}"
        prefix_lines = wrap_runs([Run(prefix)], fonts.signature_prefix_font, inner_width)

        name_width = inner_width * SIGNATURE_CAPTION_COLUMNS[0]
        date_width = inner_width * SIGNATURE_CAPTION_COLUMNS[1]
        name_lines = wrap_runs([Run(storage.name.formatted())], fonts.signature_caption_font, name_width)
        date_lines = wrap_runs([Run(signature_date or "")], fonts.signature_caption_font, date_width)

        prefix_height = _block_height(prefix_lines)
        caption_height = max(_block_height(name_lines), _block_height(date_lines))
        height = SIGNATURE_PADDING_TOP + prefix_height + RULE_GAP + caption_height

        # The whole block stays on one page
        writer.ensure_space(height)
        top = writer.y

        if isinstance(storage.signature, InkSignature) and not storage.signature.is_empty:
            area = fitz.Rect(x0, top, x0 + inner_width, top + SIGNATURE_PADDING_TOP + prefix_height)
            _draw_ink(writer.page, storage.signature, storage.drawing_size, area)

        y = top + SIGNATURE_PADDING_TOP
        writer.draw_lines(prefix_lines, x0, inner_width, y)
        y += prefix_height
        writer.rule(x0, x0 + inner_width, y + RULE_GAP / 2)
        y += RULE_GAP
        writer.draw_lines(name_lines, x0, name_width, y)
        writer.draw_lines(date_lines, x0 + name_width, date_width, y, align="right")
        writer.y = top + height + SECTION_SPACING


def _draw_ink(page: fitz.Page, signature: InkSignature, drawing_size: tuple[float, float], area: fitz.Rect) -> None:
    """Scale strokes from canvas coordinates into `area`, keeping the aspect ratio."""
    points = [point for stroke in signature.strokes for point in stroke]
    canvas_width, canvas_height = drawing_size
    if canvas_width > 0 and canvas_height > 0:
        min_x = min_y = 0.0
    else:
        min_x = min(x for x, _ in points)
        min_y = min(y for _, y in points)
        canvas_width = max(max(x for x, _ in points) - min_x, 1.0)
        canvas_height = max(max(y for _, y in points) - min_y, 1.0)
    scale = min(area.width / canvas_width, area.height / canvas_height)

    for stroke in signature.strokes:
        mapped = [fitz.Point(area.x0 + (x - min_x) * scale, area.y0 + (y - min_y) * scale) for x, y in stroke]
        if len(mapped) == 1:
            page.draw_circle(mapped[0], INK_WIDTH / 2, color=TEXT_COLOR, fill=TEXT_COLOR)
        else:
            page.draw_polyline(mapped, color=TEXT_COLOR, width=INK_WIDTH)


def render_document(
    snapshot: "DocumentSnapshot",
    config: ExportConfiguration | None = None,
    settings: ConsentSettings | None = None,
    clock: Callable[[], datetime] | None = None,
) -> bytes:
    """Render a document snapshot to PDF bytes."""
    return ConsentPDFRenderer(config, settings, clock).render(snapshot)
