"""
Tests for PDF export: layout content, paper sizes, determinism, failure handling.
"""

import fitz  # PyMuPDF
import pytest

from consent import (
    ConsentDocument,
    ExportConfiguration,
    FontSettings,
    FontSpec,
    PaperSize,
    PersonName,
    UnableToProducePDF,
)
from consent.inline_markdown import MarkdownFormatError, Run, format_inline_markdown
from consent.render import render_document, wrap_runs
from consent_samples import SIGNATURE_ONLY_DOCUMENT, sign


def pdf_text(pdf: bytes) -> str:
    doc = fitz.open(stream=pdf, filetype="pdf")
    try:
        return "\n".join(page.get_text() for page in doc)
    finally:
        doc.close()


def pdf_info(pdf: bytes) -> tuple[int, tuple[float, float], dict]:
    doc = fitz.open(stream=pdf, filetype="pdf")
    try:
        rect = doc[0].rect
        return doc.page_count, (round(rect.width, 1), round(rect.height, 1)), doc.metadata
    finally:
        doc.close()


class TestInlineMarkdown:

    def test_plain_text(self):
        assert format_inline_markdown("Hello") == [Run("Hello")]

    def test_emphasis(self):
        runs = format_inline_markdown("a **bold** and *italic* `code` ~~gone~~")
        assert Run("bold", bold=True) in runs
        assert Run("italic", italic=True) in runs
        assert Run("code", code=True) in runs
        assert Run("gone", strikethrough=True) in runs

    def test_nested_emphasis(self):
        assert format_inline_markdown("**bold *both***") == [
            Run("bold ", bold=True),
            Run("both", bold=True, italic=True),
        ]

    def test_triple_emphasis(self):
        assert format_inline_markdown("***strong***") == [Run("strong", bold=True, italic=True)]

    def test_bold_inside_italic(self):
        assert format_inline_markdown("*it **both***") == [
            Run("it ", italic=True),
            Run("both", bold=True, italic=True),
        ]

    def test_no_stray_asterisks(self):
        text = "".join(run.text for run in format_inline_markdown("a ***b*** **c *d*** *e*"))
        assert "*" not in text

    def test_link(self):
        runs = format_inline_markdown("see [the site](https://example.org).")
        assert Run("the site", link="https://example.org") in runs

    def test_block_syntax_and_whitespace_preserved(self):
        text = "# Title\n\n- item  one\n- item two"
        assert "".join(run.text for run in format_inline_markdown(text)) == text

    def test_unmatched_markers_are_literal(self):
        assert format_inline_markdown("2 * 3 = 6") == [Run("2 * 3 = 6")]

    def test_control_characters_rejected(self):
        with pytest.raises(MarkdownFormatError):
            format_inline_markdown("bad \x07 bell")


class TestExportContent:

    def test_contains_all_sections(self, completed_document, fixed_clock, settings):
        text = pdf_text(completed_document.export(clock=fixed_clock))
        assert "Study Consent" in text
        assert "Welcome" in text
        assert "I agree to share my data" in text
        assert settings.yes_label in text
        assert settings.no_label in text
        assert "Arm B" in text
        assert "Leland Stanford" in text
        assert "01/23/25" in text
        assert "X" in text

    def test_timestamp(self, completed_document, fixed_clock):
        text = pdf_text(completed_document.export(clock=fixed_clock))
        assert "Exported: Jan 23, 2025 at 09:30 AM" in text

    def test_no_timestamp(self, completed_document, fixed_clock):
        config = ExportConfiguration(including_timestamp=False)
        text = pdf_text(completed_document.export(config, clock=fixed_clock))
        assert "Exported" not in text

    def test_title_override(self, completed_document):
        config = ExportConfiguration(including_timestamp=False, title_override="Overridden")
        pdf = completed_document.export(config)
        assert "Overridden" in pdf_text(pdf)
        assert pdf_info(pdf)[2]["title"] == "Overridden"

    def test_metadata_title(self, completed_document):
        pdf = completed_document.export(ExportConfiguration(including_timestamp=False))
        assert pdf_info(pdf)[2]["title"] == "Study Consent"

    def test_unselected_option_is_blank(self, study_document):
        text = pdf_text(study_document.export(ExportConfiguration(including_timestamp=False)))
        assert "Arm A" not in text
        assert "Arm B" not in text

    def test_typed_signature(self, typed_settings):
        document = ConsentDocument(SIGNATURE_ONLY_DOCUMENT, settings=typed_settings)
        sign(document, "sig1")
        text = pdf_text(document.export(ExportConfiguration(including_timestamp=False)))
        assert "X Stanford" in text

    def test_unformattable_markdown_uses_placeholder(self, settings):
        document = ConsentDocument("Broken \x01 text\n<signature id=s />", settings=settings)
        text = pdf_text(document.export(ExportConfiguration(including_timestamp=False)))
        assert settings.markdown_loading_error in text
        assert "Broken" not in text

    def test_custom_fonts(self, completed_document):
        fonts = FontSettings(document_content_font=FontSpec(name="tiro", size=11))
        config = ExportConfiguration(including_timestamp=False, font_settings=fonts)
        assert pdf_text(completed_document.export(config)).strip()

    def test_unsupported_font_rejected(self):
        with pytest.raises(ValueError):
            FontSpec(name="comic-sans", size=12)


class TestUnicodeText:

    def test_non_latin_text_is_kept(self, settings):
        document = ConsentDocument("Einwilligung ü 同意します\n<signature id=s />", settings=settings)
        text = pdf_text(document.export(ExportConfiguration(including_timestamp=False)))
        assert "Einwilligung ü" in text
        assert "同意します" in text
        assert "·" not in text

    def test_non_latin_signer_name(self, settings):
        name = PersonName(given_name="太郎", family_name="山田")
        document = ConsentDocument(SIGNATURE_ONLY_DOCUMENT, initial_name=name, settings=settings)
        text = pdf_text(document.export(ExportConfiguration(including_timestamp=False)))
        assert "太郎" in text
        assert "山田" in text

    def test_fallback_output_is_deterministic(self, settings):
        document = ConsentDocument("同意します\n<signature id=s />", settings=settings)
        config = ExportConfiguration(including_timestamp=False)
        assert document.export(config) == document.export(config)

    def test_wrap_splits_latin_and_fallback_pieces(self):
        line = wrap_runs([Run("ab同意")], FontSpec(name="helv", size=12), 500)[0]
        assert [(f.text, f.fallback) for f in line.fragments] == [("ab", False), ("同意", True)]
        assert line.fragments[1].x == line.fragments[0].width


class TestPaperSize:

    @pytest.mark.parametrize("paper, expected", [
        (PaperSize.US_LETTER, (612.0, 792.0)),
        (PaperSize.DIN_A4, (597.6, 842.4)),
    ])
    def test_page_dimensions(self, completed_document, paper, expected):
        pdf = completed_document.export(ExportConfiguration(paper_size=paper, including_timestamp=False))
        assert pdf_info(pdf)[1] == expected

    def test_long_document_spans_pages(self, settings):
        body = "\n\n".join(f"Paragraph {i} of the study description." for i in range(120))
        document = ConsentDocument(body + "\n<signature id=s />", settings=settings)
        pdf = document.export(ExportConfiguration(including_timestamp=False))
        page_count = pdf_info(pdf)[0]
        assert page_count > 1
        assert "Paragraph 119" in pdf_text(pdf)


class TestDeterminism:

    def test_identical_input_identical_bytes(self, completed_document, fixed_clock):
        config = ExportConfiguration(paper_size=PaperSize.DIN_A4, including_timestamp=False)
        first = completed_document.export(config, clock=fixed_clock)
        second = completed_document.export(config, clock=fixed_clock)
        assert first == second

    def test_fixed_clock_timestamp_is_deterministic(self, completed_document, fixed_clock):
        assert completed_document.export(clock=fixed_clock) == completed_document.export(clock=fixed_clock)


class TestRenderFailure:

    def test_backend_error_becomes_unable_to_produce(self, completed_document, monkeypatch):
        def broken_open(*args, **kwargs):
            raise RuntimeError("no backend")

        snapshot = completed_document.snapshot()
        monkeypatch.setattr(fitz, "open", broken_open)
        with pytest.raises(UnableToProducePDF):
            render_document(snapshot, ExportConfiguration())

    def test_save_failure_is_wrapped(self, completed_document, monkeypatch):
        def broken_save(self, *args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(fitz.Document, "tobytes", broken_save)
        with pytest.raises(UnableToProducePDF):
            completed_document.export(ExportConfiguration(including_timestamp=False))
        assert not completed_document.is_exporting
