"""
Tests for ConsentDocument - responses, completion, signatures, export gating.
"""

from datetime import datetime

import pytest

from consent import (
    Complete,
    ConsentDocument,
    DuplicateElementId,
    ExportInProgressError,
    Incomplete,
    PersonName,
    SignatureStorage,
    TypedSignature,
    UnableToProducePDF,
    UnregisteredSectionError,
)
from consent_samples import SIGNATURE_ONLY_DOCUMENT, sign


class TestResponses:

    def test_seeded_from_initial_values(self, study_document):
        assert study_document.value("share") is False
        assert study_document.value("contact") is False
        assert study_document.value("arm") == ""
        assert isinstance(study_document.value("participant"), SignatureStorage)

    def test_initial_value_attributes(self, settings):
        document = ConsentDocument(
            "<toggle id=t initial-value=true>P</>\n"
            "<select id=s initial-value=b>\n<option id=a>A</>\n<option id=b>B</>\n</select>",
            settings=settings,
        )
        assert document.value("t") is True
        assert document.value("s") == "b"

    def test_one_response_per_interactive_section(self, study_document):
        ids = [section.id for section in study_document.interactive_sections]
        assert ids == ["share", "contact", "arm", "participant"]

    def test_set_and_read_back(self, study_document):
        study_document.set_value("contact", True)
        study_document.set_value("arm", "a")
        assert study_document.value("contact") is True
        assert study_document.value("arm") == "a"

    def test_access_by_section(self, study_document):
        section = study_document.interactive_sections[0]
        study_document.set_value(section, True)
        assert study_document.value(section) is True

    def test_unknown_id_raises(self, study_document):
        with pytest.raises(UnregisteredSectionError):
            study_document.value("missing")
        with pytest.raises(UnregisteredSectionError):
            study_document.set_value("missing", True)

    def test_wrong_type_raises(self, study_document):
        with pytest.raises(ValueError):
            study_document.set_value("share", "yes")
        with pytest.raises(ValueError):
            study_document.set_value("arm", True)
        with pytest.raises(ValueError):
            study_document.set_value("participant", "Leland")

    def test_invalid_select_option_raises(self, study_document):
        with pytest.raises(ValueError):
            study_document.set_value("arm", "z")

    def test_clearing_selection_allowed(self, study_document):
        study_document.set_value("arm", "a")
        study_document.set_value("arm", "")
        assert study_document.value("arm") == ""

    def test_duplicate_ids_rejected(self, settings):
        with pytest.raises(DuplicateElementId) as exc_info:
            ConsentDocument("<toggle id=x>A</>\n<signature id=x />", settings=settings)
        assert exc_info.value.element_id == "x"

    def test_initial_name_seeds_signatures(self, settings):
        name = PersonName(given_name="Leland", family_name="Stanford")
        document = ConsentDocument(SIGNATURE_ONLY_DOCUMENT, initial_name=name, settings=settings)
        assert document.value("sig1").name == name

    def test_observers_notified(self, study_document):
        events = []
        unsubscribe = study_document.subscribe(lambda: events.append(1))
        study_document.set_value("share", True)
        unsubscribe()
        study_document.set_value("share", False)
        assert events == [1]


class TestCompletion:

    def test_fresh_document_incomplete_at_first_failure(self, study_document):
        assert study_document.completion_state == Incomplete("share")

    def test_toggle_without_expectation_never_blocks(self, study_document):
        study_document.set_value("share", True)
        assert study_document.completion_state == Incomplete("arm")

    def test_select_requires_any_option(self, study_document):
        study_document.set_value("share", True)
        study_document.set_value("arm", "a")
        assert study_document.completion_state == Incomplete("participant")

    def test_signature_requires_names_and_signature(self, study_document):
        study_document.set_value("share", True)
        study_document.set_value("arm", "a")
        study_document.set_value(
            "participant",
            SignatureStorage(name=PersonName(given_name="Leland", family_name="Stanford")),
        )
        assert study_document.completion_state == Incomplete("participant")
        sign(study_document, "participant", family="")
        assert study_document.completion_state == Incomplete("participant")

    def test_complete(self, completed_document):
        assert completed_document.completion_state == Complete()
        assert completed_document.is_complete

    def test_toggle_mismatch_reopens(self, completed_document):
        completed_document.set_value("share", False)
        assert completed_document.completion_state == Incomplete("share")

    def test_specific_option_expected(self, settings):
        document = ConsentDocument(
            "<select id=s expected-value=b>\n<option id=a>A</>\n<option id=b>B</>\n</select>",
            settings=settings,
        )
        document.set_value("s", "a")
        assert document.completion_state == Incomplete("s")
        document.set_value("s", "b")
        assert document.completion_state == Complete()

    def test_markdown_only_document_is_complete(self, settings):
        assert ConsentDocument("Just text", settings=settings).completion_state == Complete()

    def test_plain_mode_needs_default_signature(self, settings):
        document = ConsentDocument("Just text", enable_custom_elements=False, settings=settings)
        assert document.completion_state == Incomplete("default-signature")


class TestSignatures:

    def test_clear_signature_keeps_names(self, completed_document):
        completed_document.clear_signature("participant")
        storage = completed_document.value("participant")
        assert not storage.is_signed
        assert storage.name.given_name == "Leland"
        assert completed_document.completion_state == Incomplete("participant")

    def test_value_returns_signature_copy(self, study_document):
        """In-place edits of a returned signature do not reach the document."""
        changes = []
        study_document.subscribe(lambda: changes.append(True))
        storage = study_document.value("participant")
        storage.signature.add_stroke([(0, 0), (5, 5)])
        assert not study_document.value("participant").is_signed
        assert changes == []

        study_document.set_value("participant", storage)
        assert study_document.value("participant").is_signed
        assert changes == [True]

    def test_clear_signature_on_toggle_raises(self, study_document):
        with pytest.raises(ValueError):
            study_document.clear_signature("share")

    def test_typed_mode(self, typed_settings):
        document = ConsentDocument(SIGNATURE_ONLY_DOCUMENT, settings=typed_settings)
        assert isinstance(document.value("sig1").signature, TypedSignature)
        sign(document, "sig1")
        assert document.value("sig1").signature.text == "Stanford"
        assert document.completion_state == Complete()

    def test_stamp_signature_date(self, study_document):
        stamp = study_document.stamp_signature_date(datetime(2025, 1, 23))
        assert stamp == "01/23/2025"
        assert study_document.signature_date == "01/23/2025"

    def test_signing_context(self, study_document):
        with study_document.signing():
            assert study_document.is_signing
        assert not study_document.is_signing


class TestExportGating:

    def test_export_returns_pdf(self, completed_document, fixed_clock):
        pdf = completed_document.export(clock=fixed_clock)
        assert pdf.startswith(b"%PDF")
        assert not completed_document.is_exporting

    def test_second_export_rejected_while_running(self, completed_document):
        with completed_document.exporting():
            assert completed_document.is_exporting
            with pytest.raises(ExportInProgressError):
                completed_document.export()
        assert not completed_document.is_exporting

    def test_flag_cleared_after_backend_failure(self, completed_document, monkeypatch):
        def fail(*args, **kwargs):
            raise UnableToProducePDF("backend down")

        monkeypatch.setattr("consent.document.render_document", fail)
        with pytest.raises(UnableToProducePDF):
            completed_document.export()
        assert not completed_document.is_exporting

    def test_snapshot_is_independent(self, completed_document):
        snapshot = completed_document.snapshot()
        completed_document.clear_signature("participant")
        assert snapshot.responses["participant"].is_signed
        assert snapshot.title == "Study Consent"
