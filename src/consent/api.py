"""
Consent API Endpoints.

A document session holds one ConsentDocument in memory while the user fills
it in. Sessions are not persisted; only submitted PDFs reach the store.

Error mapping:
    load errors           -> 400
    invalid values        -> 400
    unknown session/id    -> 404
    incomplete / in use   -> 409
    rendering failure     -> 500
"""

import logging
import secrets
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from .config import get_settings
from .document import ConsentDocument, Incomplete
from .errors import (
    ConsentError,
    ConsentLoadError,
    DocumentIncompleteError,
    ExportInProgressError,
    UnableToProducePDF,
    UnregisteredSectionError,
)
from .export import ExportConfiguration, PaperSize
from .sections import SelectSection, SignatureSection, ToggleSection, section_kind
from .signature import InkSignature, PersonName, SignatureMode, SignatureStorage, TypedSignature
from .store import ConsentConstraint, FileConsentStore, submit_document
from .tasks import export_document_async, parse_document_async

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/consent", tags=["consent"])

# In-memory document sessions keyed by session id
sessions: dict[str, ConsentDocument] = {}


def get_store() -> ConsentConstraint:
    """Store for submitted documents. Override via app.dependency_overrides."""
    return FileConsentStore(get_settings().export_dir)


# =============================================================================
# Request/Response Models
# =============================================================================

class NameModel(BaseModel):
    given_name: str = ""
    family_name: str = ""
    middle_name: str = ""
    name_prefix: str = ""
    name_suffix: str = ""

    def to_person_name(self) -> PersonName:
        return PersonName(**self.model_dump())


class CreateDocumentRequest(BaseModel):
    markdown: str
    enable_custom_elements: bool = True
    initial_name: NameModel | None = None


class ResponseRequest(BaseModel):
    """Toggle value (bool) or select option id (str, "" clears)."""
    value: bool | str


class SignatureRequest(BaseModel):
    name: NameModel = Field(default_factory=NameModel)
    strokes: list[list[tuple[float, float]]] = Field(default_factory=list)
    text: str | None = None  # Typed signature
    drawing_size: tuple[float, float] = (0.0, 0.0)


class ExportRequest(BaseModel):
    paper_size: PaperSize | None = None
    including_timestamp: bool | None = None
    title_override: str | None = None

    def to_config(self) -> ExportConfiguration:
        return ExportConfiguration.from_settings(
            get_settings(),
            paper_size=self.paper_size,
            including_timestamp=self.including_timestamp,
            title_override=self.title_override,
        )


class SubmitRequest(ExportRequest):
    identifier: str = Field(min_length=1)


class SectionState(BaseModel):
    kind: str
    id: str | None = None
    text: str | None = None
    value: Any = None
    complete: bool | None = None


class DocumentStateResponse(BaseModel):
    session_id: str
    title: str | None
    version: str | None
    frontmatter: dict[str, str]
    sections: list[SectionState]
    complete: bool
    first_incomplete_id: str | None = None
    signature_date: str | None = None
    is_exporting: bool = False


class SubmitResponse(BaseModel):
    success: bool
    identifier: str
    size: int


# =============================================================================
# Helpers
# =============================================================================

def get_document(session_id: str) -> ConsentDocument:
    document = sessions.get(session_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Unknown consent session: {session_id}")
    return document


def _section_value(value: Any) -> Any:
    if isinstance(value, SignatureStorage):
        return {
            "name": value.name.formatted(),
            "signed": value.is_signed,
            "did_enter_names": value.did_enter_names,
        }
    return value


def build_state(session_id: str, document: ConsentDocument) -> DocumentStateResponse:
    state = document.completion_state
    sections = []
    for section in document.sections:
        if isinstance(section, (ToggleSection, SelectSection, SignatureSection)):
            value = document.value(section)
            sections.append(SectionState(
                kind=section_kind(section),
                id=section.id,
                text=getattr(section, "prompt", None),
                value=_section_value(value),
                complete=document.is_section_complete(section),
            ))
        else:
            sections.append(SectionState(kind=section_kind(section), text=section.text))

    version = document.version
    return DocumentStateResponse(
        session_id=session_id,
        title=document.title,
        version=str(version) if version else None,
        frontmatter=document.frontmatter,
        sections=sections,
        complete=not isinstance(state, Incomplete),
        first_incomplete_id=state.first_incomplete_id if isinstance(state, Incomplete) else None,
        signature_date=document.signature_date,
        is_exporting=document.is_exporting,
    )


# =============================================================================
# Endpoints: Sessions
# =============================================================================

@router.post("/documents", response_model=DocumentStateResponse, status_code=201)
async def create_document(request: CreateDocumentRequest) -> DocumentStateResponse:
    """Parse a consent document and open a session for it."""
    try:
        document = await parse_document_async(
            request.markdown,
            initial_name=request.initial_name.to_person_name() if request.initial_name else None,
            enable_custom_elements=request.enable_custom_elements,
        )
    except ConsentLoadError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session_id = secrets.token_urlsafe(16)
    sessions[session_id] = document
    logger.info(f"Opened consent session {session_id}")
    return build_state(session_id, document)


@router.get("/documents/{session_id}", response_model=DocumentStateResponse)
async def get_document_state(session_id: str) -> DocumentStateResponse:
    return build_state(session_id, get_document(session_id))


@router.delete("/documents/{session_id}")
async def close_document(session_id: str):
    get_document(session_id)
    del sessions[session_id]
    return {"success": True}


# =============================================================================
# Endpoints: Responses
# =============================================================================

@router.put("/documents/{session_id}/responses/{section_id}", response_model=DocumentStateResponse)
async def set_response(session_id: str, section_id: str, request: ResponseRequest) -> DocumentStateResponse:
    """Set a toggle or select response."""
    document = get_document(session_id)
    try:
        if isinstance(document.value(section_id), SignatureStorage):
            raise HTTPException(status_code=400, detail=f"Use the signature endpoint for '{section_id}'")
        document.set_value(section_id, request.value)
    except UnregisteredSectionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return build_state(session_id, document)


@router.put("/documents/{session_id}/signatures/{section_id}", response_model=DocumentStateResponse)
async def set_signature(session_id: str, section_id: str, request: SignatureRequest) -> DocumentStateResponse:
    """Enter the signer's name and signature."""
    document = get_document(session_id)
    if document.settings.signature_mode is SignatureMode.TYPED:
        signature = TypedSignature(text=request.text or "")
    else:
        signature = InkSignature()
        for stroke in request.strokes:
            signature.add_stroke(stroke)

    storage = SignatureStorage(
        name=request.name.to_person_name(),
        signature=signature,
        drawing_size=request.drawing_size,
    )
    try:
        document.set_value(section_id, storage)
    except UnregisteredSectionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if storage.is_signed:
        document.stamp_signature_date()
    return build_state(session_id, document)


@router.delete("/documents/{session_id}/signatures/{section_id}", response_model=DocumentStateResponse)
async def clear_signature(session_id: str, section_id: str) -> DocumentStateResponse:
    document = get_document(session_id)
    try:
        document.clear_signature(section_id)
    except UnregisteredSectionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return build_state(session_id, document)


# =============================================================================
# Endpoints: Export
# =============================================================================

@router.post("/documents/{session_id}/export")
async def export_document(session_id: str, request: ExportRequest | None = None) -> Response:
    """Render the document as a PDF."""
    document = get_document(session_id)
    config = (request or ExportRequest()).to_config()
    try:
        pdf = await export_document_async(document, config)
    except ExportInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except UnableToProducePDF as e:
        raise HTTPException(status_code=500, detail=str(e))
    return Response(content=pdf, media_type="application/pdf")


@router.post("/documents/{session_id}/submit", response_model=SubmitResponse)
async def submit(
    session_id: str,
    request: SubmitRequest,
    store: ConsentConstraint = Depends(get_store),
) -> SubmitResponse:
    """Export a complete document and hand it to the consent store."""
    document = get_document(session_id)
    try:
        pdf = submit_document(document, store, request.identifier, request.to_config())
    except DocumentIncompleteError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ExportInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConsentError as e:
        logger.error(f"Submit failed for session {session_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return SubmitResponse(success=True, identifier=request.identifier, size=len(pdf))
