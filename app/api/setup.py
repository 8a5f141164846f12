"""
Enrichment setup endpoints.

Drives an EnrichmentSetup session over HTTP: upload a CSV, confirm the
email column, build the field selection and hand the finalized
configuration to the enrichment executor.
"""

import inspect
import io
import logging
from typing import Any, Dict, List, Tuple

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from enrich_setup.errors import (
    EnrichmentSetupError, FieldCapacityExceeded, GenerationFailed, GenerationInProgress,
    WorkflowError,
)
from enrich_setup.field_registry import PRESET_FIELDS

from app.config import settings
from app.models.setup import (
    AddFieldRequest, CredentialsRequest, EmailColumnRequest, GenerateFieldsRequest,
    SessionResponse, StartEnrichmentResponse,
)
from app.services.session_service import SessionNotFound, SessionService, get_session_service

logger = logging.getLogger(__name__)
router = APIRouter()


def parse_csv(content: bytes) -> Tuple[List[Dict[str, str]], List[str]]:
    """
    Parse CSV bytes into rows and columns.

    Every cell is kept as a string; blank cells stay empty strings instead of
    becoming NaN.
    """
    df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False)
    columns = [str(col) for col in df.columns]
    df.columns = columns
    rows = df.to_dict(orient="records")
    return rows, columns


def _to_http_error(e: EnrichmentSetupError) -> HTTPException:
    if isinstance(e, (FieldCapacityExceeded, GenerationInProgress, WorkflowError)):
        return HTTPException(409, str(e))
    if isinstance(e, GenerationFailed):
        return HTTPException(502, str(e))
    return HTTPException(400, str(e))


async def _apply(service: SessionService, session_id: str, action) -> SessionResponse:
    """Run `action(setup)` on the session and return the new snapshot."""
    try:
        setup = service.get(session_id)
    except SessionNotFound:
        raise HTTPException(404, f"Session {session_id} not found")

    try:
        result = action(setup)
        if inspect.isawaitable(result):
            await result
    except EnrichmentSetupError as e:
        logger.info(f"Session {session_id}: {type(e).__name__}: {e}")
        raise _to_http_error(e)
    return SessionResponse.from_session(session_id, setup)


@router.get("/presets")
async def list_presets() -> List[Dict[str, Any]]:
    """Preset fields offered for one-click selection"""
    return [{**field.to_payload(), "typeLabel": field.type.label} for field in PRESET_FIELDS]


@router.post("/sessions", response_model=SessionResponse)
async def create_session(
    file: UploadFile = File(...),
    service: SessionService = Depends(get_session_service),
):
    """
    Upload a CSV and start a setup session.

    The email column is auto-detected; when required API keys are missing the
    session stays in the upload step until they are provided.
    """
    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise HTTPException(400, "Only CSV files are supported")

    content = await file.read()
    if len(content) > settings.MAX_FILE_SIZE_MB * 1024 * 1024:
        raise HTTPException(400, f"File too large. Maximum size: {settings.MAX_FILE_SIZE_MB}MB")

    try:
        rows, columns = parse_csv(content)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise HTTPException(400, f"Invalid CSV format: {str(e)}")

    logger.info(f"Received {file.filename} with {len(columns)} columns and {len(rows)} rows")

    session_id, setup = service.create()
    try:
        setup.upload(rows, columns)
    except EnrichmentSetupError as e:
        service.delete(session_id)
        raise _to_http_error(e)

    return SessionResponse.from_session(session_id, setup)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, service: SessionService = Depends(get_session_service)):
    """Current state of a setup session"""
    try:
        setup = service.get(session_id)
    except SessionNotFound:
        raise HTTPException(404, f"Session {session_id} not found")
    return SessionResponse.from_session(session_id, setup)


@router.post("/sessions/{session_id}/credentials", response_model=SessionResponse)
async def provide_credentials(session_id: str, request: CredentialsRequest,
                              service: SessionService = Depends(get_session_service)):
    """Save API keys and resume a held upload"""
    return await _apply(service, session_id, lambda s: s.provide_credentials(**request.keys))


@router.post("/sessions/{session_id}/email-column", response_model=SessionResponse)
async def select_email_column(session_id: str, request: EmailColumnRequest,
                              service: SessionService = Depends(get_session_service)):
    """Select or change the email column"""
    return await _apply(service, session_id, lambda s: s.select_email_column(request.column))


@router.post("/sessions/{session_id}/continue", response_model=SessionResponse)
async def continue_to_fields(session_id: str, service: SessionService = Depends(get_session_service)):
    """Move from email column confirmation to field selection"""
    return await _apply(service, session_id, lambda s: s.continue_to_fields())


@router.post("/sessions/{session_id}/fields", response_model=SessionResponse)
async def add_field(session_id: str, request: AddFieldRequest,
                    service: SessionService = Depends(get_session_service)):
    """Add a preset field by name, or a custom field from name and description"""
    if request.preset:
        return await _apply(service, session_id, lambda s: s.add_preset(request.preset))
    return await _apply(
        service,
        session_id,
        lambda s: s.add_custom_field(request.display_name or "", request.description or "", request.type),
    )


@router.delete("/sessions/{session_id}/fields/{name}", response_model=SessionResponse)
async def remove_field(session_id: str, name: str, service: SessionService = Depends(get_session_service)):
    """Remove a selected field"""
    return await _apply(service, session_id, lambda s: s.remove_field(name))


@router.post("/sessions/{session_id}/generate", response_model=SessionResponse)
async def generate_fields(session_id: str, request: GenerateFieldsRequest,
                          service: SessionService = Depends(get_session_service)):
    """Ask the field generation service for suggestions"""
    return await _apply(service, session_id, lambda s: s.generate_fields(request.prompt))


@router.post("/sessions/{session_id}/suggestions/{index}/accept", response_model=SessionResponse)
async def accept_suggestion(session_id: str, index: int,
                            service: SessionService = Depends(get_session_service)):
    """Move a suggestion into the field selection"""
    return await _apply(service, session_id, lambda s: s.accept_suggestion(index))


@router.post("/sessions/{session_id}/suggestions/{index}/reject", response_model=SessionResponse)
async def reject_suggestion(session_id: str, index: int,
                            service: SessionService = Depends(get_session_service)):
    """Discard a suggestion"""
    return await _apply(service, session_id, lambda s: s.reject_suggestion(index))


@router.post("/sessions/{session_id}/start", response_model=StartEnrichmentResponse)
async def start_enrichment(session_id: str, service: SessionService = Depends(get_session_service)):
    """Finalize the configuration and hand it to the enrichment executor"""
    try:
        await _apply(service, session_id, lambda s: s.start_enrichment())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Session {session_id}: enrichment hand-off failed: {str(e)}")
        raise HTTPException(502, f"Failed to start enrichment: {str(e)}")
    config = service.get(session_id).state.finalized
    return StartEnrichmentResponse(
        session_id=session_id,
        status="running",
        configuration=config.to_payload(),
    )


@router.post("/sessions/{session_id}/back", response_model=SessionResponse)
async def go_back(session_id: str, service: SessionService = Depends(get_session_service)):
    """Step back one stage of the workflow"""
    return await _apply(service, session_id, lambda s: s.go_back())


@router.post("/sessions/{session_id}/reset", response_model=SessionResponse)
async def reset(session_id: str, service: SessionService = Depends(get_session_service)):
    """Discard the dataset and configuration"""
    return await _apply(service, session_id, lambda s: s.reset())
