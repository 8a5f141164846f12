"""
Request and response models for the enrichment setup API.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

from enrich_setup.models import EnrichmentField, FieldType
from enrich_setup.session import EnrichmentSetup


class EmailColumnRequest(BaseModel):
    """Select (or change) the email column"""
    column: str


class AddFieldRequest(BaseModel):
    """Add a preset by name, or a hand-authored field"""
    preset: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    description: Optional[str] = None
    type: FieldType = FieldType.STRING

    model_config = ConfigDict(populate_by_name=True)


class GenerateFieldsRequest(BaseModel):
    """Natural-language description of the fields to generate"""
    prompt: str


class CredentialsRequest(BaseModel):
    """API keys entered by the user"""
    keys: Dict[str, str]


class DetectionInfo(BaseModel):
    column_name: Optional[str] = None
    confidence: int = 0


class SkipSummary(BaseModel):
    """Row classification for the selected email column"""
    total: int
    empty: int
    invalid: int
    personal_domain: int
    enrichable: int
    warning: str = ""


class SessionResponse(BaseModel):
    """Snapshot of a setup session"""
    session_id: str
    step: str
    phase: str
    columns: List[str]
    total_rows: int
    preview_rows: List[Dict[str, str]]
    email_column: Optional[str] = None
    detection: Optional[DetectionInfo] = None
    selected_fields: List[EnrichmentField]
    suggested_fields: List[EnrichmentField]
    generating: bool = False
    missing_credentials: List[str] = []
    skip_summary: Optional[SkipSummary] = None
    can_continue: bool = False
    can_start: bool = False
    remaining_slots: int = 0

    @classmethod
    def from_session(cls, session_id: str, setup: EnrichmentSetup,
                     preview_size: int = 3) -> "SessionResponse":
        state = setup.state
        detection = None
        if state.detection is not None:
            detection = DetectionInfo(
                column_name=state.detection.column_name,
                confidence=state.detection.confidence,
            )

        skip_summary = None
        if state.email_column is not None:
            summary = setup.skip_summary()
            skip_summary = SkipSummary(
                total=summary.total,
                empty=summary.empty,
                invalid=summary.invalid,
                personal_domain=summary.personal_domain,
                enrichable=summary.enrichable,
                warning=summary.skip_warning,
            )

        return cls(
            session_id=session_id,
            step=state.step.value,
            phase=state.phase.value,
            columns=list(state.columns),
            total_rows=len(state.rows),
            preview_rows=[
                {k: str(v) for k, v in row.items()} for row in state.rows[:preview_size]
            ],
            email_column=state.email_column,
            detection=detection,
            selected_fields=list(state.selected_fields),
            suggested_fields=list(state.suggested_fields),
            generating=state.generating,
            missing_credentials=list(state.missing_credentials),
            skip_summary=skip_summary,
            can_continue=state.can_continue,
            can_start=state.can_start,
            remaining_slots=state.remaining_slots,
        )


class StartEnrichmentResponse(BaseModel):
    """Finalized configuration handed to the enrichment executor"""
    session_id: str
    status: str
    configuration: Dict[str, Any]
