"""
Enrichment setup workflow.

The workflow is a frozen WorkflowState plus a pure `reduce(state, action)`
function. Every action either returns a new state or raises an
EnrichmentSetupError, in which case the caller keeps the old state. Nothing
in here performs I/O; the session driver in `session.py` handles credentials,
the field generation service and the hand-off to the enrichment executor.

Steps:
    UPLOAD     no dataset yet (or waiting for missing credentials)
    CONFIGURE  dataset loaded; phase EMAIL_COLUMN, then phase FIELDS
    RUNNING    configuration finalized and handed off
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from .constants import MAX_SELECTED_FIELDS
from .email_detection import detect_email_column
from .errors import DuplicateField, GenerationInProgress, InvalidFieldInput, WorkflowError
from .field_names import generate_field_name
from .field_registry import (
    DEFAULT_FIELD_NAMES, FieldSelection, add_field, build_custom_field,
    default_selection, field_names, remove_field, toggle_preset,
)
from .models import EmailDetectionResult, EnrichmentField, FieldType, FinalizedConfiguration

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


class WorkflowStep(str, Enum):
    UPLOAD = "upload"
    CONFIGURE = "configure"
    RUNNING = "running"


class ConfigurePhase(str, Enum):
    EMAIL_COLUMN = "email_column"
    FIELDS = "fields"


@dataclass(frozen=True)
class WorkflowState:
    """Complete configuration state for one upload."""
    step: WorkflowStep = WorkflowStep.UPLOAD
    phase: ConfigurePhase = ConfigurePhase.EMAIL_COLUMN
    rows: Tuple[Row, ...] = ()
    columns: Tuple[str, ...] = ()
    email_column: Optional[str] = None
    detection: Optional[EmailDetectionResult] = None
    selected_fields: FieldSelection = ()
    suggested_fields: FieldSelection = ()
    default_fields: Tuple[str, ...] = DEFAULT_FIELD_NAMES
    generation_seq: int = 0
    pending_generation: Optional[int] = None
    missing_credentials: Tuple[str, ...] = ()
    finalized: Optional[FinalizedConfiguration] = None

    @property
    def generating(self) -> bool:
        return self.pending_generation is not None

    @property
    def can_continue(self) -> bool:
        return self.step == WorkflowStep.CONFIGURE and self.email_column is not None

    @property
    def can_start(self) -> bool:
        return (
            self.step == WorkflowStep.CONFIGURE
            and self.phase == ConfigurePhase.FIELDS
            and self.email_column is not None
            and len(self.selected_fields) >= 1
        )

    @property
    def remaining_slots(self) -> int:
        return MAX_SELECTED_FIELDS - len(self.selected_fields)


# Actions

@dataclass(frozen=True)
class CsvLoaded:
    rows: Sequence[Row]
    columns: Sequence[str]


@dataclass(frozen=True)
class CredentialsRequired:
    missing: Sequence[str]
    rows: Sequence[Row]
    columns: Sequence[str]


@dataclass(frozen=True)
class SelectEmailColumn:
    column: str


@dataclass(frozen=True)
class ContinueToFields:
    pass


@dataclass(frozen=True)
class AddField:
    field: EnrichmentField


@dataclass(frozen=True)
class RemoveField:
    name: str


@dataclass(frozen=True)
class TogglePreset:
    name: str


@dataclass(frozen=True)
class AddCustomField:
    display_name: str
    description: str
    field_type: FieldType = FieldType.STRING


@dataclass(frozen=True)
class GenerationStarted:
    pass


@dataclass(frozen=True)
class GenerationCompleted:
    seq: int
    fields: Tuple[EnrichmentField, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class GenerationErrored:
    seq: int


@dataclass(frozen=True)
class AcceptSuggestion:
    index: int


@dataclass(frozen=True)
class RejectSuggestion:
    index: int


@dataclass(frozen=True)
class StartEnrichment:
    pass


@dataclass(frozen=True)
class GoBack:
    pass


@dataclass(frozen=True)
class Reset:
    pass


# Helpers

def _require_configure(state: WorkflowState) -> None:
    if state.step != WorkflowStep.CONFIGURE:
        raise WorkflowError(f"Action not allowed during the {state.step.value} step")


def _add_or_ignore(selection: FieldSelection, new_field: EnrichmentField) -> FieldSelection:
    # Duplicates are a silent no-op; capacity errors propagate
    try:
        return add_field(selection, new_field)
    except DuplicateField:
        logger.debug(f"Ignoring duplicate field '{new_field.name}'")
        return selection


def _suggestion_at(state: WorkflowState, index: int) -> EnrichmentField:
    if index < 0 or index >= len(state.suggested_fields):
        raise InvalidFieldInput(f"No suggestion at position {index}")
    return state.suggested_fields[index]


def _without_suggestion(state: WorkflowState, index: int) -> FieldSelection:
    return state.suggested_fields[:index] + state.suggested_fields[index + 1:]


def _upload_state(state: WorkflowState, keep_dataset: bool) -> WorkflowState:
    fresh = WorkflowState(
        default_fields=state.default_fields,
        generation_seq=state.generation_seq,
    )
    if keep_dataset:
        fresh = replace(fresh, rows=state.rows, columns=state.columns)
    return fresh


# Handlers

def _on_csv_loaded(state: WorkflowState, action: CsvLoaded) -> WorkflowState:
    if state.step != WorkflowStep.UPLOAD:
        raise WorkflowError("A dataset is already loaded; reset before uploading again")
    columns = tuple(action.columns or ())
    if not columns:
        raise InvalidFieldInput("No data available. Please upload a CSV file.")
    rows = tuple(dict(row) for row in (action.rows or ()))

    detection = detect_email_column(rows, columns)
    email_column = detection.column_name if detection.is_confident else None
    logger.info(
        f"Loaded {len(rows)} rows with {len(columns)} columns; "
        f"email column: {email_column or 'not detected'} (confidence {detection.confidence})"
    )

    return replace(
        _upload_state(state, keep_dataset=False),
        step=WorkflowStep.CONFIGURE,
        rows=rows,
        columns=columns,
        detection=detection,
        email_column=email_column,
        selected_fields=default_selection(state.default_fields),
    )


def _on_credentials_required(state: WorkflowState, action: CredentialsRequired) -> WorkflowState:
    if state.step != WorkflowStep.UPLOAD:
        raise WorkflowError("Credentials can only be requested before configuration")
    return replace(
        state,
        rows=tuple(dict(row) for row in (action.rows or ())),
        columns=tuple(action.columns or ()),
        missing_credentials=tuple(action.missing),
    )


def _on_select_email_column(state: WorkflowState, action: SelectEmailColumn) -> WorkflowState:
    _require_configure(state)
    if action.column not in state.columns:
        raise InvalidFieldInput(f"Unknown column: {action.column}")
    return replace(state, email_column=action.column)


def _on_continue(state: WorkflowState, action: ContinueToFields) -> WorkflowState:
    _require_configure(state)
    if state.email_column is None:
        raise WorkflowError("Select the email column first")
    return replace(state, phase=ConfigurePhase.FIELDS)


def _on_add_field(state: WorkflowState, action: AddField) -> WorkflowState:
    _require_configure(state)
    return replace(state, selected_fields=_add_or_ignore(state.selected_fields, action.field))


def _on_remove_field(state: WorkflowState, action: RemoveField) -> WorkflowState:
    _require_configure(state)
    return replace(state, selected_fields=remove_field(state.selected_fields, action.name))


def _on_toggle_preset(state: WorkflowState, action: TogglePreset) -> WorkflowState:
    _require_configure(state)
    return replace(state, selected_fields=toggle_preset(state.selected_fields, action.name))


def _on_add_custom_field(state: WorkflowState, action: AddCustomField) -> WorkflowState:
    _require_configure(state)
    custom = build_custom_field(
        action.display_name,
        action.description,
        action.field_type,
        existing_names=field_names(state.selected_fields) + field_names(state.suggested_fields),
    )
    return replace(state, selected_fields=add_field(state.selected_fields, custom))


def _on_generation_started(state: WorkflowState, action: GenerationStarted) -> WorkflowState:
    _require_configure(state)
    if state.generating:
        raise GenerationInProgress()
    seq = state.generation_seq + 1
    return replace(state, generation_seq=seq, pending_generation=seq)


def _on_generation_completed(state: WorkflowState, action: GenerationCompleted) -> WorkflowState:
    if action.seq != state.pending_generation:
        logger.info(f"Discarding stale field generation result #{action.seq}")
        return state

    # The selection may have changed while the request was in flight
    taken = set(field_names(state.selected_fields)) | set(field_names(state.suggested_fields))
    accepted = []
    for suggestion in action.fields:
        if suggestion.name in taken:
            suggestion = suggestion.model_copy(
                update={"name": generate_field_name(suggestion.display_name, taken)}
            )
        taken.add(suggestion.name)
        accepted.append(suggestion)

    return replace(
        state,
        suggested_fields=state.suggested_fields + tuple(accepted),
        pending_generation=None,
    )


def _on_generation_errored(state: WorkflowState, action: GenerationErrored) -> WorkflowState:
    if action.seq != state.pending_generation:
        return state
    return replace(state, pending_generation=None)


def _on_accept_suggestion(state: WorkflowState, action: AcceptSuggestion) -> WorkflowState:
    _require_configure(state)
    suggestion = _suggestion_at(state, action.index)
    remaining = _without_suggestion(state, action.index)

    # A field added after the suggestion arrived may have taken its name
    selected = field_names(state.selected_fields)
    if suggestion.name in selected:
        taken = set(selected) | set(field_names(remaining))
        suggestion = suggestion.model_copy(
            update={"name": generate_field_name(suggestion.display_name, taken)}
        )

    return replace(
        state,
        selected_fields=add_field(state.selected_fields, suggestion),
        suggested_fields=remaining,
    )


def _on_reject_suggestion(state: WorkflowState, action: RejectSuggestion) -> WorkflowState:
    _require_configure(state)
    _suggestion_at(state, action.index)
    return replace(state, suggested_fields=_without_suggestion(state, action.index))


def _on_start_enrichment(state: WorkflowState, action: StartEnrichment) -> WorkflowState:
    _require_configure(state)
    if state.phase != ConfigurePhase.FIELDS:
        raise WorkflowError("Continue to field selection before starting")
    if state.email_column is None:
        raise WorkflowError("Select the email column first")
    if not state.selected_fields:
        raise WorkflowError("Select at least one field to enrich")

    finalized = FinalizedConfiguration(
        email_column=state.email_column,
        fields=tuple(state.selected_fields),
    )
    return replace(
        state,
        step=WorkflowStep.RUNNING,
        finalized=finalized,
        pending_generation=None,
    )


def _on_go_back(state: WorkflowState, action: GoBack) -> WorkflowState:
    if state.step == WorkflowStep.RUNNING:
        return replace(state, step=WorkflowStep.CONFIGURE, phase=ConfigurePhase.FIELDS, finalized=None)
    if state.step == WorkflowStep.CONFIGURE and state.phase == ConfigurePhase.FIELDS:
        return replace(state, phase=ConfigurePhase.EMAIL_COLUMN)
    if state.step == WorkflowStep.CONFIGURE:
        return _upload_state(state, keep_dataset=True)
    return state


def _on_reset(state: WorkflowState, action: Reset) -> WorkflowState:
    return _upload_state(state, keep_dataset=False)


_HANDLERS: Dict[type, Callable[[WorkflowState, Any], WorkflowState]] = {
    CsvLoaded: _on_csv_loaded,
    CredentialsRequired: _on_credentials_required,
    SelectEmailColumn: _on_select_email_column,
    ContinueToFields: _on_continue,
    AddField: _on_add_field,
    RemoveField: _on_remove_field,
    TogglePreset: _on_toggle_preset,
    AddCustomField: _on_add_custom_field,
    GenerationStarted: _on_generation_started,
    GenerationCompleted: _on_generation_completed,
    GenerationErrored: _on_generation_errored,
    AcceptSuggestion: _on_accept_suggestion,
    RejectSuggestion: _on_reject_suggestion,
    StartEnrichment: _on_start_enrichment,
    GoBack: _on_go_back,
    Reset: _on_reset,
}


def reduce(state: WorkflowState, action: Any) -> WorkflowState:
    """Apply one action to `state` and return the resulting state."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise WorkflowError(f"Unknown action: {type(action).__name__}")
    return handler(state, action)
