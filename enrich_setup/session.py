"""
Session driver for the enrichment setup workflow.

EnrichmentSetup owns a single WorkflowState and applies one action per user
step. It is where the workflow meets the outside world: the credentials
provider, the field generation service and the enrichment executor.
"""

import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from .constants import REQUIRED_CREDENTIALS
from .credentials import CredentialsProvider, EnvironmentCredentials, missing_credentials
from .errors import InvalidFieldInput, WorkflowError
from .field_proposer import FieldProposer
from .field_registry import DEFAULT_FIELD_NAMES, field_names, get_preset
from .models import EmailDetectionResult, EnrichmentField, FieldType, FinalizedConfiguration
from .row_classifier import RowSummary, summarize_rows
from .workflow import (
    AcceptSuggestion, AddCustomField, AddField, ContinueToFields, CredentialsRequired,
    CsvLoaded, GenerationCompleted, GenerationErrored, GenerationStarted, GoBack,
    RejectSuggestion, RemoveField, Reset, SelectEmailColumn, StartEnrichment,
    TogglePreset, WorkflowState, WorkflowStep, reduce,
)

logger = logging.getLogger(__name__)

EnrichmentExecutor = Callable[[FinalizedConfiguration], Any]


class EnrichmentSetup:
    """
    One user's path from an uploaded spreadsheet to a finalized enrichment
    configuration.

    Not thread-safe: actions are expected to arrive one at a time.
    """

    def __init__(self,
                 credentials: Optional[CredentialsProvider] = None,
                 proposer: Optional[FieldProposer] = None,
                 executor: Optional[EnrichmentExecutor] = None,
                 default_fields: Iterable[str] = DEFAULT_FIELD_NAMES,
                 required_credentials: Sequence[str] = REQUIRED_CREDENTIALS):
        """
        Args:
            credentials: Where API keys are looked up and saved
            proposer: Client for the field generation service
            executor: Called with the finalized configuration on start
            default_fields: Preset names selected when configuration begins
            required_credentials: Keys that must be available before configuring
        """
        self.credentials = credentials if credentials is not None else EnvironmentCredentials()
        self.proposer = proposer
        self.executor = executor
        self.required_credentials = tuple(required_credentials)
        self.state = WorkflowState(default_fields=tuple(default_fields))

    def dispatch(self, action: Any) -> WorkflowState:
        """Apply an action; on error the current state is left untouched."""
        self.state = reduce(self.state, action)
        return self.state

    # Read-only views

    @property
    def step(self) -> WorkflowStep:
        return self.state.step

    @property
    def detection(self) -> Optional[EmailDetectionResult]:
        return self.state.detection

    @property
    def selected_fields(self) -> List[EnrichmentField]:
        return list(self.state.selected_fields)

    @property
    def suggested_fields(self) -> List[EnrichmentField]:
        return list(self.state.suggested_fields)

    def skip_summary(self) -> RowSummary:
        """Row classification for the current email column (empty summary when none is chosen)."""
        if self.state.email_column is None:
            return RowSummary(total=len(self.state.rows))
        return summarize_rows(self.state.rows, self.state.email_column)

    # Upload and credentials

    def upload(self, rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> WorkflowState:
        """
        Load a parsed dataset.

        If any required credential is missing the dataset is held in the
        upload step until `provide_credentials` supplies it.
        """
        missing = missing_credentials(self.credentials, self.required_credentials)
        if missing:
            logger.warning(f"Upload waiting for credentials: {', '.join(missing)}")
            return self.dispatch(CredentialsRequired(missing=missing, rows=rows, columns=columns))
        return self.dispatch(CsvLoaded(rows=rows, columns=columns))

    def provide_credentials(self, **keys: str) -> WorkflowState:
        """Save API keys and continue a held upload once nothing is missing."""
        for key, value in keys.items():
            if value is None or not str(value).strip():
                raise InvalidFieldInput(f"Please enter a valid {key}")
        for key, value in keys.items():
            self.credentials.set(key, str(value).strip())
        logger.info(f"Saved credentials: {', '.join(sorted(keys))}")

        if self.state.step != WorkflowStep.UPLOAD or not self.state.missing_credentials:
            return self.state

        missing = missing_credentials(self.credentials, self.required_credentials)
        if missing:
            return self.dispatch(CredentialsRequired(
                missing=missing, rows=self.state.rows, columns=self.state.columns,
            ))
        return self.dispatch(CsvLoaded(rows=self.state.rows, columns=self.state.columns))

    # Email column

    def select_email_column(self, column: str) -> WorkflowState:
        return self.dispatch(SelectEmailColumn(column))

    def continue_to_fields(self) -> WorkflowState:
        return self.dispatch(ContinueToFields())

    # Field selection

    def add_field(self, field: EnrichmentField) -> WorkflowState:
        return self.dispatch(AddField(field))

    def add_preset(self, name: str) -> WorkflowState:
        preset = get_preset(name)
        if preset is None:
            raise InvalidFieldInput(f"Unknown preset field: {name}")
        return self.dispatch(AddField(preset))

    def toggle_preset(self, name: str) -> WorkflowState:
        return self.dispatch(TogglePreset(name))

    def remove_field(self, name: str) -> WorkflowState:
        return self.dispatch(RemoveField(name))

    def add_custom_field(self, display_name: str, description: str,
                         field_type: FieldType = FieldType.STRING) -> WorkflowState:
        return self.dispatch(AddCustomField(display_name, description, field_type))

    # Natural-language suggestions

    async def generate_fields(self, prompt: str) -> List[EnrichmentField]:
        """
        Ask the field generation service for suggestions.

        Returns:
            The suggestions added by this request; empty if the result
            arrived after the workflow moved on.

        Raises:
            GenerationInProgress: Another request is still pending
            GenerationFailed: The service failed; the selection is unchanged
        """
        if self.proposer is None:
            raise WorkflowError("Field generation is not configured")
        if not (prompt or "").strip():
            raise InvalidFieldInput("Describe the fields you want to generate")

        self.dispatch(GenerationStarted())
        seq = self.state.pending_generation
        existing = field_names(self.state.selected_fields) + field_names(self.state.suggested_fields)

        try:
            suggestions = await self.proposer.propose(prompt, existing)
        except Exception:
            self.dispatch(GenerationErrored(seq))
            raise

        before = len(self.state.suggested_fields)
        self.dispatch(GenerationCompleted(seq, tuple(suggestions)))
        return list(self.state.suggested_fields[before:])

    def accept_suggestion(self, index: int) -> WorkflowState:
        return self.dispatch(AcceptSuggestion(index))

    def reject_suggestion(self, index: int) -> WorkflowState:
        return self.dispatch(RejectSuggestion(index))

    # Hand-off and navigation

    def start_enrichment(self) -> FinalizedConfiguration:
        """
        Finalize the configuration and hand it to the executor.

        The session only moves to the running step once the executor has
        accepted the configuration; if it raises, the state is unchanged.
        """
        running = reduce(self.state, StartEnrichment())
        config = running.finalized
        logger.info(
            f"Starting enrichment on column '{config.email_column}' "
            f"with {len(config.fields)} fields: {', '.join(config.output_columns)}"
        )
        if self.executor is not None:
            try:
                self.executor(config)
            except Exception as e:
                logger.error(f"Enrichment executor rejected the configuration: {e}")
                raise
        self.state = running
        return config

    def go_back(self) -> WorkflowState:
        return self.dispatch(GoBack())

    def reset(self) -> WorkflowState:
        return self.dispatch(Reset())
