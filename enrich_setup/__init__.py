"""Enrichment setup engine: email detection, field schema and workflow."""

from .constants import (
    EMAIL_CONFIDENCE_THRESHOLD, MAX_SELECTED_FIELDS, PERSONAL_EMAIL_DOMAINS, REQUIRED_CREDENTIALS,
)
from .email_detection import detect_email_column
from .errors import (
    DuplicateField, EnrichmentSetupError, FieldCapacityExceeded, GenerationFailed,
    GenerationInProgress, InvalidFieldInput, WorkflowError,
)
from .field_names import generate_field_name
from .field_proposer import FieldProposer
from .field_registry import PRESET_FIELDS, add_field, remove_field
from .models import (
    EmailDetectionResult, EnrichmentField, FieldType, FinalizedConfiguration, RowStatus,
)
from .row_classifier import classify_row, summarize_rows
from .session import EnrichmentSetup
from .workflow import ConfigurePhase, WorkflowState, WorkflowStep, reduce

__all__ = [
    "EMAIL_CONFIDENCE_THRESHOLD", "MAX_SELECTED_FIELDS", "PERSONAL_EMAIL_DOMAINS",
    "REQUIRED_CREDENTIALS",
    "detect_email_column", "generate_field_name", "classify_row", "summarize_rows",
    "PRESET_FIELDS", "add_field", "remove_field",
    "EnrichmentField", "FieldType", "EmailDetectionResult", "FinalizedConfiguration", "RowStatus",
    "FieldProposer", "EnrichmentSetup",
    "WorkflowState", "WorkflowStep", "ConfigurePhase", "reduce",
    "EnrichmentSetupError", "FieldCapacityExceeded", "DuplicateField", "GenerationFailed",
    "GenerationInProgress", "InvalidFieldInput", "WorkflowError",
]
