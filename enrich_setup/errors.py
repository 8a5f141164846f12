"""
Error taxonomy for the enrichment setup engine.

None of these are fatal: each one blocks a single mutation and leaves the
workflow state exactly as it was.
"""

from typing import Optional


class EnrichmentSetupError(Exception):
    """Base class for all setup errors."""


class FieldCapacityExceeded(EnrichmentSetupError):
    """Raised when adding a field would exceed the selection limit."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Maximum {limit} fields allowed")


class DuplicateField(EnrichmentSetupError):
    """Raised when a field with the same name is already selected."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Field '{name}' is already selected")


class InvalidFieldInput(EnrichmentSetupError):
    """Raised when user-supplied input is rejected before any mutation."""


class WorkflowError(EnrichmentSetupError):
    """Raised when an action is not allowed in the current workflow step."""


class GenerationInProgress(EnrichmentSetupError):
    """Raised when a field generation is requested while one is pending."""

    def __init__(self):
        super().__init__("A field generation request is already in progress")


class GenerationFailed(EnrichmentSetupError):
    """Raised when the field generation service fails or answers badly."""

    def __init__(self, message: str = "Failed to generate fields. Please try again.",
                 cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
