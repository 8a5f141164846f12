"""
Data models shared by the enrichment setup engine and the API layer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .constants import EMAIL_CONFIDENCE_THRESHOLD


class FieldType(str, Enum):
    """Extraction type of an enrichment field."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"

    @property
    def label(self) -> str:
        """Human-readable name shown next to the field."""
        return _FIELD_TYPE_LABELS[self]


# Every FieldType member needs exactly one entry here
_FIELD_TYPE_LABELS: Dict[FieldType, str] = {
    FieldType.STRING: "Text",
    FieldType.NUMBER: "Number",
    FieldType.BOOLEAN: "Yes/No",
    FieldType.ARRAY: "List",
}

_missing = set(FieldType) - set(_FIELD_TYPE_LABELS)
if _missing:
    raise RuntimeError(f"No label registered for field types: {sorted(t.value for t in _missing)}")


class EnrichmentField(BaseModel):
    """A named, typed, described extraction target filled in for every row."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    display_name: str = Field(alias="displayName")
    description: str
    type: FieldType = FieldType.STRING
    required: bool = False

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys) for the enrichment executor."""
        return self.model_dump(by_alias=True, mode="json")


@dataclass(frozen=True)
class EmailDetectionResult:
    """Most likely email column and its 0-100 confidence."""
    column_name: Optional[str]
    confidence: int = 0

    @property
    def is_confident(self) -> bool:
        return self.column_name is not None and self.confidence >= EMAIL_CONFIDENCE_THRESHOLD


class RowStatus(str, Enum):
    """Advisory classification of a row's email value."""
    EMPTY = "empty"
    INVALID = "invalid"
    PERSONAL_DOMAIN = "personal_domain"
    ENRICHABLE = "enrichable"


@dataclass(frozen=True)
class FinalizedConfiguration:
    """The immutable (email column, fields) pair handed to the enrichment executor."""
    email_column: str
    fields: Tuple[EnrichmentField, ...]

    @property
    def output_columns(self) -> List[str]:
        return [f.name for f in self.fields]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "emailColumn": self.email_column,
            "fields": [f.to_payload() for f in self.fields],
        }
