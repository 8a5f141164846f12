"""
Skip-list heuristic for uploaded rows.

Classification is advisory: it feeds the "these emails will be skipped"
warning and never removes rows from the dataset. Whether a row is actually
skipped is decided by the enrichment executor.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .constants import EMAIL_REGEX, PERSONAL_EMAIL_DOMAINS
from .models import RowStatus


def classify_email(value: Any) -> RowStatus:
    """Classify a single email cell."""
    email = str(value).strip().lower() if value is not None else ""
    if not email:
        return RowStatus.EMPTY
    if not EMAIL_REGEX.match(email):
        return RowStatus.INVALID
    domain = email.split("@", 1)[1]
    if domain in PERSONAL_EMAIL_DOMAINS:
        return RowStatus.PERSONAL_DOMAIN
    return RowStatus.ENRICHABLE


def classify_row(row: Mapping[str, Any], email_column: str) -> RowStatus:
    """Classify a row by the value in its email column; a missing cell counts as empty."""
    return classify_email(row.get(email_column))


@dataclass(frozen=True)
class RowSummary:
    """Per-status row counts for one email column."""
    total: int = 0
    empty: int = 0
    invalid: int = 0
    personal_domain: int = 0
    enrichable: int = 0

    @property
    def skip_warning(self) -> str:
        if not self.personal_domain:
            return ""
        return (
            f"{self.personal_domain} emails from common providers (Gmail, Yahoo, etc.) "
            f"will be automatically skipped to save API calls. These are typically "
            f"personal emails without company information."
        )


def summarize_rows(rows: Sequence[Mapping[str, Any]], email_column: str) -> RowSummary:
    """Count rows per classification for the given email column."""
    counts = {status: 0 for status in RowStatus}
    for row in rows:
        counts[classify_row(row, email_column)] += 1
    return RowSummary(
        total=len(rows),
        empty=counts[RowStatus.EMPTY],
        invalid=counts[RowStatus.INVALID],
        personal_domain=counts[RowStatus.PERSONAL_DOMAIN],
        enrichable=counts[RowStatus.ENRICHABLE],
    )
