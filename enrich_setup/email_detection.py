"""
Email column detection.

Scores every column from two signals: how much the header looks like an
email header, and how many sampled values are email-shaped. Only the first
SAMPLE_SIZE rows are inspected so large uploads stay cheap.
"""

import logging
import re
from itertools import islice
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .constants import EMAIL_REGEX, MIN_DETECTION_SCORE, SAMPLE_SIZE
from .models import EmailDetectionResult

logger = logging.getLogger(__name__)

EXACT_HEADER_SCORE = 50
EMAIL_TOKEN_SCORE = 40
MAIL_TOKEN_SCORE = 30
VALUE_WEIGHT = 50

_EXACT_HEADERS = {"email", "emailaddress", "emailaddr", "emailid"}
_E_MAIL = re.compile(r"\be[\s_\-.]+mail", re.IGNORECASE)
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_TOKEN = re.compile(r"[a-z0-9]+")


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _header_tokens(header: str) -> List[str]:
    # "E-Mail Address" -> "Email Address", "workEmail" -> "work Email"
    folded = _E_MAIL.sub("email", header)
    folded = _CAMEL_BOUNDARY.sub(r"\1 \2", folded)
    return _TOKEN.findall(folded.lower())


def score_header(header: str) -> int:
    """Score how strongly a column name suggests it holds email addresses."""
    tokens = _header_tokens(header or "")
    if not tokens:
        return 0
    if "".join(tokens) in _EXACT_HEADERS:
        return EXACT_HEADER_SCORE
    # "Emails", "email2"; "voicemail" and "remailer" do not count
    if any(token.startswith("email") for token in tokens):
        return EMAIL_TOKEN_SCORE
    if "mail" in tokens:
        return MAIL_TOKEN_SCORE
    return 0


def score_column(rows: Iterable[Mapping[str, Any]], column: str) -> int:
    """Combined 0-100 confidence that `column` is the email column."""
    header_score = score_header(column)

    non_empty = 0
    matches = 0
    for row in islice(rows, SAMPLE_SIZE):
        value = _cell_text(row.get(column))
        if not value:
            continue
        non_empty += 1
        if EMAIL_REGEX.match(value):
            matches += 1

    value_score = 0.0
    if non_empty:
        value_score = VALUE_WEIGHT * matches / non_empty
        if matches == 0:
            # Header promises emails but the data says otherwise
            header_score = header_score // 2

    return max(0, min(100, int(round(header_score + value_score))))


def detect_email_column(rows: Optional[Sequence[Mapping[str, Any]]],
                        columns: Optional[Sequence[str]]) -> EmailDetectionResult:
    """
    Find the column most likely to contain email addresses.

    Args:
        rows: Parsed rows keyed by column name
        columns: Ordered column names

    Returns:
        The best column and its confidence. `column_name` is None when no
        column reaches the detection floor; callers should ask the user.
    """
    if not columns:
        return EmailDetectionResult(column_name=None, confidence=0)

    # Only the sample is ever scored
    sample = list(islice(rows or (), SAMPLE_SIZE))
    best_column = None
    best_score = 0

    for column in columns:
        score = score_column(sample, column)
        # Strictly greater keeps the earliest column on ties
        if score > best_score:
            best_column, best_score = column, score

    if best_column is None or best_score < MIN_DETECTION_SCORE:
        logger.debug("No email column detected")
        return EmailDetectionResult(column_name=None, confidence=best_score)

    logger.debug(f"Detected email column '{best_column}' with confidence {best_score}")
    return EmailDetectionResult(column_name=best_column, confidence=best_score)
