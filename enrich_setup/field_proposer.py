"""
Natural-language field proposer.

Sends a free-text description to the field generation service and turns the
candidate fields it returns into EnrichmentField suggestions. Suggestions are
never merged into the selection here; the workflow keeps them in a separate
list until the user accepts or rejects each one.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from .errors import GenerationFailed, InvalidFieldInput
from .field_names import generate_field_name
from .models import EnrichmentField, FieldType

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

# Service type tags -> internal types. Array extraction is not supported
# downstream yet, so array suggestions are downgraded to text.
SERVICE_TYPE_MAP: Dict[str, FieldType] = {
    "text": FieldType.STRING,
    "string": FieldType.STRING,
    "array": FieldType.STRING,
    "number": FieldType.NUMBER,
    "boolean": FieldType.BOOLEAN,
}


def map_service_type(tag: Any) -> FieldType:
    """Map a generation-service type tag onto a FieldType; unknown tags become text."""
    return SERVICE_TYPE_MAP.get(str(tag or "").strip().lower(), FieldType.STRING)


def translate_generated_fields(payload: Any, existing_names: Iterable[str]) -> List[EnrichmentField]:
    """
    Convert a generation-service response body into suggestions.

    Args:
        payload: Decoded JSON response body
        existing_names: Names already in use; suggestions never reuse them

    Returns:
        One EnrichmentField per candidate, in service order

    Raises:
        GenerationFailed: If the payload does not have the expected shape or
            contains no usable fields
    """
    if not isinstance(payload, dict) or payload.get("success") is not True:
        raise GenerationFailed("Invalid response format")
    data = payload.get("data")
    candidates = data.get("fields") if isinstance(data, dict) else None
    if not isinstance(candidates, list) or not candidates:
        raise GenerationFailed("Invalid response format")

    taken = set(existing_names)
    suggestions = []
    for candidate in candidates:
        if not isinstance(candidate, dict):
            raise GenerationFailed("Invalid field in response")
        display_name = str(candidate.get("displayName") or "").strip()
        description = str(candidate.get("description") or "").strip()
        if not display_name or not description:
            raise GenerationFailed("Invalid field in response")

        name = generate_field_name(display_name, taken)
        taken.add(name)
        suggestions.append(EnrichmentField(
            name=name,
            display_name=display_name,
            description=description,
            type=map_service_type(candidate.get("type")),
        ))

    return suggestions


class FieldProposer:
    """Client for the text-to-schema field generation service."""

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            url: Full URL of the generate-fields endpoint
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def propose(self, prompt: str, existing_names: Iterable[str] = ()) -> List[EnrichmentField]:
        """
        Ask the service for fields matching `prompt`.

        Raises:
            InvalidFieldInput: If the prompt is blank
            GenerationFailed: On network errors, non-success statuses or
                malformed responses
        """
        prompt = (prompt or "").strip()
        if not prompt:
            raise InvalidFieldInput("Describe the fields you want to generate")

        existing_names = list(existing_names)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json={"prompt": prompt})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Field generation request failed: {e}")
            raise GenerationFailed(cause=e) from e
        except ValueError as e:
            logger.error(f"Field generation returned invalid JSON: {e}")
            raise GenerationFailed("Invalid response format", cause=e) from e

        suggestions = translate_generated_fields(payload, existing_names)
        logger.info(f"Generated {len(suggestions)} field suggestions")
        return suggestions
