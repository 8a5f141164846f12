"""
Field schema generation from natural-language descriptions.

Server side of the generate-fields endpoint: asks the LLM for a JSON list of
candidate enrichment fields and validates what comes back.
"""

import json
import logging
from typing import Any, Dict, List

from app.config import settings
from app.services.llm_service import LLMService

logger = logging.getLogger(__name__)

# Type tags understood by the setup client
FIELD_TYPE_TAGS = ("text", "number", "boolean", "array")

MAX_GENERATED_FIELDS = 10

SYSTEM_PROMPT = """You design data enrichment schemas for B2B lead lists. Each lead is identified by a work email address; an enrichment agent researches the company behind the email domain and fills in the fields you define.

Given the user's request, respond with a JSON object of the form:
{"fields": [{"displayName": "...", "description": "...", "type": "text|number|boolean|array"}]}

Rules:
- displayName is a short human label (1-4 words)
- description tells the agent exactly what to extract and in what format
- type is "number" only for quantities and years, "boolean" for yes/no questions, "array" for lists, otherwise "text"
- return at most 10 fields and never duplicate a field"""


class FieldGenerationError(Exception):
    """Raised when the LLM output cannot be turned into fields."""


def parse_generated_fields(content: str) -> List[Dict[str, Any]]:
    """
    Validate the LLM's JSON answer.

    Args:
        content: Raw message content returned by the model

    Returns:
        Candidate fields with displayName, description and type

    Raises:
        FieldGenerationError: If the content is not the expected JSON shape
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise FieldGenerationError(f"Model returned invalid JSON: {e}") from e

    raw_fields = data.get("fields") if isinstance(data, dict) else None
    if not isinstance(raw_fields, list):
        raise FieldGenerationError("Model response has no 'fields' list")

    fields = []
    seen = set()
    for raw in raw_fields[:MAX_GENERATED_FIELDS]:
        if not isinstance(raw, dict):
            continue
        display_name = str(raw.get("displayName") or "").strip()
        description = str(raw.get("description") or "").strip()
        if not display_name or not description or display_name.lower() in seen:
            continue
        seen.add(display_name.lower())

        field_type = str(raw.get("type") or "text").strip().lower()
        if field_type not in FIELD_TYPE_TAGS:
            field_type = "text"

        fields.append({
            "displayName": display_name,
            "description": description,
            "type": field_type,
        })

    if not fields:
        raise FieldGenerationError("Model returned no usable fields")
    return fields


class FieldGenerator:
    """Turns a free-text request into candidate field definitions."""

    def __init__(self, llm: LLMService):
        self.llm = llm

    async def generate(self, prompt: str) -> List[Dict[str, Any]]:
        response = await self.llm.generate(
            prompt.strip(),
            SYSTEM_PROMPT,
            max_tokens=settings.LLM_MAX_TOKENS,
            temperature=settings.LLM_TEMPERATURE,
            json_mode=True,
        )
        fields = parse_generated_fields(response.content)
        logger.info(
            f"Generated {len(fields)} fields (tokens: {response.tokens_used}, "
            f"cost: ${response.cost:.4f}, cached: {response.cached})"
        )
        return fields
