"""
Field generation endpoint.

Turns a natural-language description into candidate enrichment fields. The
response shape is the contract the setup client expects:
{"success": true, "data": {"fields": [{displayName, description, type}]}}
"""

import logging

import httpx
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.models.setup import GenerateFieldsRequest
from app.services.field_generator import FieldGenerationError, FieldGenerator
from app.services.llm_service import get_llm_service

logger = logging.getLogger(__name__)
router = APIRouter()


def get_field_generator() -> FieldGenerator:
    return FieldGenerator(get_llm_service())


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@router.post("/generate-fields")
async def generate_fields(request: GenerateFieldsRequest):
    """Generate field definitions from a free-text prompt"""
    if not request.prompt.strip():
        return _failure(400, "Prompt is required")

    try:
        generator = get_field_generator()
    except RuntimeError as e:
        logger.error(f"Field generation unavailable: {e}")
        return _failure(503, str(e))

    try:
        fields = await generator.generate(request.prompt)
    except FieldGenerationError as e:
        logger.error(f"Field generation returned unusable output: {e}")
        return _failure(502, "Failed to generate fields")
    except httpx.HTTPError as e:
        logger.error(f"Field generation request to LLM failed: {e}")
        return _failure(502, "Failed to generate fields")

    return {"success": True, "data": {"fields": fields}}
