"""
Health check endpoints for monitoring application status.
"""

from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter

from enrich_setup.constants import REQUIRED_CREDENTIALS

from app.config import settings
from app.services.llm_service import get_usage_metrics
from app.services.session_service import get_session_service

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint, with LLM usage once field generation has run"""
    metrics = get_usage_metrics()
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": settings.APP_NAME,
        "version": settings.VERSION,
        "active_sessions": len(get_session_service()),
        "llm_usage": asdict(metrics) if metrics is not None else None,
    }


@router.get("/check-env")
async def check_environment():
    """Report which required API keys are configured on the server"""
    return {
        "environmentStatus": {
            key: bool(str(getattr(settings, key, "") or "").strip())
            for key in REQUIRED_CREDENTIALS
        }
    }
