"""
Services backing the setup API.
"""

from .session_service import SessionService, get_session_service

__all__ = ['SessionService', 'get_session_service']
