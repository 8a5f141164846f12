"""
In-memory store of enrichment setup sessions.

Each uploaded spreadsheet gets its own EnrichmentSetup. All actions run on
the event loop, so a session is only ever mutated by one action at a time;
field generation results that arrive after the session moved on are
discarded by the workflow itself.
"""

import logging
import uuid
from collections import OrderedDict
from typing import Optional, Tuple

from enrich_setup.credentials import InMemoryCredentials
from enrich_setup.field_proposer import FieldProposer
from enrich_setup.session import EnrichmentExecutor, EnrichmentSetup

from app.config import settings

logger = logging.getLogger(__name__)


class SettingsCredentials(InMemoryCredentials):
    """Keys from application settings first, then keys saved for the session."""

    def get(self, key: str) -> Optional[str]:
        configured = getattr(settings, key, "")
        if isinstance(configured, str) and configured.strip():
            return configured.strip()
        return super().get(key)


class SessionNotFound(KeyError):
    """Raised when a session id is unknown or has been evicted."""


class SessionService:
    """Creates, looks up and evicts setup sessions."""

    def __init__(self, max_sessions: int = 1000, proposer: Optional[FieldProposer] = None,
                 executor: Optional[EnrichmentExecutor] = None):
        """
        Args:
            max_sessions: Sessions kept before the oldest is evicted
            proposer: Field generation client shared by all sessions
            executor: Receives each finalized configuration
        """
        self.max_sessions = max_sessions
        self.executor = executor
        self.proposer = proposer or FieldProposer(
            settings.FIELD_GENERATION_URL,
            timeout=settings.FIELD_GENERATION_TIMEOUT_SECONDS,
        )
        self._sessions: "OrderedDict[str, EnrichmentSetup]" = OrderedDict()

    def create(self) -> Tuple[str, EnrichmentSetup]:
        """Create a new session, evicting the oldest one at capacity."""
        while len(self._sessions) >= self.max_sessions:
            evicted_id, _ = self._sessions.popitem(last=False)
            logger.info(f"Evicted setup session {evicted_id}")

        session_id = str(uuid.uuid4())
        self._sessions[session_id] = EnrichmentSetup(
            credentials=SettingsCredentials(),
            proposer=self.proposer,
            executor=self.executor,
        )
        logger.info(f"Created setup session {session_id}")
        return session_id, self._sessions[session_id]

    def get(self, session_id: str) -> EnrichmentSetup:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id)

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


_session_service: Optional[SessionService] = None


def get_session_service() -> SessionService:
    """Get the global session service instance."""
    global _session_service
    if _session_service is None:
        _session_service = SessionService(max_sessions=settings.MAX_SESSIONS)
    return _session_service
