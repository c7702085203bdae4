from __future__ import annotations
from typing import Dict, Optional

from app.services.image_intake import PreviewStore
from app.session import Session
from app.utils.logging import get_logger

logger = get_logger("sessions")


class SessionManager:
    """In-memory sessions, one per browser tab. Nothing outlives the process."""

    def __init__(self, previews: PreviewStore | None = None) -> None:
        self.previews = previews if previews is not None else PreviewStore()
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> Session:
        session = Session(previews=self.previews)
        self._sessions[session.id] = session
        logger.info(f"Session created id={session.id}")
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def drop(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if not session:
            return False
        session.close()
        logger.info(f"Session {session_id} closed")
        return True

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.drop(session_id)


# Global manager instance
session_manager = SessionManager()
