import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from .classifier import DEFAULT_DOMINANT_COUNT, HIGH_THRESHOLD, LOW_THRESHOLD
from .errors import SessionNotFoundError
from .models import QuizGraph, Session
from .traversal import create_session

logger = logging.getLogger(__name__)


class SessionStore:
    """
    In-memory table of live quiz sessions keyed by session id.

    The engine itself is unaware of concurrency; this store serializes access
    to the table. Callers answering on the same session from several threads
    must hold session_lock(session_id) around submit_answer.
    """

    def __init__(self, graph: QuizGraph,
                 max_sessions: int = 10000,
                 dominant_count: int = DEFAULT_DOMINANT_COUNT,
                 low_threshold: float = LOW_THRESHOLD,
                 high_threshold: float = HIGH_THRESHOLD):
        self.graph = graph
        self.max_sessions = max_sessions
        self.dominant_count = dominant_count
        self.low_threshold = low_threshold
        self.high_threshold = high_threshold
        self.sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._session_locks: Dict[str, threading.Lock] = {}

    def create(self, session_id: Optional[str] = None) -> Session:
        """Create a session on the store's graph and register it"""
        session = create_session(
            self.graph,
            session_id=session_id,
            dominant_count=self.dominant_count,
            low_threshold=self.low_threshold,
            high_threshold=self.high_threshold
        )
        self.put(session)
        return session

    def put(self, session: Session) -> None:
        with self._lock:
            self.sessions[session.session_id] = session
            self._evict_over_capacity()

    def get(self, session_id: str) -> Session:
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def remove(self, session_id: str) -> bool:
        with self._lock:
            self._session_locks.pop(session_id, None)
            return self.sessions.pop(session_id, None) is not None

    def session_lock(self, session_id: str) -> threading.Lock:
        with self._lock:
            return self._session_locks.setdefault(session_id, threading.Lock())

    def list_sessions(self) -> List[Session]:
        with self._lock:
            return list(self.sessions.values())

    def cleanup_expired_sessions(self, max_age_hours: int = 24) -> int:
        """Drop sessions idle for longer than max_age_hours; returns how many"""
        cutoff = datetime.now() - timedelta(hours=max_age_hours)

        with self._lock:
            expired = [
                sid for sid, session in self.sessions.items()
                if session.last_activity < cutoff
            ]
            for sid in expired:
                del self.sessions[sid]
                self._session_locks.pop(sid, None)

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")
        return len(expired)

    def _evict_over_capacity(self):
        # Caller holds self._lock
        overflow = len(self.sessions) - self.max_sessions
        if overflow <= 0:
            return

        oldest = sorted(self.sessions.values(), key=lambda s: s.last_activity)[:overflow]
        for session in oldest:
            del self.sessions[session.session_id]
            self._session_locks.pop(session.session_id, None)
        logger.warning(f"Session cap {self.max_sessions} reached, evicted {len(oldest)} sessions")
