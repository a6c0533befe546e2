"""
Service Layer

Composes the equation engine and the layout calculator into calculator
sessions, and keeps one session per client for the server.
"""

import time
import uuid
from threading import Lock
from typing import Dict, Iterable, List, Optional, Tuple

from .config import Config, load_config
from .equation import EquationEngine, KeyResult
from .layout import LayoutResult, blob_specs, compute_layout
from .logging_config import get_logger

logger = get_logger("services")


class CalculatorSession:
    """
    One active calculator: an equation plus the settings used to draw it.

    The host calls press() for every key, then snapshot() and layout()
    to re-render. Nothing is cached; layout is derived fresh each time.
    """

    def __init__(self, config: Optional[Config] = None, session_id: Optional[str] = None):
        self.config = config or load_config()
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.engine = EquationEngine()
        self.created_at = time.time()
        self.last_activity = self.created_at
        self.presses = 0
        self.rejections = 0

    def press(self, key: str) -> KeyResult:
        """Forward one key press to the engine."""
        self.last_activity = time.time()
        result = self.engine.apply_key(key)
        self.presses += 1
        if not result.applied:
            self.rejections += 1
        return result

    def press_many(self, keys: Iterable[str]) -> List[KeyResult]:
        return [self.press(key) for key in keys]

    def clear(self) -> KeyResult:
        return self.press("C")

    def snapshot(self) -> dict:
        """Everything a view needs to redraw the text parts."""
        return {
            "session_id": self.session_id,
            "equation": self.engine.equation,
            "grouped": self.engine.grouped(),
            "terms": self.engine.terms(),
            "sum": self.engine.total(),
            "display": self.engine.display(),
        }

    def layout(self, width: float, height: float) -> LayoutResult:
        """Blob positions for the current terms inside width x height."""
        specs = blob_specs(
            self.engine.terms(),
            palette_size=len(self.config.palette),
            max_per_term=self.config.per_term_cap,
        )
        return compute_layout(specs, width, height, self.config.layout_options())

    def color_for(self, color_index: int) -> str:
        palette = self.config.palette
        return palette[color_index % len(palette)]

    def get_status(self) -> dict:
        now = time.time()
        return {
            "session_id": self.session_id,
            "equation": self.engine.equation,
            "presses": self.presses,
            "rejections": self.rejections,
            "uptime_seconds": round(now - self.created_at, 1),
            "idle_seconds": round(now - self.last_activity, 1),
        }


class SessionStore:
    """
    Keeps calculator sessions by id.

    Sessions idle for longer than `session_timeout` are removed by
    cleanup_stale().
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or load_config()
        self.session_timeout = self.config.session_timeout
        self._sessions: Dict[str, CalculatorSession] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def create(self) -> CalculatorSession:
        session = CalculatorSession(self.config)
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info(f"Session created: {session.session_id}. Total sessions: {len(self._sessions)}")
        return session

    def get(self, session_id: str) -> Optional[CalculatorSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: Optional[str] = None) -> Tuple[CalculatorSession, bool]:
        """
        Return the session for `session_id`, creating it if needed.

        Returns:
            (session, is_new)
        """
        with self._lock:
            if session_id and session_id in self._sessions:
                return self._sessions[session_id], False
            session = CalculatorSession(self.config, session_id=session_id)
            self._sessions[session.session_id] = session
        logger.info(f"Session created: {session.session_id}. Total sessions: {len(self._sessions)}")
        return session, True

    def remove(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed:
            logger.info(f"Session removed: {session_id}. Total sessions: {len(self._sessions)}")
        return removed is not None

    def cleanup_stale(self, now: Optional[float] = None) -> int:
        """Drop sessions idle past the timeout. Returns how many were dropped."""
        now = now if now is not None else time.time()
        with self._lock:
            stale = [
                sid for sid, session in self._sessions.items()
                if now - session.last_activity > self.session_timeout
            ]
            for sid in stale:
                del self._sessions[sid]
        if stale:
            logger.info(f"Cleaned up {len(stale)} stale session(s)")
        return len(stale)

    def stats(self) -> dict:
        with self._lock:
            sessions = list(self._sessions.values())
        return {
            "count": len(sessions),
            "timeout_seconds": self.session_timeout,
            "details": [session.get_status() for session in sessions],
        }
