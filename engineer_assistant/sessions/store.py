from __future__ import annotations

import logging
import time
import uuid
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from engineer_assistant.capture.camera import CameraCapture
from engineer_assistant.capture.media import MediaDevices
from engineer_assistant.sessions.workspace import AnalysisSession

logger = logging.getLogger(__name__)


class SessionNotFound(KeyError):
    code = "session_not_found"


class SessionStore:
    """
    In-memory sessions. Nothing is persisted; a restart forgets everything.

    Bounded two ways: sessions idle longer than `idle_ttl_s` are dropped, and
    past `max_sessions` the least recently used one is evicted. Dropped
    sessions are closed (camera released).
    """

    def __init__(
        self,
        devices_provider: Callable[[], MediaDevices],
        jpeg_quality: int = 95,
        *,
        max_sessions: int = 100,
        idle_ttl_s: Optional[float] = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._devices_provider = devices_provider
        self._jpeg_quality = jpeg_quality
        self._max_sessions = max(1, max_sessions)
        self._idle_ttl_s = idle_ttl_s
        self._clock = clock
        # session_id -> (session, last_used); ordered oldest use first
        self._sessions: OrderedDict[str, Tuple[AnalysisSession, float]] = OrderedDict()

    def create(self) -> AnalysisSession:
        self.prune()
        while len(self._sessions) >= self._max_sessions:
            sid, (oldest, _) = self._sessions.popitem(last=False)
            oldest.close()
            logger.info("session_evicted session=%s reason=capacity", sid)

        sid = uuid.uuid4().hex
        camera = CameraCapture(self._devices_provider(), jpeg_quality=self._jpeg_quality)
        session = AnalysisSession(session_id=sid, camera=camera)
        self._sessions[sid] = (session, self._clock())
        logger.info("session_created session=%s", sid)
        return session

    def get(self, session_id: str) -> AnalysisSession:
        self.prune()
        try:
            session, _ = self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None
        self._sessions[session_id] = (session, self._clock())
        self._sessions.move_to_end(session_id)
        return session

    def delete(self, session_id: str) -> None:
        entry = self._sessions.pop(session_id, None)
        if entry is None:
            raise SessionNotFound(session_id)
        entry[0].close()
        logger.info("session_closed session=%s", session_id)

    def prune(self) -> int:
        """Close and drop sessions idle past the TTL. Returns how many went."""
        if self._idle_ttl_s is None:
            return 0
        cutoff = self._clock() - self._idle_ttl_s
        expired = [sid for sid, (_, last_used) in self._sessions.items() if last_used <= cutoff]
        for sid in expired:
            session, _ = self._sessions.pop(sid)
            session.close()
            logger.info("session_evicted session=%s reason=idle", sid)
        return len(expired)

    def close_all(self) -> None:
        sessions, self._sessions = self._sessions, OrderedDict()
        for session, _ in sessions.values():
            session.close()
        if sessions:
            logger.info("sessions_closed count=%d", len(sessions))

    def __len__(self) -> int:
        return len(self._sessions)
