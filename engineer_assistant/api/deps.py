from __future__ import annotations

from fastapi import HTTPException, Request

from engineer_assistant.pipelines.analysis_pipeline import AnalysisPipeline
from engineer_assistant.sessions.store import SessionNotFound, SessionStore
from engineer_assistant.sessions.workspace import AnalysisSession
from engineer_assistant.utils.request_context import set_session_id


def get_pipeline(request: Request) -> AnalysisPipeline:
    return request.app.state.pipeline


def get_store(request: Request) -> SessionStore:
    return request.app.state.sessions


async def get_session(session_id: str, request: Request) -> AnalysisSession:
    """Resolve the session and tag this request's log records with its id."""
    try:
        session = get_store(request).get(session_id)
    except SessionNotFound:
        raise HTTPException(
            status_code=404,
            detail={"code": "session_not_found", "message": f"Unknown session {session_id}"},
        )
    set_session_id(session.session_id)
    return session
