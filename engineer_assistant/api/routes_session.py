import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from fastapi.responses import HTMLResponse

from engineer_assistant.api.deps import get_pipeline, get_session, get_store
from engineer_assistant.api.schemas import (
    CameraOpenRequest,
    CaptureResponse,
    KnowledgeUpdate,
    SessionView,
    error_responses,
)
from engineer_assistant.config import settings
from engineer_assistant.pipelines.analysis_pipeline import AnalysisPipeline
from engineer_assistant.preprocessing.image_input import load_image_upload
from engineer_assistant.rendering.html import render_report_html, render_workspace_html
from engineer_assistant.sessions.store import SessionStore
from engineer_assistant.sessions.workspace import AnalysisInProgress, AnalysisSession, NoImageSelected

router = APIRouter(
    prefix="/sessions",
    tags=["sessions"],
    responses=error_responses(403, 404, 409, 422, 500, 502),
)

logger = logging.getLogger(__name__)


def _view(session: AnalysisSession) -> SessionView:
    return SessionView.from_session(session)


# ---------- lifecycle ----------

@router.post("", response_model=SessionView, status_code=201)
def create_session(store: SessionStore = Depends(get_store)):
    return _view(store.create())


@router.get("/{session_id}", response_model=SessionView)
def read_session(session: AnalysisSession = Depends(get_session)):
    return _view(session)


@router.delete("/{session_id}", status_code=204)
def delete_session(session: AnalysisSession = Depends(get_session), store: SessionStore = Depends(get_store)):
    store.delete(session.session_id)
    return Response(status_code=204)


@router.get("/{session_id}/view", response_class=HTMLResponse)
def view_session(session: AnalysisSession = Depends(get_session)):
    return HTMLResponse(content=render_workspace_html(session))


# ---------- inputs ----------

@router.put("/{session_id}/knowledge", response_model=SessionView)
def update_knowledge(body: KnowledgeUpdate, session: AnalysisSession = Depends(get_session)):
    session.set_knowledge_text(body.knowledge_text)
    return _view(session)


@router.delete("/{session_id}/knowledge", response_model=SessionView)
def clear_knowledge(session: AnalysisSession = Depends(get_session)):
    session.clear_knowledge_text()
    return _view(session)


@router.post("/{session_id}/image", response_model=SessionView)
async def upload_image(file: UploadFile = File(...), session: AnalysisSession = Depends(get_session)):
    image = await load_image_upload(file, max_mb=settings.max_image_mb)
    session.select_image(image)
    logger.info("image_selected filename=%s mime=%s bytes=%d", image.filename, image.mime_type, image.size_bytes)
    return _view(session)


@router.delete("/{session_id}/image", response_model=SessionView)
def remove_image(session: AnalysisSession = Depends(get_session)):
    session.remove_image()
    return _view(session)


# ---------- camera ----------

@router.post("/{session_id}/camera", response_model=SessionView)
async def open_camera(body: Optional[CameraOpenRequest] = None, session: AnalysisSession = Depends(get_session)):
    facing_mode = (body or CameraOpenRequest()).facing_mode
    await session.open_camera(facing_mode)
    return _view(session)


@router.post("/{session_id}/camera/toggle", response_model=SessionView)
async def toggle_camera(session: AnalysisSession = Depends(get_session)):
    await session.toggle_camera()
    return _view(session)


@router.post("/{session_id}/camera/capture", response_model=CaptureResponse)
def capture_photo(session: AnalysisSession = Depends(get_session)):
    captured = session.capture_photo()
    return CaptureResponse(captured=captured, session=_view(session))


@router.delete("/{session_id}/camera", response_model=SessionView)
def close_camera(session: AnalysisSession = Depends(get_session)):
    session.close_camera()
    return _view(session)


# ---------- analysis ----------

@router.post("/{session_id}/analyze", response_model=SessionView)
async def analyze_session(
    session: AnalysisSession = Depends(get_session),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    """
    Analyze the selected image with the session's knowledge text.

    On failure the session keeps its image and records the user-facing error;
    the response is the error envelope (see GET /sessions/{id} for the state).
    """
    try:
        await session.analyze(pipeline)
    except NoImageSelected as e:
        raise HTTPException(status_code=409, detail={"code": e.code, "message": str(e)})
    except AnalysisInProgress as e:
        raise HTTPException(status_code=409, detail={"code": e.code, "message": str(e)})
    return _view(session)


@router.post("/{session_id}/reset", response_model=SessionView)
def reset_session(session: AnalysisSession = Depends(get_session)):
    session.reset()
    return _view(session)


@router.get("/{session_id}/report", response_class=HTMLResponse)
def session_report(session: AnalysisSession = Depends(get_session)):
    if session.result is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "no_result", "message": "No analysis result for this session"},
        )
    return HTMLResponse(content=render_report_html(session.result))
