from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict

from engineer_assistant.analyzers.engineering_schema import EngineeringResponse
from engineer_assistant.capture.camera import CameraState
from engineer_assistant.capture.media import FacingMode
from engineer_assistant.sessions.workspace import AnalysisSession, LoadingState


# ---------
# Stateless analysis
# ---------

class ModelInfo(BaseModel):
    name: str


class MetaInfo(BaseModel):
    duration_ms: Optional[int] = None


class AnalyzeDetails(BaseModel):
    model_config = ConfigDict(extra="forbid")

    model: ModelInfo
    meta: Optional[MetaInfo] = None


class AnalyzeResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    result: EngineeringResponse
    details: AnalyzeDetails


# ---------
# Session workspace
# ---------

class ImageInfo(BaseModel):
    filename: str
    mime_type: str
    size_bytes: int
    width: Optional[int] = None
    height: Optional[int] = None


class CameraInfo(BaseModel):
    state: CameraState
    facing_mode: FacingMode


class SessionView(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_id: str
    loading_state: LoadingState
    knowledge_text: str
    image: Optional[ImageInfo] = None
    camera: CameraInfo
    error: Optional[str] = None
    camera_error: Optional[str] = None
    result: Optional[EngineeringResponse] = None

    @classmethod
    def from_session(cls, session: AnalysisSession) -> "SessionView":
        image = None
        if session.image is not None:
            image = ImageInfo(
                filename=session.image.filename,
                mime_type=session.image.mime_type,
                size_bytes=session.image.size_bytes,
                width=session.image.width,
                height=session.image.height,
            )
        return cls(
            session_id=session.session_id,
            loading_state=session.loading_state,
            knowledge_text=session.knowledge_text,
            image=image,
            camera=CameraInfo(state=session.camera.state, facing_mode=session.camera.facing_mode),
            error=session.error,
            camera_error=session.camera_error,
            result=session.result,
        )


class KnowledgeUpdate(BaseModel):
    knowledge_text: str


class CameraOpenRequest(BaseModel):
    facing_mode: FacingMode = FacingMode.ENVIRONMENT


class CaptureResponse(BaseModel):
    captured: bool
    session: SessionView


# ---------
# Error payload
# ---------

class ErrorBody(BaseModel):
    code: str
    message: str
    request_id: Optional[str] = None


class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    error: ErrorBody


def error_responses(*status_codes: int) -> Dict[Union[int, str], Dict[str, Any]]:
    """OpenAPI `responses=` entries documenting the error envelope."""
    return {code: {"model": ErrorResponse} for code in status_codes}
