import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from engineer_assistant.api.error_handlers import register_error_handlers
from engineer_assistant.api.health import router as health_router
from engineer_assistant.api.routes_analysis import router as analysis_router
from engineer_assistant.api.routes_session import router as session_router
from engineer_assistant.capture.media import FacingMode
from engineer_assistant.capture.opencv_device import OpenCVMediaDevices
from engineer_assistant.config import settings
from engineer_assistant.logging import configure_logging
from engineer_assistant.middleware.request_id import RequestIdMiddleware
from engineer_assistant.observability.metrics_route import router as metrics_router
from engineer_assistant.pipelines.analysis_pipeline import AnalysisPipeline
from engineer_assistant.sessions.store import SessionStore


def _default_devices() -> OpenCVMediaDevices:
    return OpenCVMediaDevices(
        {
            FacingMode.ENVIRONMENT: settings.camera_index_environment,
            FacingMode.USER: settings.camera_index_user,
        }
    )


def create_app() -> FastAPI:
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # release every camera still held by a session
        app.state.sessions.close_all()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    # swappable in tests: app.state.pipeline / app.state.sessions
    app.state.pipeline = AnalysisPipeline()
    app.state.sessions = SessionStore(
        devices_provider=_default_devices,
        jpeg_quality=settings.jpeg_quality,
        max_sessions=settings.max_sessions,
        idle_ttl_s=settings.session_idle_ttl_seconds,
    )

    app.add_middleware(RequestIdMiddleware)
    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(analysis_router)
    app.include_router(session_router)

    @app.get("/", include_in_schema=False)
    def index() -> RedirectResponse:
        # a fresh workspace per visit
        session = app.state.sessions.create()
        return RedirectResponse(url=f"/sessions/{session.session_id}/view", status_code=303)

    logger.info("App initialized provider=%s model=%s", settings.analysis_provider, settings.gemini_model_id)
    return app


app = create_app()
