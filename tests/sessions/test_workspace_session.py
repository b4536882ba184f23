import asyncio

import numpy as np
import pytest

from engineer_assistant.analyzers.engineering_analyzer import EngineeringAnalyzer
from engineer_assistant.analyzers.errors import (
    CAMERA_FAILURE_MESSAGE,
    GENERIC_FAILURE_MESSAGE,
    CameraPermissionError,
    ResponseFormatError,
)
from engineer_assistant.capture.camera import CameraCapture, CameraState
from engineer_assistant.capture.media import FacingMode
from engineer_assistant.llm.client import ModelRequest, ModelResult
from engineer_assistant.llm.mock_client import MockModelClient
from engineer_assistant.pipelines.analysis_pipeline import AnalysisPipeline
from engineer_assistant.preprocessing.image_input import ImagePayload
from engineer_assistant.sessions.store import SessionNotFound, SessionStore
from engineer_assistant.sessions.workspace import (
    AnalysisInProgress,
    AnalysisSession,
    LoadingState,
    NoImageSelected,
)


class _Stream:
    def __init__(self, facing_mode):
        self.facing_mode = facing_mode
        self.video_width = 8
        self.video_height = 6
        self.active = True

    def read_frame(self):
        return np.zeros((6, 8, 3), dtype=np.uint8)

    def stop(self):
        self.active = False


class _Devices:
    def __init__(self, deny: bool = False):
        self.deny = deny
        self.streams = []

    async def get_user_media(self, facing_mode):
        if self.deny:
            raise CameraPermissionError("NotAllowedError: Permission denied")
        stream = _Stream(facing_mode)
        self.streams.append(stream)
        return stream


class _TextClient:
    def __init__(self, text: str):
        self.text = text

    @property
    def model_id(self) -> str:
        return "fake-model"

    async def generate(self, req: ModelRequest) -> ModelResult:
        return ModelResult(text=self.text, model_id=self.model_id, latency_ms=1)


class _GatedPipeline:
    """Wraps a real pipeline and holds every run until `gate` is set."""

    def __init__(self):
        self.inner = AnalysisPipeline(EngineeringAnalyzer(client_factory=MockModelClient))
        self.gate = asyncio.Event()
        self.started = asyncio.Event()

    async def run(self, image, knowledge_text):
        self.started.set()
        await self.gate.wait()
        return await self.inner.run(image, knowledge_text)


def _pipeline(text=None) -> AnalysisPipeline:
    if text is None:
        return AnalysisPipeline(EngineeringAnalyzer(client_factory=MockModelClient))
    return AnalysisPipeline(EngineeringAnalyzer(client_factory=lambda: _TextClient(text)))


def _session(devices=None) -> AnalysisSession:
    return AnalysisSession("s-1", CameraCapture(devices or _Devices()))


def _image(name: str = "scan.png") -> ImagePayload:
    return ImagePayload(data=b"\x89PNG fake", mime_type="image/png", filename=name)


def test_new_session_starts_idle_with_sample_knowledge():
    session = _session()

    assert session.loading_state is LoadingState.IDLE
    assert "DOC#B09" in session.knowledge_text
    assert session.image is None and session.result is None


def test_analysis_success_stores_result():
    session = _session()
    session.select_image(_image())

    outcome = asyncio.run(session.analyze(_pipeline()))

    assert outcome is not None
    assert session.loading_state is LoadingState.SUCCESS
    assert session.result.action_steps[0].description == "Reiniciar serviço"
    assert session.error is None


def test_selecting_new_image_clears_result_and_error():
    session = _session()
    session.select_image(_image())
    asyncio.run(session.analyze(_pipeline()))
    session.error = "previous"

    session.select_image(_image("other.png"))

    assert session.result is None
    assert session.error is None
    assert session.image.filename == "other.png"


def test_invalid_output_keeps_image_and_shows_generic_message():
    session = _session()
    session.select_image(_image())

    with pytest.raises(ResponseFormatError):
        asyncio.run(session.analyze(_pipeline(text="")))

    assert session.loading_state is LoadingState.ERROR
    assert session.error == GENERIC_FAILURE_MESSAGE
    assert session.image is not None
    assert session.result is None


def test_analysis_can_be_retried_after_error():
    session = _session()
    session.select_image(_image())
    with pytest.raises(ResponseFormatError):
        asyncio.run(session.analyze(_pipeline(text="not json")))

    asyncio.run(session.analyze(_pipeline()))

    assert session.loading_state is LoadingState.SUCCESS
    assert session.error is None


def test_analyze_without_image_is_rejected():
    with pytest.raises(NoImageSelected):
        asyncio.run(_session().analyze(_pipeline()))


def test_second_analysis_while_running_is_rejected():
    session = _session()
    session.select_image(_image())
    pipeline = _GatedPipeline()

    async def scenario():
        first = asyncio.create_task(session.analyze(pipeline))
        await pipeline.started.wait()
        with pytest.raises(AnalysisInProgress):
            await session.analyze(pipeline)
        pipeline.gate.set()
        return await first

    outcome = asyncio.run(scenario())

    assert outcome is not None
    assert session.loading_state is LoadingState.SUCCESS


def test_reset_during_analysis_discards_late_result():
    session = _session()
    session.select_image(_image())
    pipeline = _GatedPipeline()

    async def scenario():
        task = asyncio.create_task(session.analyze(pipeline))
        await pipeline.started.wait()
        session.reset()
        pipeline.gate.set()
        return await task

    outcome = asyncio.run(scenario())

    assert outcome is None
    assert session.result is None
    assert session.image is None
    assert session.loading_state is LoadingState.IDLE


def test_clear_knowledge_text():
    session = _session()

    session.clear_knowledge_text()

    assert session.knowledge_text == ""


def test_capture_replaces_selected_image_and_clears_result():
    devices = _Devices()
    session = _session(devices)
    session.select_image(_image())
    asyncio.run(session.analyze(_pipeline()))

    asyncio.run(session.open_camera(FacingMode.USER))
    captured = session.capture_photo()

    assert captured is True
    assert session.image.filename == "camera_capture.jpg"
    assert session.image.mime_type == "image/jpeg"
    assert session.result is None
    assert session.camera.state is CameraState.CAPTURED
    assert not any(s.active for s in devices.streams)


def test_camera_denial_sets_camera_error_only():
    session = _session(_Devices(deny=True))
    session.select_image(_image())

    with pytest.raises(CameraPermissionError):
        asyncio.run(session.open_camera())

    assert session.camera_error == CAMERA_FAILURE_MESSAGE
    assert session.camera.state is CameraState.CLOSED

    asyncio.run(session.analyze(_pipeline()))
    assert session.loading_state is LoadingState.SUCCESS


def test_close_releases_camera():
    devices = _Devices()
    session = _session(devices)
    asyncio.run(session.open_camera())

    session.close()

    assert session.camera.state is CameraState.CLOSED
    assert not any(s.active for s in devices.streams)


def test_store_delete_closes_session_camera():
    devices = _Devices()
    store = SessionStore(devices_provider=lambda: devices)
    session = store.create()
    asyncio.run(session.open_camera())

    store.delete(session.session_id)

    assert len(store) == 0
    assert not any(s.active for s in devices.streams)
    with pytest.raises(SessionNotFound):
        store.get(session.session_id)


def test_store_close_all():
    devices = _Devices()
    store = SessionStore(devices_provider=lambda: devices)
    for _ in range(3):
        asyncio.run(store.create().open_camera())

    store.close_all()

    assert len(store) == 0
    assert len(devices.streams) == 3
    assert not any(s.active for s in devices.streams)


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_store_evicts_least_recently_used_past_capacity():
    devices = _Devices()
    store = SessionStore(devices_provider=lambda: devices, max_sessions=2, idle_ttl_s=None)
    first = store.create()
    second = store.create()
    asyncio.run(first.open_camera())
    store.get(first.session_id)  # first is now the most recent

    third = store.create()

    assert len(store) == 2
    with pytest.raises(SessionNotFound):
        store.get(second.session_id)
    assert store.get(first.session_id) is first
    assert store.get(third.session_id) is third
    assert first.camera.state is CameraState.STREAMING


def test_store_capacity_eviction_closes_the_camera():
    devices = _Devices()
    store = SessionStore(devices_provider=lambda: devices, max_sessions=1, idle_ttl_s=None)
    asyncio.run(store.create().open_camera())

    store.create()

    assert len(store) == 1
    assert not any(s.active for s in devices.streams)


def test_store_drops_idle_sessions():
    devices = _Devices()
    clock = _Clock()
    store = SessionStore(devices_provider=lambda: devices, idle_ttl_s=60.0, clock=clock)
    idle = store.create()
    asyncio.run(idle.open_camera())
    clock.now += 30
    active = store.create()

    clock.now += 45
    store.get(active.session_id)

    assert len(store) == 1
    with pytest.raises(SessionNotFound):
        store.get(idle.session_id)
    assert not any(s.active for s in devices.streams)
