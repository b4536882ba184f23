from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from engineer_assistant.analyzers.engineering_prompting import SAMPLE_KNOWLEDGE_CONTEXT
from engineer_assistant.analyzers.engineering_schema import EngineeringResponse
from engineer_assistant.analyzers.errors import AnalysisError, CameraPermissionError
from engineer_assistant.capture.camera import CameraCapture
from engineer_assistant.capture.media import FacingMode
from engineer_assistant.pipelines.analysis_pipeline import AnalysisPipeline, AnalysisPipelineResult
from engineer_assistant.preprocessing.image_input import ImagePayload

logger = logging.getLogger(__name__)


class LoadingState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    SUCCESS = "success"
    ERROR = "error"


class NoImageSelected(RuntimeError):
    code = "no_image_selected"


class AnalysisInProgress(RuntimeError):
    code = "analysis_in_progress"


class AnalysisSession:
    """
    State of one interactive view: the chosen image, the knowledge text, the
    camera flow, and the outcome of the last analysis.

    Re-entrancy is guarded by `loading_state` (no second analysis while one is
    running). reset() bumps an epoch so a result arriving afterwards is dropped.
    """

    def __init__(self, session_id: str, camera: CameraCapture, knowledge_text: str = SAMPLE_KNOWLEDGE_CONTEXT):
        self.session_id = session_id
        self.camera = camera
        self.knowledge_text = knowledge_text
        self.image: Optional[ImagePayload] = None
        self.result: Optional[EngineeringResponse] = None
        self.error: Optional[str] = None
        self.camera_error: Optional[str] = None
        self.loading_state = LoadingState.IDLE
        self._epoch = 0

    # ---------- inputs ----------

    def select_image(self, image: ImagePayload) -> None:
        self.image = image
        self.result = None
        self.error = None

    def remove_image(self) -> None:
        self.image = None

    def set_knowledge_text(self, text: str) -> None:
        self.knowledge_text = text

    def clear_knowledge_text(self) -> None:
        self.knowledge_text = ""

    # ---------- camera ----------

    async def open_camera(self, facing_mode: FacingMode = FacingMode.ENVIRONMENT) -> None:
        self.camera_error = None
        try:
            await self.camera.open(facing_mode)
        except CameraPermissionError as e:
            self.camera_error = e.user_message
            raise

    async def toggle_camera(self) -> None:
        self.camera_error = None
        try:
            await self.camera.toggle()
        except CameraPermissionError as e:
            self.camera_error = e.user_message
            raise

    def capture_photo(self) -> bool:
        """True when a frame was captured and became the selected image."""
        image = self.camera.capture()
        if image is None:
            return False
        self.select_image(image)
        return True

    def close_camera(self) -> None:
        self.camera.close()

    # ---------- analysis ----------

    async def analyze(self, pipeline: AnalysisPipeline) -> Optional[AnalysisPipelineResult]:
        """
        Run one analysis on the selected image.

        Returns None when the session was reset while the call was in flight.
        AnalysisError is recorded as the session error and re-raised; the image
        selection is never cleared by a failure.
        """
        if self.image is None:
            raise NoImageSelected("Select or capture an image first")
        if self.loading_state is LoadingState.ANALYZING:
            raise AnalysisInProgress("An analysis is already running for this session")

        epoch = self._epoch
        self.loading_state = LoadingState.ANALYZING
        self.error = None

        try:
            outcome = await pipeline.run(self.image, self.knowledge_text)
        except AnalysisError as e:
            if epoch == self._epoch:
                self.error = e.user_message
                self.loading_state = LoadingState.ERROR
            raise
        except BaseException:
            if epoch == self._epoch:
                self.loading_state = LoadingState.IDLE
            raise

        if epoch != self._epoch:
            logger.info("analysis_result_discarded reason=reset")
            return None

        self.result = outcome.response
        self.loading_state = LoadingState.SUCCESS
        return outcome

    def reset(self) -> None:
        self._epoch += 1
        self.image = None
        self.result = None
        self.error = None
        self.loading_state = LoadingState.IDLE

    def close(self) -> None:
        """Teardown: the camera is always released."""
        self._epoch += 1
        self.camera.close()
