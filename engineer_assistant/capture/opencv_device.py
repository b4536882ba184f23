from __future__ import annotations

import logging
from typing import Dict, Optional

import anyio
import numpy as np

from engineer_assistant.analyzers.errors import CameraPermissionError
from engineer_assistant.capture.media import FacingMode

logger = logging.getLogger(__name__)


class OpenCVStream:
    """A cv2.VideoCapture handle. stop() releases the device."""

    def __init__(self, capture, facing_mode: FacingMode):
        self._capture = capture
        self.facing_mode = facing_mode

    def _prop(self, prop_id: int) -> int:
        if self._capture is None:
            return 0
        return int(self._capture.get(prop_id) or 0)

    @property
    def video_width(self) -> int:
        import cv2

        return self._prop(cv2.CAP_PROP_FRAME_WIDTH)

    @property
    def video_height(self) -> int:
        import cv2

        return self._prop(cv2.CAP_PROP_FRAME_HEIGHT)

    @property
    def active(self) -> bool:
        return self._capture is not None

    def read_frame(self) -> Optional[np.ndarray]:
        import cv2

        if self._capture is None:
            return None
        ok, frame = self._capture.read()
        if not ok or frame is None:
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def stop(self) -> None:
        capture, self._capture = self._capture, None
        if capture is not None:
            capture.release()


class OpenCVMediaDevices:
    """
    Camera access through OpenCV.

    Facing modes map to device indices (config: CAMERA_INDEX_ENVIRONMENT,
    CAMERA_INDEX_USER). cv2 is imported lazily so the service starts without
    the optional `camera` extra; opening a camera then fails like a denial.
    """

    def __init__(self, indices: Dict[FacingMode, int]):
        self._indices = dict(indices)

    async def get_user_media(self, facing_mode: FacingMode) -> OpenCVStream:
        return await anyio.to_thread.run_sync(self._open, facing_mode)

    def _open(self, facing_mode: FacingMode) -> OpenCVStream:
        try:
            import cv2
        except ImportError as e:
            raise CameraPermissionError("OpenCV is not installed (pip install '.[camera]')") from e

        index = self._indices.get(facing_mode)
        if index is None:
            raise CameraPermissionError(f"No camera configured for facing_mode={facing_mode.value}")

        capture = cv2.VideoCapture(index)
        if not capture.isOpened():
            capture.release()
            raise CameraPermissionError(f"Camera {index} unavailable or access denied")

        logger.info("camera_device_opened index=%d facing_mode=%s", index, facing_mode.value)
        return OpenCVStream(capture, facing_mode)
