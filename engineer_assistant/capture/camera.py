"""
Camera capture flow.

    CLOSED -> REQUESTING -> STREAMING -> CAPTURED
                  |             |  ^
                  v             |  | toggle (release, then re-acquire)
                CLOSED <--------+--+

The flow owns at most one stream. Every way out of STREAMING releases it
before anything else is acquired; close() is safe to call from any state.
"""

from __future__ import annotations

import io
import logging
from enum import Enum
from typing import Optional

from PIL import Image, ImageOps

from engineer_assistant.analyzers.errors import CameraPermissionError, CameraStateError
from engineer_assistant.capture.media import FacingMode, MediaDevices, MediaStream
from engineer_assistant.observability.metrics import CAMERA_EVENTS_TOTAL
from engineer_assistant.preprocessing.image_input import ImagePayload

logger = logging.getLogger(__name__)

CAPTURE_FILENAME = "camera_capture.jpg"
CAPTURE_MIME = "image/jpeg"


class CameraState(str, Enum):
    CLOSED = "closed"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    CAPTURED = "captured"


class CameraCapture:
    def __init__(self, devices: MediaDevices, *, jpeg_quality: int = 95):
        self._devices = devices
        self._jpeg_quality = jpeg_quality
        self._stream: Optional[MediaStream] = None
        self._state = CameraState.CLOSED
        self._facing_mode = FacingMode.ENVIRONMENT
        # bumped by open() and close(); a request resolving under an older epoch is discarded
        self._epoch = 0

    @property
    def state(self) -> CameraState:
        return self._state

    @property
    def facing_mode(self) -> FacingMode:
        return self._facing_mode

    @property
    def stream(self) -> Optional[MediaStream]:
        return self._stream

    async def open(self, facing_mode: FacingMode = FacingMode.ENVIRONMENT) -> None:
        """
        Acquire a stream for `facing_mode`. An already streaming flow releases
        its current stream first.

        On denial the flow is CLOSED and CameraPermissionError is raised.
        """
        self._release()
        self._state = CameraState.REQUESTING
        self._epoch += 1
        epoch = self._epoch

        try:
            stream = await self._devices.get_user_media(facing_mode)
        except CameraPermissionError:
            self._fail(facing_mode, epoch)
            raise
        except Exception as e:
            self._fail(facing_mode, epoch)
            raise CameraPermissionError(f"{type(e).__name__}: {e}") from e
        except BaseException:
            # cancelled while waiting for the device
            if self._epoch == epoch:
                self._state = CameraState.CLOSED
            raise

        if self._epoch != epoch:
            # superseded by close() or a newer open() while pending
            stream.stop()
            logger.info("camera_discarded facing_mode=%s", facing_mode.value)
            return

        self._stream = stream
        self._facing_mode = facing_mode
        self._state = CameraState.STREAMING
        CAMERA_EVENTS_TOTAL.labels(event="opened", facing_mode=facing_mode.value).inc()
        logger.info("camera_opened facing_mode=%s", facing_mode.value)

    async def toggle(self) -> None:
        if self._state is not CameraState.STREAMING:
            raise CameraStateError(f"Cannot toggle camera in state {self._state.value}")
        await self.open(self._facing_mode.opposite())

    def capture(self) -> Optional[ImagePayload]:
        """
        Snapshot the current frame at the stream's native resolution as JPEG.

        Returns None, without any state change, while the stream has no frame
        yet. Front-facing captures are mirrored so the image matches the preview.
        """
        if self._state is not CameraState.STREAMING or self._stream is None:
            raise CameraStateError(f"Cannot capture in state {self._state.value}")

        stream = self._stream
        width, height = stream.video_width, stream.video_height
        if width <= 0 or height <= 0:
            return None

        frame = stream.read_frame()
        if frame is None or frame.size == 0:
            return None

        img = Image.fromarray(frame).convert("RGB")
        if img.size != (width, height):
            img = img.resize((width, height), Image.BILINEAR)
        if self._facing_mode is FacingMode.USER:
            img = ImageOps.mirror(img)

        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=self._jpeg_quality)

        self._release()
        self._state = CameraState.CAPTURED
        CAMERA_EVENTS_TOTAL.labels(event="captured", facing_mode=self._facing_mode.value).inc()
        logger.info("camera_captured facing_mode=%s size=%dx%d", self._facing_mode.value, width, height)

        return ImagePayload(
            data=buf.getvalue(),
            mime_type=CAPTURE_MIME,
            filename=CAPTURE_FILENAME,
            width=width,
            height=height,
        )

    def close(self) -> None:
        self._epoch += 1
        had_stream = self._stream is not None
        self._release()
        self._state = CameraState.CLOSED
        if had_stream:
            CAMERA_EVENTS_TOTAL.labels(event="closed", facing_mode=self._facing_mode.value).inc()
            logger.info("camera_closed facing_mode=%s", self._facing_mode.value)

    async def __aenter__(self) -> "CameraCapture":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -----------------------------
    # internals
    # -----------------------------

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()

    def _fail(self, facing_mode: FacingMode, epoch: int) -> None:
        if self._epoch == epoch:
            self._state = CameraState.CLOSED
        CAMERA_EVENTS_TOTAL.labels(event="denied", facing_mode=facing_mode.value).inc()
        logger.warning("camera_denied facing_mode=%s", facing_mode.value)
