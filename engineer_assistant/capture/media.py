from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

import numpy as np


class FacingMode(str, Enum):
    ENVIRONMENT = "environment"
    USER = "user"

    def opposite(self) -> "FacingMode":
        return FacingMode.USER if self is FacingMode.ENVIRONMENT else FacingMode.ENVIRONMENT


class MediaStream(Protocol):
    """
    A live video stream. Holding one means holding the camera.

    video_width / video_height are 0 until the first frame arrives.
    read_frame returns an RGB uint8 array of shape (H, W, 3), or None.
    """
    facing_mode: FacingMode

    @property
    def video_width(self) -> int:
        ...

    @property
    def video_height(self) -> int:
        ...

    @property
    def active(self) -> bool:
        ...

    def read_frame(self) -> Optional[np.ndarray]:
        ...

    def stop(self) -> None:
        ...


class MediaDevices(Protocol):
    """Acquires streams. Raises CameraPermissionError on denial or absence."""

    async def get_user_media(self, facing_mode: FacingMode) -> MediaStream:
        ...
