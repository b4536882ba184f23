from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import HTTPException, UploadFile
from PIL import Image, UnidentifiedImageError


@dataclass(frozen=True)
class ImagePayload:
    """One image ready to be sent to the backend, bytes untouched."""
    data: bytes
    mime_type: str
    filename: str
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def _mb_to_bytes(mb: int) -> int:
    return mb * 1024 * 1024


def _probe_dimensions(data: bytes, mime_type: str) -> Tuple[Optional[int], Optional[int]]:
    """
    Decode just enough to read the dimensions.

    Formats Pillow knows must decode; other image/* types (e.g. HEIC) are
    passed through without dimensions and left for the backend to judge.
    """
    Image.init()
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            return img.size
    except Image.DecompressionBombError:
        raise HTTPException(
            status_code=413,
            detail={"code": "payload_too_large", "message": "Image pixel count exceeds the decoder limit"},
        )
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        if mime_type in set(Image.MIME.values()):
            raise HTTPException(
                status_code=422,
                detail={"code": "unprocessable_input", "message": "Invalid or corrupted image"},
            )
        return None, None


def build_image_payload(data: bytes, mime_type: str, filename: str, *, max_mb: int = 10) -> ImagePayload:
    """
    Validate raw image bytes:
    - any image/* content type is accepted
    - size limit
    - bytes of Pillow-known formats must decode
    """
    mime = (mime_type or "").split(";")[0].strip().lower()
    if not mime.startswith("image/"):
        raise HTTPException(
            status_code=400,
            detail={"code": "unsupported_file_type", "message": f"Unsupported content_type={mime_type}"},
        )

    if not data:
        raise HTTPException(
            status_code=422,
            detail={"code": "unprocessable_input", "message": "Empty image upload"},
        )

    if len(data) > _mb_to_bytes(max_mb):
        raise HTTPException(
            status_code=413,
            detail={"code": "payload_too_large", "message": f"Image exceeds max size of {max_mb}MB"},
        )

    width, height = _probe_dimensions(data, mime)
    return ImagePayload(data=data, mime_type=mime, filename=filename or "upload", width=width, height=height)


async def load_image_upload(file: UploadFile, *, max_mb: int = 10) -> ImagePayload:
    data = await file.read()
    return build_image_payload(data, file.content_type or "", file.filename or "upload", max_mb=max_mb)
