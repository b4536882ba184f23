import asyncio
import io

import pytest
from fastapi import HTTPException, UploadFile
from PIL import Image
from starlette.datastructures import Headers

from engineer_assistant.preprocessing.image_input import build_image_payload, load_image_upload


def _make_png_bytes(width: int = 40, height: int = 20) -> bytes:
    img = Image.new("RGB", (width, height), color=(10, 20, 30))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def test_valid_png_keeps_bytes_and_reads_dimensions():
    png = _make_png_bytes()

    image = build_image_payload(png, "image/png", "scan.png")

    assert image.data == png
    assert image.mime_type == "image/png"
    assert (image.width, image.height) == (40, 20)
    assert image.size_bytes == len(png)


def test_content_type_parameters_are_ignored():
    image = build_image_payload(_make_png_bytes(), "Image/PNG; charset=binary", "scan.png")

    assert image.mime_type == "image/png"


def test_non_image_content_type_returns_400():
    with pytest.raises(HTTPException) as e:
        build_image_payload(b"%PDF-1.7", "application/pdf", "doc.pdf")

    assert e.value.status_code == 400
    assert e.value.detail["code"] == "unsupported_file_type"


def test_empty_upload_returns_422():
    with pytest.raises(HTTPException) as e:
        build_image_payload(b"", "image/png", "empty.png")

    assert e.value.status_code == 422


def test_oversized_upload_returns_413():
    data = b"\x00" * (1024 * 1024 + 1)

    with pytest.raises(HTTPException) as e:
        build_image_payload(data, "image/png", "huge.png", max_mb=1)

    assert e.value.status_code == 413
    assert e.value.detail["code"] == "payload_too_large"


def test_corrupted_known_format_returns_422():
    with pytest.raises(HTTPException) as e:
        build_image_payload(b"definitely not a png" * 8, "image/png", "broken.png")

    assert e.value.status_code == 422
    assert e.value.detail["code"] == "unprocessable_input"


def test_unknown_image_subtype_is_passed_through():
    data = b"\x00\x00\x00\x18ftypheic" + b"\x00" * 32

    image = build_image_payload(data, "image/heic", "photo.heic")

    assert image.data == data
    assert image.width is None and image.height is None


def test_load_image_upload_reads_the_multipart_file():
    png = _make_png_bytes()
    upload = UploadFile(
        file=io.BytesIO(png),
        filename="scan.png",
        headers=Headers({"content-type": "image/png"}),
    )

    image = asyncio.run(load_image_upload(upload))

    assert image.filename == "scan.png"
    assert image.data == png


def test_pixel_bomb_returns_413_instead_of_crashing(monkeypatch):
    # a tiny file that decodes to more pixels than the decoder allows
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

    with pytest.raises(HTTPException) as e:
        build_image_payload(_make_png_bytes(64, 32), "image/png", "bomb.png")

    assert e.value.status_code == 413
    assert e.value.detail["code"] == "payload_too_large"
