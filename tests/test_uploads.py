"""Tests for photo and template ingestion."""

import asyncio

import pytest
from PIL import Image

from stripbooth.errors import ValidationError
from stripbooth.models.photo import PhotoUploadRequest
from stripbooth.services.photo import PhotoService, decode_base64_image, normalize_photo
from stripbooth.services.template import inspect_template

from conftest import data_url, image_bytes


@pytest.fixture
def photo_service(settings, sessions, photos, blobs) -> PhotoService:
    return PhotoService(settings, sessions, photos, blobs)


@pytest.fixture
def tiny_pixel_limit(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)


def upload_request(session_id="s1", data=None) -> PhotoUploadRequest:
    return PhotoUploadRequest(session_id=session_id, base64_data=data or data_url(image_bytes()))


class TestDecoding:

    def test_data_url(self):
        raw, mime_type = decode_base64_image(data_url(b"abc", "image/png"))
        assert (raw, mime_type) == (b"abc", "image/png")

    def test_empty_payload(self):
        with pytest.raises(ValidationError):
            decode_base64_image("data:image/png;base64,")

    def test_png_is_reencoded_as_jpeg(self):
        data, width, height, source_format = normalize_photo(image_bytes((64, 48), fmt="PNG"), 85)
        assert data[:2] == b"\xff\xd8"
        assert (width, height, source_format) == (64, 48, "PNG")

    def test_oversized_photo_is_rejected(self, tiny_pixel_limit):
        with pytest.raises(ValidationError) as exc_info:
            normalize_photo(image_bytes((320, 240)), 85)
        assert exc_info.value.status_code == 400

    def test_oversized_template_is_rejected(self, tiny_pixel_limit):
        with pytest.raises(ValidationError):
            inspect_template(image_bytes((320, 240), fmt="PNG"))


class TestUpload:

    @pytest.mark.asyncio
    async def test_concurrent_uploads_respect_the_limit(self, photo_service, settings, sessions, photos):
        settings.max_photos_per_session = 2
        results = await asyncio.gather(
            *(photo_service.upload(upload_request()) for _ in range(3)),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        stored = [r[0] for r in results if not isinstance(r, Exception)]
        assert len(errors) == 1 and isinstance(errors[0], ValidationError)
        assert sorted(photo.photo_number for photo in stored) == [1, 2]
        assert (await sessions.get("s1")).total_photos == 2
        assert len(await photos.list_for_session("s1")) == 2

    @pytest.mark.asyncio
    async def test_failed_upload_releases_its_slot(self, photo_service, sessions):
        with pytest.raises(ValidationError):
            await photo_service.upload(upload_request(data="aGVsbG8="))
        assert (await sessions.get("s1")).total_photos == 0

        photo, session = await photo_service.upload(upload_request())
        assert photo.photo_number == 1
        assert session.total_photos == 1
