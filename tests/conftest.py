"""Shared fixtures: temporary storage, generated images and seeded stores."""

import base64
import io
from pathlib import Path
from typing import List, Tuple

import pytest
import pytest_asyncio
from PIL import Image

from stripbooth.config import Settings, ensure_directories
from stripbooth.models.photo import Photo
from stripbooth.models.session import PhotoSession
from stripbooth.models.template import PhotoSlot, Template, TemplateDimensions
from stripbooth.services.photostrip import PhotostripService
from stripbooth.services.storage import LocalBlobStore
from stripbooth.services.store import PhotoStore, SessionStore, TemplateStore

PHOTO_COLORS = [
    (220, 40, 40),
    (40, 180, 60),
    (40, 80, 220),
    (230, 200, 40),
    (160, 60, 200),
    (30, 200, 200),
]


def image_bytes(size: Tuple[int, int] = (320, 240), color=(200, 80, 40), fmt: str = "JPEG") -> bytes:
    mode = "RGBA" if fmt == "PNG" and len(color) == 4 else "RGB"
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def data_url(data: bytes, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode()}"


def strip_slots(count: int = 4, width: int = 1200, height: int = 1800, pad: int = 60, gap: int = 40) -> List[PhotoSlot]:
    slot_height = (height - 2 * pad - (count - 1) * gap) / count
    return [
        PhotoSlot(x=pad, y=pad + i * (slot_height + gap), width=width - 2 * pad, height=slot_height)
        for i in range(count)
    ]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    settings = Settings(
        storage_dir=str(tmp_path / "uploads"),
        debug=True,
        log_level="WARNING",
        debug_dump_dir=None,
    )
    ensure_directories(settings)
    return settings


@pytest.fixture
def blobs(settings: Settings) -> LocalBlobStore:
    return LocalBlobStore(settings.storage_path, settings.public_url_prefix)


@pytest.fixture
def sessions() -> SessionStore:
    return SessionStore()


@pytest.fixture
def photos() -> PhotoStore:
    return PhotoStore()


@pytest.fixture
def templates() -> TemplateStore:
    return TemplateStore()


@pytest.fixture
def photostrip_service(settings, sessions, photos, templates, blobs) -> PhotostripService:
    return PhotostripService(settings, sessions, photos, templates, blobs)


@pytest_asyncio.fixture
async def template(templates: TemplateStore, blobs: LocalBlobStore) -> Template:
    """A white 1200x1800 strip template with four authored slots."""
    key = await blobs.write("templates/strip.png", image_bytes((1200, 1800), (255, 255, 255), "PNG"))
    return await templates.add(Template(
        name="Strip",
        filename="strip.png",
        path=key,
        dimensions=TemplateDimensions(width=1200, height=1800),
        photo_slots=strip_slots(),
    ))


@pytest_asyncio.fixture
async def session(sessions: SessionStore, template: Template) -> PhotoSession:
    return await sessions.add(PhotoSession(template_id=template.id))


@pytest_asyncio.fixture
async def session_photos(session: PhotoSession, photos: PhotoStore, blobs: LocalBlobStore) -> List[Photo]:
    stored = []
    for number, color in enumerate(PHOTO_COLORS, start=1):
        key = await blobs.write(f"photos/photo-{number}.jpg", image_bytes(color=color))
        stored.append(await photos.add(Photo(
            session_id=session.session_id,
            filename=f"photo-{number}.jpg",
            path=key,
            photo_number=number,
        )))
    session.total_photos = len(stored)
    return stored
