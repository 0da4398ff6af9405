import asyncio
import base64
import binascii
import io
import re
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from stripbooth.config import Settings
from stripbooth.errors import ValidationError
from stripbooth.models.photo import Photo, PhotoFilters, PhotoMetadata, PhotoUploadRequest
from stripbooth.models.session import PhotoSession
from stripbooth.services.imaging import decode_image
from stripbooth.services.storage import LocalBlobStore
from stripbooth.services.store import PhotoStore, SessionStore

DATA_URL_PATTERN = re.compile(r"^data:([A-Za-z0-9.+/-]+);base64,(.+)$", re.DOTALL)


def decode_base64_image(data: str) -> Tuple[bytes, Optional[str]]:
    """Decode a data URL or raw base64 payload; returns the bytes and the declared MIME type."""
    data = (data or "").strip()
    match = DATA_URL_PATTERN.match(data)
    mime_type, payload = (match.group(1), match.group(2)) if match else (None, data)
    try:
        raw = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Invalid base64 data", details={"reason": str(e)}) from e
    if not raw:
        raise ValidationError("No photo data provided")
    return raw, mime_type


def normalize_photo(raw: bytes, quality: int) -> Tuple[bytes, int, int, Optional[str]]:
    """Re-encode an upload as an upright JPEG; returns bytes, width, height and the source format."""
    try:
        source_format = Image.open(io.BytesIO(raw)).format
        img = decode_image(raw)
    except (ValueError, OSError, Image.DecompressionBombError) as e:
        raise ValidationError("Uploaded data is not a readable image", details={"reason": str(e)}) from e

    buffer = io.BytesIO()
    img.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue(), img.width, img.height, source_format


class PhotoService:
    def __init__(self, settings: Settings, sessions: SessionStore, photos: PhotoStore, blobs: LocalBlobStore):
        self.settings = settings
        self.sessions = sessions
        self.photos = photos
        self.blobs = blobs

    async def upload(
        self,
        request: PhotoUploadRequest,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Tuple[Photo, PhotoSession]:
        raw, _ = decode_base64_image(request.base64_data)
        if len(raw) > self.settings.max_upload_bytes:
            raise ValidationError(
                "Photo exceeds the upload size limit",
                details={"size": len(raw), "limit": self.settings.max_upload_bytes},
            )

        session = await self.sessions.find(request.session_id)
        if session is None:
            session = PhotoSession(session_id=request.session_id)
            session.metadata.user_agent = user_agent
            session.metadata.ip_address = ip_address
            await self.sessions.add(session)
            logger.info(f"Created session {session.session_id} on first upload")

        if session.total_photos >= self.settings.max_photos_per_session:
            raise ValidationError(
                "Maximum photos reached for this session",
                details={"session_id": session.session_id, "limit": self.settings.max_photos_per_session},
            )

        # claim the slot before yielding so concurrent uploads see it
        session.total_photos += 1
        photo_number = session.total_photos
        try:
            loop = asyncio.get_running_loop()
            data, width, height, source_format = await loop.run_in_executor(
                None, normalize_photo, raw, self.settings.photo_quality)

            filename = f"photo_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}.jpg"
            key = await self.blobs.write_new(f"{self.settings.photos_subdir}/{filename}", data)
        except Exception:
            session.total_photos -= 1
            raise

        photo = Photo(
            session_id=session.session_id,
            filename=key.rsplit("/", 1)[-1],
            path=key,
            size=len(data),
            mime_type="image/jpeg",
            photo_number=photo_number,
            metadata=PhotoMetadata(width=width, height=height, format=(source_format or "jpeg").lower()),
        )
        await self.photos.add(photo)
        await self.sessions.update(session)

        logger.info(f"Stored photo {photo.photo_number} for session {session.session_id} at {key}")
        return photo, session

    async def select(self, session_id: str, photo_ids: List[str]) -> Tuple[PhotoSession, List[Photo]]:
        session = await self.sessions.get(session_id)
        photos = await self.photos.set_selection(session_id, photo_ids)
        session.selected_photos = list(photo_ids)
        await self.sessions.update(session)
        return session, photos

    async def apply_filters(self, photo_id: str, filters: Dict[str, Any]) -> Photo:
        """Merge partial filter settings into the photo's current ones."""
        photo = await self.photos.get(photo_id)
        try:
            photo.filters = PhotoFilters.model_validate({**photo.filters.model_dump(), **filters})
        except PydanticValidationError as e:
            raise ValidationError("Invalid filter settings", details={"errors": e.errors(include_url=False)}) from e
        return await self.photos.update(photo)
