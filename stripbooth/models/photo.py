import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from stripbooth.models.base import CamelModel
from stripbooth.models.session import SessionSummary, utcnow


class PhotoFilters(CamelModel):
    brightness: float = 100
    contrast: float = 100
    saturation: float = 100
    blur: float = Field(default=0, ge=0)
    grayscale: bool = False
    sepia: bool = False
    vintage: bool = False

    @property
    def is_neutral(self) -> bool:
        return (
            self.brightness == 100
            and self.contrast == 100
            and self.saturation == 100
            and self.blur == 0
            and not (self.grayscale or self.sepia or self.vintage)
        )


class PhotoMetadata(CamelModel):
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None


class Photo(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    session_id: str
    filename: str
    path: Optional[str] = None
    size: int = 0
    mime_type: str = "image/jpeg"
    photo_number: int = Field(ge=1)
    is_selected: bool = False
    filters: PhotoFilters = Field(default_factory=PhotoFilters)
    metadata: PhotoMetadata = Field(default_factory=PhotoMetadata)
    created_at: datetime = Field(default_factory=utcnow)


class PhotoUploadRequest(CamelModel):
    session_id: str
    base64_data: str


class PhotoSelectionRequest(CamelModel):
    session_id: str
    photo_ids: List[str]


class PhotoUploadResponse(CamelModel):
    message: str
    photo: Photo
    session: SessionSummary


class SessionPhotosResponse(CamelModel):
    session: SessionSummary
    photos: List[Photo]
