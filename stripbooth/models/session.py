import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import Field

from stripbooth.models.base import CamelModel


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


class SessionSettings(CamelModel):
    photo_interval: int = 15000
    max_photos: int = 10
    auto_advance: bool = True


class SessionMetadata(CamelModel):
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    duration: Optional[int] = None  # milliseconds


class PhotoSession(CamelModel):
    session_id: str = Field(default_factory=new_session_id)
    user_id: Optional[str] = None
    status: SessionStatus = SessionStatus.active
    total_photos: int = 0
    selected_photos: List[str] = []
    template_id: Optional[str] = None
    photostrip_path: Optional[str] = None
    photos_only_path: Optional[str] = None
    settings: SessionSettings = Field(default_factory=SessionSettings)
    metadata: SessionMetadata = Field(default_factory=SessionMetadata)
    created_at: datetime = Field(default_factory=utcnow)

    def mark_completed(self, at: Optional[datetime] = None) -> None:
        self.status = SessionStatus.completed
        self.metadata.end_time = at or utcnow()
        start = self.metadata.start_time
        self.metadata.duration = int((self.metadata.end_time - start).total_seconds() * 1000)


class SessionCreateRequest(CamelModel):
    user_id: Optional[str] = None
    settings: Optional[SessionSettings] = None


class SessionUpdateRequest(CamelModel):
    status: Optional[SessionStatus] = None
    template_id: Optional[str] = None
    selected_photos: Optional[List[str]] = None


class SessionSummary(CamelModel):
    id: str
    status: SessionStatus
    total_photos: int = 0
    selected_photos: List[str] = []
    template_id: Optional[str] = None
    photostrip_path: Optional[str] = None
    photos_only_path: Optional[str] = None
    settings: Optional[SessionSettings] = None
    metadata: Optional[SessionMetadata] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_session(cls, session: PhotoSession) -> "SessionSummary":
        return cls(
            id=session.session_id,
            status=session.status,
            total_photos=session.total_photos,
            selected_photos=session.selected_photos,
            template_id=session.template_id,
            photostrip_path=session.photostrip_path,
            photos_only_path=session.photos_only_path,
            settings=session.settings,
            metadata=session.metadata,
            created_at=session.created_at,
        )


class SessionResponse(CamelModel):
    message: Optional[str] = None
    session: SessionSummary
