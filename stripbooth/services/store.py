"""In-memory record stores for sessions, photos and templates."""

from typing import Dict, List, Optional, Sequence

from stripbooth.errors import PhotoNotFoundError, SessionNotFoundError, TemplateNotFoundError
from stripbooth.models.photo import Photo
from stripbooth.models.session import PhotoSession
from stripbooth.models.template import Template, TemplateCategory


class SessionStore:
    def __init__(self):
        self._sessions: Dict[str, PhotoSession] = {}

    async def add(self, session: PhotoSession) -> PhotoSession:
        self._sessions[session.session_id] = session
        return session

    async def find(self, session_id: str) -> Optional[PhotoSession]:
        return self._sessions.get(session_id)

    async def get(self, session_id: str) -> PhotoSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def update(self, session: PhotoSession) -> PhotoSession:
        if session.session_id not in self._sessions:
            raise SessionNotFoundError(session.session_id)
        self._sessions[session.session_id] = session
        return session


class PhotoStore:
    def __init__(self):
        self._photos: Dict[str, Photo] = {}

    async def add(self, photo: Photo) -> Photo:
        self._photos[photo.id] = photo
        return photo

    async def get(self, photo_id: str) -> Photo:
        photo = self._photos.get(photo_id)
        if photo is None:
            raise PhotoNotFoundError(photo_id)
        return photo

    async def update(self, photo: Photo) -> Photo:
        if photo.id not in self._photos:
            raise PhotoNotFoundError(photo.id)
        self._photos[photo.id] = photo
        return photo

    async def list_for_session(self, session_id: str) -> List[Photo]:
        photos = [p for p in self._photos.values() if p.session_id == session_id]
        return sorted(photos, key=lambda p: p.photo_number)

    async def get_many(self, session_id: str, photo_ids: Sequence[str]) -> List[Photo]:
        """Photos of the session among photo_ids, in the order of photo_ids; unknown ids are left out."""
        found = []
        for photo_id in dict.fromkeys(photo_ids):
            photo = self._photos.get(photo_id)
            if photo is not None and photo.session_id == session_id:
                found.append(photo)
        return found

    async def set_selection(self, session_id: str, photo_ids: Sequence[str]) -> List[Photo]:
        wanted = set(photo_ids)
        for photo in await self.list_for_session(session_id):
            photo.is_selected = photo.id in wanted
        return await self.list_for_session(session_id)


class TemplateStore:
    def __init__(self):
        self._templates: Dict[str, Template] = {}

    async def add(self, template: Template) -> Template:
        if template.is_default:
            await self.clear_default()
        self._templates[template.id] = template
        return template

    async def get(self, template_id: str) -> Template:
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    async def update(self, template: Template) -> Template:
        if template.id not in self._templates:
            raise TemplateNotFoundError(template.id)
        if template.is_default:
            await self.clear_default(except_id=template.id)
        self._templates[template.id] = template
        return template

    async def clear_default(self, except_id: Optional[str] = None) -> None:
        for template in self._templates.values():
            if template.id != except_id:
                template.is_default = False

    async def list_active(self, category: Optional[TemplateCategory] = None) -> List[Template]:
        templates = [
            t for t in self._templates.values()
            if t.is_active and (category is None or t.category == category)
        ]
        # defaults first, then most used, then newest
        return sorted(
            templates,
            key=lambda t: (not t.is_default, -t.usage_count, -t.created_at.timestamp()),
        )

    async def categories(self) -> Dict[TemplateCategory, int]:
        counts: Dict[TemplateCategory, int] = {}
        for template in self._templates.values():
            if template.is_active:
                counts[template.category] = counts.get(template.category, 0) + 1
        return counts

    async def increment_usage(self, template_id: str) -> int:
        template = await self.get(template_id)
        template.usage_count += 1
        return template.usage_count
