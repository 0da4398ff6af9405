"""
Photostrip generation.

PhotostripService.generate runs one request end to end: validate, load the
session / template / photos, resolve slots, adjust every photo, composite,
write the file exactly once, then do the bookkeeping. Nothing is persisted
unless the image was rendered; bookkeeping after the write is best-effort.
"""

import asyncio
import time
from typing import List, Optional, Sequence, Tuple

from PIL import Image
from loguru import logger

from stripbooth.config import Settings
from stripbooth.errors import (
    DuplicatePhotoSelectionError,
    PersistenceError,
    PhotoProcessingError,
    PhotoSelectionMismatchError,
    ProcessingError,
    StripBoothError,
    ValidationError,
)
from stripbooth.models.photo import Photo
from stripbooth.models.photostrip import Customization, OutputFormat, PhotostripRequest, PhotostripResult
from stripbooth.models.session import PhotoSession
from stripbooth.models.template import Template
from stripbooth.services.adjustments import adjust_photo
from stripbooth.services.compositor import Compositor, PhotoLayer
from stripbooth.services.geometry import SlotLayout, resolve_dimensions, resolve_slots
from stripbooth.services.imaging import decode_image, encode_image
from stripbooth.services.inspection import PipelineObserver
from stripbooth.services.storage import LocalBlobStore
from stripbooth.services.store import PhotoStore, SessionStore, TemplateStore


class PhotostripService:
    def __init__(
        self,
        settings: Settings,
        sessions: SessionStore,
        photos: PhotoStore,
        templates: TemplateStore,
        blobs: LocalBlobStore,
        observer: Optional[PipelineObserver] = None,
    ):
        self.settings = settings
        self.sessions = sessions
        self.photos = photos
        self.templates = templates
        self.blobs = blobs
        self.observer = observer or PipelineObserver()

    async def generate(self, session_id: str, request: PhotostripRequest) -> PhotostripResult:
        if not request.selected_photo_ids:
            raise ValidationError("At least one selected photo is required", details={"session_id": session_id})

        session = await self.sessions.get(session_id)
        template_id = request.template_id or session.template_id
        if not template_id:
            raise ValidationError("No template selected for this session", details={"session_id": session_id})
        template = await self.templates.get(template_id)
        photos = await self._load_photos(session_id, request.selected_photo_ids)

        customization = request.customization
        width, height = resolve_dimensions(
            request.target_width,
            request.target_height,
            request.force_orientation,
            template,
            self.settings.default_width,
            self.settings.default_height,
        )
        slot_layout = resolve_slots(template, len(photos), width, height, request.layout, customization)

        stamp = int(time.time() * 1000)
        run_id = f"{session_id}-{stamp}"
        logger.info(
            f"[{run_id}] Generating photostrip: {len(photos)} photo(s), {width}x{height}, "
            f"layout={slot_layout.layout.value}, slots from {slot_layout.source}"
        )
        try:
            self.observer.slots_resolved(run_id, slot_layout)

            template_image = await self._load_template_image(template, customization)
            sources = await self._read_sources(photos)
            layers = await self._adjust_all(photos, sources, slot_layout, customization, run_id)

            loop = asyncio.get_running_loop()
            compositor = Compositor(customization)
            image, placements = await loop.run_in_executor(
                None, self._render, compositor, layers, slot_layout, template_image, width, height, run_id)
            quality = self.settings.clamp_quality(customization.quality)
            data = await loop.run_in_executor(None, compositor.encode, image, quality)

            ext = compositor.output_format.extension
            key = await self.blobs.write_new(
                f"{self.settings.photostrips_subdir}/photostrip-{session_id}-{stamp}.{ext}", data)
            self.observer.written(run_id, key)
            logger.info(f"[{run_id}] Photostrip written to {key} ({len(data)} bytes, {placements} placement(s))")

            photos_only_key = await self._store_photos_only(
                self.observer.artifacts(run_id).get("photos_only"), session_id, stamp, run_id)
        finally:
            self.observer.finished(run_id)

        await self._record_session(session, photos, template, key, photos_only_key)
        await self._record_usage(template)

        return PhotostripResult(
            path=key,
            url=self.blobs.url_for(key),
            template=template.id,
            photos_used=len(photos),
            placements=placements,
            width=width,
            height=height,
            layout=slot_layout.layout,
            photos_only_path=photos_only_key,
            photos_only_url=self.blobs.url_for(photos_only_key) if photos_only_key else None,
        )

    async def _store_photos_only(
        self,
        image: Optional[Image.Image],
        session_id: str,
        stamp: int,
        run_id: str,
    ) -> Optional[str]:
        """Best-effort: a debug artifact never fails the generation."""
        if image is None:
            return None
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, encode_image, image, OutputFormat.png, 100)
            return await self.blobs.write_new(
                f"{self.settings.photostrips_subdir}/photos-only-{session_id}-{stamp}.png", data)
        except (StripBoothError, OSError) as e:
            logger.opt(exception=e).warning(f"[{run_id}] Photos-only composite could not be stored")
            return None

    async def _load_photos(self, session_id: str, photo_ids: Sequence[str]) -> List[Photo]:
        duplicates = sorted({photo_id for photo_id in photo_ids if photo_ids.count(photo_id) > 1})
        if duplicates:
            raise DuplicatePhotoSelectionError(session_id, duplicates)

        photos = await self.photos.get_many(session_id, photo_ids)
        if len(photos) != len(photo_ids):
            found = {photo.id for photo in photos}
            missing = [photo_id for photo_id in photo_ids if photo_id not in found]
            raise PhotoSelectionMismatchError(session_id, missing, len(photo_ids), len(photos))

        for photo in photos:
            if not photo.path:
                raise ValidationError(f"Photo {photo.id} has no file path", details={"photo_id": photo.id})
        return photos

    async def _load_template_image(self, template: Template, customization: Customization) -> Optional[Image.Image]:
        if customization.blank_base and not customization.template_over_photos:
            return None
        if not template.path:
            raise ValidationError(f"Template {template.id} has no image path", details={"template_id": template.id})

        data = await self.blobs.read(template.path)
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, decode_image, data)
        except ValueError as e:
            raise ProcessingError(
                f"Template image could not be decoded: {e}",
                details={"template_id": template.id, "path": template.path},
            ) from e

    async def _read_sources(self, photos: Sequence[Photo]) -> List[bytes]:
        async def read_one(index: int, photo: Photo) -> bytes:
            try:
                return await self.blobs.read(photo.path)
            except StripBoothError as e:
                raise PhotoProcessingError(photo.id, index, e.message) from e

        return list(await asyncio.gather(*(read_one(i, p) for i, p in enumerate(photos))))

    async def _adjust_all(
        self,
        photos: Sequence[Photo],
        sources: Sequence[bytes],
        slot_layout: SlotLayout,
        customization: Customization,
        run_id: str,
    ) -> Tuple[PhotoLayer, ...]:
        loop = asyncio.get_running_loop()
        jobs = [
            loop.run_in_executor(None, adjust_photo, source, photo.filters, slot, customization.photo_background)
            for photo, source, slot in zip(photos, sources, slot_layout.slots)
        ]
        # completion order is irrelevant, results come back in request order
        results = await asyncio.gather(*jobs, return_exceptions=True)

        layers = []
        for index, (photo, slot, result) in enumerate(zip(photos, slot_layout.slots, results)):
            if isinstance(result, ProcessingError):
                raise PhotoProcessingError(photo.id, index, result.message) from result
            if isinstance(result, BaseException):
                raise result
            self.observer.photo_adjusted(run_id, index, photo.id, result)
            layers.append(PhotoLayer(image=result, slot=slot, photo_id=photo.id, index=index))
        return tuple(layers)

    def _render(
        self,
        compositor: Compositor,
        layers: Tuple[PhotoLayer, ...],
        slot_layout: SlotLayout,
        template_image: Optional[Image.Image],
        width: int,
        height: int,
        run_id: str,
    ) -> Tuple[Image.Image, int]:
        base = compositor.build_base(width, height, template_image)
        placements = compositor.plan_layers(layers, slot_layout, width)
        overlay = compositor.template_overlay(width, height, template_image)
        footer = compositor.footer_placement(slot_layout, width, height)
        image = compositor.composite(base, placements, overlay, footer, self.observer, run_id)
        return image, len(placements)

    async def _record_session(
        self,
        session: PhotoSession,
        photos: Sequence[Photo],
        template: Template,
        key: str,
        photos_only_path: Optional[str],
    ) -> None:
        updated = session.model_copy(deep=True)
        updated.photostrip_path = key
        updated.photos_only_path = photos_only_path
        updated.selected_photos = [photo.id for photo in photos]
        updated.template_id = template.id
        updated.mark_completed()
        try:
            await self.sessions.update(updated)
        except Exception as e:
            error = PersistenceError(
                f"Photostrip {key} was written but session {session.session_id} could not be updated",
                details={"session_id": session.session_id, "path": key, "reason": str(e)},
            )
            logger.opt(exception=e).warning(error.message)

    async def _record_usage(self, template: Template) -> None:
        try:
            await self.templates.increment_usage(template.id)
        except Exception as e:
            error = PersistenceError(
                f"Usage count of template {template.id} could not be incremented",
                details={"template_id": template.id, "reason": str(e)},
            )
            logger.opt(exception=e).warning(error.message)
