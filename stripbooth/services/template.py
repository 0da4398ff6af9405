import asyncio
import io
import time
import uuid
from typing import Dict, List, Optional, Tuple

from PIL import Image, ImageDraw, UnidentifiedImageError
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from stripbooth.config import Settings
from stripbooth.errors import ValidationError
from stripbooth.models.template import (
    PhotoSlot,
    Template,
    TemplateCategory,
    TemplateCreateRequest,
    TemplateDimensions,
    TemplateMetadata,
    TemplateUpdateRequest,
)
from stripbooth.services.imaging import render_thumbnail
from stripbooth.services.photo import decode_base64_image
from stripbooth.services.storage import LocalBlobStore
from stripbooth.services.store import TemplateStore

MIME_TYPES = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp"}

# seeded 2x6 strip
DEFAULT_TEMPLATE_SIZE = (1200, 1800)
DEFAULT_TEMPLATE_SLOTS = 4
DEFAULT_TEMPLATE_PADDING = 60
DEFAULT_TEMPLATE_GAP = 40


def inspect_template(raw: bytes) -> Tuple[int, int, str, str, Optional[int]]:
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ValidationError("Template data is not a readable image", details={"reason": str(e)}) from e

    fmt = (img.format or "PNG").upper()
    if fmt not in MIME_TYPES:
        raise ValidationError(f"Unsupported template format {fmt}", details={"allowed": sorted(MIME_TYPES)})
    dpi = img.info.get("dpi")
    return img.width, img.height, fmt, img.mode, int(dpi[0]) if dpi else None


def default_template_image() -> Tuple[bytes, List[PhotoSlot]]:
    """White 2x6 strip with evenly stacked photo frames."""
    width, height = DEFAULT_TEMPLATE_SIZE
    pad, gap, count = DEFAULT_TEMPLATE_PADDING, DEFAULT_TEMPLATE_GAP, DEFAULT_TEMPLATE_SLOTS
    slot_width = width - 2 * pad
    slot_height = (height - 2 * pad - (count - 1) * gap) / count

    img = Image.new("RGB", DEFAULT_TEMPLATE_SIZE, "white")
    draw = ImageDraw.Draw(img)
    slots = []
    for i in range(count):
        y = pad + i * (slot_height + gap)
        slots.append(PhotoSlot(x=pad, y=y, width=slot_width, height=slot_height))
        draw.rectangle((pad, y, pad + slot_width, y + slot_height), outline="#e5e7eb", width=4)

    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", quality=90)
    return buffer.getvalue(), slots


class TemplateService:
    def __init__(self, settings: Settings, templates: TemplateStore, blobs: LocalBlobStore):
        self.settings = settings
        self.templates = templates
        self.blobs = blobs

    async def list_active(self, category: Optional[TemplateCategory] = None) -> List[Template]:
        return await self.templates.list_active(category)

    async def categories(self) -> Dict[TemplateCategory, int]:
        return await self.templates.categories()

    async def get(self, template_id: str) -> Template:
        return await self.templates.get(template_id)

    async def create(self, request: TemplateCreateRequest) -> Template:
        raw, _ = decode_base64_image(request.base64_data)
        if len(raw) > self.settings.max_template_bytes:
            raise ValidationError(
                "Template exceeds the upload size limit",
                details={"size": len(raw), "limit": self.settings.max_template_bytes},
            )

        loop = asyncio.get_running_loop()
        width, height, fmt, mode, dpi = await loop.run_in_executor(None, inspect_template, raw)
        return await self._store(
            raw,
            fmt,
            name=request.name,
            description=request.description,
            category=request.category,
            photo_slots=request.photo_slots,
            is_default=request.is_default,
            dimensions=TemplateDimensions(width=width, height=height),
            metadata=TemplateMetadata(color_mode=mode, dpi=dpi, format=fmt.lower()),
        )

    async def update(self, template_id: str, request: TemplateUpdateRequest) -> Template:
        template = await self.templates.get(template_id)
        changes = request.model_dump(exclude_unset=True)
        try:
            updated = Template.model_validate({**template.model_dump(), **changes})
        except PydanticValidationError as e:
            raise ValidationError("Invalid template update", details={"errors": e.errors(include_url=False)}) from e
        return await self.templates.update(updated)

    async def record_use(self, template_id: str) -> int:
        return await self.templates.increment_usage(template_id)

    async def seed_default(self) -> Template:
        loop = asyncio.get_running_loop()
        raw, slots = await loop.run_in_executor(None, default_template_image)
        width, height = DEFAULT_TEMPLATE_SIZE
        template = await self._store(
            raw,
            "JPEG",
            name="Classic Strip",
            description="White 2x6 strip with four stacked photos",
            category=TemplateCategory.classic,
            photo_slots=slots,
            is_default=True,
            dimensions=TemplateDimensions(width=width, height=height),
            metadata=TemplateMetadata(color_mode="RGB", format="jpeg"),
        )
        logger.info(f"Seeded default template {template.id}")
        return template

    async def _store(self, raw: bytes, fmt: str, **fields) -> Template:
        ext = "jpg" if fmt == "JPEG" else fmt.lower()
        stem = f"template-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
        key = await self.blobs.write_new(f"{self.settings.templates_subdir}/{stem}.{ext}", raw)

        loop = asyncio.get_running_loop()
        thumbnail, thumb_ext = await loop.run_in_executor(
            None, render_thumbnail, raw, self.settings.thumbnail_size)
        thumb_key = await self.blobs.write_new(f"{self.settings.templates_subdir}/thumb-{stem}.{thumb_ext}", thumbnail)

        template = Template(
            filename=key.rsplit("/", 1)[-1],
            path=key,
            thumbnail_path=thumb_key,
            size=len(raw),
            mime_type=MIME_TYPES[fmt],
            **fields,
        )
        await self.templates.add(template)
        logger.info(f"Stored template {template.id} ({template.name}) at {key}")
        return template
