import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from stripbooth.models.base import CamelModel
from stripbooth.models.session import utcnow


class TemplateCategory(str, Enum):
    classic = "classic"
    modern = "modern"
    fun = "fun"
    elegant = "elegant"
    holiday = "holiday"
    custom = "custom"


class PhotoSlot(CamelModel):
    """A slot authored in the template's native pixel space."""
    x: float
    y: float
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    rotation: float = 0
    border_radius: float = Field(default=0, ge=0)


class TemplateDimensions(CamelModel):
    width: int = Field(ge=1)
    height: int = Field(ge=1)


class TemplateMetadata(CamelModel):
    color_mode: Optional[str] = None
    dpi: Optional[int] = None
    format: Optional[str] = None


class Template(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    description: Optional[str] = None
    filename: Optional[str] = None
    path: Optional[str] = None
    thumbnail_path: Optional[str] = None
    size: int = 0
    mime_type: str = "image/png"
    dimensions: TemplateDimensions
    photo_slots: List[PhotoSlot] = []
    is_active: bool = True
    is_default: bool = False
    category: TemplateCategory = TemplateCategory.custom
    usage_count: int = 0
    metadata: TemplateMetadata = Field(default_factory=TemplateMetadata)
    created_at: datetime = Field(default_factory=utcnow)


class TemplateCreateRequest(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: TemplateCategory = TemplateCategory.custom
    photo_slots: List[PhotoSlot] = []
    is_default: bool = False
    base64_data: str
    original_name: Optional[str] = None


class TemplateUpdateRequest(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[TemplateCategory] = None
    photo_slots: Optional[List[PhotoSlot]] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None


class TemplateResponse(CamelModel):
    message: Optional[str] = None
    template: Template


class TemplateListResponse(CamelModel):
    templates: List[Template]
    categories: List[TemplateCategory]


class CategoryInfo(CamelModel):
    value: TemplateCategory
    label: str
    count: int


class TemplateUsageResponse(CamelModel):
    message: str
    usage_count: int
