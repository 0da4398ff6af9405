from enum import Enum
from typing import List, Optional

from PIL import ImageColor
from pydantic import Field, field_validator

from stripbooth.models.base import CamelModel
from stripbooth.models.session import SessionStatus


class LayoutType(str, Enum):
    auto_grid = "auto-grid"
    dual_panel = "dual-panel-3x2"
    left1x4_right2x6 = "left1x4-right2x6"
    template = "template"

    @classmethod
    def _missing_(cls, value):
        # the web client sends "left1x4_right2x6"
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            if normalized == "template-authored":
                return cls.template
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class OrientationType(str, Enum):
    portrait = "portrait"
    landscape = "landscape"


class PanelAlign(str, Enum):
    top = "top"
    center = "center"
    bottom = "bottom"


class OutputFormat(str, Enum):
    jpeg = "jpeg"
    png = "png"

    @property
    def extension(self) -> str:
        return "jpg" if self is OutputFormat.jpeg else "png"


def _check_color(value: Optional[str]) -> Optional[str]:
    if value is not None:
        ImageColor.getrgb(value)
    return value


class FooterOptions(CamelModel):
    hashtag: Optional[str] = None
    date: Optional[str] = None
    accent_color: str = "#e11d48"
    text_color: str = "#111827"
    font_scale: float = Field(default=1.0, ge=0.25, le=4.0)

    @field_validator("accent_color", "text_color")
    @classmethod
    def check_colors(cls, value):
        return _check_color(value)

    @property
    def lines(self) -> List[str]:
        return [line.strip() for line in (self.hashtag, self.date) if line and line.strip()]

    @property
    def enabled(self) -> bool:
        return bool(self.lines)


class Customization(CamelModel):
    """Every rendering option a photostrip request may set."""

    # slot source
    auto_layout: bool = False
    respect_template_slots: bool = True

    # generated layout geometry; None picks the layout's own default
    padding: Optional[int] = Field(default=None, ge=0)
    border_radius: Optional[int] = Field(default=None, ge=0)
    panel_gap: int = Field(default=40, ge=0)
    slot_gap: int = Field(default=16, ge=0)
    footer_ratio: float = Field(default=0.14, ge=0, lt=0.5)
    panel_align: PanelAlign = PanelAlign.center

    # output
    quality: Optional[int] = None
    output_format: OutputFormat = OutputFormat.jpeg

    # layering
    background_color: Optional[str] = None
    photo_background: Optional[str] = None
    flatten_background: str = "#ffffff"
    skip_flatten: bool = False
    template_over_photos: bool = False
    blank_base: bool = False
    duplicate_panels: bool = True

    footer: Optional[FooterOptions] = None

    @field_validator("background_color", "photo_background", "flatten_background")
    @classmethod
    def check_colors(cls, value):
        return _check_color(value)

    @property
    def forces_auto_layout(self) -> bool:
        return self.auto_layout or not self.respect_template_slots

    @property
    def footer_enabled(self) -> bool:
        return self.footer is not None and self.footer.enabled


class PhotostripRequest(CamelModel):
    template_id: Optional[str] = None
    selected_photo_ids: List[str] = []
    target_width: Optional[int] = Field(default=None, ge=1)
    target_height: Optional[int] = Field(default=None, ge=1)
    force_orientation: Optional[OrientationType] = None
    layout: Optional[LayoutType] = None
    customization: Customization = Field(default_factory=Customization)

    @field_validator("layout", mode="before")
    @classmethod
    def normalize_layout(cls, value):
        # accepts the underscore spellings older clients send
        if isinstance(value, str):
            return LayoutType(value)
        return value


class PhotostripResult(CamelModel):
    path: str
    url: str
    template: str
    photos_used: int
    placements: int
    width: int
    height: int
    layout: LayoutType
    photos_only_path: Optional[str] = None
    photos_only_url: Optional[str] = None


class PhotostripSessionState(CamelModel):
    id: str
    status: SessionStatus
    photostrip_path: Optional[str] = None


class PhotostripResponse(CamelModel):
    photostrip: PhotostripResult
    session: PhotostripSessionState
    message: str = "Photostrip generated successfully"
