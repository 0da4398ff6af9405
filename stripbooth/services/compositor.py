"""
Compositor for photostrips.

Layering, bottom to top:
- base (template cover-fitted to the canvas, or a blank / solid canvas)
- adjusted photos in request order, then their mirrored copies
- template overlay, only when the template is drawn above the photos
- footer text
The result is flattened onto an opaque colour unless explicitly skipped.
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from PIL import Image
from loguru import logger

from stripbooth.errors import ProcessingError
from stripbooth.models.photostrip import Customization, LayoutType, OutputFormat
from stripbooth.services.footer import FooterPlacement, render_footer
from stripbooth.services.geometry import Box, Slot, SlotLayout
from stripbooth.services.imaging import cover_fit, encode_image, flatten, parse_color
from stripbooth.services.inspection import PipelineObserver

WHITE = (255, 255, 255, 255)
PANEL_CAPACITY = 6


@dataclass(frozen=True, eq=False)
class PhotoLayer:
    image: Image.Image
    slot: Slot
    photo_id: str
    index: int
    mirrored: bool = False


def mirror_offset(slot_layout: SlotLayout, layers: Sequence[PhotoLayer], canvas_width: int) -> Optional[int]:
    """Horizontal shift that moves the first panel's content onto the second panel.

    Generated dual-panel layouts know their panel boxes. For authored slots
    the bounding box of the placed photos is mirrored about the canvas
    centre. None when the mirrored copy would overlap the original.
    """
    if len(slot_layout.panels) == 2:
        first, second = slot_layout.panels
        return second.x - first.x

    x0 = min(layer.slot.x for layer in layers)
    x1 = max(layer.slot.right for layer in layers)
    mirrored_x0 = canvas_width - x1
    if mirrored_x0 < x1:
        return None
    return mirrored_x0 - x0


class Compositor:
    """Assembles one photostrip; holds the request's customization, nothing else."""

    def __init__(self, customization: Optional[Customization] = None):
        self.customization = customization or Customization()

    @property
    def output_format(self) -> OutputFormat:
        return self.customization.output_format

    def build_base(self, width: int, height: int, template_image: Optional[Image.Image] = None) -> Image.Image:
        c = self.customization
        if template_image is not None and not (c.template_over_photos or c.blank_base):
            return cover_fit(template_image.convert("RGBA"), width, height)
        return Image.new("RGBA", (width, height), parse_color(c.background_color))

    def template_overlay(self, width: int, height: int, template_image: Optional[Image.Image]) -> Optional[Image.Image]:
        c = self.customization
        if template_image is None or not c.template_over_photos:
            return None
        return cover_fit(template_image.convert("RGBA"), width, height)

    def plan_layers(
        self,
        layers: Sequence[PhotoLayer],
        slot_layout: SlotLayout,
        canvas_width: int,
    ) -> Tuple[PhotoLayer, ...]:
        """Final placement order: photos as requested, then mirrored copies when a single panel is filled."""
        placements = tuple(layers)
        if (
            slot_layout.layout != LayoutType.dual_panel
            or not self.customization.duplicate_panels
            or not 0 < len(layers) <= PANEL_CAPACITY
        ):
            return placements

        offset = mirror_offset(slot_layout, layers, canvas_width)
        if offset is None:
            logger.info("Panel duplication skipped: mirrored panel would overlap the original")
            return placements

        mirrored = tuple(replace(layer, slot=layer.slot.shifted(offset), mirrored=True) for layer in layers)
        return placements + mirrored

    def footer_placement(self, slot_layout: SlotLayout, width: int, height: int) -> Optional[FooterPlacement]:
        c = self.customization
        if not c.footer_enabled:
            return None

        band = slot_layout.footer_band
        if band is None:
            band_height = round(height * c.footer_ratio)
            band = Box(0, height - band_height, width, band_height)
        if band.height < 1:
            logger.info("Footer text configured but the footer band is empty, skipping footer")
            return None

        if slot_layout.layout == LayoutType.dual_panel:
            if slot_layout.panels:
                regions = tuple((panel.x, panel.width) for panel in slot_layout.panels)
            else:
                half = width // 2
                regions = ((0, half), (half, width - half))
        else:
            regions = ((0, width),)
        return FooterPlacement(band, regions)

    @staticmethod
    def _place(canvas: Image.Image, image: Image.Image, x: int, y: int) -> bool:
        left, top = max(0, x), max(0, y)
        right = min(canvas.width, x + image.width)
        bottom = min(canvas.height, y + image.height)
        if right <= left or bottom <= top:
            return False
        canvas.alpha_composite(image, dest=(left, top), source=(left - x, top - y, right - x, bottom - y))
        return True

    def should_flatten(self) -> bool:
        if not self.customization.skip_flatten:
            return True
        if self.output_format is OutputFormat.jpeg:
            logger.warning("skipFlatten ignored: JPEG output cannot carry transparency")
            return True
        return False

    def composite(
        self,
        base: Image.Image,
        placements: Sequence[PhotoLayer],
        template_overlay: Optional[Image.Image] = None,
        footer: Optional[FooterPlacement] = None,
        observer: Optional[PipelineObserver] = None,
        run_id: str = "",
    ) -> Image.Image:
        if not placements:
            raise ProcessingError("No photo layers were produced; refusing to write an empty photostrip")

        observer = observer or PipelineObserver()
        canvas = base.convert("RGBA").copy()
        observer.base_ready(run_id, canvas)

        placed = 0
        for layer in placements:
            if self._place(canvas, layer.image, layer.slot.x, layer.slot.y):
                placed += 1
            else:
                logger.warning(f"Photo {layer.index + 1} ({layer.photo_id}) lies outside the canvas")
        if placed == 0:
            raise ProcessingError("None of the photo layers intersect the canvas",
                                  details={"placements": len(placements)})
        observer.photos_composited(run_id, canvas)

        if template_overlay is not None:
            canvas.alpha_composite(template_overlay)

        if footer is not None:
            canvas.alpha_composite(render_footer(canvas.size, footer, self.customization.footer))

        if self.should_flatten():
            color = parse_color(self.customization.flatten_background, WHITE)[:3] + (255,)
            canvas = flatten(canvas, color).convert("RGB")

        observer.final_ready(run_id, canvas)
        return canvas

    def encode(self, image: Image.Image, quality: int) -> bytes:
        return encode_image(image, self.output_format, quality)
