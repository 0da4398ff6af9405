"""
Slot geometry for photostrips.

Turns a template, a photo count and an output canvas into the ordered list of
rectangles the photos are placed into. Authored template slots are scaled to
the canvas when there are enough of them; otherwise one of the generated
layouts is used. The two sources are never mixed within one request.
"""

import math
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from stripbooth.errors import InsufficientSlotsError, LayoutError, ValidationError
from stripbooth.models.photostrip import Customization, LayoutType, OrientationType, PanelAlign
from stripbooth.models.template import PhotoSlot, Template

DEFAULT_PADDING = {
    LayoutType.auto_grid: 24,
    LayoutType.dual_panel: 40,
    LayoutType.left1x4_right2x6: 10,
}
DEFAULT_RADIUS = {
    LayoutType.auto_grid: 32,
    LayoutType.dual_panel: 32,
    LayoutType.left1x4_right2x6: 28,
}

DUAL_PANEL_ROWS = 3
DUAL_PANEL_COLUMNS = 2
LEFT_COLUMN_RATIO = 0.28
LEFT_COLUMN_SLOTS = 4
RIGHT_BLOCK_COLUMNS = 2
RIGHT_BLOCK_ROWS = 6

SOURCE_TEMPLATE = "template"
SOURCE_GENERATED = "generated"


@dataclass(frozen=True)
class Slot:
    """A placement rectangle in output-canvas pixels."""

    x: int
    y: int
    width: int
    height: int
    rotation: float = 0.0
    border_radius: int = 0

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise LayoutError(
                f"Slot must be at least 1x1 pixels, got {self.width}x{self.height}",
                details={"width": self.width, "height": self.height},
            )
        if self.border_radius < 0:
            raise LayoutError("Slot border radius must not be negative", details={"border_radius": self.border_radius})

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def shifted(self, dx: int, dy: int = 0) -> "Slot":
        return replace(self, x=self.x + dx, y=self.y + dy)


@dataclass(frozen=True)
class Box:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


@dataclass(frozen=True)
class SlotLayout:
    slots: Tuple[Slot, ...]
    layout: LayoutType
    source: str
    panels: Tuple[Box, ...] = ()
    footer_band: Optional[Box] = None

    def __len__(self) -> int:
        return len(self.slots)


def clamp_radius(radius: float, width: int, height: int) -> int:
    return max(0, min(int(radius), min(width, height) // 2))


def resolve_dimensions(
    target_width: Optional[int],
    target_height: Optional[int],
    force_orientation: Optional[OrientationType],
    template: Optional[Template],
    default_width: int,
    default_height: int,
) -> Tuple[int, int]:
    """Output size: explicit override, then template dimensions, then defaults; then orientation."""
    template_width = template.dimensions.width if template is not None else None
    template_height = template.dimensions.height if template is not None else None

    width = target_width or template_width or default_width
    height = target_height or template_height or default_height

    if force_orientation == OrientationType.portrait and width > height:
        width, height = height, width
    elif force_orientation == OrientationType.landscape and height > width:
        width, height = height, width
    return width, height


def scale_template_slots(
    slots: Sequence[PhotoSlot],
    template_width: int,
    template_height: int,
    output_width: int,
    output_height: int,
) -> List[Slot]:
    sx = output_width / template_width
    sy = output_height / template_height
    radius_scale = min(sx, sy)

    scaled = []
    for slot in slots:
        width = max(1, round(slot.width * sx))
        height = max(1, round(slot.height * sy))
        radius = max(0, round(slot.border_radius * radius_scale))
        scaled.append(Slot(
            x=round(slot.x * sx),
            y=round(slot.y * sy),
            width=width,
            height=height,
            rotation=slot.rotation,
            border_radius=clamp_radius(radius, width, height),
        ))
    return scaled


def auto_grid_slots(count: int, width: int, height: int, padding: int, radius: int) -> List[Slot]:
    columns = math.ceil(math.sqrt(count))
    rows = math.ceil(count / columns)

    cell_width = (width - padding * (columns + 1)) // columns
    cell_height = (height - padding * (rows + 1)) // rows
    if cell_width < 1 or cell_height < 1:
        raise LayoutError(
            f"A {columns}x{rows} grid does not fit a {width}x{height} canvas with padding {padding}",
            details={"columns": columns, "rows": rows, "padding": padding},
        )

    radius = clamp_radius(radius, cell_width, cell_height)
    slots = []
    for i in range(count):
        row, col = divmod(i, columns)
        slots.append(Slot(
            x=padding + col * (cell_width + padding),
            y=padding + row * (cell_height + padding),
            width=cell_width,
            height=cell_height,
            border_radius=radius,
        ))
    return slots


def dual_panel_slots(
    count: int,
    width: int,
    height: int,
    padding: int,
    radius: int,
    customization: Customization,
) -> Tuple[List[Slot], Tuple[Box, Box], Optional[Box]]:
    """Two side-by-side 3x2 panels above a footer band, emitted panel-major."""
    footer_height = round(height * customization.footer_ratio)
    panel_gap = customization.panel_gap
    slot_gap = customization.slot_gap

    panel_width = (width - 2 * padding - panel_gap) // 2
    panel_height = height - footer_height - 2 * padding
    slot_width = (panel_width - slot_gap * (DUAL_PANEL_COLUMNS - 1)) // DUAL_PANEL_COLUMNS
    slot_height = (panel_height - slot_gap * (DUAL_PANEL_ROWS - 1)) // DUAL_PANEL_ROWS
    if slot_width < 1 or slot_height < 1:
        raise LayoutError(
            f"Dual-panel layout does not fit a {width}x{height} canvas",
            details={"padding": padding, "panel_gap": panel_gap, "slot_gap": slot_gap,
                     "footer_height": footer_height},
        )

    panels = (
        Box(padding, padding, panel_width, panel_height),
        Box(padding + panel_width + panel_gap, padding, panel_width, panel_height),
    )
    footer_band = Box(0, height - footer_height, width, footer_height) if footer_height > 0 else None

    radius = clamp_radius(radius, slot_width, slot_height)
    per_panel = DUAL_PANEL_ROWS * DUAL_PANEL_COLUMNS
    slots = []
    for index, panel in enumerate(panels):
        in_panel = min(per_panel, count - index * per_panel)
        if in_panel <= 0:
            break
        rows_used = math.ceil(in_panel / DUAL_PANEL_COLUMNS)
        content_height = rows_used * slot_height + slot_gap * (rows_used - 1)
        if customization.panel_align == PanelAlign.top:
            top = panel.y
        elif customization.panel_align == PanelAlign.bottom:
            top = panel.bottom - content_height
        else:
            top = panel.y + (panel.height - content_height) // 2

        for i in range(in_panel):
            row, col = divmod(i, DUAL_PANEL_COLUMNS)
            slots.append(Slot(
                x=panel.x + col * (slot_width + slot_gap),
                y=top + row * (slot_height + slot_gap),
                width=slot_width,
                height=slot_height,
                border_radius=radius,
            ))
    return slots, panels, footer_band


def left_right_slots(count: int, width: int, height: int, padding: int, radius: int) -> List[Slot]:
    """Narrow left column of 4 stacked slots, then a 2x6 block on the right."""
    left_width = round(width * LEFT_COLUMN_RATIO)
    left_slot_width = left_width - 2 * padding
    left_slot_height = (height - padding * (LEFT_COLUMN_SLOTS + 1)) // LEFT_COLUMN_SLOTS

    right_width = width - left_width - padding
    right_slot_width = (right_width - padding * (RIGHT_BLOCK_COLUMNS - 1)) // RIGHT_BLOCK_COLUMNS
    right_slot_height = (height - padding * (RIGHT_BLOCK_ROWS + 1)) // RIGHT_BLOCK_ROWS

    if min(left_slot_width, left_slot_height, right_slot_width, right_slot_height) < 1:
        raise LayoutError(
            f"Left/right layout does not fit a {width}x{height} canvas with padding {padding}",
            details={"padding": padding},
        )

    slots = []
    left_radius = clamp_radius(radius, left_slot_width, left_slot_height)
    for i in range(LEFT_COLUMN_SLOTS):
        slots.append(Slot(
            x=padding,
            y=padding + i * (left_slot_height + padding),
            width=left_slot_width,
            height=left_slot_height,
            border_radius=left_radius,
        ))

    right_radius = clamp_radius(radius, right_slot_width, right_slot_height)
    for i in range(RIGHT_BLOCK_COLUMNS * RIGHT_BLOCK_ROWS):
        row, col = divmod(i, RIGHT_BLOCK_COLUMNS)
        slots.append(Slot(
            x=left_width + col * (right_slot_width + padding),
            y=padding + row * (right_slot_height + padding),
            width=right_slot_width,
            height=right_slot_height,
            border_radius=right_radius,
        ))
    return slots[:count]


def resolve_slots(
    template: Optional[Template],
    photo_count: int,
    output_width: int,
    output_height: int,
    layout: Optional[LayoutType] = None,
    customization: Optional[Customization] = None,
) -> SlotLayout:
    """Resolve exactly photo_count slots, or raise LayoutError."""
    customization = customization or Customization()
    layout = layout or LayoutType.auto_grid
    if photo_count < 1:
        raise ValidationError("At least one photo is required", details={"photo_count": photo_count})

    authored = template.photo_slots if template is not None else []
    if len(authored) >= photo_count and not customization.forces_auto_layout:
        slots = scale_template_slots(
            authored[:photo_count],
            template.dimensions.width,
            template.dimensions.height,
            output_width,
            output_height,
        )
        return SlotLayout(tuple(slots), layout, SOURCE_TEMPLATE)

    padding = customization.padding if customization.padding is not None else DEFAULT_PADDING.get(layout, 0)
    radius = customization.border_radius if customization.border_radius is not None else DEFAULT_RADIUS.get(layout, 0)
    panels: Tuple[Box, ...] = ()
    footer_band = None

    if layout == LayoutType.dual_panel:
        slots, panels, footer_band = dual_panel_slots(
            photo_count, output_width, output_height, padding, radius, customization)
    elif layout == LayoutType.left1x4_right2x6:
        slots = left_right_slots(photo_count, output_width, output_height, padding, radius)
    elif layout == LayoutType.template:
        # authored slots only; not enough of them is a layout failure
        slots = []
    else:
        slots = auto_grid_slots(photo_count, output_width, output_height, padding, radius)

    if len(slots) < photo_count:
        raise InsufficientSlotsError(layout.value, len(slots), photo_count)
    return SlotLayout(tuple(slots[:photo_count]), layout, SOURCE_GENERATED, panels, footer_band)
