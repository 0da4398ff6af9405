from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from PIL import Image, ImageDraw, ImageFont
from loguru import logger

from stripbooth.models.photostrip import FooterOptions
from stripbooth.services.geometry import Box
from stripbooth.services.imaging import parse_color

FONT_PATHS = [
    "DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "arial.ttf",
]

# share of the band height taken by the text block
TEXT_BLOCK_RATIO = 0.36


@dataclass(frozen=True)
class FooterPlacement:
    band: Box
    regions: Tuple[Tuple[int, int], ...]  # (x, width) of each text column


@lru_cache(maxsize=32)
def load_font(size: int):
    for font_path in FONT_PATHS:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError:
            continue
    logger.debug(f"No TrueType font found, using Pillow default at {size}px")
    return ImageFont.load_default(size=size)


def render_footer(canvas_size: Tuple[int, int], placement: FooterPlacement, footer: FooterOptions) -> Image.Image:
    """Transparent full-canvas layer with one text block per region, each underlined by an accent bar."""
    layer = Image.new("RGBA", canvas_size, (0, 0, 0, 0))
    lines = footer.lines
    if not lines:
        return layer

    band = placement.band
    font_size = max(8, round(band.height * TEXT_BLOCK_RATIO * footer.font_scale / len(lines)))
    font = load_font(font_size)
    text_color = parse_color(footer.text_color)
    accent_color = parse_color(footer.accent_color)

    draw = ImageDraw.Draw(layer)
    boxes = [draw.textbbox((0, 0), line, font=font) for line in lines]
    widths = [box[2] - box[0] for box in boxes]
    heights = [box[3] - box[1] for box in boxes]
    spacing = max(2, font_size // 4)
    block_width = max(widths)
    block_height = sum(heights) + spacing * (len(lines) - 1)

    bar_height = max(2, font_size // 8)
    bar_gap = max(2, font_size // 4)
    total_height = block_height + bar_gap + bar_height
    top = band.y + (band.height - total_height) // 2

    for region_x, region_width in placement.regions:
        center_x = region_x + region_width // 2
        y = top
        for line, box, width, height in zip(lines, boxes, widths, heights):
            draw.text((center_x - width // 2 - box[0], y - box[1]), line, font=font, fill=text_color)
            y += height + spacing

        bar_top = top + block_height + bar_gap
        draw.rectangle(
            (center_x - block_width // 2, bar_top, center_x + block_width // 2, bar_top + bar_height - 1),
            fill=accent_color,
        )
    return layer
