"""Small Pillow helpers shared by the adjustment pipeline and the compositor."""

import io
from typing import Optional, Tuple, Union

from PIL import Image, ImageColor, ImageDraw, ImageOps, UnidentifiedImageError

from stripbooth.models.photostrip import OutputFormat

RGBA = Tuple[int, int, int, int]
ImageSource = Union[bytes, Image.Image]


def parse_color(value: Optional[str], default: RGBA = (0, 0, 0, 0)) -> RGBA:
    if value is None:
        return default
    rgb = ImageColor.getcolor(value, "RGBA")
    return tuple(rgb)


def decode_image(source: ImageSource) -> Image.Image:
    """Decode bytes (or copy an open image) into an RGBA image, EXIF orientation applied.

    Raises ValueError when the data is not a readable image.
    """
    if isinstance(source, Image.Image):
        return source.convert("RGBA")
    try:
        img = Image.open(io.BytesIO(source))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ValueError(f"unreadable image data ({e})") from e
    img = ImageOps.exif_transpose(img)
    return img.convert("RGBA")


def cover_fit(img: Image.Image, width: int, height: int) -> Image.Image:
    """Resize preserving aspect ratio and crop the overflow to exactly width x height."""
    if img.size == (width, height):
        return img
    return ImageOps.fit(img, (width, height), method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))


def rounded_mask(width: int, height: int, radius: int) -> Image.Image:
    radius = max(0, min(radius, min(width, height) // 2))
    mask = Image.new("L", (width, height), 0)
    draw = ImageDraw.Draw(mask)
    draw.rounded_rectangle((0, 0, width - 1, height - 1), radius=radius, fill=255)
    return mask


def flatten(img: Image.Image, color: RGBA) -> Image.Image:
    """Composite img over an opaque (or translucent) solid colour of the same size."""
    background = Image.new("RGBA", img.size, color)
    return Image.alpha_composite(background, img.convert("RGBA"))


def encode_image(img: Image.Image, fmt: OutputFormat, quality: int) -> bytes:
    buffer = io.BytesIO()
    if fmt is OutputFormat.jpeg:
        if img.mode != "RGB":
            img = img.convert("RGB")
        img.save(buffer, format="JPEG", quality=quality, optimize=True)
    else:
        img.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def render_thumbnail(data: bytes, max_side: int) -> Tuple[bytes, str]:
    """Fit-inside thumbnail that never enlarges; PNG sources stay PNG."""
    img = Image.open(io.BytesIO(data))
    fmt = (img.format or "JPEG").upper()
    img = ImageOps.exif_transpose(img)
    img.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    if fmt == "PNG":
        img.save(buffer, format="PNG", optimize=True)
        return buffer.getvalue(), "png"
    img.convert("RGB").save(buffer, format="JPEG", quality=80)
    return buffer.getvalue(), "jpg"
