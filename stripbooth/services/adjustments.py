"""
Per-photo adjustment pipeline.

Colour work (modulation, contrast, blur, tone) happens in float space on the
RGB channels with alpha carried through untouched; only then is the photo
rotated, cover-fitted to its slot and masked. Steps whose settings are
neutral are skipped so a neutral photo is only resized.
"""

from typing import Optional

import cv2
import numpy as np
from PIL import Image, ImageChops
from loguru import logger

from stripbooth.errors import ProcessingError
from stripbooth.models.photo import PhotoFilters
from stripbooth.services.geometry import Slot, clamp_radius
from stripbooth.services.imaging import ImageSource, cover_fit, decode_image, flatten, parse_color, rounded_mask

SEPIA_MATRIX = np.array([
    [0.3588, 0.7044, 0.1368],
    [0.2990, 0.5870, 0.1140],
    [0.2392, 0.4696, 0.0912],
], dtype=np.float32)

VINTAGE_TINT = np.array([230, 198, 158], dtype=np.float32)
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)

MAX_BLUR_RADIUS = 50


def _modulate(rgb: np.ndarray, brightness: float, saturation: float) -> np.ndarray:
    hsv = cv2.cvtColor(rgb / 255.0, cv2.COLOR_RGB2HSV)
    hsv[..., 1] = np.clip(hsv[..., 1] * saturation, 0.0, 1.0)
    hsv[..., 2] = np.clip(hsv[..., 2] * brightness, 0.0, 1.0)
    return cv2.cvtColor(hsv, cv2.COLOR_HSV2RGB) * 255.0


def _luma(rgb: np.ndarray) -> np.ndarray:
    return cv2.cvtColor(np.clip(rgb, 0, 255), cv2.COLOR_RGB2GRAY)


def apply_filters(img: Image.Image, filters: PhotoFilters) -> Image.Image:
    """Colour and tone steps of the pipeline; returns img itself when filters are neutral."""
    if filters.is_neutral:
        return img

    rgba = np.asarray(img.convert("RGBA"), dtype=np.float32)
    rgb = np.ascontiguousarray(rgba[..., :3])
    alpha = rgba[..., 3]

    if filters.brightness != 100 or filters.saturation != 100:
        brightness = max(0.1, filters.brightness / 100)
        saturation = max(0.0, filters.saturation / 100)
        rgb = _modulate(rgb, brightness, saturation)

    if filters.contrast != 100:
        slope = max(0.1, filters.contrast / 100)
        rgb = rgb * slope + 255.0 * 0.5 * (1 - slope)

    if filters.blur > 0:
        radius = min(MAX_BLUR_RADIUS, filters.blur / 2)
        rgb = cv2.GaussianBlur(np.clip(rgb, 0, 255), (0, 0), sigmaX=radius)

    if filters.grayscale:
        gray = _luma(rgb)
        rgb = np.dstack([gray, gray, gray])

    if filters.sepia:
        rgb = cv2.transform(np.clip(rgb, 0, 255), SEPIA_MATRIX)

    if filters.vintage:
        # keep each pixel's luminance, take the chroma of the tint
        tint_luma = float(VINTAGE_TINT @ LUMA_WEIGHTS)
        rgb = _luma(rgb)[..., None] * (VINTAGE_TINT / tint_luma)

    out = np.dstack([np.clip(rgb, 0, 255), alpha]).round().astype(np.uint8)
    return Image.fromarray(out)


def adjust_photo(
    source: ImageSource,
    filters: Optional[PhotoFilters],
    slot: Slot,
    photo_background: Optional[str] = None,
) -> Image.Image:
    """Produce an RGBA buffer sized exactly to the slot, ready to be placed."""
    filters = filters or PhotoFilters()
    try:
        img = decode_image(source)
        img = apply_filters(img, filters)

        rotation = slot.rotation % 360
        if rotation:
            # positive slot rotation is clockwise
            img = img.rotate(-rotation, resample=Image.Resampling.BICUBIC, expand=True, fillcolor=(0, 0, 0, 0))

        img = cover_fit(img, slot.width, slot.height)

        if photo_background is not None:
            img = flatten(img, parse_color(photo_background))

        radius = clamp_radius(slot.border_radius, slot.width, slot.height)
        if radius > 0:
            mask = rounded_mask(slot.width, slot.height, radius)
            img = img.copy()
            img.putalpha(ImageChops.multiply(img.getchannel("A"), mask))
    except (ValueError, OSError, cv2.error) as e:
        raise ProcessingError(f"Photo adjustment failed: {e}", details={"reason": str(e)}) from e

    logger.debug(f"Adjusted photo to {slot.width}x{slot.height} (rotation={slot.rotation}, radius={radius})")
    return img
