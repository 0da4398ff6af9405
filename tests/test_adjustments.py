"""Tests for the per-photo adjustment pipeline."""

import pytest
from PIL import Image

from stripbooth.errors import ProcessingError
from stripbooth.models.photo import PhotoFilters
from stripbooth.services.adjustments import adjust_photo, apply_filters
from stripbooth.services.geometry import Slot
from stripbooth.services.imaging import cover_fit, decode_image

from conftest import image_bytes


@pytest.fixture
def source() -> bytes:
    return image_bytes((300, 200), (180, 100, 60))


def center(img: Image.Image):
    return img.getpixel((img.width // 2, img.height // 2))


class TestApplyFilters:

    def test_neutral_filters_return_the_same_image(self):
        img = Image.new("RGBA", (10, 10), (10, 20, 30, 255))
        assert apply_filters(img, PhotoFilters()) is img

    def test_brightness(self):
        img = Image.new("RGBA", (10, 10), (100, 100, 100, 255))
        brighter = center(apply_filters(img, PhotoFilters(brightness=150)))
        darker = center(apply_filters(img, PhotoFilters(brightness=50)))
        assert brighter[0] == pytest.approx(150, abs=2)
        assert darker[0] == pytest.approx(50, abs=2)

    def test_contrast_pivots_on_mid_gray(self):
        img = Image.new("RGBA", (10, 10), (200, 200, 200, 255))
        assert center(apply_filters(img, PhotoFilters(contrast=50)))[0] == pytest.approx(164, abs=2)

    def test_zero_saturation_is_gray(self):
        img = Image.new("RGBA", (10, 10), (200, 50, 50, 255))
        r, g, b, _ = center(apply_filters(img, PhotoFilters(saturation=0)))
        assert r == g == b

    def test_grayscale(self):
        img = Image.new("RGBA", (10, 10), (200, 50, 50, 255))
        r, g, b, a = center(apply_filters(img, PhotoFilters(grayscale=True)))
        assert r == g == b
        assert a == 255

    def test_sepia_is_warm(self):
        img = Image.new("RGBA", (10, 10), (128, 128, 128, 255))
        r, g, b, _ = center(apply_filters(img, PhotoFilters(sepia=True)))
        assert r > g > b

    def test_vintage_keeps_luminance(self):
        img = Image.new("RGBA", (10, 10), (120, 120, 120, 255))
        r, g, b, _ = center(apply_filters(img, PhotoFilters(vintage=True)))
        assert r > g > b
        assert 0.299 * r + 0.587 * g + 0.114 * b == pytest.approx(120, abs=2)

    def test_blur_softens_edges(self):
        img = Image.new("RGBA", (40, 40), (0, 0, 0, 255))
        img.paste((255, 255, 255, 255), (20, 0, 40, 40))
        blurred = apply_filters(img, PhotoFilters(blur=8))
        assert 0 < blurred.getpixel((20, 20))[0] < 255

    def test_alpha_is_preserved(self):
        img = Image.new("RGBA", (10, 10), (100, 100, 100, 0))
        assert center(apply_filters(img, PhotoFilters(sepia=True)))[3] == 0


class TestAdjustPhoto:

    def test_output_matches_slot_size(self, source):
        img = adjust_photo(source, PhotoFilters(), Slot(0, 0, 120, 90))
        assert img.size == (120, 90)
        assert img.mode == "RGBA"

    def test_neutral_output_equals_cover_fit(self, source):
        adjusted = adjust_photo(source, None, Slot(0, 0, 100, 100))
        expected = cover_fit(decode_image(source), 100, 100)
        assert list(adjusted.getdata()) == list(expected.getdata())

    def test_rounded_corners_are_transparent(self, source):
        img = adjust_photo(source, PhotoFilters(), Slot(0, 0, 100, 100, border_radius=30))
        assert img.getpixel((0, 0))[3] == 0
        assert img.getpixel((99, 99))[3] == 0
        assert center(img)[3] == 255

    def test_rotation_keeps_slot_size(self, source):
        img = adjust_photo(source, PhotoFilters(), Slot(0, 0, 160, 120, rotation=15))
        assert img.size == (160, 120)

    def test_photo_background_fills_transparency(self):
        transparent = image_bytes((50, 50), (0, 0, 0, 0), "PNG")
        img = adjust_photo(transparent, PhotoFilters(), Slot(0, 0, 50, 50), photo_background="#00ff00")
        assert center(img) == (0, 255, 0, 255)

    def test_unreadable_bytes(self):
        with pytest.raises(ProcessingError):
            adjust_photo(b"not an image", PhotoFilters(), Slot(0, 0, 10, 10))

    def test_oversized_source_is_a_processing_error(self, source, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(ProcessingError):
            adjust_photo(source, PhotoFilters(), Slot(0, 0, 10, 10))
