"""Tests for the camelCase wire models."""

import warnings
from typing import Optional

from stripbooth.config import Settings
from stripbooth.models.base import CamelModel
from stripbooth.models.photostrip import PhotostripRequest


class TestCamelModel:

    def test_declaring_models_raises_no_deprecation_warnings(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")

            class Frame(CamelModel):
                photo_slot: Optional[int] = None

            Settings()

        assert Frame.model_config["populate_by_name"] is True

    def test_alias_and_field_names_are_both_accepted(self):
        by_alias = PhotostripRequest.model_validate({"selectedPhotoIds": ["a"], "targetWidth": 800})
        by_name = PhotostripRequest.model_validate({"selected_photo_ids": ["a"], "target_width": 800})
        assert by_alias == by_name

    def test_dumps_camel_case(self):
        dumped = PhotostripRequest(selected_photo_ids=["a"]).model_dump(by_alias=True)
        assert dumped["selectedPhotoIds"] == ["a"]
        assert "selected_photo_ids" not in dumped
