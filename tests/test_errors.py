"""Tests for error serialisation and status codes."""

import pytest

from stripbooth.errors import (
    DuplicatePhotoSelectionError,
    InsufficientSlotsError,
    LayoutError,
    NotFoundError,
    PersistenceError,
    PhotoProcessingError,
    ProcessingError,
    SessionNotFoundError,
    StripBoothError,
    ValidationError,
)


class TestErrors:

    @pytest.mark.parametrize("error_class, status", [
        (ValidationError, 400),
        (NotFoundError, 404),
        (LayoutError, 422),
        (ProcessingError, 422),
        (PersistenceError, 500),
    ])
    def test_status_codes(self, error_class, status):
        assert error_class("boom").status_code == status

    def test_to_dict(self):
        error = SessionNotFoundError("session_1")
        assert error.to_dict() == {
            "error_type": "SessionNotFoundError",
            "message": "Session not found: session_1",
            "details": {"session_id": "session_1"},
        }

    def test_photo_processing_error_names_the_photo(self):
        error = PhotoProcessingError("abc", 2, "bad bytes")
        assert isinstance(error, ProcessingError)
        assert error.details == {"photo_id": "abc", "index": 2, "reason": "bad bytes"}
        assert "Photo 3" in error.message

    def test_insufficient_slots_is_a_layout_error(self):
        error = InsufficientSlotsError("auto-grid", 4, 5)
        assert isinstance(error, LayoutError)
        assert isinstance(error, StripBoothError)
        assert error.status_code == 422

    def test_details_default_to_empty(self):
        assert StripBoothError("x").details == {}

    def test_duplicate_selection_names_the_ids(self):
        error = DuplicatePhotoSelectionError("s1", ["p1", "p2"])
        assert isinstance(error, ValidationError)
        assert error.message == "2 photo(s) selected more than once in session s1"
        assert error.details == {"session_id": "s1", "duplicate_ids": ["p1", "p2"]}
