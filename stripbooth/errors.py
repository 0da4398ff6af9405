"""
Error types for the photostrip engine.

Each error carries a message plus a details dict, and knows the HTTP status
the API layer answers with.
"""

from typing import Any, Dict, List, Optional


class StripBoothError(Exception):
    """Base exception for all StripBooth errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(StripBoothError):
    """Raised when a request or a stored record is missing required data."""
    status_code = 400


class NotFoundError(StripBoothError):
    """Raised when a session, template, photo or file does not exist."""
    status_code = 404


class LayoutError(StripBoothError):
    """Raised when no slot layout can hold the requested photos."""
    status_code = 422


class ProcessingError(StripBoothError):
    """Raised when an image cannot be decoded, transformed or composited."""
    status_code = 422


class PersistenceError(StripBoothError):
    """Raised when bookkeeping after a successful render fails."""
    status_code = 500


# Specific error classes for common failure modes

class SessionNotFoundError(NotFoundError):

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}", details={"session_id": session_id})


class TemplateNotFoundError(NotFoundError):

    def __init__(self, template_id: str):
        super().__init__(f"Template not found: {template_id}", details={"template_id": template_id})


class PhotoNotFoundError(NotFoundError):

    def __init__(self, photo_id: str):
        super().__init__(f"Photo not found: {photo_id}", details={"photo_id": photo_id})


class BlobNotFoundError(NotFoundError):

    def __init__(self, key: str):
        super().__init__(f"File not found: {key}", details={"path": key})


class PhotoSelectionMismatchError(ValidationError):
    """Raised when selected photo ids do not all belong to the session."""

    def __init__(self, session_id: str, missing_ids: List[str], requested: int, found: int):
        super().__init__(
            f"{len(missing_ids)} selected photo(s) do not belong to session {session_id}",
            details={
                "session_id": session_id,
                "missing_ids": missing_ids,
                "requested": requested,
                "found": found,
            },
        )


class DuplicatePhotoSelectionError(ValidationError):
    """Raised when a selection names the same photo more than once."""

    def __init__(self, session_id: str, duplicate_ids: List[str]):
        super().__init__(
            f"{len(duplicate_ids)} photo(s) selected more than once in session {session_id}",
            details={"session_id": session_id, "duplicate_ids": duplicate_ids},
        )


class InsufficientSlotsError(LayoutError):
    """Raised when the resolved layout has fewer slots than photos."""

    def __init__(self, layout: str, slots: int, photos: int):
        super().__init__(
            f"Layout '{layout}' provides {slots} slot(s) for {photos} photo(s)",
            details={"layout": layout, "slots": slots, "photos": photos},
        )


class PhotoProcessingError(ProcessingError):
    """Raised when one selected photo fails to load or transform."""

    def __init__(self, photo_id: str, index: int, reason: str):
        super().__init__(
            f"Photo {index + 1} ({photo_id}) could not be processed: {reason}",
            details={"photo_id": photo_id, "index": index, "reason": reason},
        )
