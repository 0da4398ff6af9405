from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from stripbooth.api.dependencies import get_photo_service
from stripbooth.models.photo import (
    Photo,
    PhotoSelectionRequest,
    PhotoUploadRequest,
    PhotoUploadResponse,
    SessionPhotosResponse,
)
from stripbooth.models.session import SessionSummary
from stripbooth.services.photo import PhotoService

router = APIRouter(prefix="/photos", tags=["photos"])


@router.post("/upload", response_model=PhotoUploadResponse, status_code=201)
async def upload_photo(
        body: PhotoUploadRequest,
        request: Request,
        photo_service: PhotoService = Depends(get_photo_service)
):
    photo, session = await photo_service.upload(
        body,
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )
    return PhotoUploadResponse(
        message="Photo uploaded successfully",
        photo=photo,
        session=SessionSummary.from_session(session),
    )


@router.get("/session/{session_id}", response_model=SessionPhotosResponse)
async def list_session_photos(session_id: str, photo_service: PhotoService = Depends(get_photo_service)):
    session = await photo_service.sessions.get(session_id)
    photos = await photo_service.photos.list_for_session(session_id)
    return SessionPhotosResponse(session=SessionSummary.from_session(session), photos=photos)


@router.put("/select", response_model=SessionPhotosResponse)
async def select_photos(body: PhotoSelectionRequest, photo_service: PhotoService = Depends(get_photo_service)):
    session, photos = await photo_service.select(body.session_id, body.photo_ids)
    return SessionPhotosResponse(session=SessionSummary.from_session(session), photos=photos)


@router.put("/filter/{photo_id}", response_model=Photo)
async def apply_filters(
        photo_id: str,
        filters: Dict[str, Any] = Body(..., embed=True),
        photo_service: PhotoService = Depends(get_photo_service)
):
    return await photo_service.apply_filters(photo_id, filters)
