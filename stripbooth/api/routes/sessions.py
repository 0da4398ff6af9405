from fastapi import APIRouter, Depends, Request
from loguru import logger

from stripbooth.api.dependencies import get_photostrip_service, get_session_store
from stripbooth.models.photostrip import PhotostripRequest, PhotostripResponse, PhotostripSessionState
from stripbooth.models.session import (
    PhotoSession,
    SessionCreateRequest,
    SessionResponse,
    SessionStatus,
    SessionSummary,
    SessionUpdateRequest,
)
from stripbooth.services.photostrip import PhotostripService
from stripbooth.services.store import SessionStore

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("/create", response_model=SessionResponse, status_code=201)
async def create_session(
        body: SessionCreateRequest,
        request: Request,
        sessions: SessionStore = Depends(get_session_store)
):
    session = PhotoSession(user_id=body.user_id)
    if body.settings is not None:
        session.settings = body.settings
    session.metadata.user_agent = request.headers.get("user-agent")
    session.metadata.ip_address = request.client.host if request.client else None
    await sessions.add(session)

    logger.info(f"Created session {session.session_id}")
    return SessionResponse(message="Session created successfully", session=SessionSummary.from_session(session))


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, sessions: SessionStore = Depends(get_session_store)):
    session = await sessions.get(session_id)
    return SessionResponse(session=SessionSummary.from_session(session))


@router.put("/{session_id}", response_model=SessionResponse)
async def update_session(
        session_id: str,
        body: SessionUpdateRequest,
        sessions: SessionStore = Depends(get_session_store)
):
    session = await sessions.get(session_id)
    if body.template_id is not None:
        session.template_id = body.template_id
    if body.selected_photos is not None:
        session.selected_photos = body.selected_photos
    if body.status is not None and body.status != session.status:
        if body.status == SessionStatus.completed:
            session.mark_completed()
        else:
            session.status = body.status
    await sessions.update(session)

    return SessionResponse(message="Session updated successfully", session=SessionSummary.from_session(session))


@router.post("/{session_id}/photostrip", response_model=PhotostripResponse)
async def generate_photostrip(
        session_id: str,
        body: PhotostripRequest,
        photostrips: PhotostripService = Depends(get_photostrip_service),
        sessions: SessionStore = Depends(get_session_store)
):
    result = await photostrips.generate(session_id, body)
    session = await sessions.get(session_id)

    return PhotostripResponse(
        photostrip=result,
        session=PhotostripSessionState(
            id=session.session_id,
            status=session.status,
            photostrip_path=session.photostrip_path,
        ),
    )
