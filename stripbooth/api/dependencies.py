from fastapi import Request

from stripbooth.config import Settings
from stripbooth.services.photo import PhotoService
from stripbooth.services.photostrip import PhotostripService
from stripbooth.services.store import SessionStore
from stripbooth.services.template import TemplateService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_photo_service(request: Request) -> PhotoService:
    return request.app.state.photo_service


def get_template_service(request: Request) -> TemplateService:
    return request.app.state.template_service


def get_photostrip_service(request: Request) -> PhotostripService:
    return request.app.state.photostrip_service
