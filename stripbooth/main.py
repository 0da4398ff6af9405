from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

from stripbooth.config import Settings, ensure_directories, settings as default_settings
from stripbooth.api.routes import photos, sessions, templates
from stripbooth.errors import StripBoothError
from stripbooth.log import setup_logging
from stripbooth.services.inspection import build_observer
from stripbooth.services.photo import PhotoService
from stripbooth.services.photostrip import PhotostripService
from stripbooth.services.storage import LocalBlobStore
from stripbooth.services.store import PhotoStore, SessionStore, TemplateStore
from stripbooth.services.template import TemplateService


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings)
    ensure_directories(settings)

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        debug=settings.debug
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    blobs = LocalBlobStore(settings.storage_path, settings.public_url_prefix)
    app.state.settings = settings
    app.state.sessions = SessionStore()
    app.state.photos = PhotoStore()
    app.state.templates = TemplateStore()
    app.state.blobs = blobs
    app.state.photo_service = PhotoService(settings, app.state.sessions, app.state.photos, blobs)
    app.state.template_service = TemplateService(settings, app.state.templates, blobs)
    app.state.photostrip_service = PhotostripService(
        settings,
        app.state.sessions,
        app.state.photos,
        app.state.templates,
        blobs,
        observer=build_observer(settings.debug_dump_dir),
    )

    @app.exception_handler(StripBoothError)
    async def stripbooth_error_handler(request: Request, exc: StripBoothError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(sessions.router, prefix="/api")
    app.include_router(photos.router, prefix="/api")
    app.include_router(templates.router, prefix="/api")
    app.mount(settings.public_url_prefix, StaticFiles(directory=str(settings.storage_path)), name="uploads")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": settings.app_name}

    logger.info(f"{settings.app_name} ready, storage at {settings.storage_path.resolve()}")
    return app

