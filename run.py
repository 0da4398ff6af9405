import uvicorn
from loguru import logger

from stripbooth.config import settings

if __name__ == "__main__":
    logger.info(f"Starting {settings.app_name} at http://{settings.host}:{settings.port}")
    logger.info(f"Files are stored under {settings.storage_path.resolve()} and served at {settings.public_url_prefix}")

    uvicorn.run(
        "stripbooth.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
