from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path


class Settings(BaseSettings):
    app_name: str = "StripBooth"
    app_description: str = "Photobooth backend that composites selected photos into a photostrip"
    debug: bool = False

    host: str = "0.0.0.0"
    port: int = 8000

    storage_dir: str = "uploads"
    public_url_prefix: str = "/uploads"
    photos_subdir: str = "photos"
    templates_subdir: str = "templates"
    photostrips_subdir: str = "photostrips"

    default_width: int = 1800
    default_height: int = 1200

    default_quality: int = 90
    min_quality: int = 40
    max_quality: int = 100
    photo_quality: int = 85
    thumbnail_size: int = 480

    max_photos_per_session: int = 10
    max_upload_bytes: int = 10 * 1024 * 1024
    max_template_bytes: int = 20 * 1024 * 1024

    log_level: str = "INFO"
    log_file: Optional[str] = None

    # intermediate images are dumped here when set
    debug_dump_dir: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_prefix="STRIPBOOTH_")

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_dir)

    def clamp_quality(self, quality: Optional[int]) -> int:
        if quality is None:
            quality = self.default_quality
        return max(self.min_quality, min(self.max_quality, int(quality)))


def ensure_directories(settings: Settings) -> None:
    root = settings.storage_path
    for subdir in (settings.photos_subdir, settings.templates_subdir, settings.photostrips_subdir):
        (root / subdir).mkdir(parents=True, exist_ok=True)
    if settings.debug_dump_dir:
        Path(settings.debug_dump_dir).mkdir(parents=True, exist_ok=True)


settings = Settings()
