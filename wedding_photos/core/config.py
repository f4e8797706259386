import os
from pydantic import BaseModel, Field
from typing import Optional


def _env(name: str, default: Optional[str] = None):
    return Field(default_factory=lambda: os.getenv(name, default))


class Settings(BaseModel):
    """for reading environment-driven configuration.

    Values have sensible defaults for LocalStack-based development. Leaving
    `gallery_folder_id` unset keeps the service up but makes upload and list
    answer with a "not configured" error. Fields are read from the
    environment each time a Settings is built.
    """
    aws_access_key_id: str = _env("AWS_ACCESS_KEY_ID", "test")
    aws_secret_access_key: str = _env("AWS_SECRET_ACCESS_KEY", "test")
    aws_region: str = _env("AWS_REGION", "us-east-1")
    aws_endpoint_url: Optional[str] = _env("AWS_ENDPOINT_URL")
    bucket_name: str = _env("BUCKET_NAME", "wedding-photos")
    table_name: str = _env("TABLE_NAME", "wedding-photos")
    gallery_folder_id: Optional[str] = Field(default_factory=lambda: os.getenv("GALLERY_FOLDER_ID") or None)
    log_level: str = _env("LOG_LEVEL", "INFO")
    environment: str = _env("ENVIRONMENT", "development")


settings = Settings()


def reload_settings() -> Settings:
    """Re-read the environment into the shared `settings` instance.

    Modules hold on to `settings` itself, so it is updated in place.
    """
    fresh = Settings()
    for name in Settings.model_fields:
        setattr(settings, name, getattr(fresh, name))
    return settings
