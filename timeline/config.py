# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Application settings loaded from the environment."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration.

    Every field can be overridden through an environment variable of the
    same name (case-insensitive) or a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./timeline.db"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Blob storage
    blob_root: str = "data/blobs"
    blob_base_url: str = "/blobs"
    max_upload_size: int = 20 * 1024 * 1024
    allowed_image_types: list[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/gif",
        "image/heic",
        "image/heif",
    ]

    # Metadata extraction
    geocode_url: str = "https://api.bigdatacloud.net/data/reverse-geocode-client"
    geocode_timeout: float = 5.0
    home_country_code: str = "US"
    exif_timeout: float = 5.0

    # Background image generation
    gemini_api_key: str | None = None
    image_model: str = "gemini-2.0-flash-exp-image-generation"
    image_generation_timeout: float = 60.0
    sketch_reference_path: str | None = None
    background_queue_size: int = 100


settings = Settings()
