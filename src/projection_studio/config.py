from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    data_dir: str = "data"
    saved_inspiration_slot: str = "savedInspiration"

    # Keys
    gemini_api_key: str | None = None
    runway_api_key: str | None = None

    # Models
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_vision_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "gemini-2.5-flash-image-preview"
    gemini_fun_model: str = "imagen-4.0-generate-001"

    # Runway
    runway_base_url: str = "https://api.dev.runwayml.com"
    runway_api_version: str = "2024-11-06"
    runway_ratio: str = "1280:720"
    runway_poll_interval: float = 5.0
    runway_max_polls: int = 120

    # When set, the studio talks to a deployed backend instead of calling providers in-process.
    generation_service_url: str | None = None
    request_timeout: float = 540.0

    # Every uploaded house/scene image is letterboxed onto this canvas.
    canvas_width: int = 1280
    canvas_height: int = 720


settings = Settings()
