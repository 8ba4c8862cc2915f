from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration, read from the environment and an optional `.env` file.

    Every variable carries the `VISION_EXTRACTION_` prefix, e.g.
    `VISION_EXTRACTION_MODEL_ID=gemini-2.5-pro`.
    """

    # Model access
    provider: Literal["gemini", "agent"] = "gemini"
    model_id: str = "gemini-2.5-flash"
    agent_model: str = "openai:gpt-4o"  # pydantic-ai model string, used when provider=agent
    api_key: Optional[str] = None  # falls back to GEMINI_API_KEY / GOOGLE_API_KEY
    temperature: float = 0.1

    # Upload handling
    max_upload_bytes: int = 10 * 1024 * 1024
    preview_dir: Optional[Path] = None
    preview_size: int = 256

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="VISION_EXTRACTION_",
        env_file=".env",
        extra="ignore",
        protected_namespaces=(),
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
