"""
Process-wide configuration for the Plastix backend.

Values are read once from the environment (after `load_dotenv()` in main.py)
and treated as read-only for the lifetime of the process.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from utils.image_processing import (
    MAX_IMAGE_BYTES,
    MAX_DIMENSION,
    FALLBACK_DIMENSION,
    MAX_IMAGE_PIXELS,
)


DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


@dataclass(frozen=True)
class Settings:
    """Configuration for the upload pipeline and the upstream client."""
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    analysis_model: str = "gpt-4o"
    edit_model: str = "dall-e-2"
    max_output_tokens: int = 500
    edit_size: str = "1024x1024"
    upstream_timeout: float = 25.0  # stays under the host's 30s execution ceiling
    max_retries: int = 2
    retry_delay: float = 1.0
    max_upload_bytes: int = MAX_IMAGE_BYTES
    max_dimension: int = MAX_DIMENSION
    fallback_dimension: int = FALLBACK_DIMENSION
    max_encoded_bytes: int = MAX_IMAGE_BYTES
    max_image_pixels: int = MAX_IMAGE_PIXELS
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @property
    def has_credentials(self) -> bool:
        return bool(self.openai_api_key)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def load_settings() -> Settings:
    """Build Settings from environment variables."""
    origins = os.getenv("PLASTIX_CORS_ORIGINS")
    cors_origins = (
        [o.strip() for o in origins.split(",") if o.strip()]
        if origins
        else list(DEFAULT_CORS_ORIGINS)
    )

    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
        analysis_model=os.getenv("PLASTIX_ANALYSIS_MODEL", "gpt-4o"),
        edit_model=os.getenv("PLASTIX_EDIT_MODEL", "dall-e-2"),
        max_output_tokens=_env_int("PLASTIX_MAX_OUTPUT_TOKENS", 500),
        edit_size=os.getenv("PLASTIX_EDIT_SIZE", "1024x1024"),
        upstream_timeout=_env_float("PLASTIX_UPSTREAM_TIMEOUT", 25.0),
        max_retries=_env_int("PLASTIX_MAX_RETRIES", 2),
        retry_delay=_env_float("PLASTIX_RETRY_DELAY", 1.0),
        max_upload_bytes=_env_int("PLASTIX_MAX_UPLOAD_BYTES", MAX_IMAGE_BYTES),
        max_encoded_bytes=_env_int("PLASTIX_MAX_ENCODED_BYTES", MAX_IMAGE_BYTES),
        max_image_pixels=_env_int("PLASTIX_MAX_IMAGE_PIXELS", MAX_IMAGE_PIXELS),
        cors_origins=cors_origins,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for this process, loaded on first use."""
    return load_settings()
