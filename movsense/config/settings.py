"""MovSense configuration settings.

Loads configuration from environment variables with sensible defaults.
The model provider credential is resolved through config.secrets.
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for local development (model names, timeouts, batch sizes)
load_dotenv()


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Note: The API key is not a field. Use the openai_api_key property,
    which delegates to the secrets module.
    """

    # Model provider
    openai_base_url: str = field(default_factory=lambda: os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"))
    classify_model: str = field(default_factory=lambda: os.getenv("CLASSIFY_MODEL", "gpt-4o"))
    detect_model: str = field(default_factory=lambda: os.getenv("DETECT_MODEL", "gpt-4o"))
    photo_detect_model: str = field(default_factory=lambda: os.getenv("PHOTO_DETECT_MODEL", "gpt-4o-mini"))
    model_timeout_seconds: float = field(default_factory=lambda: _env_float("MODEL_TIMEOUT_SECONDS", 60.0))

    # Retry policy (attempts include the first call)
    classify_max_attempts: int = field(default_factory=lambda: _env_int("CLASSIFY_MAX_ATTEMPTS", 4))
    room_max_attempts: int = field(default_factory=lambda: _env_int("ROOM_MAX_ATTEMPTS", 5))
    photo_max_attempts: int = field(default_factory=lambda: _env_int("PHOTO_MAX_ATTEMPTS", 3))
    retry_base_delay_seconds: float = field(default_factory=lambda: _env_float("RETRY_BASE_DELAY_SECONDS", 3.0))
    retry_jitter_seconds: float = field(default_factory=lambda: _env_float("RETRY_JITTER_SECONDS", 1.0))
    retry_max_delay_seconds: float = field(default_factory=lambda: _env_float("RETRY_MAX_DELAY_SECONDS", 30.0))

    # Phase 2 pacing
    room_delay_seconds: float = field(default_factory=lambda: _env_float("ROOM_DELAY_SECONDS", 1.0))

    # Whole-photo path
    max_photos: int = field(default_factory=lambda: _env_int("MAX_PHOTOS", 20))
    photo_batch_size: int = field(default_factory=lambda: _env_int("PHOTO_BATCH_SIZE", 5))
    photo_timeout_seconds: float = field(default_factory=lambda: _env_float("PHOTO_TIMEOUT_SECONDS", 45.0))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Internal: cached secret value (use openai_api_key property instead)
    _openai_api_key: Optional[str] = field(default=None, repr=False)

    @property
    def openai_api_key(self) -> Optional[str]:
        """Get the model provider API key from the environment."""
        if self._openai_api_key is None:
            from movsense.config.secrets import get_openai_api_key
            self._openai_api_key = get_openai_api_key()
        return self._openai_api_key

    def validate(self) -> None:
        """Validate required settings are present.

        Raises:
            ValueError: If required settings are missing.
        """
        if not self.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required")
        if self.photo_batch_size < 1:
            raise ValueError("PHOTO_BATCH_SIZE must be at least 1")


# Singleton settings instance
settings = Settings()
