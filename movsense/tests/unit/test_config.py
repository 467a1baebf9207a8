"""Unit tests for settings, secrets and error types."""

import pytest

from movsense.config.errors import (
    ErrorCode,
    ModelInvocationError,
    MovSenseError,
    ResponseParseError,
    ValidationError,
)
from movsense.config.secrets import clear_secret_cache, get_openai_api_key
from movsense.config.settings import Settings


@pytest.fixture(autouse=True)
def clean_secret_cache():
    clear_secret_cache()
    yield
    clear_secret_cache()


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        for name in ("ROOM_DELAY_SECONDS", "MAX_PHOTOS", "PHOTO_BATCH_SIZE", "CLASSIFY_MAX_ATTEMPTS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()

        assert settings.room_delay_seconds == 1.0
        assert settings.max_photos == 20
        assert settings.photo_batch_size == 5
        assert settings.classify_max_attempts == 4
        assert settings.room_max_attempts == 5
        assert settings.photo_max_attempts == 3

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ROOM_DELAY_SECONDS", "0.25")
        monkeypatch.setenv("MAX_PHOTOS", "8")
        monkeypatch.setenv("DETECT_MODEL", "gpt-4o-2024-08-06")

        settings = Settings()

        assert settings.room_delay_seconds == 0.25
        assert settings.max_photos == 8
        assert settings.detect_model == "gpt-4o-2024-08-06"

    def test_validate_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("VERCEL_OPENAI_API_KEY", raising=False)

        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            Settings().validate()

    def test_validate_rejects_zero_batch(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("PHOTO_BATCH_SIZE", "0")

        with pytest.raises(ValueError, match="PHOTO_BATCH_SIZE"):
            Settings().validate()


class TestSecrets:
    """Tests for API key lookup."""

    def test_alternate_key_name(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setenv("VERCEL_OPENAI_API_KEY", "sk-vercel")

        assert get_openai_api_key() == "sk-vercel"

    def test_primary_key_preferred(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-primary")
        monkeypatch.setenv("VERCEL_OPENAI_API_KEY", "sk-vercel")

        assert get_openai_api_key() == "sk-primary"


class TestErrors:
    """Tests for structured errors."""

    def test_validation_error_to_dict(self):
        error = ValidationError("At least one photo is required", field="photo_refs",
                                code=ErrorCode.EMPTY_PHOTO_LIST)

        assert isinstance(error, MovSenseError)
        assert error.to_dict() == {
            "code": "EMPTY_PHOTO_LIST",
            "message": "At least one photo is required",
            "details": {"field": "photo_refs"},
        }

    @pytest.mark.parametrize("status,code,retryable", [
        (429, ErrorCode.MODEL_RATE_LIMIT, True),
        (500, ErrorCode.MODEL_SERVER_ERROR, True),
        (503, ErrorCode.MODEL_SERVER_ERROR, True),
        (400, ErrorCode.MODEL_CLIENT_ERROR, False),
        (401, ErrorCode.MODEL_CLIENT_ERROR, False),
    ])
    def test_from_status(self, status, code, retryable):
        error = ModelInvocationError.from_status(status, "body")

        assert error.code == code
        assert error.retryable is retryable
        assert error.status_code == status
        assert error.details["body"] == "body"

    def test_parse_error_truncates_raw_content(self):
        error = ResponseParseError("No JSON", raw_content="x" * 2000)

        assert error.code == ErrorCode.PARSE_ERROR
        assert len(error.details["raw_content"]) == 500
        assert len(error.raw_content) == 2000
