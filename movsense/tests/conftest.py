"""Pytest configuration and shared fixtures for MovSense tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock
from typing import Any, List


# ============================================================================
# Ensure `movsense` is importable without an installed distribution
# ============================================================================
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)


# ============================================================================
# Retry / timing helpers
# ============================================================================

class RecordingSleep:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep():
    """No-op sleep that records every delay."""
    return RecordingSleep()


@pytest.fixture
def retry_policy_factory(fake_sleep):
    """Build RetryPolicy instances that never actually wait."""
    from movsense.services.model_client import RetryPolicy

    def _factory(max_attempts: int = 3, **overrides: Any) -> RetryPolicy:
        params = {
            "max_attempts": max_attempts,
            "base_delay": 3.0,
            "jitter": 1.0,
            "max_delay": 30.0,
            "sleep": fake_sleep,
        }
        params.update(overrides)
        return RetryPolicy(**params)

    return _factory


# ============================================================================
# Model client mocks
# ============================================================================

@pytest.fixture
def mock_model_client():
    """ModelClient stand-in whose `complete` is an AsyncMock."""
    client = MagicMock()
    client.complete = AsyncMock(return_value="[]")
    client.total_tokens_used = 0
    return client


@pytest.fixture
def http_client_factory():
    """Build an httpx.AsyncClient backed by a handler function."""
    import httpx

    def _factory(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _factory


@pytest.fixture
def scripted_handler():
    """Handler that replays (status, body) pairs in order and records requests.

    The last response repeats once the script runs out.
    """
    import httpx

    def _build(responses: List[tuple]):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            status, body = responses[min(len(requests) - 1, len(responses) - 1)]
            if isinstance(body, (dict, list)):
                return httpx.Response(status, json=body)
            return httpx.Response(status, text=body)

        handler.requests = requests
        return handler

    return _build


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_photos():
    """Ten photo URLs."""
    return [f"https://photos.example.com/listing-42/{i}.jpg" for i in range(10)]


@pytest.fixture
def two_bedroom_context():
    from movsense.models.property import PropertyContext

    return PropertyContext(bedrooms=2, bathrooms=1, sqft=1200)


@pytest.fixture
def sample_mapping():
    from movsense.models.estimate import load_mapping_table

    return load_mapping_table({
        "Queen Bed": {"cf": 65, "minutes": 30, "wrap": True},
        "Nightstand": {"cf": 5, "minutes": 5},
        "Dresser": {"cubicFeet": 40, "minutes": 20, "requiresWrap": True},
        "Refrigerator": {"cubicFeet": 35, "minutes": 25},
        "Dining Table": {"cubicFeet": 30, "minutes": 15},
    })
