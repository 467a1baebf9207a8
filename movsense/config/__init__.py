"""MovSense configuration.

This package contains:
- settings: Environment variables and configuration
- secrets: API credential access
- errors: Custom exceptions and error codes
"""

from movsense.config.settings import settings, Settings
from movsense.config.errors import MovSenseError
from movsense.config.secrets import get_secret, get_openai_api_key

__all__ = [
    "settings",
    "Settings",
    "MovSenseError",
    "get_secret",
    "get_openai_api_key",
]
