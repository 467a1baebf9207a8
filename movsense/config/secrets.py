"""Credential access for MovSense.

The model provider key is read from the environment. Several variable
names are accepted so the same deployment works under different hosts.

Usage:
    from movsense.config.secrets import get_openai_api_key

    api_key = get_openai_api_key()
"""

import os
from functools import lru_cache
from typing import Optional

import structlog

logger = structlog.get_logger()

OPENAI_KEY_NAMES = ("OPENAI_API_KEY", "VERCEL_OPENAI_API_KEY")


def get_secret(secret_id: str) -> Optional[str]:
    """Get a secret value from the environment.

    Args:
        secret_id: The name of the secret (e.g., 'OPENAI_API_KEY')

    Returns:
        The secret value, or None if not found
    """
    value = os.environ.get(secret_id)
    if value:
        logger.debug("secret_loaded", secret_id=secret_id)
    return value or None


@lru_cache(maxsize=1)
def get_openai_api_key() -> Optional[str]:
    """Get the model provider API key, checking each accepted name in order."""
    for name in OPENAI_KEY_NAMES:
        value = get_secret(name)
        if value:
            return value
    logger.warning("secret_not_found", checked=list(OPENAI_KEY_NAMES))
    return None


def clear_secret_cache() -> None:
    """Clear cached secrets. Useful for testing or when secrets are rotated."""
    get_openai_api_key.cache_clear()
