"""Static transport configuration for the Custom Dining backend.

The target environment is picked once, here, by editing `CURRENT_ENV`; it is
not switchable at runtime. Tests and the smoke runner pass an explicit
`base_url` to the client instead.
"""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType

__all__ = [
    "Environment",
    "ENV_URLS",
    "CURRENT_ENV",
    "API_TIMEOUT_S",
    "AUTH_TIMEOUT_S",
    "MAX_RETRIES",
    "RETRY_BACKOFF_S",
    "DEFAULT_HEADERS",
    "ENDPOINTS",
    "get_api_url",
]


class Environment(str, Enum):
    DEV = "DEV"
    STAGING = "STAGING"
    PROD = "PROD"


ENV_URLS = MappingProxyType(
    {
        Environment.DEV: "http://localhost:3006/api",
        Environment.STAGING: "https://custom-dining-staging.onrender.com/api",
        Environment.PROD: "https://custom-dining.onrender.com/api",
    }
)

CURRENT_ENV = Environment.PROD

# Per attempt; a POST retry sequence can exceed this.
API_TIMEOUT_S = 10.0
# Login/signup hit the slowest backend paths.
AUTH_TIMEOUT_S = 45.0

# Cold-start retry policy for POST (HTTP 503 only)
MAX_RETRIES = 3
RETRY_BACKOFF_S = 3.0

DEFAULT_HEADERS = MappingProxyType(
    {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
)


class ENDPOINTS:
    """Backend paths, relative to the environment base URL."""

    # auth
    signup = "/auth/register"
    login = "/auth/login"
    logout = "/auth/logout"
    forgot_password = "/auth/forgot-password"
    reset_password = "/auth/reset-password"
    verify_email = "/auth/verify-email"
    resend_verification = "/auth/resend-verification"

    # user
    profile = "/users/profile"
    favorites = "/users/favorites"
    dietary_profile = "/user/profile"
    user_meals = "/user/meals"

    # catalog
    health = "/health"
    restaurants = "/restaurants"
    meals = "/meals"


def get_api_url() -> str:
    """Return the base URL of the statically selected environment."""
    return ENV_URLS[CURRENT_ENV]
