"""Configuration constants for the resilience layer"""

import os

# Retry configuration
MAX_RETRIES = 3
RETRY_DELAY = 1.0  # Seconds before the first retry
BACKOFF_MULTIPLIER = 2.0
RETRYABLE_ERRORS = frozenset({"ECONNRESET", "ETIMEDOUT", "ENOTFOUND", "EAI_AGAIN"})

# Circuit breaker configuration
CIRCUIT_BREAKER_THRESHOLD = 5  # Failures before opening circuit
CIRCUIT_BREAKER_TIMEOUT = 60.0  # 1 minute before a trial call
CIRCUIT_BREAKER_MONITORING_PERIOD = 120.0  # 2 minutes

# Breakers provisioned at startup, one per external dependency
BREAKER_SETTINGS = {
    "flight_provider": {"threshold": 5, "timeout": 60.0},
    "database": {"threshold": 10, "timeout": 30.0},
    "booking_provider": {"threshold": 3, "timeout": 120.0},
}

# Error codes raised by the database driver (PostgREST / Supabase)
DATABASE_ERROR_PREFIXES = ("PGRST",)

# Duffel flight provider
DUFFEL_API_URL = "https://api.duffel.com"
DUFFEL_API_VERSION = "v2"
DEFAULT_REQUEST_TIMEOUT = 10.0  # Seconds

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def get_duffel_api_key() -> str:
    """Duffel access token, empty when not configured"""
    return os.environ.get("DUFFEL_API_KEY", "")


def is_development() -> bool:
    """True when APP_ENV is 'development' (stack traces go into responses)"""
    return os.environ.get("APP_ENV", "production").lower() == "development"
