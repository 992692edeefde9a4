"""Configuration management for revscout.

Centralizes all environment variable access for better testability and maintainability.
"""

import os
from typing import Optional

_LOG_LEVELS = ("debug", "info", "warning", "error")


def _float_env(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value not in (None, "") else default


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


class Config:
    """Application configuration loaded from environment variables."""

    # BrightData scraper API
    @staticmethod
    def brightdata_api_key() -> Optional[str]:
        """Get BrightData bearer token from environment."""
        return os.environ.get("BRIGHTDATA_API_KEY")

    @staticmethod
    def brightdata_dataset_id() -> Optional[str]:
        """Get BrightData dataset ID (older deployments call it collector ID)."""
        return os.environ.get("BRIGHTDATA_DATASET_ID") or os.environ.get(
            "BRIGHTDATA_COLLECTOR_ID"
        )

    @staticmethod
    def brightdata_base_url() -> str:
        """Get BrightData API base URL."""
        return os.environ.get("BRIGHTDATA_BASE_URL", "https://api.brightdata.com")

    # Browser session
    @staticmethod
    def user_agent() -> Optional[str]:
        return os.environ.get("USER_AGENT")

    @staticmethod
    def proxy_server() -> Optional[str]:
        return os.environ.get("PROXY_SERVER")

    @staticmethod
    def scraping_browser_ws_endpoint() -> Optional[str]:
        """Get websocket endpoint of a remote scraping browser, if any."""
        return os.environ.get("SCRAPING_BROWSER_WS_ENDPOINT")

    @staticmethod
    def log_level() -> str:
        """Get log level, falling back to info for unrecognised values."""
        level = os.environ.get("LOG_LEVEL", "info").lower()
        return level if level in _LOG_LEVELS else "info"

    @staticmethod
    def operation_config():
        """Build an OperationConfig from environment overrides."""
        from revscout.core.operation_config import OperationConfig

        defaults = OperationConfig()
        return OperationConfig(
            max_attempts=_int_env("MAX_RETRIES", defaults.max_attempts),
            base_delay=_float_env("SCRAPE_DELAY", defaults.base_delay),
            request_timeout=_float_env("TIMEOUT", defaults.request_timeout),
            overall_timeout=_float_env("OVERALL_TIMEOUT", 0.0) or None,
            poll_interval=_float_env("POLL_INTERVAL", defaults.poll_interval),
            max_poll_attempts=_int_env("MAX_POLL_ATTEMPTS", defaults.max_poll_attempts),
            cache_ttl=_float_env("CACHE_TTL", defaults.cache_ttl),
            max_requests_per_session=_int_env(
                "MAX_REQUESTS_PER_SESSION", defaults.max_requests_per_session
            ),
            session_rotation_interval=_float_env(
                "SESSION_ROTATION_INTERVAL", defaults.session_rotation_interval
            ),
            rate_limit_min_delay=_float_env(
                "RATE_LIMIT_MIN_DELAY", defaults.rate_limit_min_delay
            ),
            rate_limit_max_delay=_float_env(
                "RATE_LIMIT_MAX_DELAY", defaults.rate_limit_max_delay
            ),
        )

    # Helper methods
    @staticmethod
    def is_configured() -> bool:
        """Check if all required configuration for the API path is present."""
        return all([Config.brightdata_api_key(), Config.brightdata_dataset_id()])

    @staticmethod
    def get_missing_config() -> list[str]:
        """Get list of missing required configuration keys."""
        missing = []
        if not Config.brightdata_api_key():
            missing.append("BRIGHTDATA_API_KEY")
        if not Config.brightdata_dataset_id():
            missing.append("BRIGHTDATA_DATASET_ID or BRIGHTDATA_COLLECTOR_ID")
        return missing
