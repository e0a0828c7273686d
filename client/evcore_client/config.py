# client/evcore_client/config.py
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class ClientConfig:
    """Client configuration with environment variable overrides."""
    # Base URL of the EVCORE API
    api_base_url: str = os.environ.get("EVCORE_API_URL", "http://127.0.0.1:5000")

    # development | production | test
    environment: str = os.environ.get("EVCORE_ENV", "development")

    # Timeouts
    request_timeout: float = float(os.environ.get("EVCORE_REQUEST_TIMEOUT", "30"))

    # Storage keys shared by persistent and session storage
    token_storage_key: str = os.environ.get("EVCORE_TOKEN_STORAGE_KEY", "authToken")
    refresh_token_storage_key: str = os.environ.get("EVCORE_REFRESH_TOKEN_STORAGE_KEY", "refreshToken")

    # Lifetime of locally fabricated demo tokens
    fallback_token_hours: int = int(os.environ.get("EVCORE_FALLBACK_TOKEN_HOURS", "24"))

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"
