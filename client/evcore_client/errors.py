# Overview: Exceptions raised by the EVCORE API client.

from __future__ import annotations


class ApiError(Exception):
    """
    Non-2xx answer from the API.

    Carries the HTTP status and the decoded JSON body so callers can branch
    on the server's error code (e.g. ACCOUNT_LOCKED) without re-parsing.
    """

    def __init__(self, status_code: int, payload: dict | None = None):
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(self.message)

    @property
    def code(self) -> str | None:
        return self.payload.get("error")

    @property
    def message(self) -> str:
        return self.payload.get("message") or f"HTTP Error: {self.status_code}"


class NetworkError(Exception):
    """The API could not be reached (connection refused, timeout, DNS)."""
