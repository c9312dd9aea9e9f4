"""Exceptions raised while enriching a notification."""

from typing import Any, Dict, Optional

DESERIALIZE_ERROR = "could not deserialize JSON"


class EnrichmentError(Exception):
    """Base class for failures that end up as the notification body."""

    @property
    def description(self) -> str:
        return str(self)


class SettingsError(EnrichmentError):
    """The shared settings store could not be read or written."""


class MissingRefreshTokenError(EnrichmentError):
    """No refresh token has been stored by the application."""

    def __init__(self, key: str):
        super().__init__(f"no refresh token stored under '{key}'")
        self.key = key


class TokenRequestError(EnrichmentError):
    """The token endpoint could not be reached or returned garbage."""


class TokenResponseError(EnrichmentError):
    """The token endpoint answered without an access token."""

    def __init__(self, status_code: Optional[int], payload: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.payload = payload or {}
        detail = self.payload.get("error_description") or self.payload.get("error")
        message = f"token request failed with HTTP status {status_code if status_code is not None else 0}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class AlertRequestError(EnrichmentError):
    """The alert resource could not be reached or rejected the request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AlertDecodeError(EnrichmentError):
    """The alert resource answered with something other than a usable list."""

    def __init__(self, reason: str = ""):
        super().__init__(DESERIALIZE_ERROR)
        self.reason = reason
