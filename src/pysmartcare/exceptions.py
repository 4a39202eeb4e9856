"""Custom exception hierarchy for pysmartcare."""

from __future__ import annotations


class SmartCareError(Exception):
    """Base exception for all pysmartcare errors."""


class SmartCareConfigError(SmartCareError):
    """Invalid or missing configuration."""


class SmartCareTransportError(SmartCareError):
    """A request/response call failed (network error, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class SmartCareApiError(SmartCareTransportError):
    """The backend answered with a non-2xx status or an unusable body."""


class SmartCareAuthenticationError(SmartCareApiError):
    """The backend rejected the API token (HTTP 401/403)."""


class SmartCareStreamError(SmartCareError):
    """The live update connection dropped or could not be opened.

    Handled inside the channel by scheduling a reconnect; it is never
    raised to callers of the public API.
    """

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class MalformedPayloadError(SmartCareError):
    """A pushed event could not be decoded into an entity.

    The offending event is dropped; the stream stays open.
    """

    def __init__(self, message: str, *, payload: str = "") -> None:
        self.payload = payload
        super().__init__(message)
