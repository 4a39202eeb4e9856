"""Client configuration for pysmartcare."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pysmartcare._constants import BASE_URL, RECONNECT_DELAY_SECONDS
from pysmartcare.exceptions import SmartCareConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise SmartCareConfigError(f"{name} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SmartCareConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        REST API base URL, including the ``/api`` prefix.
    api_token : str or None
        Bearer token sent with every request and push connection.
    request_timeout : float
        Total timeout in seconds for one request/response call.
    stream_idle_timeout : float
        Seconds without any bytes on a push connection (the backend sends
        a heartbeat every second) before the connection is treated as
        dropped.  ``0`` disables the idle check.
    reconnect_delay : float
        Seconds to wait before reopening a dropped push connection.
    reconnect_backoff_factor : float
        Multiplier applied to the delay after each consecutive failure.
        ``1.0`` keeps the delay fixed.
    reconnect_max_delay : float
        Upper bound for the reconnect delay when backoff grows it.
    live_updates_enabled : bool
        Open push channels after the snapshot is loaded.
    messages_enabled : bool
        Synchronize conversations and messages.
    notifications_enabled : bool
        Synchronize notifications.
    """

    base_url: str = BASE_URL
    api_token: str | None = None
    request_timeout: float = 30.0
    stream_idle_timeout: float = 60.0
    reconnect_delay: float = RECONNECT_DELAY_SECONDS
    reconnect_backoff_factor: float = 1.0
    reconnect_max_delay: float = 60.0
    live_updates_enabled: bool = True
    messages_enabled: bool = True
    notifications_enabled: bool = True

    def __post_init__(self) -> None:
        if not self.base_url.strip():
            raise SmartCareConfigError("base_url must be non-empty")
        if self.request_timeout <= 0:
            raise SmartCareConfigError("request_timeout must be positive")
        if self.stream_idle_timeout < 0:
            raise SmartCareConfigError("stream_idle_timeout must not be negative")
        if self.reconnect_delay < 0:
            raise SmartCareConfigError("reconnect_delay must not be negative")
        if self.reconnect_backoff_factor < 1.0:
            raise SmartCareConfigError("reconnect_backoff_factor must be >= 1.0")
        if self.reconnect_max_delay < self.reconnect_delay:
            raise SmartCareConfigError("reconnect_max_delay must be >= reconnect_delay")
        # Endpoint paths all start with "/"
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> SmartCareConfig:
        """Create configuration from environment variables.

        Reads ``SMARTCARE_BASE_URL``, ``SMARTCARE_API_TOKEN`` and the
        optional ``SMARTCARE_*`` tuning variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SmartCareConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "SMARTCARE_BASE_URL": "base_url",
            "SMARTCARE_API_TOKEN": "api_token",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "SMARTCARE_REQUEST_TIMEOUT": "request_timeout",
            "SMARTCARE_STREAM_IDLE_TIMEOUT": "stream_idle_timeout",
            "SMARTCARE_RECONNECT_DELAY": "reconnect_delay",
            "SMARTCARE_RECONNECT_BACKOFF_FACTOR": "reconnect_backoff_factor",
            "SMARTCARE_RECONNECT_MAX_DELAY": "reconnect_max_delay",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        _ENV_BOOL_MAP = {
            "SMARTCARE_LIVE_UPDATES_ENABLED": "live_updates_enabled",
            "SMARTCARE_MESSAGES_ENABLED": "messages_enabled",
            "SMARTCARE_NOTIFICATIONS_ENABLED": "notifications_enabled",
        }
        for env_key, field_name in _ENV_BOOL_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), True)

        # reconnect_max_delay must never fall below reconnect_delay.
        delay = overrides.get("reconnect_delay", config_kwargs.get("reconnect_delay"))
        if delay is not None and "reconnect_max_delay" not in overrides and "reconnect_max_delay" not in config_kwargs:
            config_kwargs["reconnect_max_delay"] = max(float(delay), 60.0)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
