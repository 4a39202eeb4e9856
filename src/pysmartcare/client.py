"""High-level async client for the SmartCare messaging and notification API."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pysmartcare._transport import HttpTransport
from pysmartcare.config import SmartCareConfig
from pysmartcare.exceptions import SmartCareError
from pysmartcare.sync import SyncSession

_logger = logging.getLogger(__name__)


class SmartCareClient:
    """Async client owning the HTTP session and the active sync session.

    Usage::

        async with SmartCareClient(config) as client:
            session = await client.open_session("user-1")
            print(session.unread_notifications)
    """

    def __init__(
        self,
        config: SmartCareConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config or SmartCareConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport: HttpTransport | None = None
        self._sync: SyncSession | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SmartCareClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close_session()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    @property
    def config(self) -> SmartCareConfig:
        return self._config

    def _require_transport(self) -> HttpTransport:
        if self._transport is None:
            raise SmartCareError("Client not initialized. Use 'async with SmartCareClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @property
    def active_session(self) -> SyncSession | None:
        return self._sync

    async def open_session(self, identity: str) -> SyncSession:
        """Start synchronizing for *identity*.

        The session of a previous identity is closed completely before the
        new one loads; asking again for the current identity returns the
        running session.
        """
        transport = self._require_transport()
        identity = identity.strip()
        current = self._sync
        if current is not None and not current.closed and current.identity == identity:
            return current
        await self.close_session()

        _logger.debug("Opening session for %s", identity)
        sync = SyncSession(identity, transport=transport, config=self._config)
        self._sync = sync
        await sync.start()
        return sync

    async def close_session(self) -> None:
        """Close the active session (sign-out); a no-op without one."""
        sync = self._sync
        self._sync = None
        if sync is not None:
            await sync.close()
