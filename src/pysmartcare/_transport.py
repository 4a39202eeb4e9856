"""HTTP transport: JSON request/response calls and Server-Sent Events streams."""

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

import aiohttp

from pysmartcare._constants import USER_AGENT
from pysmartcare._redact import redact_for_log
from pysmartcare.config import SmartCareConfig
from pysmartcare.exceptions import (
    SmartCareApiError,
    SmartCareAuthenticationError,
    SmartCareStreamError,
    SmartCareTransportError,
)

_logger = logging.getLogger(__name__)

_AUTH_STATUSES: frozenset[int] = frozenset({401, 403})


class Transport(Protocol):
    """Structural transport interface used by endpoint modules and channels.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        body: Mapping[str, Any] | None = None,
    ) -> Any: ...

    def stream_lines(self, endpoint: str) -> AbstractAsyncContextManager[AsyncIterator[str]]: ...


async def _iter_lines(response: aiohttp.ClientResponse) -> AsyncIterator[str]:
    async for raw in response.content:
        yield raw.decode("utf-8", errors="replace").rstrip("\r\n")


class HttpTransport:
    """aiohttp-backed transport for the SmartCare REST API."""

    def __init__(self, config: SmartCareConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _headers(self, *, accept: str) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": accept,
            "user-agent": USER_AGENT,
        }
        if self._config.api_token:
            headers["authorization"] = f"Bearer {self._config.api_token}"
        return headers

    def _url(self, endpoint: str) -> str:
        return f"{self._config.base_url}{endpoint}"

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Bodies that are empty or not JSON count as success: ``True`` for an
        empty body, the text otherwise.
        """
        headers = self._headers(accept="application/json")
        data: str | None = None
        if body is not None:
            headers["content-type"] = "application/json; charset=utf-8"
            data = json.dumps(body, separators=(",", ":"))

        url = self._url(endpoint)
        _logger.debug("%s %s body=%s", method, url, redact_for_log(body))

        try:
            async with self._http.request(
                method,
                url,
                data=data,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
            ) as resp:
                text = await resp.text()
                content_type = resp.headers.get("content-type", "")
                status = resp.status
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise SmartCareTransportError(
                f"{method} {endpoint} failed: {exc!r}",
                endpoint=endpoint,
            ) from exc
        except UnicodeDecodeError as exc:
            raise SmartCareApiError(
                f"Undecodable body from {endpoint}: {exc.reason}",
                endpoint=endpoint,
            ) from exc

        if status in _AUTH_STATUSES:
            raise SmartCareAuthenticationError(
                f"HTTP {status} from {endpoint}",
                status_code=status,
                endpoint=endpoint,
            )
        if not 200 <= status < 300:
            raise SmartCareApiError(
                f"HTTP {status} from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            )

        if not text.strip():
            return True
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            if "json" in content_type:
                raise SmartCareApiError(
                    f"Invalid JSON from {endpoint}: {text[:200]}",
                    status_code=status,
                    endpoint=endpoint,
                ) from exc
            return text

    @contextlib.asynccontextmanager
    async def stream_lines(self, endpoint: str) -> AsyncIterator[AsyncIterator[str]]:
        """Open a Server-Sent Events stream and yield its decoded lines.

        Connection failures, non-200 statuses and read errors (including the
        idle timeout) surface as :class:`SmartCareStreamError`.
        """
        url = self._url(endpoint)
        idle = self._config.stream_idle_timeout or None
        timeout = aiohttp.ClientTimeout(
            total=None,
            sock_connect=self._config.request_timeout,
            sock_read=idle,
        )
        headers = self._headers(accept="text/event-stream")
        headers["cache-control"] = "no-cache"

        _logger.debug("GET %s (stream)", url)
        try:
            async with self._http.get(url, headers=headers, timeout=timeout) as resp:
                if resp.status != 200:
                    raise SmartCareStreamError(
                        f"HTTP {resp.status} opening stream {endpoint}",
                        endpoint=endpoint,
                    )
                yield _iter_lines(resp)
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise SmartCareStreamError(
                f"Stream {endpoint} failed: {exc!r}",
                endpoint=endpoint,
            ) from exc
