"""Test scaffolding for the Trugen plugin.

:class:`FakeHostBuilder` builds a mock Shu ``Host`` whose ``http.fetch``
answers from configured routes and records every request it receives, so
tests can assert on the exact body the plugin sent. :func:`patch_poll_sleep`
removes the poller's real delays.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock, patch

from .exceptions import HttpRequestFailed


@contextmanager
def patch_poll_sleep() -> Generator[AsyncMock, None, None]:
    """Replace ``asyncio.sleep`` inside the poller with an instant ``AsyncMock``.

    Yields:
        The mock, so tests can assert on how often and how long it "slept".
    """
    with patch("trugen.polling.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


class FakeHostBuilder:
    """Fluent builder for a mock Shu ``Host`` used in plugin unit tests.

    Usage::

        host = (
            FakeHostBuilder()
            .with_secret("trugen_api_key", "tk_test")
            .with_http_response("GET", url, {"status_code": 200, "headers": {}, "body": [...]})
            .build()
        )
        result = await plugin.execute({"op": "list_avatars"}, ctx, host)
        assert host.http.requests[0]["headers"]["x-api-key"] == "tk_test"

    A route configured with several responses answers them in order and then
    keeps repeating the last one. Requests to unconfigured routes raise a 404
    ``HttpRequestFailed``.
    """

    def __init__(self) -> None:
        self._secrets: dict[str, object] = {}
        self._http_routes: dict[tuple[str, str], list[dict[str, Any]]] = {}

    def build(self) -> MagicMock:
        """Build and return the configured mock host.

        ``log`` is a plain ``MagicMock`` because the host's log capability is
        synchronous; ``http.requests`` lists every recorded request.
        """
        host = MagicMock()
        for cap in ("http", "secrets"):
            setattr(host, cap, AsyncMock())
        host.log = MagicMock()

        secrets_store = self._secrets

        async def _secrets_get(key: str) -> object:
            return secrets_store.get(key)

        host.secrets.get = _secrets_get

        http_routes = {key: list(queue) for key, queue in self._http_routes.items()}
        requests: list[dict[str, Any]] = []

        async def _http_fetch(method: str, url: str, **kwargs: Any) -> dict[str, Any]:
            requests.append({"method": method.upper(), "url": url, **kwargs})
            queue = http_routes.get((method.upper(), url))
            if not queue:
                raise HttpRequestFailed(404, url, body={"detail": "No fake route configured"})
            route = queue.pop(0) if len(queue) > 1 else queue[0]
            if route["type"] == "error":
                raise route["exc"]
            return route["data"]

        host.http.fetch = _http_fetch
        host.http.requests = requests
        return host

    def with_secret(self, key: str, value: object) -> "FakeHostBuilder":
        """Configure ``host.secrets.get(key)`` to return *value*."""
        self._secrets[key] = value
        return self

    def with_http_response(
        self,
        method: str,
        url: str,
        *responses: dict[str, Any],
    ) -> "FakeHostBuilder":
        """Queue one or more responses for ``host.http.fetch(method, url, ...)``.

        Args:
            method: HTTP method string (case-insensitive).
            url: Exact URL to match.
            responses: Dicts shaped ``{"status_code": int, "headers": dict,
                "body": ...}`` like the real ``http`` capability returns.

        Returns:
            ``self`` for method chaining.
        """
        queue = self._http_routes.setdefault((method.upper(), url), [])
        queue.extend({"type": "response", "data": r} for r in responses)
        return self

    def with_http_error(
        self,
        method: str,
        url: str,
        status_code: int,
        body: object = None,
        headers: dict | None = None,
    ) -> "FakeHostBuilder":
        """Queue an :class:`HttpRequestFailed` for ``host.http.fetch(method, url, ...)``."""
        exc = HttpRequestFailed(status_code, url, body, headers)
        self._http_routes.setdefault((method.upper(), url), []).append({"type": "error", "exc": exc})
        return self
