"""Private Trugen REST API client for the Trugen Shu plugin."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from .polling import PollOutcome, PollPolicy, conversation_status, poll_conversation


class _TrugenClient:
    """Private HTTP client for the Trugen external API.

    Instantiated once per item, holding the resolved API key and host
    reference so they don't need to be threaded through every helper.

    All requests go through ``_send``, which attaches the JSON content
    headers and ``x-api-key``, delegates to ``host.http.fetch`` and returns
    the host response; ``_request`` unwraps its ``body``. Nothing here
    retries: a transport or non-2xx failure raised by the host propagates to
    the caller unchanged.
    """

    BASE_URL: str = "https://api.trugen.ai/v1"

    def __init__(self, api_key: str, host: Any) -> None:
        """Initialise the client with an API key and a host handle.

        Args:
            api_key: Trugen API key (already validated as non-blank).
            host:    Shu host capability object providing ``http`` and ``log``.
        """
        self._api_key = api_key
        self._host = host

    async def _send(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one request to the Trugen API and return the host response.

        Args:
            method: HTTP method.
            path:   Path below ``BASE_URL``, starting with ``/``.
            body:   JSON request body, if any.

        Returns:
            The host response dict: ``status_code``, ``headers`` and ``body``.
        """
        url = f"{self.BASE_URL}{path}"
        headers: dict[str, str] = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
        }
        kwargs: dict[str, Any] = {"headers": headers}
        if body is not None:
            kwargs["json"] = body

        self._host.log.debug(f"Trugen {method} {path}", extra={"method": method, "path": path})
        return await self._host.http.fetch(method, url, **kwargs)

    async def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        response = await self._send(method, path, body)
        return response.get("body")

    async def create_agent(self, payload: dict[str, Any]) -> Any:
        """Create an agent. ``payload`` comes from ``build_agent_request``."""
        return await self._request("POST", "/ext/agent", body=payload)

    async def list_avatars(self) -> Any:
        return await self._request("GET", "/ext/avatars")

    async def check_api_key(self) -> int:
        """Call ``GET /ext/avatars`` and return the status code the API answered with."""
        response = await self._send("GET", "/ext/avatars")
        return int(response["status_code"])

    async def get_conversation(self, conversation_id: str) -> Any:
        return await self._request("GET", f"/ext/conversation/{quote(conversation_id, safe='')}")

    async def wait_for_conversation(
        self,
        conversation_id: str,
        wait: bool,
        policy: PollPolicy,
    ) -> PollOutcome:
        """Fetch a conversation, optionally polling until it is ``Completed``.

        Args:
            conversation_id: Trugen conversation id.
            wait:            Poll until terminal when True; single fetch otherwise.
            policy:          Attempt ceiling and interval for the poll.

        Returns:
            The poll outcome; ``outcome.record`` is the last body fetched.
        """

        async def _fetch() -> Any:
            return await self.get_conversation(conversation_id)

        def _on_wait(attempt: int, record: Any) -> None:
            self._host.log.debug(
                f"Conversation {conversation_id} is {conversation_status(record)!r}; "
                f"re-fetching in {policy.interval}s ({attempt}/{policy.max_attempts})",
                extra={"conversation_id": conversation_id, "attempt": attempt},
            )

        return await poll_conversation(_fetch, policy, wait=wait, on_wait=_on_wait)
