"""Exception types raised inside the Trugen plugin.

``HttpRequestFailed`` mirrors the interface of the exception the Shu host's
``http`` capability raises on non-2xx responses, so the plugin and its tests
can reason about failures without importing host internals.
"""

from __future__ import annotations


class TrugenError(Exception):
    """Plugin-level failure carrying a result ``code``.

    Attributes:
        code: Machine-readable error code copied into ``PluginResult.err``.
    """

    def __init__(self, message: str, code: str = "tool_error") -> None:
        self.code = code
        super().__init__(message)

    @property
    def error_category(self) -> str:
        return self.code


class HttpRequestFailed(Exception):
    """Raised by ``host.http.fetch`` when the Trugen API answers non-2xx.

    Attributes:
        status_code: HTTP status code as int.
        url: Request URL as str.
        body: Parsed response body (dict, list, str, or None).
        headers: Response headers dict.
    """

    def __init__(
        self,
        status_code: int,
        url: str,
        body: object = None,
        headers: dict | None = None,
    ) -> None:
        self.status_code = int(status_code)
        self.url = str(url)
        self.body = body
        self.headers = dict(headers or {})
        msg = f"HTTP {self.status_code} calling {self.url}"
        super().__init__(msg)

    @property
    def error_category(self) -> str:
        """Semantic error category based on HTTP status code.

        Returns one of ``auth_error`` (401), ``forbidden`` (403),
        ``not_found`` (404), ``rate_limited`` (429), ``server_error`` (5xx)
        or ``client_error`` (other 4xx).
        """
        if self.status_code == 401:
            return "auth_error"
        if self.status_code == 403:
            return "forbidden"
        if self.status_code == 404:
            return "not_found"
        if self.status_code == 429:
            return "rate_limited"
        if self.status_code >= 500:
            return "server_error"
        return "client_error"

    @property
    def provider_message(self) -> str:
        """Best-effort error message extracted from the response body.

        Understands ``{"error": {"message": ...}}``, ``{"detail": ...}``,
        ``{"message": ...}``, ``{"error": ...}`` and plain string bodies.
        """
        if self.body is None:
            return ""
        if isinstance(self.body, str):
            return self.body[:500]
        if isinstance(self.body, dict):
            error_obj = self.body.get("error")
            if isinstance(error_obj, dict) and error_obj.get("message"):
                return str(error_obj["message"])
            for key in ("detail", "message", "error"):
                val = self.body.get(key)
                if val and isinstance(val, str):
                    return val
            return str(self.body)[:500]
        return str(self.body)[:500]
