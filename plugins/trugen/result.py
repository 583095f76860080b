"""Result envelope returned from ``TrugenPlugin.execute()``.

Matches the Shu PLUGIN_CONTRACT result shape::

    {
        "status": "success" | "error",
        "data": {"items": [...]},
        "error": {"code": ..., "message": ..., "details": {...}} | null,
        "diagnostics": [...] | null,
    }
"""

from __future__ import annotations

from typing import Any


class PluginResult:
    """Canonical result of one plugin invocation.

    Prefer ``ok()`` and ``err()`` over direct construction.
    """

    def __init__(
        self,
        status: str,
        data: dict[str, Any] | None = None,
        error: dict[str, Any] | None = None,
        diagnostics: list[str] | None = None,
    ) -> None:
        self.status = status
        self.data = data if data is not None else {}
        self.error = error
        self.diagnostics = diagnostics

    @classmethod
    def ok(
        cls,
        data: dict[str, Any] | None = None,
        diagnostics: list[str] | None = None,
    ) -> "PluginResult":
        """Return a successful result."""
        return cls("success", data=data or {}, diagnostics=diagnostics)

    @classmethod
    def err(
        cls,
        message: str,
        code: str = "tool_error",
        details: dict[str, Any] | None = None,
    ) -> "PluginResult":
        """Return an error result.

        ``details`` carries whatever was completed before the failure, so a
        batch aborted at item N still reports items ``0..N-1``.
        """
        return cls(
            "error",
            data={},
            error={"code": code, "message": message, "details": details or {}},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "data": self.data,
            "error": self.error,
            "diagnostics": self.diagnostics,
        }

    def __repr__(self) -> str:
        return f"PluginResult(status={self.status!r}, data={self.data!r})"
