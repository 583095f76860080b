"""Reshaping of raw Trugen API bodies into the plugin's output items."""

from __future__ import annotations

import json
from typing import Any

CALL_LINK_TEMPLATE = "https://app.trugen.ai/agent/{id}"
EMBED_URL_TEMPLATE = "https://app.trugen.ai/embed?agentId={id}"


def format_response(raw: Any) -> dict[str, Any]:
    """Normalise a raw response body into a dict.

    - JSON strings are parsed first; unparseable strings become ``{"data": raw}``.
    - Lists and non-object values (``None``, numbers, booleans) are wrapped as
      ``{"data": value}``.
    - Objects carrying an ``id`` key gain a ``call_link`` pointing at the
      agent's page in the Trugen app.
    - Any other object is returned as a shallow copy.

    Never raises.
    """
    value = raw
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except (ValueError, RecursionError):
            return {"data": raw}

    if not isinstance(value, dict):
        return {"data": value}

    formatted = dict(value)
    if "id" in formatted:
        formatted["call_link"] = CALL_LINK_TEMPLATE.format(id=formatted["id"])
    return formatted


def embed_code(agent_id: Any) -> str:
    """Return the HTML iframe snippet that embeds an agent in a web page."""
    src = EMBED_URL_TEMPLATE.format(id=agent_id)
    return (
        "<iframe\n"
        f'src="{src}"\n'
        'width="100%"\n'
        'height="600"\n'
        'frameborder="0"\n'
        'allow="camera; microphone; autoplay"\n'
        "></iframe>"
    )


def strip_display_pictures(formatted: dict[str, Any]) -> dict[str, Any]:
    """Drop ``display_picture`` from every avatar listed under ``data``.

    The base64 pictures are large and not useful downstream. Bodies without a
    ``data`` list are returned unchanged.
    """
    avatars = formatted.get("data")
    if not isinstance(avatars, list):
        return formatted

    cleaned: list[Any] = []
    for avatar in avatars:
        if isinstance(avatar, dict):
            avatar = {k: v for k, v in avatar.items() if k != "display_picture"}
        cleaned.append(avatar)
    return {**formatted, "data": cleaned}
