"""Shapes of the webhook callbacks Trugen delivers to ``callback_url``.

The plugin never receives these itself; the types and ``parse_webhook`` are
for downstream consumers (e.g. a Shu webhook experience) that handle the
events an agent was created with in ``callback_events``.
"""

from __future__ import annotations

from typing import Any, TypedDict, Union

import jsonschema
from jsonschema.exceptions import best_match

from .exceptions import TrugenError


class AgentSpeakingPayload(TypedDict):
    text: str


class ParticipantLeftPayload(TypedDict):
    id: str


class UtteranceCommittedPayload(TypedDict):
    text: str


class MaxCallDurationPayload(TypedDict):
    call_duration: float
    max_call_duration: float


EventPayload = Union[
    AgentSpeakingPayload,
    ParticipantLeftPayload,
    UtteranceCommittedPayload,
    MaxCallDurationPayload,
    dict[str, Any],
]


class WebhookEvent(TypedDict):
    name: str
    payload: EventPayload


class TrugenWebhookData(TypedDict):
    timestamp: float
    conversation_id: str
    type: str
    event: WebhookEvent


# Payload keys each known event must carry. Events not listed here (e.g.
# ``user.started_speaking``, ``call_ended``) have open-ended payloads.
EVENT_PAYLOAD_KEYS: dict[str, tuple[str, ...]] = {
    "agent.started_speaking": ("text",),
    "agent.stopped_speaking": ("text",),
    "agent.interrupted": ("text",),
    "participant_left": ("id",),
    "utterance_committed": ("text",),
    "max_call_duration_timeout": ("call_duration", "max_call_duration"),
}

WEBHOOK_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "timestamp": {"type": "number"},
        "conversation_id": {"type": "string"},
        "type": {"type": "string"},
        "event": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "payload": {"type": "object"},
            },
            "required": ["name", "payload"],
        },
    },
    "required": ["timestamp", "conversation_id", "type", "event"],
}

_VALIDATOR = jsonschema.Draft7Validator(WEBHOOK_SCHEMA)


def parse_webhook(data: Any) -> TrugenWebhookData:
    """Validate a delivered webhook body and return it typed.

    Raises:
        TrugenError: ``invalid_webhook`` when the envelope does not match
            ``WEBHOOK_SCHEMA`` or a known event lacks its payload keys.
    """
    error = best_match(_VALIDATOR.iter_errors(data))
    if error is not None:
        path = "/".join(str(p) for p in error.absolute_path) or "<root>"
        raise TrugenError(f"Invalid webhook at {path}: {error.message}", code="invalid_webhook")

    event = data["event"]
    missing = [k for k in EVENT_PAYLOAD_KEYS.get(event["name"], ()) if k not in event["payload"]]
    if missing:
        raise TrugenError(
            f"Webhook event {event['name']!r} payload is missing {missing}",
            code="invalid_webhook",
        )
    return data  # type: ignore[return-value]
