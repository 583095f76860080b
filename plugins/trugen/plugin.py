"""Trugen plugin for Shu — deploys video agents and reads their conversations.

This plugin calls the Trugen external REST API to create an agent from a flat
set of fields, list the available avatars, and fetch a conversation
(optionally polling until it has completed).

Every op accepts either a single set of fields at the top level of ``params``
or a batch under ``items``. Items run strictly one after another. With
``continue_on_fail`` a failed item contributes ``{"error": message}`` and the
batch carries on; without it the batch stops at the first failure.

Authentication uses the Trugen API key stored in the host secrets store under
key ``trugen_api_key``; it is sent as the ``x-api-key`` header.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import jsonschema
from jsonschema.exceptions import best_match

from . import catalog
from .client import _TrugenClient
from .exceptions import TrugenError
from .formatting import embed_code, format_response, strip_display_pictures
from .payload import (
    DEFAULT_GREETING,
    DEFAULT_MAX_SESSION_MINUTES,
    DEFAULT_NAME,
    DEFAULT_SYSTEM_PROMPT,
    build_agent_request,
)
from .polling import PollPolicy, PollState, conversation_status
from .result import PluginResult

API_KEY_SECRET = "trugen_api_key"

_CONTROL_KEYS = ("op", "items", "continue_on_fail")

_POLL_POLICY = PollPolicy(max_attempts=5, interval=2.0)


def _model_selector(provider: str, models: tuple[str, ...], help_text: str) -> dict[str, Any]:
    return {
        "type": "string",
        "enum": list(models),
        "default": models[0],
        "x-ui": {"help": f"{help_text} (used when the provider is '{provider}')"},
    }


# ---------------------------------------------------------------------------
# Per-item schemas
#
# One entry per op describing the fields of a single item. _OP_SCHEMAS wraps
# each of them with the control fields (op, items, continue_on_fail) and
# get_schema() merges all ops into the combined Loader schema.
# ---------------------------------------------------------------------------

_ITEM_SCHEMAS: dict[str, dict[str, Any]] = {
    "create_agent": {
        "type": "object",
        "properties": {
            "name": {
                "type": "string",
                "default": DEFAULT_NAME,
                "x-ui": {"help": "Display name for the agent and its persona"},
            },
            "system_prompt": {
                "type": "string",
                "default": DEFAULT_SYSTEM_PROMPT,
                "x-ui": {"help": "Behavioral prompt for the persona's interaction style"},
            },
            "avatar_source": {
                "type": "string",
                "enum": ["stock", "manual"],
                "default": "stock",
                "x-ui": {
                    "help": "Pick a stock avatar or enter an avatar id",
                    "enum_labels": {"stock": "Stock Avatar", "manual": "Manual Input"},
                },
            },
            "avatar_stock": {
                "type": "string",
                "enum": list(catalog.STOCK_AVATARS),
                "default": catalog.DEFAULT_STOCK_AVATAR,
                "x-ui": {"help": "Stock avatar (used when avatar_source is 'stock')"},
            },
            "avatar_id": {
                "type": "string",
                "x-ui": {"help": "Avatar id (required when avatar_source is 'manual')"},
            },
            "greeting": {
                "type": "string",
                "default": DEFAULT_GREETING,
                "x-ui": {"help": "Initial message spoken by the agent"},
            },
            "llm_provider": {
                "type": "string",
                "enum": list(catalog.LLM_MODELS),
                "default": catalog.DEFAULT_LLM_PROVIDER,
                "x-ui": {
                    "help": "Provider for the Large Language Model",
                    "enum_labels": {"google": "Google", "groq": "Groq", "openai": "OpenAI"},
                },
            },
            **{
                f"llm_model_{provider}": _model_selector(provider, models, "LLM model")
                for provider, models in catalog.LLM_MODELS.items()
            },
            "stt_provider": {
                "type": "string",
                "enum": list(catalog.STT_MODELS),
                "default": catalog.DEFAULT_STT_PROVIDER,
                "x-ui": {
                    "help": "Provider for Speech-to-Text",
                    "enum_labels": {"deepgram": "Deepgram", "deepgram-v2": "Deepgram V2"},
                },
            },
            "stt_model_deepgram": _model_selector(
                "deepgram", catalog.STT_MODELS["deepgram"], "STT model"
            ),
            "stt_model_deepgram_v2": _model_selector(
                "deepgram-v2", catalog.STT_MODELS["deepgram-v2"], "STT model"
            ),
            "stt_language": {
                "type": "string",
                "enum": list(catalog.STT_LANGUAGES),
                "default": catalog.DEFAULT_STT_LANGUAGE,
                "x-ui": {
                    "help": "Speech-to-Text language (Deepgram V2 is always 'en')",
                    "enum_labels": catalog.STT_LANGUAGES,
                },
            },
            "tts_provider": {
                "type": "string",
                "enum": list(catalog.TTS_MODELS),
                "default": catalog.DEFAULT_TTS_PROVIDER,
                "x-ui": {"help": "Provider for Text-to-Speech"},
            },
            "tts_model_elevenlabs": _model_selector(
                "elevenlabs", catalog.TTS_MODELS["elevenlabs"], "TTS model"
            ),
            "tts_voice": {
                "type": "string",
                "enum": list(catalog.TTS_VOICES),
                "default": catalog.DEFAULT_TTS_VOICE,
                "x-ui": {"help": "Stock voice for Text-to-Speech"},
            },
            "max_session_length_minutes": {
                "type": "number",
                "minimum": 0,
                "default": DEFAULT_MAX_SESSION_MINUTES,
                "x-ui": {"help": "Maximum duration of a session in minutes"},
            },
            "capabilities": {
                "type": "array",
                "items": {"type": "string", "enum": list(catalog.CAPABILITIES)},
                "uniqueItems": True,
                "default": [],
                "x-ui": {"help": "Vision capabilities to enable for the agent"},
            },
            "email": {
                "type": "string",
                "minLength": 1,
                "x-ui": {"help": "Email address associated with the agent"},
            },
            "record": {
                "type": "boolean",
                "default": True,
                "x-ui": {"help": "Whether call recordings are stored"},
            },
            "callback_events": {
                "type": "array",
                "items": {"type": "string", "enum": list(catalog.CALLBACK_EVENTS)},
                "uniqueItems": True,
                "default": [],
                "x-ui": {"help": "Webhook events that trigger callbacks"},
            },
            "callback_url": {
                "type": "string",
                "default": "",
                "x-ui": {"help": "Webhook endpoint that receives callback events"},
            },
        },
        "required": ["email"],
        "allOf": [
            {
                "if": {
                    "properties": {"avatar_source": {"const": "manual"}},
                    "required": ["avatar_source"],
                },
                "then": {
                    "properties": {"avatar_id": {"minLength": 1}},
                    "required": ["avatar_id"],
                },
            }
        ],
        "additionalProperties": False,
    },
    "list_avatars": {
        "type": "object",
        "properties": {},
        "additionalProperties": False,
    },
    "get_conversation": {
        "type": "object",
        "properties": {
            "conversation_id": {
                "type": "string",
                "minLength": 1,
                "x-ui": {"help": "The unique identifier of the conversation"},
            },
            "wait_for_completion": {
                "type": "boolean",
                "default": False,
                "x-ui": {
                    "help": "Poll until the conversation status is Completed "
                    f"(at most {_POLL_POLICY.max_attempts} re-fetches, "
                    f"{_POLL_POLICY.interval:g}s apart)"
                },
            },
        },
        "required": ["conversation_id"],
        "additionalProperties": False,
    },
    "verify_credentials": {
        "type": "object",
        "properties": {},
        "additionalProperties": False,
    },
}

_OP_HELP: dict[str, str] = {
    "create_agent": "Deploy a new agent with configuration",
    "list_avatars": "Retrieve the list of available avatars",
    "get_conversation": "Retrieve details of a specific conversation",
    "verify_credentials": "Check that the stored API key is accepted",
}


def _control_properties(ops: list[str], item_schema: dict[str, Any]) -> dict[str, Any]:
    return {
        "op": {
            "type": "string",
            "enum": ops,
            "x-ui": {"help": "Operation to perform", "enum_help": {op: _OP_HELP[op] for op in ops}},
        },
        "items": {
            "type": "array",
            "items": item_schema,
            "x-ui": {"help": "Batch of items; each is processed in order"},
        },
        "continue_on_fail": {
            "type": "boolean",
            "default": False,
            "x-ui": {"help": "Record failed items as {error: message} instead of stopping"},
        },
    }


def _op_schema(op: str) -> dict[str, Any]:
    item_schema = _ITEM_SCHEMAS[op]
    return {
        "type": "object",
        "properties": {
            **_control_properties([op], item_schema),
            **item_schema["properties"],
        },
        "required": ["op"],
        "additionalProperties": False,
    }


_OP_SCHEMAS: dict[str, dict[str, Any]] = {op: _op_schema(op) for op in _ITEM_SCHEMAS}

_ITEM_VALIDATORS: dict[str, jsonschema.Draft7Validator] = {
    op: jsonschema.Draft7Validator(schema) for op, schema in _ITEM_SCHEMAS.items()
}


def _validate_item(op: str, fields: Any) -> None:
    """Raise ``TrugenError(invalid_params)`` if ``fields`` violates the op's item schema."""
    error = best_match(_ITEM_VALIDATORS[op].iter_errors(fields))
    if error is not None:
        where = ".".join(str(p) for p in error.absolute_path)
        prefix = f"{where}: " if where else ""
        raise TrugenError(f"{prefix}{error.message}", code="invalid_params")


def _split_items(params: dict[str, Any]) -> list[Any]:
    """Return the batch of per-item fields for this invocation."""
    if "items" in params:
        items = params["items"]
        if not isinstance(items, list):
            raise TrugenError("items must be a list of objects.", code="invalid_params")
        return items
    return [{k: v for k, v in params.items() if k not in _CONTROL_KEYS}]


async def _resolve_api_key(host: Any) -> str:
    """Fetch the Trugen API key from the secrets store.

    Raises:
        TrugenError: ``auth_missing`` when the key is missing or blank.
    """
    raw: str | None = await host.secrets.get(API_KEY_SECRET)
    api_key = (raw or "").strip()
    if not api_key:
        raise TrugenError(
            "Trugen API key not configured. "
            f"Store your key via host.secrets under key '{API_KEY_SECRET}'.",
            code="auth_missing",
        )
    return api_key


def _error_code(exc: Exception) -> str:
    return getattr(exc, "error_category", None) or "tool_error"


def _error_message(exc: Exception) -> str:
    """``str(exc)``, followed by the provider's own message when the body has one."""
    message = str(exc)
    provider_message = getattr(exc, "provider_message", "")
    if provider_message:
        message = f"{message}: {provider_message}"
    return message


# ---------------------------------------------------------------------------
# Op handlers — one call per item
# ---------------------------------------------------------------------------


async def _create_agent(client: _TrugenClient, fields: dict[str, Any], host: Any) -> dict[str, Any]:
    payload = build_agent_request(fields)
    body = await client.create_agent(payload)

    formatted = format_response(body)
    if formatted.get("id"):
        formatted["embed_code"] = embed_code(formatted["id"])
        host.log.info(f"Created Trugen agent {formatted['id']}", extra={"agent_id": formatted["id"]})
    # The API does not always echo the email back.
    formatted["email"] = fields.get("email", "")
    return formatted


async def _list_avatars(client: _TrugenClient, fields: dict[str, Any], host: Any) -> dict[str, Any]:
    body = await client.list_avatars()
    return strip_display_pictures(format_response(body))


async def _get_conversation(client: _TrugenClient, fields: dict[str, Any], host: Any) -> dict[str, Any]:
    conversation_id: str = fields["conversation_id"]
    wait = bool(fields.get("wait_for_completion", False))

    outcome = await client.wait_for_conversation(conversation_id, wait, _POLL_POLICY)
    if outcome.state is PollState.exhausted:
        host.log.warning(
            f"Conversation {conversation_id} still {conversation_status(outcome.record)!r} "
            f"after {outcome.fetches} fetches; returning last record",
            extra={"conversation_id": conversation_id, "fetches": outcome.fetches},
        )
    return format_response(outcome.record)


async def _verify_credentials(client: _TrugenClient, fields: dict[str, Any], host: Any) -> dict[str, Any]:
    """Probe ``GET /ext/avatars``; a 401/403 means the key was rejected."""
    try:
        status_code = await client.check_api_key()
    except Exception as exc:
        if _error_code(exc) not in ("auth_error", "forbidden"):
            raise
        return {
            "valid": False,
            "status_code": getattr(exc, "status_code", None),
            "message": _error_message(exc),
        }
    return {"valid": True, "status_code": status_code}


_Handler = Callable[[_TrugenClient, dict[str, Any], Any], Awaitable[dict[str, Any]]]

_HANDLERS: dict[str, _Handler] = {
    "create_agent": _create_agent,
    "list_avatars": _list_avatars,
    "get_conversation": _get_conversation,
    "verify_credentials": _verify_credentials,
}


class TrugenPlugin:
    """Shu plugin for the Trugen video-agent platform.

    Implements the Shu Plugin Protocol:
    - ``name`` and ``version`` class attributes matched to the manifest
    - ``get_schema()``         — combined JSON Schema for all ops (Loader compatibility)
    - ``get_output_schema()``  — output schema of a successful result
    - ``get_schema_for_op()``  — per-op schema
    - ``execute()``            — async op dispatcher over a batch of items
    """

    name: str = "trugen"
    version: str = "1"

    def get_schema(self) -> dict[str, Any]:
        """Return the combined JSON Schema for all ops.

        The Shu Loader discovers the available operations from
        ``properties.op.enum``. Fields of every op are merged, so the
        combined schema cannot mark op-specific fields as required;
        ``execute()`` validates each item against its op's own schema.
        """
        properties: dict[str, Any] = _control_properties(
            list(_ITEM_SCHEMAS), {"type": "object"}
        )
        for item_schema in _ITEM_SCHEMAS.values():
            properties.update(item_schema["properties"])
        return {
            "type": "object",
            "properties": properties,
            "required": ["op"],
            "additionalProperties": False,
        }

    def get_output_schema(self) -> dict[str, Any]:
        """Return the JSON Schema for the ``data`` field of a successful result.

        Each item is the reshaped Trugen response for one input item, or
        ``{"error": message}`` for an item that failed under ``continue_on_fail``.
        """
        return {
            "type": "object",
            "properties": {
                "items": {
                    "type": "array",
                    "items": {"type": "object"},
                },
            },
            "required": ["items"],
            "additionalProperties": False,
        }

    def get_schema_for_op(self, op_name: str) -> dict[str, Any] | None:
        """Return the JSON Schema for a specific op, or None for unknown ops."""
        return _OP_SCHEMAS.get(op_name)

    async def execute(
        self,
        params: dict[str, Any],
        context: Any,
        host: Any,
    ) -> PluginResult:
        """Run the requested op once per item and collect the results.

        The op is resolved once for the whole invocation; field values are
        read per item.

        Args:
            params:  Input parameters (always contains ``op``).
            context: Execution context (user_id, agent_key, etc.).
            host:    Host capability object — ``host.log``, ``host.http``,
                     ``host.secrets``.

        Returns:
            ``PluginResult.ok(data={"items": [...]})`` in input order, or
            ``PluginResult.err`` for the first failing item when
            ``continue_on_fail`` is off. The error ``details`` carry the items
            completed before the failure and the failing ``item_index``.
        """
        op = params.get("op")
        handler = _HANDLERS.get(op)  # type: ignore[arg-type]
        if handler is None:
            return PluginResult.err(f"Unknown op: {op!r}", code="invalid_params")

        continue_on_fail = bool(params.get("continue_on_fail", False))
        try:
            items = _split_items(params)
        except TrugenError as exc:
            return PluginResult.err(str(exc), code=exc.code)

        results: list[dict[str, Any]] = []
        for index, fields in enumerate(items):
            try:
                _validate_item(op, fields)
                api_key = await _resolve_api_key(host)
                client = _TrugenClient(api_key, host)
                results.append(await handler(client, fields, host))
            except Exception as exc:
                message = _error_message(exc)
                extra = {"op": op, "item_index": index, "code": _error_code(exc)}
                if continue_on_fail:
                    host.log.warning(f"Trugen {op} failed for item {index}: {message}", extra=extra)
                    results.append({"error": message})
                    continue
                host.log.error(f"Trugen {op} failed for item {index}: {message}", extra=extra)
                return PluginResult.err(
                    message,
                    code=_error_code(exc),
                    details={"items": results, "item_index": index},
                )

        host.log.info(
            f"Trugen {op} processed {len(results)} item(s)",
            extra={"op": op, "item_count": len(results)},
        )
        return PluginResult.ok(data={"items": results})
