"""Unit tests for the Trugen Shu plugin.

Uses ``FakeHostBuilder`` for all host interactions so no real Trugen API
calls are made during the test suite.
"""

from __future__ import annotations

import inspect
from unittest.mock import AsyncMock

import jsonschema

from trugen.manifest import PLUGIN_MANIFEST
from trugen.plugin import TrugenPlugin
from trugen.testing import FakeHostBuilder


# ---------------------------------------------------------------------------
# Contract gate
# ---------------------------------------------------------------------------


def test_contract() -> None:
    """Manifest and schemas satisfy the Shu plugin contract."""
    plugin = TrugenPlugin()
    assert plugin.name == PLUGIN_MANIFEST["name"]
    assert plugin.version == PLUGIN_MANIFEST["version"]
    assert inspect.iscoroutinefunction(plugin.execute)

    schema = plugin.get_schema()
    jsonschema.Draft7Validator.check_schema(schema)
    jsonschema.Draft7Validator.check_schema(plugin.get_output_schema())

    op_enum = schema["properties"]["op"]["enum"]
    assert set(PLUGIN_MANIFEST["chat_callable_ops"]) <= set(op_enum)
    for op in op_enum:
        op_schema = plugin.get_schema_for_op(op)
        assert op_schema is not None
        jsonschema.Draft7Validator.check_schema(op_schema)
        assert set(op_schema.get("required", [])) <= set(op_schema["properties"])
    assert plugin.get_schema_for_op("delete_agent") is None


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------

_CTX = type("Ctx", (), {"user_id": "test_user", "agent_key": None})()

_BASE = "https://api.trugen.ai/v1"
_AGENT_URL = f"{_BASE}/ext/agent"
_AVATARS_URL = f"{_BASE}/ext/avatars"
_API_KEY = "tk_test_key"
_EMAIL = "owner@example.com"


def _conversation_url(conversation_id: str = "conv_1") -> str:
    return f"{_BASE}/ext/conversation/{conversation_id}"


def _ok(body: object) -> dict:
    return {"status_code": 200, "headers": {"content-type": "application/json"}, "body": body}


def _conversation(status: str, conversation_id: str = "conv_1") -> dict:
    return _ok({"id": conversation_id, "status": status})


# ---------------------------------------------------------------------------
# create_agent
# ---------------------------------------------------------------------------


async def test_create_agent_success() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("POST", _AGENT_URL, _ok({"id": "abc123"}))
        .build()
    )

    result = await TrugenPlugin().execute(
        {"op": "create_agent", "email": _EMAIL, "max_session_length_minutes": 10},
        _CTX,
        host,
    )

    assert result.status == "success"
    [item] = result.data["items"]
    assert item["id"] == "abc123"
    assert item["call_link"] == "https://app.trugen.ai/agent/abc123"
    assert "agentId=abc123" in item["embed_code"]
    assert item["email"] == _EMAIL

    [request] = host.http.requests
    assert request["method"] == "POST"
    assert request["headers"] == {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "x-api-key": _API_KEY,
    }
    assert request["json"]["config"]["timeout"] == 600
    assert request["json"]["email"] == _EMAIL


async def test_create_agent_email_attached_even_without_id() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("POST", _AGENT_URL, _ok({"message": "queued", "email": "other@x.io"}))
        .build()
    )

    result = await TrugenPlugin().execute({"op": "create_agent", "email": _EMAIL}, _CTX, host)

    [item] = result.data["items"]
    assert item["email"] == _EMAIL
    assert "embed_code" not in item
    assert "call_link" not in item


async def test_create_agent_sends_provider_specific_config() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("POST", _AGENT_URL, _ok({"id": "a1"}))
        .build()
    )

    await TrugenPlugin().execute(
        {
            "op": "create_agent",
            "email": _EMAIL,
            "name": "Support Bot",
            "avatar_source": "manual",
            "avatar_id": "my-avatar",
            "llm_provider": "groq",
            "llm_model_groq": "openai/gpt-oss-20b",
            "stt_provider": "deepgram-v2",
            "stt_language": "de",
            "capabilities": ["webcam_vision", "screen_vision"],
            "callback_events": ["call_ended", "participant_left"],
            "callback_url": "https://hooks.example.com/trugen",
            "record": False,
        },
        _CTX,
        host,
    )

    body = host.http.requests[0]["json"]
    avatar = body["avatars"][0]
    assert body["agent_name"] == "Support Bot"
    assert avatar["avatar_key_id"] == "my-avatar"
    assert avatar["config"]["llm"] == {"model": "openai/gpt-oss-20b", "provider": "groq"}
    assert avatar["config"]["stt"]["language"] == "en"
    assert avatar["config"]["stt"]["model"] == "flux-general-en"
    assert avatar["config"]["webcam"] is True
    assert avatar["config"]["screen"] is True
    assert body["callback_events"] == ["call_ended", "participant_left"]
    assert body["callback_url"] == "https://hooks.example.com/trugen"
    assert body["record"] is False


async def test_create_agent_missing_email_is_invalid() -> None:
    host = FakeHostBuilder().with_secret("trugen_api_key", _API_KEY).build()

    result = await TrugenPlugin().execute({"op": "create_agent"}, _CTX, host)

    assert result.status == "error"
    assert result.error["code"] == "invalid_params"
    assert host.http.requests == []


async def test_manual_avatar_without_id_is_invalid() -> None:
    host = FakeHostBuilder().with_secret("trugen_api_key", _API_KEY).build()

    result = await TrugenPlugin().execute(
        {"op": "create_agent", "email": _EMAIL, "avatar_source": "manual"}, _CTX, host
    )

    assert result.status == "error"
    assert result.error["code"] == "invalid_params"


# ---------------------------------------------------------------------------
# list_avatars / verify_credentials
# ---------------------------------------------------------------------------


async def test_list_avatars_strips_display_pictures() -> None:
    avatars = [
        {"id": "665a1170", "name": "Lisa", "display_picture": "b64...", "gender": "female"},
        {"id": "87c62439", "name": "Jack"},
    ]
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("GET", _AVATARS_URL, _ok(avatars))
        .build()
    )

    result = await TrugenPlugin().execute({"op": "list_avatars"}, _CTX, host)

    assert result.status == "success"
    [item] = result.data["items"]
    assert item["data"] == [
        {"id": "665a1170", "name": "Lisa", "gender": "female"},
        {"id": "87c62439", "name": "Jack"},
    ]
    assert "json" not in host.http.requests[0]


async def test_list_avatars_envelope_body() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response(
            "GET", _AVATARS_URL, _ok({"data": [{"id": "x", "display_picture": "b64"}], "count": 1})
        )
        .build()
    )

    result = await TrugenPlugin().execute({"op": "list_avatars"}, _CTX, host)

    assert result.data["items"] == [{"data": [{"id": "x"}], "count": 1}]


async def test_verify_credentials_valid() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("GET", _AVATARS_URL, _ok([]))
        .build()
    )

    result = await TrugenPlugin().execute({"op": "verify_credentials"}, _CTX, host)

    assert result.data["items"] == [{"valid": True, "status_code": 200}]


async def test_verify_credentials_rejected_key() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", "tk_revoked")
        .with_http_error("GET", _AVATARS_URL, 401, body={"detail": "Invalid API key"})
        .build()
    )

    result = await TrugenPlugin().execute({"op": "verify_credentials"}, _CTX, host)

    assert result.status == "success"
    [item] = result.data["items"]
    assert item["valid"] is False
    assert item["status_code"] == 401
    assert "Invalid API key" in item["message"]


async def test_verify_credentials_server_error_propagates() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_error("GET", _AVATARS_URL, 503)
        .build()
    )

    result = await TrugenPlugin().execute({"op": "verify_credentials"}, _CTX, host)

    assert result.status == "error"
    assert result.error["code"] == "server_error"


async def test_verify_credentials_reports_returned_status() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("GET", _AVATARS_URL, {"status_code": 203, "headers": {}, "body": []})
        .build()
    )

    result = await TrugenPlugin().execute({"op": "verify_credentials"}, _CTX, host)

    assert result.data["items"] == [{"valid": True, "status_code": 203}]


# ---------------------------------------------------------------------------
# get_conversation
# ---------------------------------------------------------------------------


async def test_get_conversation_without_wait_fetches_once(_no_poll_sleep: AsyncMock) -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("GET", _conversation_url(), _conversation("Pending"), _conversation("Completed"))
        .build()
    )

    result = await TrugenPlugin().execute(
        {"op": "get_conversation", "conversation_id": "conv_1"}, _CTX, host
    )

    [item] = result.data["items"]
    assert item["status"] == "Pending"
    assert item["call_link"] == "https://app.trugen.ai/agent/conv_1"
    assert len(host.http.requests) == 1
    _no_poll_sleep.assert_not_awaited()


async def test_get_conversation_waits_for_completion(_no_poll_sleep: AsyncMock) -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response(
            "GET",
            _conversation_url(),
            _conversation("Pending"),
            _conversation("In Progress"),
            _conversation("Completed"),
        )
        .build()
    )

    result = await TrugenPlugin().execute(
        {"op": "get_conversation", "conversation_id": "conv_1", "wait_for_completion": True},
        _CTX,
        host,
    )

    [item] = result.data["items"]
    assert item["status"] == "Completed"
    assert len(host.http.requests) == 3
    assert _no_poll_sleep.await_count == 2
    _no_poll_sleep.assert_awaited_with(2.0)


async def test_get_conversation_exhaustion_is_not_an_error() -> None:
    pending = [_conversation("Pending")] * 6
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("GET", _conversation_url(), *pending, _conversation("Completed"))
        .build()
    )

    result = await TrugenPlugin().execute(
        {"op": "get_conversation", "conversation_id": "conv_1", "wait_for_completion": True},
        _CTX,
        host,
    )

    assert result.status == "success"
    assert result.data["items"][0]["status"] == "Pending"
    assert len(host.http.requests) == 6
    host.log.warning.assert_called_once()


async def test_get_conversation_error_during_poll_is_not_retried() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("GET", _conversation_url(), _conversation("Pending"))
        .build()
    )
    # Second fetch fails: swap the route so the fake raises after the first call.
    fetch = host.http.fetch
    calls = 0

    async def _flaky_fetch(method: str, url: str, **kwargs: object) -> dict:
        nonlocal calls
        calls += 1
        if calls > 1:
            raise ConnectionError("connection reset")
        return await fetch(method, url, **kwargs)

    host.http.fetch = _flaky_fetch

    result = await TrugenPlugin().execute(
        {"op": "get_conversation", "conversation_id": "conv_1", "wait_for_completion": True},
        _CTX,
        host,
    )

    assert result.status == "error"
    assert result.error["message"] == "connection reset"
    assert calls == 2


async def test_conversation_id_is_url_quoted() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("GET", _conversation_url("a%2Fb"), _conversation("Completed", "a/b"))
        .build()
    )

    result = await TrugenPlugin().execute(
        {"op": "get_conversation", "conversation_id": "a/b"}, _CTX, host
    )

    assert result.status == "success"
    assert host.http.requests[0]["url"] == _conversation_url("a%2Fb")


# ---------------------------------------------------------------------------
# Batches and failure policy
# ---------------------------------------------------------------------------


async def test_batch_items_processed_in_order() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("GET", _conversation_url("c1"), _conversation("Completed", "c1"))
        .with_http_response("GET", _conversation_url("c2"), _conversation("Pending", "c2"))
        .build()
    )

    result = await TrugenPlugin().execute(
        {
            "op": "get_conversation",
            "items": [{"conversation_id": "c1"}, {"conversation_id": "c2"}],
        },
        _CTX,
        host,
    )

    assert [item["id"] for item in result.data["items"]] == ["c1", "c2"]
    assert [r["url"] for r in host.http.requests] == [_conversation_url("c1"), _conversation_url("c2")]


async def test_continue_on_fail_records_inline_error() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_error("GET", _conversation_url("missing"), 404, body={"detail": "Conversation not found"})
        .with_http_response("GET", _conversation_url("c2"), _conversation("Completed", "c2"))
        .build()
    )

    result = await TrugenPlugin().execute(
        {
            "op": "get_conversation",
            "continue_on_fail": True,
            "items": [{"conversation_id": "missing"}, {"conversation_id": "c2"}],
        },
        _CTX,
        host,
    )

    assert result.status == "success"
    first, second = result.data["items"]
    assert set(first) == {"error"}
    assert "HTTP 404" in first["error"]
    assert "Conversation not found" in first["error"]
    assert second["id"] == "c2"


async def test_failure_without_continue_aborts_batch() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_response("GET", _conversation_url("c1"), _conversation("Completed", "c1"))
        .with_http_error("GET", _conversation_url("bad"), 500)
        .with_http_response("GET", _conversation_url("c3"), _conversation("Completed", "c3"))
        .build()
    )

    result = await TrugenPlugin().execute(
        {
            "op": "get_conversation",
            "items": [{"conversation_id": "c1"}, {"conversation_id": "bad"}, {"conversation_id": "c3"}],
        },
        _CTX,
        host,
    )

    assert result.status == "error"
    assert result.error["code"] == "server_error"
    assert result.error["details"]["item_index"] == 1
    assert [item["id"] for item in result.error["details"]["items"]] == ["c1"]
    assert _conversation_url("c3") not in [r["url"] for r in host.http.requests]


async def test_abort_message_carries_provider_message() -> None:
    host = (
        FakeHostBuilder()
        .with_secret("trugen_api_key", _API_KEY)
        .with_http_error("GET", _conversation_url("gone"), 404, body={"detail": "Conversation not found"})
        .build()
    )

    result = await TrugenPlugin().execute({"op": "get_conversation", "conversation_id": "gone"}, _CTX, host)

    assert result.status == "error"
    assert result.error["code"] == "not_found"
    assert result.error["message"] == (
        f"HTTP 404 calling {_conversation_url('gone')}: Conversation not found"
    )


async def test_missing_api_key() -> None:
    host = FakeHostBuilder().build()

    result = await TrugenPlugin().execute({"op": "list_avatars"}, _CTX, host)

    assert result.status == "error"
    assert result.error["code"] == "auth_missing"


async def test_missing_api_key_under_continue_on_fail() -> None:
    host = FakeHostBuilder().with_secret("trugen_api_key", "   ").build()

    result = await TrugenPlugin().execute(
        {"op": "list_avatars", "continue_on_fail": True}, _CTX, host
    )

    assert result.status == "success"
    assert "not configured" in result.data["items"][0]["error"]


async def test_unknown_op() -> None:
    host = FakeHostBuilder().build()

    result = await TrugenPlugin().execute({"op": "delete_agent"}, _CTX, host)

    assert result.status == "error"
    assert result.error["code"] == "invalid_params"


async def test_items_must_be_a_list() -> None:
    host = FakeHostBuilder().build()

    result = await TrugenPlugin().execute({"op": "list_avatars", "items": "nope"}, _CTX, host)

    assert result.status == "error"
    assert result.error["code"] == "invalid_params"
