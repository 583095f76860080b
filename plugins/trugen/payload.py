"""Agent-creation request builder.

Turns the flat per-item fields accepted by the ``create_agent`` op into the
nested body ``POST /ext/agent`` expects. Provider-specific selectors are first
resolved into small config objects (``LlmConfig``, ``SttConfig``,
``TtsConfig``) so each provider is handled by exactly one resolver and the
fields belonging to unselected providers are never read.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from . import catalog
from .exceptions import TrugenError

DEFAULT_NAME = "My Agent"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_GREETING = "Hello! How can I help you today?"
DEFAULT_MAX_SESSION_MINUTES = 30

CONVERSATIONAL_CONTEXT = "Conversational Context"

MIN_ENDPOINTING_DELAY = 0.3
MAX_ENDPOINTING_DELAY = 0.4
WELCOME_WAIT_SECONDS = 2
IDLE_TIMEOUT_SECONDS = 30
WARNING_CALLOUT_SECONDS = 10
EXIT_MAX_CALL_DURATION_SECONDS = 300

IDLE_FILLER_PHRASES = (
    "Hey it's been a while since we last spoke, are we still connected?",
    "I notice we haven't talked for a bit, is everything okay?",
)
WARNING_EXIT_MESSAGES = (
    "We are almost at the end of our call, thank you for your time.",
    "Thank you for your time. We will see you next time.",
)
EXIT_MESSAGES = (
    "We are at the end of our call, thank you for your time.",
    "Thank you for your time today.",
)


@dataclass(frozen=True)
class LlmConfig:
    provider: str
    model: str

    def to_dict(self) -> dict[str, Any]:
        return {"model": self.model, "provider": self.provider}


@dataclass(frozen=True)
class SttConfig:
    """Speech-to-text selection; ``language`` is fixed for single-language models."""

    provider: str
    model: str
    language: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "provider": self.provider,
            "language": self.language,
            "min_endpointing_delay": MIN_ENDPOINTING_DELAY,
            "max_endpointing_delay": MAX_ENDPOINTING_DELAY,
        }


@dataclass(frozen=True)
class TtsConfig:
    provider: str
    model: str
    voice_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"model_id": self.model, "provider": self.provider, "voice_id": self.voice_id}


def _choose(value: Any, allowed: tuple[str, ...] | dict[str, str], label: str) -> str:
    """Return ``value`` (or the first allowed entry when unset) after membership check."""
    if value is None or value == "":
        return next(iter(allowed))
    if value not in allowed:
        raise TrugenError(f"Unsupported {label}: {value!r}", code="invalid_params")
    return value


# ---------------------------------------------------------------------------
# Provider resolvers
#
# Each resolver reads only the selector fields of its own provider.
# ---------------------------------------------------------------------------


def _resolve_llm(provider: str, fields: dict[str, Any]) -> LlmConfig:
    models = catalog.LLM_MODELS[provider]
    model = _choose(fields.get(f"llm_model_{provider}"), models, f"{provider} LLM model")
    return LlmConfig(provider=provider, model=model)


def _resolve_deepgram(fields: dict[str, Any]) -> SttConfig:
    model = _choose(fields.get("stt_model_deepgram"), catalog.STT_MODELS["deepgram"], "Deepgram model")
    language = fields.get("stt_language") or catalog.DEFAULT_STT_LANGUAGE
    language = _choose(language, catalog.STT_LANGUAGES, "STT language")
    return SttConfig(provider="deepgram", model=model, language=language)


def _resolve_deepgram_v2(fields: dict[str, Any]) -> SttConfig:
    # Flux only transcribes English; there is no language selector for it.
    model = _choose(
        fields.get("stt_model_deepgram_v2"), catalog.STT_MODELS["deepgram-v2"], "Deepgram V2 model"
    )
    return SttConfig(provider="deepgram-v2", model=model, language="en")


def _resolve_elevenlabs(fields: dict[str, Any]) -> TtsConfig:
    model = _choose(
        fields.get("tts_model_elevenlabs"), catalog.TTS_MODELS["elevenlabs"], "ElevenLabs model"
    )
    voice = fields.get("tts_voice") or catalog.DEFAULT_TTS_VOICE
    voice = _choose(voice, catalog.TTS_VOICES, "TTS voice")
    return TtsConfig(provider="elevenlabs", model=model, voice_id=catalog.TTS_VOICES[voice])


_STT_RESOLVERS: dict[str, Callable[[dict[str, Any]], SttConfig]] = {
    "deepgram": _resolve_deepgram,
    "deepgram-v2": _resolve_deepgram_v2,
}

_TTS_RESOLVERS: dict[str, Callable[[dict[str, Any]], TtsConfig]] = {
    "elevenlabs": _resolve_elevenlabs,
}


def resolve_llm(fields: dict[str, Any]) -> LlmConfig:
    provider = _choose(
        fields.get("llm_provider") or catalog.DEFAULT_LLM_PROVIDER, catalog.LLM_MODELS, "LLM provider"
    )
    return _resolve_llm(provider, fields)


def resolve_stt(fields: dict[str, Any]) -> SttConfig:
    provider = _choose(
        fields.get("stt_provider") or catalog.DEFAULT_STT_PROVIDER, _STT_RESOLVERS, "STT provider"
    )
    return _STT_RESOLVERS[provider](fields)


def resolve_tts(fields: dict[str, Any]) -> TtsConfig:
    provider = _choose(
        fields.get("tts_provider") or catalog.DEFAULT_TTS_PROVIDER, _TTS_RESOLVERS, "TTS provider"
    )
    return _TTS_RESOLVERS[provider](fields)


def resolve_avatar_id(fields: dict[str, Any]) -> str:
    """Return the avatar key for a stock persona name or a manually entered id."""
    source = fields.get("avatar_source") or "stock"
    if source == "manual":
        avatar_id = fields.get("avatar_id") or ""
        if not avatar_id.strip():
            raise TrugenError("avatar_id is required when avatar_source is 'manual'.", code="invalid_params")
        return avatar_id
    if source != "stock":
        raise TrugenError(f"Unsupported avatar_source: {source!r}", code="invalid_params")
    name = _choose(fields.get("avatar_stock") or catalog.DEFAULT_STOCK_AVATAR, catalog.STOCK_AVATARS, "stock avatar")
    return catalog.STOCK_AVATARS[name]


def build_agent_request(fields: dict[str, Any]) -> dict[str, Any]:
    """Assemble the ``POST /ext/agent`` body from flat ``create_agent`` fields.

    Args:
        fields: One item's validated ``create_agent`` parameters.

    Returns:
        The nested request body with exactly one persona under ``avatars``.

    Raises:
        TrugenError: ``invalid_params`` for unknown providers, models, stock
            names, or a blank manual avatar id.
    """
    name: str = fields.get("name") or DEFAULT_NAME
    system_prompt: str = fields.get("system_prompt") or DEFAULT_SYSTEM_PROMPT
    greeting: str = fields.get("greeting") or DEFAULT_GREETING
    email: str = fields.get("email", "")

    minutes = fields.get("max_session_length_minutes")
    if minutes is None:
        minutes = DEFAULT_MAX_SESSION_MINUTES
    capabilities = set(fields.get("capabilities") or [])

    llm = resolve_llm(fields)
    stt = resolve_stt(fields)
    tts = resolve_tts(fields)

    request: dict[str, Any] = {
        "agent_name": name,
        "agent_system_prompt": system_prompt,
        "email": email,
        "avatars": [
            {
                "avatar_key_id": resolve_avatar_id(fields),
                "persona_name": name,
                "persona_prompt": system_prompt,
                "conversational_context": CONVERSATIONAL_CONTEXT,
                "config": {
                    "llm": llm.to_dict(),
                    "stt": stt.to_dict(),
                    "tts": tts.to_dict(),
                    "webcam": "webcam_vision" in capabilities,
                    "screen": "screen_vision" in capabilities,
                },
                "welcome_message": {
                    "wait_time": WELCOME_WAIT_SECONDS,
                    "messages": [greeting],
                },
                "idle_timeout": {
                    "timeout": IDLE_TIMEOUT_SECONDS,
                    "filler_phrases": list(IDLE_FILLER_PHRASES),
                },
                "warning_exit_message": {
                    "callout_before": WARNING_CALLOUT_SECONDS,
                    "messages": list(WARNING_EXIT_MESSAGES),
                },
                "exit_message": {
                    "max_call_duration": EXIT_MAX_CALL_DURATION_SECONDS,
                    "messages": list(EXIT_MESSAGES),
                },
                "exit_heads_up_message": {
                    "callout_before": WARNING_CALLOUT_SECONDS,
                    "messages": list(WARNING_EXIT_MESSAGES),
                },
            }
        ],
        "config": {"timeout": minutes * 60},
        "record": fields.get("record") is not False,
    }

    callback_events = fields.get("callback_events") or []
    if callback_events:
        request["callback_events"] = list(callback_events)
    callback_url = fields.get("callback_url") or ""
    if callback_url:
        request["callback_url"] = callback_url

    return request
