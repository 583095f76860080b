"""Enumerated option tables offered by the Trugen agent builder.

The first entry of every per-provider model tuple is that provider's default.
"""

from __future__ import annotations

STOCK_AVATARS: dict[str, str] = {
    "Alex": "80b9095f",
    "Aman": "5daa73d5",
    "Chloe": "45e3f732",
    "Jack": "87c62439",
    "Lisa": "665a1170",
    "Priya": "1e4ea106",
    "Sameer": "60a0926a",
}
DEFAULT_STOCK_AVATAR = "Lisa"

# ElevenLabs voice ids for the same stock personas.
TTS_VOICES: dict[str, str] = {
    "Alex": "iP95p4xoKVk53GoZ742B",
    "Aman": "rFzjTA9NFWPsUdx39OwG",
    "Chloe": "21m00Tcm4TlvDq8ikWAM",
    "Jack": "bIHbv24MWmeRgasZH58o",
    "Lisa": "FGY2WhTYpPnrIDTdsKH5",
    "Priya": "ZUrEGyu8GFMwnHbvLhv2",
    "Sameer": "SV61h9yhBg4i91KIBwdz",
}
DEFAULT_TTS_VOICE = "Priya"

LLM_MODELS: dict[str, tuple[str, ...]] = {
    "openai": ("gpt-4.1-mini", "gpt-4.1-nano", "gpt-4.1"),
    "groq": (
        "meta-llama/llama-4-maverick-17b-128e-instruct",
        "meta-llama/llama-4-scout-17b-16e-instruct",
        "openai/gpt-oss-20b",
        "openai/gpt-oss-120b",
    ),
    "google": (
        "gemini-2.5-flash",
        "gemini-2.5-flash-lite",
        "gemini-2.5-pro",
        "gemini-3-flash-preview",
        "gemini-3-pro-preview",
    ),
}
DEFAULT_LLM_PROVIDER = "openai"

STT_MODELS: dict[str, tuple[str, ...]] = {
    "deepgram": ("nova-3", "nova-2"),
    "deepgram-v2": ("flux-general-en",),
}
DEFAULT_STT_PROVIDER = "deepgram"

STT_LANGUAGES: dict[str, str] = {
    "bg": "Bulgarian",
    "ca": "Catalan",
    "cs": "Czech",
    "da": "Danish",
    "da-DK": "Danish (Denmark)",
    "nl": "Dutch",
    "en": "English",
    "en-AU": "English (Australia)",
    "en-IN": "English (India)",
    "en-NZ": "English (New Zealand)",
    "en-GB": "English (United Kingdom)",
    "en-US": "English (United States)",
    "et": "Estonian",
    "fi": "Finnish",
    "nl-BE": "Flemish",
    "fr": "French",
    "fr-CA": "French (Canada)",
    "de": "German",
    "de-CH": "German (Switzerland)",
    "el": "Greek",
    "hi": "Hindi",
    "hu": "Hungarian",
    "id": "Indonesian",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "ko-KR": "Korean (South Korea)",
    "lv": "Latvian",
    "lt": "Lithuanian",
    "ms": "Malay",
    "multi": "Multilingual (Multi)",
    "no": "Norwegian",
    "pl": "Polish",
    "pt": "Portuguese",
    "pt-BR": "Portuguese (Brazil)",
    "pt-PT": "Portuguese (Portugal)",
    "ro": "Romanian",
    "ru": "Russian",
    "sk": "Slovak",
    "es": "Spanish",
    "es-419": "Spanish (Latin America)",
    "sv": "Swedish",
    "sv-SE": "Swedish (Sweden)",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "vi": "Vietnamese",
}
DEFAULT_STT_LANGUAGE = "en"

TTS_MODELS: dict[str, tuple[str, ...]] = {
    "elevenlabs": ("eleven_turbo_v2_5", "eleven_turbo_v2"),
}
DEFAULT_TTS_PROVIDER = "elevenlabs"

CAPABILITIES: tuple[str, ...] = ("webcam_vision", "screen_vision")

CALLBACK_EVENTS: tuple[str, ...] = (
    "agent.interrupted",
    "agent.started_speaking",
    "agent.stopped_speaking",
    "call_ended",
    "max_call_duration_timeout",
    "participant_left",
    "user.started_speaking",
    "user.stopped_speaking",
    "utterance_committed",
)
