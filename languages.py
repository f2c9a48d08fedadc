"""ISO 639-1 language code to display name translation."""

from __future__ import annotations

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "ru": "Russian",
    "pt": "Portuguese",
    "tr": "Turkish",
    "hi": "Hindi",
    "ar": "Arabic",
    "nl": "Dutch",
    "sv": "Swedish",
    "no": "Norwegian",
    "da": "Danish",
    "fi": "Finnish",
    "pl": "Polish",
    "hu": "Hungarian",
    "cs": "Czech",
    "th": "Thai",
}

UNKNOWN_LANGUAGE = "Unknown"


def language_display_name(code: str | None) -> str:
    """Translate a 2-letter code; unmapped codes pass through, missing ones become Unknown."""
    if not code:
        return UNKNOWN_LANGUAGE
    return LANGUAGE_NAMES.get(code, code)


def translate_language_field(value: str | None) -> str:
    """Translate a stored language value only when it still looks like a raw code."""
    language = value or ""
    if len(language) == 2:
        return LANGUAGE_NAMES.get(language, language)
    return language
