from __future__ import annotations  # Re-export speech public API

from .speech import (
    ALLOWED_EXTENSIONS,
    DEFAULT_VOICE,
    STAGE_VOICES,
    VOICES,
    OpenAISpeechProvider,
    SpeechProvider,
    TranscriptionError,
    validate_audio,
    voice_for,
)

__all__ = [
    "ALLOWED_EXTENSIONS",
    "DEFAULT_VOICE",
    "STAGE_VOICES",
    "VOICES",
    "OpenAISpeechProvider",
    "SpeechProvider",
    "TranscriptionError",
    "validate_audio",
    "voice_for",
]
