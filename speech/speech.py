from __future__ import annotations  # Speech-to-text and text-to-speech providers

import logging
import os
from typing import Any, Dict, Optional, Protocol

from config.settings import settings
from llm_gateway import ProviderError
from observability import span

logger = logging.getLogger(__name__)  # Module logger setup

VOICES = ("alloy", "echo", "fable", "onyx", "nova", "shimmer")
DEFAULT_VOICE = "nova"
STAGE_VOICES: Dict[str, str] = {
    "phone-screening": "nova",
    "functional-team": "echo",
    "hiring-manager": "onyx",
    "technical-specialist": "shimmer",
    "executive-final": "fable",
}
ALLOWED_EXTENSIONS = (".mp3", ".mp4", ".mpeg", ".mpga", ".m4a", ".wav", ".webm")


class TranscriptionError(ProviderError):  # Audio rejected or no speech recognized
    pass


class SpeechProvider(Protocol):  # Interface every speech backend implements
    def speech_to_text(self, audio: bytes, filename: str) -> str: ...

    def text_to_speech(self, text: str, voice: str = DEFAULT_VOICE) -> bytes: ...


def voice_for(interview_stage: str, override: Optional[str] = None) -> str:  # Stage lookup; a valid override wins
    if override in VOICES:
        return override  # type: ignore[return-value]
    return STAGE_VOICES.get(interview_stage, DEFAULT_VOICE)


def validate_audio(data: bytes, filename: str, max_bytes: Optional[int] = None) -> None:  # Raise TranscriptionError for unusable uploads
    limit = max_bytes if max_bytes is not None else settings.AUDIO_MAX_BYTES
    if not data:
        raise TranscriptionError("Audio file is empty")
    if len(data) > limit:
        raise TranscriptionError(f"Audio file too large; maximum size is {limit // (1024 * 1024)}MB")
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise TranscriptionError(
            f"Unsupported audio format '{extension or filename}'. Supported formats: {', '.join(ALLOWED_EXTENSIONS)}"
        )


class OpenAISpeechProvider:  # Whisper transcription and TTS through the openai SDK
    def __init__(self, *, client: Any = None, api_key: Optional[str] = None, timeout_s: Optional[float] = None) -> None:
        self._client = client
        self._api_key = api_key
        self._timeout_s = timeout_s if timeout_s is not None else settings.PROVIDER_TIMEOUT_S

    def speech_to_text(self, audio: bytes, filename: str) -> str:
        import openai

        validate_audio(audio, filename)
        with span("provider_call", route="openai-speech", model=settings.WHISPER_MODEL):
            try:
                result = self._openai().audio.transcriptions.create(
                    model=settings.WHISPER_MODEL,
                    file=(os.path.basename(filename), audio),
                    language="en",
                    response_format="text",
                    temperature=0.2,
                )
            except openai.OpenAIError as exc:
                logger.error("Speech-to-text error: %s", exc)
                raise ProviderError(f"Transcription failed: {exc}") from exc
        text = (result if isinstance(result, str) else getattr(result, "text", "") or "").strip()
        if not text:
            raise TranscriptionError("No speech detected in the audio file")
        logger.info("Transcription successful chars=%d", len(text))
        return text

    def text_to_speech(self, text: str, voice: str = DEFAULT_VOICE) -> bytes:
        import openai

        if not text or not text.strip():
            raise TranscriptionError("Text is required for speech synthesis")
        with span("provider_call", route="openai-speech", model=settings.TTS_MODEL):
            try:
                response = self._openai().audio.speech.create(
                    model=settings.TTS_MODEL,
                    voice=voice if voice in VOICES else DEFAULT_VOICE,
                    input=text,
                    speed=1.0,
                )
            except openai.OpenAIError as exc:
                logger.error("Text-to-speech error: %s", exc)
                raise ProviderError(f"Speech synthesis failed: {exc}") from exc
        return response.content

    def _openai(self) -> Any:
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self._api_key or os.getenv("OPENAI_API_KEY"), timeout=self._timeout_s)
        return self._client
