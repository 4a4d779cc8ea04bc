"""Application settings and configuration management."""
from __future__ import annotations

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/practice.db")

    MAX_USER_INPUT_LENGTH: int = Field(default=1000, ge=4)
    MAX_CONVERSATION_HISTORY: int = Field(default=10, ge=1)
    MAX_TOTAL_TOKENS: int = Field(default=4000, ge=1)

    LLM_CONFIG_PATH: Optional[str] = None
    INTERVIEWER_ROUTE: str = "openai-chat"
    PERSONA_ROUTE: str = "openai-chat"
    FEEDBACK_ROUTE: str = "openai-chat"
    PROVIDER_TIMEOUT_S: float = Field(default=30.0, ge=0.1)

    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4o"
    SEA_LION_BASE_URL: str = "https://api.sea-lion.ai/v1"
    SEA_LION_MODEL: str = "aisingapore/Gemma-SEA-LION-v3-9B-IT"
    BEDROCK_REGION: str = "us-east-1"
    BEDROCK_MODEL_ID: str = "anthropic.claude-3-5-haiku-20241022-v1:0"

    WHISPER_MODEL: str = "whisper-1"
    TTS_MODEL: str = "tts-1"
    AUDIO_MAX_BYTES: int = 25 * 1024 * 1024

    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
