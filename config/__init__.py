"""Configuration package for the interview practice service."""
from .routes import (
    FEEDBACK_PURPOSE,
    INTERVIEWER_PURPOSE,
    PERSONA_PURPOSE,
    PURPOSES,
    AppConfig,
    LlmRoute,
    app_config,
    default_config,
    load_config,
    resolve_registry,
)
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "app_config",
    "default_config",
    "load_config",
    "resolve_registry",
    "INTERVIEWER_PURPOSE",
    "PERSONA_PURPOSE",
    "FEEDBACK_PURPOSE",
    "PURPOSES",
    "Settings",
    "settings",
]
