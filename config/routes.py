from __future__ import annotations  # Model route configuration for provider wiring

from pathlib import Path
from typing import Dict, Iterable, Literal, Optional

from pydantic import BaseModel, Field

from .settings import Settings

INTERVIEWER_PURPOSE = "interviewer"
PERSONA_PURPOSE = "persona"
FEEDBACK_PURPOSE = "feedback"
PURPOSES = (INTERVIEWER_PURPOSE, PERSONA_PURPOSE, FEEDBACK_PURPOSE)


class LlmRoute(BaseModel):  # Model endpoint configuration
    name: str
    kind: Literal["chat", "bedrock"] = "chat"
    base_url: str = ""
    endpoint: str = "/chat/completions"
    model: str
    timeout_s: float = Field(default=30.0, ge=0.1)
    api_key_env: Optional[str] = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    region: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, ge=1)


class AppConfig(BaseModel):  # Route table plus purpose registry
    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]


def load_config(path: Path) -> AppConfig:  # Load configuration from disk
    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def default_config(settings: Settings) -> AppConfig:  # Build the route table from environment settings
    timeout = settings.PROVIDER_TIMEOUT_S
    routes = {
        "openai-chat": LlmRoute(
            name="openai-chat",
            base_url=settings.OPENAI_BASE_URL,
            model=settings.OPENAI_MODEL,
            timeout_s=timeout,
            api_key_env="OPENAI_API_KEY",
        ),
        "sea-lion": LlmRoute(
            name="sea-lion",
            base_url=settings.SEA_LION_BASE_URL,
            model=settings.SEA_LION_MODEL,
            timeout_s=timeout,
            api_key_env="SEA_LION_API_KEY",
            max_tokens=2000,
        ),
        "bedrock": LlmRoute(
            name="bedrock",
            kind="bedrock",
            model=settings.BEDROCK_MODEL_ID,
            timeout_s=timeout,
            region=settings.BEDROCK_REGION,
            max_tokens=4000,
        ),
    }
    registry = {
        INTERVIEWER_PURPOSE: settings.INTERVIEWER_ROUTE,
        PERSONA_PURPOSE: settings.PERSONA_ROUTE,
        FEEDBACK_PURPOSE: settings.FEEDBACK_ROUTE,
    }
    return AppConfig(llm_routes=routes, registry=registry)


def app_config(settings: Settings) -> AppConfig:  # Prefer a JSON config file when one is configured
    if settings.LLM_CONFIG_PATH:
        return load_config(Path(settings.LLM_CONFIG_PATH))
    return default_config(settings)


def resolve_registry(cfg: AppConfig, purposes: Iterable[str] = PURPOSES) -> Dict[str, LlmRoute]:  # Map each purpose to its route
    resolved: Dict[str, LlmRoute] = {}
    for purpose in purposes:
        if purpose not in cfg.registry:
            raise KeyError(f"Registry entry missing for '{purpose}'")
        route_id = cfg.registry[purpose]
        if route_id not in cfg.llm_routes:
            raise KeyError(f"Route '{route_id}' missing for '{purpose}'")
        resolved[purpose] = cfg.llm_routes[route_id]
    return resolved
