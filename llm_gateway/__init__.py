from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    BedrockProvider,
    ChatCompletionProvider,
    Generation,
    HttpClient,
    HttpResponse,
    ModelProvider,
    ProviderError,
    build_provider,
    generate_model,
    parse_json_object,
    strip_code_fences,
)

__all__ = [
    "BedrockProvider",
    "ChatCompletionProvider",
    "Generation",
    "HttpClient",
    "HttpResponse",
    "ModelProvider",
    "ProviderError",
    "build_provider",
    "generate_model",
    "parse_json_object",
    "strip_code_fences",
]
