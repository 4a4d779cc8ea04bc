from __future__ import annotations  # Model provider gateway module

import json
import logging
import os
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from config import LlmRoute
from observability import span


logger = logging.getLogger(__name__)  # Module logger setup

BEDROCK_ANTHROPIC_VERSION = "bedrock-2023-05-31"
OPENING_USER_TURN = "Hello! I'm ready to start the interview."


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class ProviderError(RuntimeError):  # Upstream model or speech call failed
    pass


class Generation(BaseModel):  # Text produced by a provider call
    text: str
    usage: Optional[Dict[str, int]] = None


class ModelProvider(Protocol):  # Interface every model backend implements
    name: str

    def generate(self, history: Sequence[Mapping[str, str]], options: Optional[Dict[str, Any]] = None) -> Generation: ...


T = TypeVar("T", bound=BaseModel)


class ChatCompletionProvider:  # OpenAI-compatible chat completions over HTTP (OpenAI, Sea Lion)
    def __init__(self, route: LlmRoute, *, client: Optional[HttpClient] = None, json_mode: bool = True) -> None:
        self.name = route.name
        self._route = route
        self._client = client
        self._json_mode = json_mode

    def generate(self, history: Sequence[Mapping[str, str]], options: Optional[Dict[str, Any]] = None) -> Generation:
        messages = _normalize_messages(history)
        payload = _chat_payload(self._route, messages, options or {}, json_mode=self._json_mode)
        headers = _headers(self._route)
        url = f"{self._route.base_url}{self._route.endpoint}"
        logger.info(
            "LLM request send route=%s model=%s messages=%d preview=%s",
            self._route.name,
            self._route.model,
            len(messages),
            _preview(messages),
        )
        with span("provider_call", route=self._route.name, model=self._route.model):
            try:
                response, close_cb = _post(url, payload, headers, self._route.timeout_s, self._client)
            except Exception as exc:  # noqa: BLE001
                logger.error("LLM transport failure: %s", exc)
                raise ProviderError(f"LLM transport failed: {exc}") from exc
            try:
                if response.status_code >= 400:
                    logger.error("LLM error status: %s", response.status_code)
                    raise ProviderError(f"LLM returned status {response.status_code}")
                try:
                    data = response.json()
                except Exception as exc:  # noqa: BLE001
                    logger.error("Invalid JSON payload from LLM: %s", exc)
                    raise ProviderError("LLM payload was not JSON") from exc
            finally:
                _close_safely(close_cb)
        content = _extract_content(data)
        return Generation(text=content, usage=_extract_usage(data))


class BedrockProvider:  # AWS Bedrock runtime using the Anthropic messages body
    def __init__(self, route: LlmRoute, *, client: Any = None) -> None:
        self.name = route.name
        self._route = route
        self._client = client if client is not None else _bedrock_client(route)

    def generate(self, history: Sequence[Mapping[str, str]], options: Optional[Dict[str, Any]] = None) -> Generation:
        from botocore.exceptions import BotoCoreError, ClientError

        messages = _normalize_messages(history)
        opts = options or {}
        system, turns = _anthropic_messages(messages)
        body: Dict[str, Any] = {
            "anthropic_version": BEDROCK_ANTHROPIC_VERSION,
            "max_tokens": int(opts.get("max_tokens") or self._route.max_tokens or 4000),
            "messages": turns,
            "temperature": float(opts.get("temperature", self._route.temperature if self._route.temperature is not None else 0.7)),
            "top_p": 0.9,
        }
        if system:
            body["system"] = system
        logger.info(
            "Bedrock request send route=%s model=%s messages=%d preview=%s",
            self._route.name,
            self._route.model,
            len(turns),
            _preview(messages),
        )
        with span("provider_call", route=self._route.name, model=self._route.model):
            try:
                response = self._client.invoke_model(
                    modelId=self._route.model,
                    contentType="application/json",
                    accept="application/json",
                    body=json.dumps(body),
                )
                data = json.loads(response["body"].read())
            except (BotoCoreError, ClientError) as exc:
                logger.error("Bedrock API error: %s", exc)
                raise ProviderError(f"Bedrock request failed: {exc}") from exc
            except (KeyError, ValueError) as exc:
                logger.error("Invalid Bedrock payload: %s", exc)
                raise ProviderError("Bedrock payload was not JSON") from exc
        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list) or not blocks or not isinstance(blocks[0], dict):
            raise ProviderError("Bedrock response missing content")
        text = blocks[0].get("text")
        if not isinstance(text, str):
            raise ProviderError("Bedrock response missing content")
        usage = data.get("usage") or {}
        return Generation(
            text=text,
            usage={
                "input_tokens": int(usage.get("input_tokens") or 0),
                "output_tokens": int(usage.get("output_tokens") or 0),
            },
        )


def build_provider(route: LlmRoute, *, client: Any = None) -> ModelProvider:  # Construct the backend a route names
    if route.kind == "bedrock":
        return BedrockProvider(route, client=client)
    return ChatCompletionProvider(route, client=client, json_mode=route.name != "sea-lion")


def generate_model(
    provider: ModelProvider,
    messages: Sequence[Mapping[str, str]],
    schema: Type[T],
    *,
    options: Optional[Dict[str, Any]] = None,
) -> T:  # Invoke a provider and validate its JSON output against a schema
    opts = {"response_format": "json_object"}
    opts.update(options or {})
    generation = provider.generate(messages, opts)
    try:
        return _validate(schema, generation.text)
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("LLM output validation failed: %s", exc)
        raise ProviderError("LLM output validation failed") from exc


def strip_code_fences(content: str) -> str:  # Remove common markdown fences from LLM output
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        if lines:
            lines = lines[1:]
            while lines and lines[0].strip() == "":
                lines = lines[1:]
            while lines and lines[-1].strip() == "":
                lines = lines[:-1]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines).strip()
    return text


_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def parse_json_object(content: Any) -> Optional[Dict[str, Any]]:  # Best-effort JSON object repair; None when unrecoverable
    if not isinstance(content, str):
        return None
    text = strip_code_fences(content)
    if not text:
        return None
    candidates = [text]
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])
    for candidate in candidates:
        for attempt in (candidate, _TRAILING_COMMA.sub(r"\1", candidate)):
            try:
                value = json.loads(attempt)
            except (ValueError, RecursionError):
                continue
            if isinstance(value, dict):
                return value
    return None


def _bedrock_client(route: LlmRoute) -> Any:  # Create a boto3 bedrock-runtime client honoring the route timeout
    import boto3
    from botocore.config import Config

    return boto3.client(
        "bedrock-runtime",
        region_name=route.region,
        config=Config(
            connect_timeout=route.timeout_s,
            read_timeout=route.timeout_s,
            retries={"max_attempts": 0},
        ),
    )


def _chat_payload(route: LlmRoute, messages: List[Dict[str, str]], options: Dict[str, Any], *, json_mode: bool) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"model": route.model, "messages": messages}
    if route.temperature is not None:
        payload["temperature"] = route.temperature
    if route.max_tokens is not None:
        payload["max_tokens"] = route.max_tokens
    for key, value in options.items():
        if key == "response_format":
            if json_mode and value:
                payload["response_format"] = {"type": value}
            continue
        payload[key] = value
    return payload


def _headers(route: LlmRoute) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if route.api_key_env:
        api_key = os.getenv(route.api_key_env)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
    headers.update(route.extra_headers)
    return headers


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        response = client.post(url, json=payload, headers=headers, timeout=timeout)
        return response, None
    import httpx

    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except Exception:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _normalize_messages(messages: Sequence[Mapping[str, str]]) -> List[Dict[str, str]]:  # Ensure message payload shape
    normalized: List[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, Mapping):
            raise TypeError("Each chat message must be a mapping with role/content")
        role = str(item.get("role", "")).strip()
        content = str(item.get("content", ""))
        if not role:
            raise ValueError("Chat message missing role")
        normalized.append({"role": role, "content": content})
    return normalized


def _anthropic_messages(messages: Sequence[Dict[str, str]]) -> Tuple[str, List[Dict[str, str]]]:  # Split system text and merge turns into strict user/assistant alternation
    system_parts = [m["content"] for m in messages if m["role"] == "system"]
    turns: List[Dict[str, str]] = []
    for message in messages:
        if message["role"] == "system":
            continue
        role = "assistant" if message["role"] == "assistant" else "user"
        if turns and turns[-1]["role"] == role:
            turns[-1]["content"] += "\n\n" + message["content"]
            continue
        if not turns and role == "assistant":
            turns.append({"role": "user", "content": OPENING_USER_TURN})
        turns.append({"role": role, "content": message["content"]})
    if not turns:
        turns.append({"role": "user", "content": OPENING_USER_TURN})
    return "\n\n".join(system_parts), turns


def _preview(messages: Sequence[Dict[str, str]]) -> str:  # Build preview string for logging
    for message in reversed(messages):
        text = message.get("content", "").strip()
        if text:
            line = text.splitlines()[0]
            return line if len(line) <= 120 else line[:117] + "..."
    return ""


def _extract_content(data: Any) -> str:  # Extract message content from LLM response
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
        if isinstance(data.get("content"), str):
            return data["content"]
    raise ProviderError("LLM response missing content")


def _extract_usage(data: Any) -> Optional[Dict[str, int]]:
    usage = data.get("usage") if isinstance(data, dict) else None
    if not isinstance(usage, dict):
        return None
    return {
        "input_tokens": int(usage.get("prompt_tokens") or 0),
        "output_tokens": int(usage.get("completion_tokens") or 0),
    }


def _validate(schema: Type[T], content: str) -> T:  # Parse JSON content with schema
    cleaned = strip_code_fences(content)
    try:
        return schema.model_validate_json(cleaned)
    except (json.JSONDecodeError, ValidationError):
        repaired = parse_json_object(cleaned)
        if repaired is None:
            raise
        return schema.model_validate(repaired)
