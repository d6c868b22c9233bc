"""Provider registry: the two HTTP API shapes askcat knows how to talk to.

Everything here is pure: payload building, URL decoration and response
parsing never touch the network or the coordinator's state.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import parse_qs, urlsplit, urlunsplit, urlencode

from askcat.errors import ParseError


class Provider(str, Enum):
    GENERATION = "generation"   # Ollama /api/generate
    CHAT = "chat"               # Gemini generateContent


@dataclass
class ProviderDefinition:
    name: str
    description: str
    host_patterns: list[str] = field(default_factory=list)
    api_key_env: str | None = None


PROVIDER_REGISTRY: dict[Provider, ProviderDefinition] = {
    Provider.GENERATION: ProviderDefinition(
        name="generation",
        description="Generation-style API taking {model, prompt, stream}.",
    ),
    Provider.CHAT: ProviderDefinition(
        name="chat",
        description="Chat/content-style API taking contents[].parts[].",
        host_patterns=["generativelanguage.googleapis.com"],
        api_key_env="GEMINI_API_KEY",
    ),
}

CHAT_GENERATION_CONFIG: dict[str, Any] = {
    "temperature": 0.7,
    "maxOutputTokens": 1000,
}

_THINK_RE = re.compile(r"<think>.*?</think>\s*", re.DOTALL)


def detect_provider(url: str) -> Provider:
    """Pick the provider whose host pattern matches the URL; generation-style otherwise."""
    host = urlsplit(url).hostname or url
    for provider, definition in PROVIDER_REGISTRY.items():
        if any(pattern in host for pattern in definition.host_patterns):
            return provider
    return Provider.GENERATION


def compose_prompt(prompt: str, system_prompt: str | None = None) -> str:
    if system_prompt:
        return f"{system_prompt}\n\n{prompt}"
    return prompt


def build_payload(
    prompt: str,
    system_prompt: str | None,
    provider: Provider,
    model: str = "",
) -> dict[str, Any]:
    """Build the JSON request body for the provider."""
    full_prompt = compose_prompt(prompt, system_prompt)
    match provider:
        case Provider.GENERATION:
            return {"model": model, "prompt": full_prompt, "stream": False}
        case Provider.CHAT:
            return {
                "contents": [{"parts": [{"text": full_prompt}]}],
                "generationConfig": dict(CHAT_GENERATION_CONFIG),
            }
        case _:
            raise ValueError(f"Unknown provider: {provider}")


def build_url(url: str, api_key: str | None, provider: Provider) -> str:
    """Append ``key=<api_key>`` for chat-style endpoints unless the URL already has one."""
    match provider:
        case Provider.GENERATION:
            return url
        case Provider.CHAT:
            if not api_key:
                return url
            parts = urlsplit(url)
            if "key" in parse_qs(parts.query):
                return url
            extra = urlencode({"key": api_key})
            query = f"{parts.query}&{extra}" if parts.query else extra
            return urlunsplit(parts._replace(query=query))
        case _:
            raise ValueError(f"Unknown provider: {provider}")


def _load_object(body: str) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise ParseError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ParseError(f"expected a JSON object, got {type(data).__name__}")
    return data


def parse_response(body: str, provider: Provider) -> str:
    """Extract the answer text from a successful response body.

    Raises ParseError if the body is not JSON or the provider's field path is absent.
    """
    data = _load_object(body)
    match provider:
        case Provider.GENERATION:
            text = data.get("response")
            if not isinstance(text, str):
                raise ParseError("missing 'response' field")
            return text
        case Provider.CHAT:
            try:
                parts = data["candidates"][0]["content"]["parts"]
                texts = [part["text"] for part in parts]
            except (KeyError, IndexError, TypeError) as e:
                raise ParseError(f"missing candidates[0].content.parts[].text: {e!r}") from e
            if not texts or not all(isinstance(t, str) for t in texts):
                raise ParseError("candidates[0].content.parts has no text")
            return "".join(texts)
        case _:
            raise ValueError(f"Unknown provider: {provider}")


def parse_error(body: str | None) -> str | None:
    """Return the message of a provider error object, or None if the body is not one.

    Both providers use ``{"error": "..."}`` or ``{"error": {"message": "..."}}``.
    """
    if not body:
        return None
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    return None


def strip_think(text: str) -> str:
    """Drop ``<think>...</think>`` reasoning blocks and trim."""
    return _THINK_RE.sub("", text).strip()
