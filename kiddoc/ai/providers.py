"""Adapters for the hosted LLM providers.

Each adapter shapes one provider's request, sends it through the shared
``httpx.AsyncClient`` and reduces the provider's response envelope to plain
text. Any failure is raised as ``ProviderError`` so the fallback chain can
treat all providers alike.
"""
import logging
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote

import httpx

from kiddoc.config import Settings
from kiddoc.errors import ProviderError
from kiddoc.models import Attachment

logger = logging.getLogger(__name__)


class Provider(str, Enum):
    GEMINI = "gemini"
    GROQ = "groq"
    ANTHROPIC = "anthropic"

    @property
    def label(self) -> str:
        return self.value.capitalize()


def credential(settings: Settings, provider: Provider) -> str:
    return {
        Provider.GEMINI: settings.gemini_api_key,
        Provider.GROQ: settings.groq_api_key,
        Provider.ANTHROPIC: settings.anthropic_api_key,
    }[provider]


def _image(attachment: Optional[Attachment]) -> Optional[Attachment]:
    if attachment is not None and attachment.base64 and attachment.is_image:
        return attachment
    return None


def parse_json_safe(response: httpx.Response) -> dict[str, Any]:
    """Response body as a dict; anything unparseable becomes ``{}``."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _error_message(data: dict[str, Any], fallback: str, allow_plain: bool = False) -> str:
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message
    if allow_plain and isinstance(error, str) and error.strip():
        return error
    return fallback


def _first(items: Any) -> dict[str, Any]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


def _join(fragments: list[str]) -> str:
    return "\n".join(fragments).strip()


def extract_gemini_text(data: dict[str, Any]) -> str:
    content = _first(data.get("candidates")).get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return _join([
        part["text"] if isinstance(part, dict) and isinstance(part.get("text"), str) else ""
        for part in parts
    ])


def extract_groq_text(data: dict[str, Any]) -> str:
    message = _first(data.get("choices")).get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        return _join([
            part["text"] if isinstance(part, dict) and isinstance(part.get("text"), str) else ""
            for part in content
        ])
    return ""


def extract_anthropic_text(data: dict[str, Any]) -> str:
    content = data.get("content")
    if not isinstance(content, list):
        return ""
    return _join([
        block["text"] if isinstance(block, dict) and block.get("type") == "text"
        and isinstance(block.get("text"), str) else ""
        for block in content
    ])


async def _post(
    client: httpx.AsyncClient,
    provider: Provider,
    url: str,
    headers: dict[str, str],
    body: dict[str, Any],
) -> httpx.Response:
    try:
        response = await client.post(url, headers=headers, json=body)
    except httpx.HTTPError as exc:
        raise ProviderError(str(exc) or f"{provider.label} request failed.") from exc
    logger.debug(f"{provider.value} responded with HTTP {response.status_code}")
    return response


async def request_gemini(
    settings: Settings,
    client: httpx.AsyncClient,
    system_prompt: str,
    user_text: str,
    attachment: Optional[Attachment] = None,
) -> str:
    parts: list[dict[str, Any]] = [{"text": user_text}]
    image = _image(attachment)
    if image is not None:
        parts.insert(0, {"inline_data": {"mime_type": image.mime_type, "data": image.base64}})

    url = (
        f"{settings.gemini_base_url}/v1beta/models/{quote(settings.gemini_model, safe='')}:generateContent"
        f"?key={quote(settings.gemini_api_key, safe='')}"
    )
    body = {
        "systemInstruction": {"parts": [{"text": system_prompt}]},
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": {
            "maxOutputTokens": settings.max_output_tokens,
            "temperature": settings.temperature,
        },
    }
    response = await _post(client, Provider.GEMINI, url, {"content-type": "application/json"}, body)

    data = parse_json_safe(response)
    if not response.is_success:
        raise ProviderError(_error_message(data, "Gemini request failed."))

    text = extract_gemini_text(data)
    if not text:
        raise ProviderError("Gemini returned an empty response.")
    return text


async def request_groq(
    settings: Settings,
    client: httpx.AsyncClient,
    system_prompt: str,
    user_text: str,
    attachment: Optional[Attachment] = None,
) -> str:
    content: list[dict[str, Any]] = [{"type": "text", "text": user_text}]
    image = _image(attachment)
    if image is not None:
        content.append({
            "type": "image_url",
            "image_url": {"url": f"data:{image.mime_type};base64,{image.base64}"},
        })

    headers = {
        "content-type": "application/json",
        "authorization": f"Bearer {settings.groq_api_key}",
    }
    body = {
        "model": settings.groq_model,
        "max_tokens": settings.max_output_tokens,
        "temperature": settings.temperature,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": content},
        ],
    }
    response = await _post(client, Provider.GROQ, f"{settings.groq_base_url}/openai/v1/chat/completions", headers, body)

    data = parse_json_safe(response)
    if not response.is_success:
        raise ProviderError(_error_message(data, "Groq request failed.", allow_plain=True))

    text = extract_groq_text(data)
    if not text:
        raise ProviderError("Groq returned an empty response.")
    return text


async def request_anthropic(
    settings: Settings,
    client: httpx.AsyncClient,
    system_prompt: str,
    user_text: str,
    attachment: Optional[Attachment] = None,
) -> str:
    content: list[dict[str, Any]] = [{"type": "text", "text": user_text}]
    image = _image(attachment)
    if image is not None:
        content.insert(0, {
            "type": "image",
            "source": {"type": "base64", "media_type": image.mime_type, "data": image.base64},
        })

    headers = {
        "content-type": "application/json",
        "x-api-key": settings.anthropic_api_key,
        "anthropic-version": settings.anthropic_version,
    }
    body = {
        "model": settings.anthropic_model,
        "max_tokens": settings.max_output_tokens,
        "system": system_prompt,
        "messages": [{"role": "user", "content": content}],
    }
    response = await _post(client, Provider.ANTHROPIC, f"{settings.anthropic_base_url}/v1/messages", headers, body)

    data = parse_json_safe(response)
    if not response.is_success:
        raise ProviderError(_error_message(data, "Anthropic request failed."))

    text = extract_anthropic_text(data)
    if not text:
        raise ProviderError("Anthropic returned an empty response.")
    return text


PROVIDER_REQUESTS = {
    Provider.GEMINI: request_gemini,
    Provider.GROQ: request_groq,
    Provider.ANTHROPIC: request_anthropic,
}
