"""Ad copy generation through the Anthropic Messages API."""

import asyncio
import json
import re

import requests
from pydantic import ValidationError

from adscope.config import get_settings
from adscope.exceptions import EnrichmentFailure
from adscope.http_client import get_session
from adscope.models.analysis import CopyResult

ANTHROPIC_VERSION = "2023-06-01"

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def _get_api_key() -> str:
    key = get_settings().anthropic_api_key
    if not key:
        raise EnrichmentFailure(
            "Anthropic API key not configured. Set ANTHROPIC_API_KEY in .env"
        )
    return key


def build_prompt(description: str, transcript: str | None = None, scenes: list[str] | None = None) -> str:
    parts = [
        "You write short, punchy ad copy.",
        f"Media description:\n{description}",
    ]
    if transcript:
        parts.append(f"Transcript:\n{transcript}")
    if scenes:
        numbered = "\n".join(f"{i}. {scene}" for i, scene in enumerate(scenes, start=1))
        parts.append(f"Scenes:\n{numbered}")
    parts.append(
        'Reply with only a JSON object of the form {"headline": "...", "description": "..."}. '
        "Keep the headline under 10 words and the description under 40 words."
    )
    return "\n\n".join(parts)


def _handle_response(resp: requests.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        data = {}
    if resp.status_code >= 400:
        error = data.get("error") if isinstance(data, dict) else None
        message = error.get("message", "") if isinstance(error, dict) else resp.text[:200]
        raise EnrichmentFailure(f"Anthropic API error (HTTP {resp.status_code}): {message}")
    return data


def _parse_copy(data: dict) -> CopyResult:
    text = "".join(
        block.get("text", "") for block in data.get("content", []) if block.get("type") == "text"
    ).strip()
    text = _FENCE_RE.sub("", text)
    # Tolerate prose around the object
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise EnrichmentFailure("Anthropic reply did not contain a JSON object")
    try:
        return CopyResult.model_validate(json.loads(text[start : end + 1]))
    except (json.JSONDecodeError, ValidationError) as e:
        raise EnrichmentFailure(f"Anthropic reply was not valid ad copy: {e}") from e


def generate_copy(
    description: str,
    transcript: str | None = None,
    scenes: list[str] | None = None,
) -> CopyResult:
    """Generate a headline and description for analyzed media."""
    settings = get_settings()
    headers = {
        "x-api-key": _get_api_key(),
        "anthropic-version": ANTHROPIC_VERSION,
        "content-type": "application/json",
    }
    body = {
        "model": settings.anthropic_model,
        "max_tokens": settings.copy_max_tokens,
        "messages": [{"role": "user", "content": build_prompt(description, transcript, scenes)}],
    }
    try:
        resp = get_session().post(settings.anthropic_api_url, headers=headers, json=body, timeout=120)
    except requests.RequestException as e:
        raise EnrichmentFailure(f"Anthropic API unreachable: {e}") from e
    return _parse_copy(_handle_response(resp))


class AnthropicCopywriter:
    """Copy generation adapter; runs the blocking HTTP call off the event loop."""

    async def generate(
        self,
        description: str,
        transcript: str | None = None,
        scenes: list[str] | None = None,
    ) -> CopyResult:
        return await asyncio.to_thread(generate_copy, description, transcript, scenes)
