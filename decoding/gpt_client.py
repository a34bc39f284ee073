"""
Shared Azure OpenAI helper for the decoding pipeline.

Used by:
  - step_generator.py  (MCQ steps + solution)
  - hint_refiner.py    (discriminative hint rewrite)
  - synthesis.py       (working steps / key points, pitfalls)
  - ingestion/augmenter.py (OCR cleanup with vision)

The oracle is reached through the resolved deployment URL (see endpoints.py).
The SDK's own retries are disabled: resilience comes from fallbacks, not retries.
"""

import asyncio
import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlsplit, urlunsplit

import json_repair
import openai
from openai import AsyncOpenAI

from decoding.config import get_oracle_settings
from decoding.endpoints import COMPLETIONS_PATH, resolve_from_settings
from decoding.errors import ParseError, StageTimeoutError, UpstreamError

log = logging.getLogger(__name__)

# ── Model config ───────────────────────────────────────────────────────────────
# Azure routes by deployment in the URL; the model name is informational.
GPT_MODEL = os.getenv("GPT_MODEL", "gpt-4o-mini")

# Lazy singleton, rebuilt when the resolved URL or key changes
_client: Optional[AsyncOpenAI] = None
_client_key: Optional[Tuple[str, str]] = None

Content = Union[str, List[Dict[str, Any]]]


@dataclass
class OracleReply:
    content: str
    usage: Dict[str, Any] = field(default_factory=dict)


def split_completion_url(url: str) -> Tuple[str, Dict[str, str]]:
    """Turn a resolved completion URL into (base_url, default_query) for the SDK."""
    parts = urlsplit(url)
    path = parts.path
    if path.endswith(COMPLETIONS_PATH):
        path = path[: -len(COMPLETIONS_PATH)]
    base_url = urlunsplit((parts.scheme, parts.netloc, path, "", ""))
    return base_url, dict(parse_qsl(parts.query))


def _get_client() -> AsyncOpenAI:
    global _client, _client_key
    settings = get_oracle_settings()
    url = resolve_from_settings(settings)
    key = (url, settings.api_key)
    if _client is None or _client_key != key:
        base_url, query = split_completion_url(url)
        _client = AsyncOpenAI(
            api_key=settings.api_key,
            base_url=base_url,
            default_query=query,
            default_headers={"api-key": settings.api_key},
            max_retries=0,
        )
        _client_key = key
    return _client


def _usage_dict(response: Any) -> Dict[str, Any]:
    usage = getattr(response, "usage", None)
    if usage is None:
        return {}
    if hasattr(usage, "model_dump"):
        return usage.model_dump()
    return dict(usage)


async def call_gpt(
    content: Content,
    system: Optional[str] = None,
    temperature: Optional[float] = 0.2,
    max_tokens: int = 1200,
    json_mode: bool = True,
    timeout: Optional[float] = None,
) -> OracleReply:
    """
    Call the chat-completions oracle and return the assistant text plus token usage.

    Args:
        content:     User-turn content: plain text or a list of content parts
        system:      Optional system prompt
        temperature: Sampling temperature (None leaves the deployment default)
        max_tokens:  Max response tokens
        json_mode:   Ask for a JSON object response
        timeout:     Seconds before the call is cancelled

    Raises:
        ConfigurationError: endpoint/key/deployment missing
        UpstreamError:      non-2xx or transport failure
        StageTimeoutError:  `timeout` elapsed
    """
    client = _get_client()
    messages: List[Dict[str, Any]] = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": content})

    kwargs: Dict[str, Any] = {"model": GPT_MODEL, "messages": messages, "max_tokens": max_tokens}
    if temperature is not None:
        kwargs["temperature"] = temperature
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    try:
        request = client.chat.completions.create(**kwargs)
        if timeout is not None:
            response = await asyncio.wait_for(request, timeout=timeout)
        else:
            response = await request
    except asyncio.TimeoutError as e:
        raise StageTimeoutError(f"Oracle call exceeded {timeout}s") from e
    except openai.APIStatusError as e:
        raise UpstreamError("Azure error", details=str(e)[:400], status_code=e.status_code) from e
    except openai.APIError as e:
        raise UpstreamError("Azure request failed", details=str(e)[:400]) from e

    text = ""
    if response.choices:
        text = response.choices[0].message.content or ""
    return OracleReply(content=text, usage=_usage_dict(response))


# ─── JSON extraction ───────────────────────────────────────────────────────────

def parse_json_object(raw: str) -> Dict[str, Any]:
    """
    Parse oracle output as a JSON object.

    Tries a strict parse first, then salvages the outermost brace-delimited
    substring (fences stripped) with json_repair.

    Raises:
        ParseError: nothing object-shaped could be recovered
    """
    raw = (raw or "").strip()
    try:
        data = json.loads(raw)
    except ValueError:
        cleaned = re.sub(r"^```(?:json)?\s*", "", raw, flags=re.MULTILINE)
        cleaned = re.sub(r"\s*```$", "", cleaned, flags=re.MULTILINE)
        start = cleaned.find("{")
        end = cleaned.rfind("}") + 1
        if start == -1 or end <= start:
            raise ParseError("No JSON object in oracle response", details=raw[:200])
        data = json_repair.loads(cleaned[start:end])
    if not isinstance(data, dict):
        raise ParseError("Oracle response is not a JSON object", details=raw[:200])
    return data


def ensure_oracle_configured() -> str:
    """Resolve the completion URL now so missing configuration fails before any call."""
    return resolve_from_settings(get_oracle_settings())
