"""
Calendiq — LLM Provider Abstraction.

`complete()` sends one system prompt plus one user message to whichever
provider LLM_PROVIDER names and returns the raw reply text. The assistant
always wants a single JSON object back, so each provider is asked for JSON
output in its own native way when `json_mode` is set.

Provider SDKs are imported on first use; only the configured one has to be
installed (openai ships by default, the rest come with the `llm` extra).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionRequest:
    system: str
    user_message: str
    max_tokens: int
    json_mode: bool


# (api_key, model, request) -> reply text
_CallFn = Callable[[str, str, CompletionRequest], Awaitable[str]]


# ---------------------------------------------------------------------------
# Provider calls
# ---------------------------------------------------------------------------


async def _call_openai(api_key: str, model: str, req: CompletionRequest) -> str:
    from openai import AsyncOpenAI

    extra = {"response_format": {"type": "json_object"}} if req.json_mode else {}
    response = await AsyncOpenAI(api_key=api_key).chat.completions.create(
        model=model,
        max_tokens=req.max_tokens,
        messages=[
            {"role": "system", "content": req.system},
            {"role": "user", "content": req.user_message},
        ],
        **extra,
    )
    return response.choices[0].message.content or ""


async def _call_anthropic(api_key: str, model: str, req: CompletionRequest) -> str:
    import anthropic

    messages = [{"role": "user", "content": req.user_message}]
    if req.json_mode:
        # Prefilled opening brace; the reply continues the object
        messages.append({"role": "assistant", "content": "{"})
    response = await anthropic.AsyncAnthropic(api_key=api_key).messages.create(
        model=model,
        max_tokens=req.max_tokens,
        system=req.system,
        messages=messages,
    )
    text = response.content[0].text
    return "{" + text if req.json_mode else text


async def _call_gemini(api_key: str, model: str, req: CompletionRequest) -> str:
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    config = genai.types.GenerationConfig(
        max_output_tokens=req.max_tokens,
        response_mime_type="application/json" if req.json_mode else "text/plain",
    )
    response = await genai.GenerativeModel(
        model_name=model, system_instruction=req.system,
    ).generate_content_async(req.user_message, generation_config=config)
    return response.text


async def _call_cohere(api_key: str, model: str, req: CompletionRequest) -> str:
    import cohere

    extra = {"response_format": {"type": "json_object"}} if req.json_mode else {}
    response = await cohere.AsyncClientV2(api_key=api_key).chat(
        model=model,
        max_tokens=req.max_tokens,
        messages=[
            {"role": "system", "content": req.system},
            {"role": "user", "content": req.user_message},
        ],
        **extra,
    )
    return response.message.content[0].text


@dataclass(frozen=True)
class Provider:
    name: str
    default_model: str
    call: _CallFn


PROVIDERS: dict[str, Provider] = {
    p.name: p
    for p in (
        Provider("openai", "gpt-4o", _call_openai),
        Provider("anthropic", "claude-haiku-4-5-20251001", _call_anthropic),
        Provider("gemini", "gemini-2.0-flash", _call_gemini),
        Provider("cohere", "command-a-03-2025", _call_cohere),
    )
}


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _ActiveProvider:
    provider: Provider
    model: str
    api_key: str


_active: _ActiveProvider | None = None


def _resolve_provider() -> _ActiveProvider:
    """Build the active provider from settings. Raises ValueError on bad config."""
    from calendiq.config import settings

    name = settings.LLM_PROVIDER.strip().lower()
    provider = PROVIDERS.get(name)
    if provider is None:
        raise ValueError(
            f"Unknown LLM_PROVIDER={name!r}. Supported: {', '.join(PROVIDERS)}"
        )
    if not settings.LLM_API_KEY:
        raise ValueError("LLM_API_KEY is not configured")

    active = _ActiveProvider(
        provider=provider,
        model=settings.LLM_MODEL or provider.default_model,
        api_key=settings.LLM_API_KEY,
    )
    logger.info("LLM provider: %s, model: %s", provider.name, active.model)
    return active


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def complete(
    system: str, user_message: str, max_tokens: int = 512, json_mode: bool = True,
) -> str:
    """Return the provider's reply text. Configuration and API errors propagate."""
    global _active

    if _active is None:
        _active = _resolve_provider()

    request = CompletionRequest(system, user_message, max_tokens, json_mode)
    return await _active.provider.call(_active.api_key, _active.model, request)
