"""LLM client factory and the text generator used by the pipeline.

The pipeline only needs "system instruction + user instruction in, free
text out". ``TextGenerator`` captures that contract so request handlers can
swap the provider (or a scripted fake in tests) without touching the core.
"""

import logging
from typing import Optional, Protocol

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from ...core.config import get_settings
from ...observability.langsmith import build_trace_config

logger = logging.getLogger(__name__)


def _resolve_api_key(base_url: str, api_key: str) -> str:
    """Provide a safe API key value for local OpenAI-compatible servers."""
    if api_key:
        return api_key
    base = (base_url or "").lower()
    if "127.0.0.1" in base or "localhost" in base:
        return "lm-studio"
    return ""


def get_llm(
    temperature: Optional[float] = None,
    model: Optional[str] = None,
    max_tokens: Optional[int] = None,
) -> ChatOpenAI:
    """
    Get a configured LLM client.

    Args:
        temperature: Override default temperature (0.0-1.0)
        model: Override default model name
        max_tokens: Override default max tokens

    Returns:
        Configured ChatOpenAI instance
    """
    settings = get_settings()

    return ChatOpenAI(
        base_url=settings.LLM_BASE_URL,
        api_key=_resolve_api_key(settings.LLM_BASE_URL, settings.LLM_API_KEY),
        model=model or settings.LLM_MODEL,
        temperature=temperature if temperature is not None else settings.LLM_TEMPERATURE,
        max_tokens=max_tokens or settings.LLM_MAX_TOKENS,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=0,
    )


def is_llm_quota_error(exc: Exception) -> bool:
    """Detect provider quota/rate-limit errors from OpenAI-compatible backends."""
    text = str(exc).lower()
    return (
        "error code: 429" in text
        or "insufficient balance" in text
        or "insufficient_quota" in text
        or "rate limit reached" in text
    )


def is_llm_connection_error(exc: Exception) -> bool:
    """Detect upstream LLM connectivity issues."""
    text = str(exc).lower()
    return (
        "connection error" in text
        or "connecterror" in text
        or "connection refused" in text
        or "failed to establish a new connection" in text
    )


class TextGenerator(Protocol):
    """Anything that turns a (system, user) instruction pair into text."""

    provider: str
    model: str

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        user_uid: str,
        purpose: str,
    ) -> str:
        ...


class LlmTextGenerator:
    """TextGenerator backed by an OpenAI-compatible chat model."""

    def __init__(self, llm: Optional[ChatOpenAI] = None):
        settings = get_settings()
        self.provider = settings.LLM_PROVIDER
        self.model = settings.LLM_MODEL
        self._llm = llm or get_llm()

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        user_uid: str,
        purpose: str,
    ) -> str:
        config = build_trace_config(
            thread_id=f"{purpose}:{user_uid}",
            tags=["learnpath", purpose],
            metadata={"user_uid": user_uid},
        )
        response = await self._llm.ainvoke(
            [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)],
            config=config,
        )
        content = response.content
        if isinstance(content, list):
            # Some providers return content blocks instead of a plain string.
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        logger.debug(f"[{purpose}] generator returned {len(content)} characters")
        return content


def get_text_generator() -> TextGenerator:
    """FastAPI dependency returning the configured generator."""
    return LlmTextGenerator()
