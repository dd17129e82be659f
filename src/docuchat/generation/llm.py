"""LLM initialisation: single place to swap providers.

Any OpenAI-compatible chat-completions endpoint works: OpenRouter (the
default ``LLM_BASE_URL``), OpenAI itself, or a self-hosted vLLM server.
"""

from __future__ import annotations

import logging

from langchain_openai import ChatOpenAI

from docuchat.config import Settings, settings

logger = logging.getLogger(__name__)


def get_llm(config: Settings = settings) -> ChatOpenAI:
    """Return the configured chat model.

    Temperature, output length, per-call timeout and the bounded retry
    budget all come from *config*.  A dummy API key (``"EMPTY"``) is used
    when none is set, since self-hosted endpoints do not check it.
    """
    kwargs: dict = {
        "model": config.llm_model_name,
        "temperature": config.llm_temperature,
        "max_tokens": config.llm_max_tokens,
        "timeout": config.llm_timeout_seconds,
        "max_retries": config.llm_max_retries,
        "api_key": config.llm_api_key or "EMPTY",
    }
    if config.llm_base_url:
        logger.info("Using chat endpoint: %s", config.llm_base_url)
        kwargs["base_url"] = config.llm_base_url

    return ChatOpenAI(**kwargs)
