"""
Generation: grounded answers from an external chat model.

Public API
----------
- :class:`GenerationClient`: ``generate(context, question)``.
- :func:`get_llm`: configured ``ChatOpenAI`` for an OpenAI-compatible endpoint.
- :data:`REFUSAL`: the verbatim low-confidence reply.
"""

from docuchat.generation.client import GenerationClient
from docuchat.generation.prompts import REFUSAL, SYSTEM_PROMPT, build_grounded_prompt

__all__ = [
    "REFUSAL",
    "SYSTEM_PROMPT",
    "GenerationClient",
    "build_grounded_prompt",
    "get_llm",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import get_llm so tests never need langchain_openai configured."""
    if name == "get_llm":
        from docuchat.generation.llm import get_llm

        return get_llm
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
