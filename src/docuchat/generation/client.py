"""Grounded answer generation and persistence of the assistant turn."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

import openai

from docuchat.errors import GenerationError, GenerationTimeoutError
from docuchat.generation.prompts import REFUSAL, build_grounded_prompt

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

    from docuchat.store.repository import ChatRepository

logger = logging.getLogger(__name__)

# Reasoning models served through some providers inline their scratchpad.
_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)


def _extract_text(content: Any) -> str:
    """Normalise a chat-model ``content`` payload to plain text."""
    if isinstance(content, str):
        text = content
    elif isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        text = "".join(parts)
    else:
        raise GenerationError(f"Malformed model response: {type(content).__name__} content")
    return _THINK_RE.sub("", text).strip()


class GenerationClient:
    """Calls the chat model under the fixed grounding policy.

    Parameters
    ----------
    llm:
        Any LangChain chat model; see :func:`docuchat.generation.llm.get_llm`.
    repository:
        Where the assistant turn is recorded on success.
    """

    def __init__(self, llm: BaseChatModel, repository: ChatRepository) -> None:
        self._llm = llm
        self._repository = repository

    def complete(self, context: str, question: str) -> str:
        """Return the model's answer without persisting anything.

        An empty *context* short-circuits to :data:`REFUSAL`; the model
        is never asked to answer from nothing.
        """
        if not context.strip():
            logger.info("Empty context, returning refusal without calling the model")
            return REFUSAL

        try:
            response = self._llm.invoke(build_grounded_prompt(context, question))
        except openai.APITimeoutError as exc:
            raise GenerationTimeoutError(f"Generation timed out: {exc}") from exc
        except openai.RateLimitError as exc:
            raise GenerationError(f"Generation rate limited: {exc}") from exc
        except openai.APIError as exc:
            raise GenerationError(f"Generation provider error: {exc}") from exc
        except Exception as exc:
            raise GenerationError(f"Generation failed: {exc}") from exc

        answer = _extract_text(getattr(response, "content", None))
        if not answer:
            raise GenerationError("Malformed model response: empty answer")
        return answer

    def generate(
        self,
        context: str,
        question: str,
        *,
        conversation_id: str,
        sources: list[dict[str, Any]] | None = None,
    ) -> str:
        """Answer *question* from *context* and persist the assistant turn."""
        logger.info("Query state | conversation_id=%s | state=GENERATING", conversation_id)
        answer = self.complete(context, question)
        self._repository.add_message(conversation_id, "assistant", answer, sources=sources or [])
        return answer
