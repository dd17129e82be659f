"""Prompt templates for grounded answering.

The system policy is fixed: answer only from the supplied context, refuse
with an exact sentence when the context is not enough, and emit a narrow
HTML subset the chat UI renders directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.messages import HumanMessage, SystemMessage

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

REFUSAL = "I’m sorry — I couldn’t find that in the document."

SYSTEM_PROMPT = f"""\
You are DocuChat, an expert technical writing assistant.

You are a helpful AI assistant. When answering:

• ONLY use the information in the "Context" section and while answering only refer to content in "Context".
• If you cannot answer with high confidence, reply exactly with: "{REFUSAL}"

Follow this style guide:
- Return all output in HTML format.
- Use <b> or <strong> for bold headings.
- Use normal hyphen (-) for bullet points — do NOT use <ul> or <li>.
- Wrap each paragraph in <p>.
- Avoid using markdown — return only valid HTML.
- Format responses for clarity and readability.
"""


def build_grounded_prompt(context: str, question: str) -> list[BaseMessage]:
    """Assemble the system + user messages for one grounded answer.

    Parameters
    ----------
    context:
        Retrieved chunk texts, already joined in rank order.
    question:
        The user question, verbatim.

    Returns
    -------
    list[BaseMessage]
        A list of LangChain message objects ready for ``.invoke()``.
    """
    user_msg = f"Context:\n{context}\n\nQuestion:\n{question}"
    return [
        SystemMessage(content=SYSTEM_PROMPT.strip()),
        HumanMessage(content=user_msg.strip()),
    ]
