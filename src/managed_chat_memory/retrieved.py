"""
Retrieved-content assembler.

Packs background snippets into a single user message, in order, until the
token ceiling is reached. Units (header, separator, snippet) are added
whole or not at all.
"""

from dataclasses import dataclass, field
from typing import Sequence

from .messages import ChatMessage, Role
from .token_encoder import TokenEncoder, count_text_tokens

SEPARATOR = "=" * 32

RELEVANT_CONTENT_HEADER = (
    "\n\n## Relevant Content\n\n"
    f"Below are information related to the conversation, separated by {SEPARATOR}\n\n"
)


@dataclass
class RetrievedContent:
    message: ChatMessage
    remaining_tokens: int
    usage: int
    included: list[str] = field(default_factory=list)


def assemble_retrieved_content(
    snippets: Sequence[str],
    max_token_count: int,
    encoder: TokenEncoder,
) -> RetrievedContent:
    used = 0
    parts: list[str] = []
    included: list[str] = []

    def append(text: str) -> bool:
        nonlocal used
        tokens = count_text_tokens(encoder, text)
        if used + tokens > max_token_count:
            return False
        used += tokens
        parts.append(text)
        return True

    for index, snippet in enumerate(s for s in snippets if s):
        lead = RELEVANT_CONTENT_HEADER if index == 0 else f"\n{SEPARATOR}\n"
        if not append(lead):
            break
        if not append(snippet):
            break
        included.append(snippet)

    return RetrievedContent(
        message=ChatMessage(role=Role.USER, content="".join(parts)),
        remaining_tokens=max_token_count - used,
        usage=used,
        included=included,
    )
