"""
Token budget allocator.

Splits ``max_tokens - minimum_reply_tokens`` across priority tiers. Each
tier receives what the tiers above it actually left over:

1. Mandatory: system prompt, context prompt, function declarations and
   reply priming. Never truncated.
2. History: most recent messages first.
3. Retrieved content: whatever history did not use.

The assembled prompt is ordered:

    [system prompt]
    [older history, oldest → newest]
    [retrieved content]
    [context system prompt]
    [newest message]
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence

from .config import MemoryConfig
from .functions import FunctionDeclaration
from .history import select_history
from .messages import ChatMessage, Role
from .retrieved import assemble_retrieved_content
from .token_encoder import (
    REPLY_PRIMING,
    TokenEncoder,
    count_message_tokens,
    function_token_count,
)

logger = logging.getLogger(__name__)


@dataclass
class MandatoryUsage:
    system_prompt: int
    context_system_prompt: int
    functions: int

    @property
    def total(self) -> int:
        return (
            self.system_prompt
            + self.context_system_prompt
            + self.functions
            + REPLY_PRIMING
        )


@dataclass
class MandatoryMessages:
    system_prompt: ChatMessage
    context_system_prompt: ChatMessage
    remaining_tokens: int  # for history and retrieved content, may be negative
    usage: MandatoryUsage


@dataclass
class TokenUsage:
    """Per-tier token usage of one assembled prompt."""

    system_prompt: int = 0
    context_system_prompt: int = 0
    functions: int = 0
    messages: int = 0
    retrieved_content: int = 0

    @property
    def total(self) -> int:
        return (
            self.system_prompt
            + self.context_system_prompt
            + self.functions
            + self.messages
            + self.retrieved_content
        )


@dataclass
class SendingHistory:
    messages: list[ChatMessage]
    usage: TokenUsage
    included_retrieved_content: list[str] = field(default_factory=list)
    over_budget: bool = False


def build_mandatory(
    system_prompt: str,
    context_system_prompt: str,
    functions: Sequence[FunctionDeclaration],
    ceiling: int,
    encoder: TokenEncoder,
) -> MandatoryMessages:
    system_message = ChatMessage(role=Role.SYSTEM, content=system_prompt)
    context_message = ChatMessage(role=Role.USER, content=context_system_prompt)

    system_tokens = count_message_tokens(encoder, system_message)
    context_tokens = (
        count_message_tokens(encoder, context_message) if context_system_prompt else 0
    )
    function_tokens = sum(function_token_count(encoder, f) for f in functions)

    usage = MandatoryUsage(
        system_prompt=system_tokens,
        context_system_prompt=context_tokens,
        functions=function_tokens,
    )
    return MandatoryMessages(
        system_prompt=system_message,
        context_system_prompt=context_message,
        remaining_tokens=ceiling - usage.total,
        usage=usage,
    )


def build_sending_history(
    system_prompt: str,
    context_system_prompt: str,
    retrieved_content: Sequence[str],
    history: Sequence[ChatMessage],
    functions: Sequence[FunctionDeclaration],
    config: MemoryConfig,
    encoder: TokenEncoder,
    max_message_count: int = 0,
) -> SendingHistory:
    """Assemble the messages to send, fitted to the configured budget."""
    ceiling = config.budget_ceiling

    # --- Tier 1: mandatory ---
    mandatory = build_mandatory(
        system_prompt, context_system_prompt, functions, ceiling, encoder
    )
    over_budget = mandatory.remaining_tokens < 0
    if over_budget:
        logger.warning(
            "Mandatory content (%d tokens) exceeds the prompt budget (%d tokens); "
            "history and retrieved content will be omitted",
            mandatory.usage.total,
            ceiling,
        )

    # --- Tier 2: history ---
    selection = select_history(
        history,
        max_message_count=max_message_count,
        max_token_count=mandatory.remaining_tokens,
        encoder=encoder,
    )

    # --- Tier 3: retrieved content (gets what history left over) ---
    retrieved = assemble_retrieved_content(
        retrieved_content,
        max_token_count=selection.remaining_tokens,
        encoder=encoder,
    )

    candidates = [
        mandatory.system_prompt,
        *selection.history,
        retrieved.message,
        mandatory.context_system_prompt,
        selection.new_message,
    ]
    messages = [m for m in candidates if not m.is_empty]

    usage = TokenUsage(
        system_prompt=mandatory.usage.system_prompt,
        context_system_prompt=mandatory.usage.context_system_prompt,
        functions=mandatory.usage.functions,
        messages=selection.usage,
        retrieved_content=retrieved.usage,
    )
    logger.debug(
        "Sending tokens: system prompt=%d, context system prompt=%d, "
        "functions=%d, messages=%d, retrieved content=%d, total=%d",
        usage.system_prompt,
        usage.context_system_prompt,
        usage.functions,
        usage.messages,
        usage.retrieved_content,
        usage.total,
    )

    return SendingHistory(
        messages=messages,
        usage=usage,
        included_retrieved_content=retrieved.included,
        over_budget=over_budget,
    )
