"""
History selector.

Picks the most recent messages of a conversation that fit a token ceiling.
The newest message is returned separately so it can be pinned to the end
of the prompt.
"""

from dataclasses import dataclass
from typing import Sequence

from .messages import ChatMessage, Role
from .token_encoder import TokenEncoder, count_message_tokens


@dataclass
class HistorySelection:
    history: list[ChatMessage]  # older messages, oldest → newest
    new_message: ChatMessage
    remaining_tokens: int
    usage: int


def select_history(
    history: Sequence[ChatMessage],
    max_message_count: int,
    max_token_count: int,
    encoder: TokenEncoder,
) -> HistorySelection:
    """
    Walk the history from newest to oldest, admitting messages until the
    token ceiling or the message-count cap is hit.

    - Empty messages are skipped and do not count toward the cap.
    - The first admitted message becomes ``new_message``; the cap
      (0 = unlimited) bounds the older messages only.
    - A message that would overflow the ceiling stops the walk; it is
      never truncated.
    """
    used = 0
    older: list[ChatMessage] = []
    new_message = None

    for message in reversed(history):
        if max_message_count > 0 and len(older) >= max_message_count:
            break
        if message.is_empty:
            continue
        tokens = count_message_tokens(encoder, message)
        if used + tokens > max_token_count:
            break
        used += tokens
        if new_message is None:
            new_message = message
        else:
            older.append(message)

    older.reverse()
    return HistorySelection(
        history=older,
        new_message=new_message or ChatMessage(role=Role.USER, content=""),
        remaining_tokens=max_token_count - used,
        usage=used,
    )
