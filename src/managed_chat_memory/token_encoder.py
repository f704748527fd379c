"""
Token counting for the auto-managed memory.

The memory depends only on the ``TokenEncoder`` capability (text → token
count). ``TiktokenEncoder`` mirrors OpenAI chat models; ``EstimatingEncoder``
is a dependency-free fallback for offline use.

Message framing follows the OpenAI cookbook "How to count tokens with
tiktoken":

    message  = 3 + content [+ name + 1] [+ function name + arguments]
    function = name + description + JSON(argument schema)
    reply    = 3  (every reply is primed with <|start|>assistant<|message|>)
"""

import json
import logging
from functools import lru_cache
from typing import Protocol, runtime_checkable

import tiktoken

from .functions import FunctionDeclaration
from .messages import ChatMessage

logger = logging.getLogger(__name__)

MESSAGE_OVERHEAD = 3
NAME_OVERHEAD = 1
REPLY_PRIMING = 3


@runtime_checkable
class TokenEncoder(Protocol):
    """Converts text to a token count. Must be deterministic."""

    def encode(self, text: str) -> int:
        ...


class TiktokenEncoder:
    """Token encoder backed by tiktoken.

    Uses the model's own encoding when tiktoken knows the model, otherwise
    ``encoding_name``. Special-token text is encoded as ordinary text.
    """

    def __init__(self, model_name: str = "", encoding_name: str = "cl100k_base"):
        self._encoding = None
        if model_name:
            try:
                self._encoding = tiktoken.encoding_for_model(model_name)
            except KeyError:
                logger.debug(
                    "No tiktoken encoding for model %s, using %s",
                    model_name,
                    encoding_name,
                )
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(encoding_name)

    @property
    def name(self) -> str:
        return self._encoding.name

    def encode(self, text: str) -> int:
        if not text:
            return 0
        try:
            return len(self._encoding.encode(text, disallowed_special=()))
        except Exception as e:
            # A BPE token covers at least one byte, so this never under-counts.
            logger.warning("Token encoding failed, using byte length: %s", e)
            return len(text.encode("utf-8", errors="replace"))


class EstimatingEncoder:
    """Rough token estimate: ~3 chars per token for mixed CJK/English."""

    def encode(self, text: str) -> int:
        if not text:
            return 0
        return max(1, len(text) // 3)


@lru_cache(maxsize=None)
def default_encoder(
    model_name: str = "", encoding_name: str = "cl100k_base"
) -> TiktokenEncoder:
    """Shared encoder instance; loading BPE ranks is expensive."""
    return TiktokenEncoder(model_name=model_name, encoding_name=encoding_name)


def count_text_tokens(encoder: TokenEncoder, text) -> int:
    if not text:
        return 0
    return encoder.encode(text)


def message_token_count(encoder: TokenEncoder, message: ChatMessage) -> int:
    """Token cost of a message, without touching its memo."""
    total = MESSAGE_OVERHEAD
    if message.content is not None:
        total += count_text_tokens(encoder, message.content)
    if message.name is not None:
        total += count_text_tokens(encoder, message.name)
        total += NAME_OVERHEAD
    if message.function_call is not None:
        total += count_text_tokens(encoder, message.function_call.name)
        total += count_text_tokens(encoder, message.function_call.arguments)
    return total


def count_message_tokens(encoder: TokenEncoder, message: ChatMessage) -> int:
    """Token cost of a message, memoized on the message itself."""
    cached = message.cached_token_count()
    if cached is not None:
        return cached
    count = message_token_count(encoder, message)
    message.remember_token_count(count)
    return count


def function_token_count(encoder: TokenEncoder, function: FunctionDeclaration) -> int:
    count = count_text_tokens(encoder, function.name)
    count += count_text_tokens(encoder, function.description)
    count += count_text_tokens(encoder, serialize_schema(function.argument_schema))
    return count


def serialize_schema(schema) -> str:
    return json.dumps(schema, ensure_ascii=False, separators=(",", ":"))
