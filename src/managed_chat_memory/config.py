"""
Memory configuration and model context window mappings.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Model → context window size (tokens)
MODEL_CONTEXT_WINDOWS: dict[str, int] = {
    # OpenAI
    "gpt-3.5-turbo-16k": 16_385,
    "gpt-3.5-turbo": 16_385,
    "gpt-4-32k": 32_768,
    "gpt-4-turbo": 128_000,
    "gpt-4o-mini": 128_000,
    "gpt-4o": 128_000,
    "gpt-4": 8_192,
    # DeepSeek
    "deepseek-chat": 64_000,
    "deepseek-reasoner": 64_000,
    # GLM
    "glm-4": 128_000,
    "glm-4-flash": 128_000,
}

DEFAULT_CONTEXT_WINDOW = 8_192


@dataclass
class MemoryConfig:
    """Token budget settings for an auto-managed chat memory."""

    # Context window (0 = auto-detect from model name)
    max_tokens: int = 0

    # Reserved for the model's reply
    minimum_reply_tokens: int = 1000

    # Cap on older history messages per request (0 = unlimited)
    max_message_count: int = 0

    model_name: str = ""
    encoding_name: str = "cl100k_base"

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "MemoryConfig":
        """Load configuration from environment variables."""
        if dotenv_path:
            load_dotenv(dotenv_path, override=False)
        return cls(
            max_tokens=int(os.getenv("MEMORY_MAX_TOKENS", "0")),
            minimum_reply_tokens=int(
                os.getenv("MEMORY_MINIMUM_REPLY_TOKENS", "1000")
            ),
            max_message_count=int(os.getenv("MEMORY_MAX_MESSAGE_COUNT", "0")),
            model_name=os.getenv("MEMORY_MODEL_NAME", ""),
            encoding_name=os.getenv("MEMORY_ENCODING", "cl100k_base"),
        )

    def get_max_tokens(self) -> int:
        """Resolve context window size from config or model name."""
        if self.max_tokens > 0:
            return self.max_tokens
        model_name = self.model_name
        if not model_name:
            return DEFAULT_CONTEXT_WINDOW
        # Try exact match first, then the longest matching prefix
        if model_name in MODEL_CONTEXT_WINDOWS:
            return MODEL_CONTEXT_WINDOWS[model_name]
        for key in sorted(MODEL_CONTEXT_WINDOWS, key=len, reverse=True):
            if model_name.startswith(key):
                return MODEL_CONTEXT_WINDOWS[key]
        return DEFAULT_CONTEXT_WINDOW

    @property
    def budget_ceiling(self) -> int:
        """Tokens available to the prompt once the reply is reserved.

        Can be negative for an ill-formed configuration; downstream tiers
        then admit nothing.
        """
        return self.get_max_tokens() - self.minimum_reply_tokens
