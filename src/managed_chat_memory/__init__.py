"""
Auto-managed conversation memory for LLM chat sessions.

Fits an unbounded conversation into a model's context window, in priority
order:

- Mandatory: system prompt, context prompt, function declarations
- History: most recent messages, newest pinned last
- Retrieved content: background snippets, using what history left over

The full history is kept; only the view sent to the model is trimmed.
"""

from .budget import SendingHistory, TokenUsage, build_sending_history
from .config import MemoryConfig
from .functions import (
    FunctionCatalog,
    FunctionDeclaration,
    StaticFunctionCatalog,
    ToolFunctionCatalog,
)
from .history import HistorySelection, select_history
from .messages import ChatMessage, FunctionCall, Role, to_langchain_messages, to_payload
from .retrieved import RetrievedContent, assemble_retrieved_content
from .store import AutoManagedMemory
from .token_encoder import (
    EstimatingEncoder,
    TiktokenEncoder,
    TokenEncoder,
    count_message_tokens,
    default_encoder,
    function_token_count,
)

__all__ = [
    "AutoManagedMemory",
    "ChatMessage",
    "EstimatingEncoder",
    "FunctionCall",
    "FunctionCatalog",
    "FunctionDeclaration",
    "HistorySelection",
    "MemoryConfig",
    "RetrievedContent",
    "Role",
    "SendingHistory",
    "StaticFunctionCatalog",
    "TiktokenEncoder",
    "TokenEncoder",
    "TokenUsage",
    "ToolFunctionCatalog",
    "assemble_retrieved_content",
    "build_sending_history",
    "count_message_tokens",
    "default_encoder",
    "function_token_count",
    "select_history",
    "to_langchain_messages",
    "to_payload",
]
