"""
Chat message model.

A ``ChatMessage`` is the unit the memory budgets. It carries a memoized
token count so that a history which only grows is never re-encoded.
Conversion helpers bridge to LangChain message objects and to the plain
chat-completions payload consumed by completion clients.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    FunctionMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"


@dataclass(frozen=True)
class FunctionCall:
    name: str
    arguments: str


@dataclass
class ChatMessage:
    role: Role
    content: Optional[str] = None
    name: Optional[str] = None
    function_call: Optional[FunctionCall] = None

    # Memoized token count and the (role, content, name, function_call)
    # key it was computed for.
    token_count: Optional[int] = field(default=None, compare=False, repr=False)
    _token_key: Optional[tuple] = field(
        default=None, init=False, compare=False, repr=False
    )

    def __post_init__(self):
        self.role = Role(self.role)

    @property
    def is_empty(self) -> bool:
        return not self.content and self.name is None and self.function_call is None

    def cost_key(self) -> tuple:
        return (self.role, self.content, self.name, self.function_call)

    def cached_token_count(self) -> Optional[int]:
        """Return the memoized count if it still matches the message.

        The memo is keyed on the message fields only, not on the encoder:
        a message counted by one encoder keeps that count everywhere.
        """
        if self.token_count is None:
            return None
        if self._token_key is not None and self._token_key != self.cost_key():
            return None
        return self.token_count

    def remember_token_count(self, count: int) -> None:
        self.token_count = count
        self._token_key = self.cost_key()

    def as_dict(self) -> dict[str, Any]:
        """Render as a chat-completions API message."""
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.name is not None:
            data["name"] = self.name
        if self.function_call is not None:
            data["function_call"] = {
                "name": self.function_call.name,
                "arguments": self.function_call.arguments,
            }
        return data

    def to_langchain(self) -> BaseMessage:
        content = self.content or ""
        if self.role is Role.SYSTEM:
            return SystemMessage(content=content)
        if self.role is Role.ASSISTANT:
            additional_kwargs = {}
            if self.function_call is not None:
                additional_kwargs["function_call"] = {
                    "name": self.function_call.name,
                    "arguments": self.function_call.arguments,
                }
            return AIMessage(
                content=content, name=self.name, additional_kwargs=additional_kwargs
            )
        if self.role is Role.FUNCTION:
            return FunctionMessage(content=content, name=self.name or "")
        return HumanMessage(content=content, name=self.name)

    @classmethod
    def from_langchain(cls, msg: BaseMessage) -> "ChatMessage":
        """
        Build a ChatMessage from a LangChain message.

        - SystemMessage → system
        - AIMessage → assistant (legacy ``function_call`` kwarg, else the
          first entry of ``tool_calls``)
        - FunctionMessage / ToolMessage → function
        - anything else → user
        """
        content = msg.content if isinstance(msg.content, str) else _text_of(msg.content)
        name = getattr(msg, "name", None)

        if isinstance(msg, SystemMessage):
            return cls(role=Role.SYSTEM, content=content, name=name)

        if isinstance(msg, AIMessage):
            call = msg.additional_kwargs.get("function_call")
            function_call = None
            if call:
                function_call = FunctionCall(
                    name=call.get("name", ""), arguments=call.get("arguments", "")
                )
            elif msg.tool_calls:
                tc = msg.tool_calls[0]
                function_call = FunctionCall(
                    name=tc["name"],
                    arguments=json.dumps(tc.get("args") or {}, ensure_ascii=False),
                )
            return cls(
                role=Role.ASSISTANT,
                content=content,
                name=name,
                function_call=function_call,
            )

        if isinstance(msg, (FunctionMessage, ToolMessage)):
            return cls(role=Role.FUNCTION, content=content, name=name)

        return cls(role=Role.USER, content=content, name=name)


def _text_of(blocks: list) -> str:
    parts = []
    for block in blocks:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "\n".join(parts)


def to_payload(messages) -> list[dict[str, Any]]:
    """Convert messages into the list sent to a chat-completions endpoint."""
    return [m.as_dict() for m in messages]


def to_langchain_messages(messages) -> list[BaseMessage]:
    return [m.to_langchain() for m in messages]
