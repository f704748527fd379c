"""
Function declarations exposed to the model.

The memory only reads declarations; their serialized form is charged
against the mandatory tier of the budget.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from langchain_core.utils.function_calling import convert_to_openai_function


@dataclass(frozen=True)
class FunctionDeclaration:
    name: str
    description: str = ""
    argument_schema: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_openai(cls, spec: dict[str, Any]) -> "FunctionDeclaration":
        """Build from an OpenAI-style ``{name, description, parameters}`` dict."""
        return cls(
            name=spec["name"],
            description=spec.get("description", ""),
            argument_schema=spec.get("parameters", {}),
        )


class FunctionCatalog(Protocol):
    @property
    def functions(self) -> Sequence[FunctionDeclaration]:
        ...


class StaticFunctionCatalog:
    """A fixed, ordered list of declarations."""

    def __init__(self, functions: Sequence[FunctionDeclaration] = ()):
        self._functions = tuple(functions)

    @property
    def functions(self) -> Sequence[FunctionDeclaration]:
        return self._functions


class ToolFunctionCatalog:
    """Declarations derived from LangChain tools (``@tool`` functions, BaseTool)."""

    def __init__(self, tools: Sequence[Any] = ()):
        self._tools = list(tools)

    @property
    def functions(self) -> Sequence[FunctionDeclaration]:
        return tuple(
            FunctionDeclaration.from_openai(convert_to_openai_function(t))
            for t in self._tools
        )


EMPTY_CATALOG = StaticFunctionCatalog()
