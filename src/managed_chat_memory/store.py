"""
Auto-managed chat memory.

Holds the system prompt, context prompt, retrieved content, function
catalog and the full conversation history, and assembles the messages to
send so that they fit the model's context window with room for the reply.

The full history is never trimmed; ``refresh()`` only selects what the
model sees.

Usage:
    memory = AutoManagedMemory("You are helpful.", MemoryConfig(max_tokens=8192))
    memory.mutate_history(lambda h: h.append(ChatMessage(Role.USER, "Hi")))
    memory.refresh()
    payload = to_payload(memory.messages)
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from .budget import TokenUsage, build_sending_history
from .config import MemoryConfig
from .functions import EMPTY_CATALOG, FunctionCatalog
from .messages import ChatMessage
from .token_encoder import TokenEncoder, default_encoder

logger = logging.getLogger(__name__)


class AutoManagedMemory:
    """
    Memory that manages the sent history by max tokens and max message count.

    All reads and writes go through one lock. The history-change observer
    runs on a worker thread after the lock is released, so it may call back
    into the memory (e.g. ``refresh()``) without deadlocking.
    """

    def __init__(
        self,
        system_prompt: str,
        config: MemoryConfig,
        function_catalog: Optional[FunctionCatalog] = None,
        encoder: Optional[TokenEncoder] = None,
    ):
        self._config = config
        self._function_catalog = function_catalog or EMPTY_CATALOG
        # Load the encoder up front, not on the first refresh.
        self._encoder = encoder or default_encoder(
            config.model_name, config.encoding_name
        )

        self._lock = threading.Lock()
        self._system_prompt = system_prompt
        self._context_system_prompt = ""
        self._retrieved_content: list[str] = []
        self._history: list[ChatMessage] = []

        self._messages: list[ChatMessage] = []
        self._remaining_tokens: Optional[int] = None
        self._last_usage = TokenUsage()
        self._overflow_warnings = 0

        self._on_history_change: Optional[Callable[[], None]] = None
        self._observer_executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="memory-observer"
        )

    # ── Snapshots ──

    @property
    def config(self) -> MemoryConfig:
        return self._config

    @property
    def encoder(self) -> TokenEncoder:
        return self._encoder

    @property
    def function_catalog(self) -> FunctionCatalog:
        return self._function_catalog

    @property
    def messages(self) -> list[ChatMessage]:
        """Messages assembled by the last ``refresh()``."""
        with self._lock:
            return list(self._messages)

    @property
    def remaining_tokens(self) -> Optional[int]:
        """Always ``None``: the budget already guarantees the prompt fits."""
        with self._lock:
            return self._remaining_tokens

    @property
    def history(self) -> tuple[ChatMessage, ...]:
        with self._lock:
            return tuple(self._history)

    @property
    def system_prompt(self) -> str:
        with self._lock:
            return self._system_prompt

    @property
    def context_system_prompt(self) -> str:
        with self._lock:
            return self._context_system_prompt

    @property
    def retrieved_content(self) -> list[str]:
        with self._lock:
            return list(self._retrieved_content)

    @property
    def last_usage(self) -> TokenUsage:
        with self._lock:
            return self._last_usage

    @property
    def overflow_warnings(self) -> int:
        """Number of refreshes whose mandatory content exceeded the budget."""
        with self._lock:
            return self._overflow_warnings

    # ── Mutations ──

    def mutate_history(self, update: Callable[[list[ChatMessage]], None]) -> None:
        """Apply ``update`` to the history list in place, then notify the observer."""
        # Notify even if update raised; the list may already have changed.
        try:
            with self._lock:
                update(self._history)
        finally:
            with self._lock:
                callback = self._on_history_change
            self._notify(callback)

    def set_system_prompt(self, prompt: str) -> None:
        with self._lock:
            self._system_prompt = prompt

    def set_context_system_prompt(self, prompt: str) -> None:
        with self._lock:
            self._context_system_prompt = prompt

    def set_retrieved_content(self, content: Sequence[str]) -> None:
        with self._lock:
            self._retrieved_content = list(content)

    def observe_history_change(self, callback: Callable[[], None]) -> None:
        """Register the history observer. Only the last registration is kept."""
        with self._lock:
            self._on_history_change = callback

    # ── Assembly ──

    def refresh(self, max_message_count: Optional[int] = None) -> None:
        """
        Recompute ``messages`` from the current state.

        ``max_message_count`` overrides ``config.max_message_count`` for
        this call only.
        """
        with self._lock:
            if max_message_count is None:
                max_message_count = self._config.max_message_count
            result = build_sending_history(
                system_prompt=self._system_prompt,
                context_system_prompt=self._context_system_prompt,
                retrieved_content=self._retrieved_content,
                history=self._history,
                functions=self._function_catalog.functions,
                config=self._config,
                encoder=self._encoder,
                max_message_count=max_message_count,
            )
            self._messages = result.messages
            self._remaining_tokens = self._generate_remaining_tokens()
            self._last_usage = result.usage
            if result.over_budget:
                self._overflow_warnings += 1
            history_size = len(self._history)

        logger.debug(
            "Refreshed memory: %d messages to send (history has %d, %d tokens used)",
            len(result.messages),
            history_size,
            result.usage.total,
        )

    def _generate_remaining_tokens(self) -> Optional[int]:
        # Leave the exact remainder to the completion API.
        return None

    # ── Observer dispatch ──

    def _notify(self, callback: Optional[Callable[[], None]]) -> None:
        if callback is None:
            return
        try:
            future = self._observer_executor.submit(callback)
        except RuntimeError:
            logger.debug("Memory closed, dropping history change notification")
            return
        future.add_done_callback(_log_observer_failure)

    def close(self) -> None:
        """Stop the observer worker after pending notifications run."""
        self._observer_executor.shutdown(wait=True)

    def __enter__(self) -> "AutoManagedMemory":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _log_observer_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.warning("History change observer failed: %s", exc)
