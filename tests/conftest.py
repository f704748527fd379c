"""
Shared pytest setup.

Adds ``src`` to ``sys.path`` so tests import the package without an install,
and provides a deterministic whitespace-word encoder for exact token counts.
"""

import sys
from pathlib import Path

import pytest

src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


class WordEncoder:
    """One token per whitespace-separated word."""

    def encode(self, text: str) -> int:
        return len(text.split())


@pytest.fixture
def encoder():
    return WordEncoder()


def words(n: int, prefix: str = "w") -> str:
    return " ".join(f"{prefix}{i}" for i in range(n))
