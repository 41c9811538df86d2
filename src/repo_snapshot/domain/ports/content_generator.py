"""Port: content generator — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol


class ContentGenerator(Protocol):
    """Abstract contract for generating text about a file's content."""

    async def generate(self, prompt: str, file_content: str) -> str:
        """Return the generated text for ``prompt`` applied to ``file_content``."""
        ...
