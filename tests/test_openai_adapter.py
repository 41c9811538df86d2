"""Tests for OpenAIAdapter with a stubbed SDK client."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import httpx
import openai
import pytest

from repo_snapshot.domain.exceptions import AnalysisBackendError
from repo_snapshot.infrastructure.openai_adapter import OpenAIAdapter


class _StubCompletions:
    def __init__(self, content: str | None = None, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.kwargs: dict[str, Any] = {}

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _adapter(completions: _StubCompletions) -> OpenAIAdapter:
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIAdapter(
        api_key="unused",
        model="test-model",
        max_tokens=800,
        temperature=0.3,
        client=client,  # type: ignore[arg-type]
    )


async def test_sends_prompt_and_content() -> None:
    completions = _StubCompletions(content="A tiny module.")

    text = await _adapter(completions).generate("Summarize", "print('hi')")

    assert text == "A tiny module."
    assert completions.kwargs["model"] == "test-model"
    assert completions.kwargs["max_tokens"] == 800
    assert completions.kwargs["temperature"] == 0.3
    assert completions.kwargs["messages"] == [
        {"role": "user", "content": "Summarize\n\nprint('hi')"}
    ]


async def test_empty_completion_is_an_error() -> None:
    with pytest.raises(AnalysisBackendError):
        await _adapter(_StubCompletions(content="")).generate("Summarize", "x")


async def test_sdk_error_is_translated() -> None:
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com"))

    with pytest.raises(AnalysisBackendError):
        await _adapter(_StubCompletions(error=error)).generate("Summarize", "x")
