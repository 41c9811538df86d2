"""OpenAI adapter — implements the ContentGenerator port."""

from __future__ import annotations

import logging

from openai import AsyncOpenAI, AuthenticationError, OpenAIError, RateLimitError

from repo_snapshot.domain.exceptions import AnalysisBackendError

logger = logging.getLogger(__name__)


class OpenAIAdapter:
    """Concrete ``ContentGenerator`` backed by the OpenAI chat-completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        max_tokens: int = 800,
        temperature: float = 0.3,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key, max_retries=0)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def generate(self, prompt: str, file_content: str) -> str:
        """Send ``prompt`` followed by the file content and return the completion text."""
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": f"{prompt}\n\n{file_content}"}],
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except AuthenticationError as exc:
            raise AnalysisBackendError(
                "Invalid OpenAI API key. "
                "Set a valid key in the OPENAI_API_KEY environment variable."
            ) from exc
        except RateLimitError as exc:
            logger.error("OpenAI RateLimitError: %s", exc)
            raise AnalysisBackendError(f"OpenAI rate limit / quota error: {exc}") from exc
        except OpenAIError as exc:
            raise AnalysisBackendError(f"Analysis request failed: {exc}") from exc

        content = response.choices[0].message.content
        if not content:
            raise AnalysisBackendError("Analysis backend returned an empty response.")
        return content

    async def close(self) -> None:
        """Release underlying HTTP resources."""
        await self._client.close()
