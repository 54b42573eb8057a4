"""Text generation via the Anthropic API."""

from __future__ import annotations

import logging
import os

import anthropic

from pressroom.errors import GenerationError
from pressroom.integrations.base import GenerationResult, TextGenerator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Model name mapping
# ---------------------------------------------------------------------------

_MODEL_MAP: dict[str, str] = {
    "sonnet": "claude-sonnet-4-6",
    "haiku": "claude-haiku-4-5-20251001",
    "opus": "claude-opus-4-6",
}

_DEFAULT_MODEL = "claude-sonnet-4-6"

# USD per million tokens: (input, output)
_PRICING: dict[str, tuple[float, float]] = {
    "claude-sonnet-4-6": (3.0, 15.0),
    "claude-haiku-4-5-20251001": (1.0, 5.0),
    "claude-opus-4-6": (5.0, 25.0),
}


def resolve_model(model: str | None) -> str:
    """Resolve a short model name to an API model ID."""
    if not model:
        return _DEFAULT_MODEL
    return _MODEL_MAP.get(model, model)


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    input_rate, output_rate = _PRICING.get(model, _PRICING[_DEFAULT_MODEL])
    return round((input_tokens * input_rate + output_tokens * output_rate) / 1_000_000, 6)


class AnthropicGenerator(TextGenerator):
    """Generates article text with Claude.

    The API key comes from ``ANTHROPIC_API_KEY``. Provider fallback, if
    wanted, belongs in a wrapping TextGenerator, not here.
    """

    def __init__(
        self,
        model: str | None = None,
        *,
        timeout: int = 180,
        client: anthropic.Anthropic | None = None,
    ) -> None:
        self.model = resolve_model(model)
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> anthropic.Anthropic:
        if self._client is None:
            api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()
            if not api_key:
                raise GenerationError("ANTHROPIC_API_KEY not set")
            self._client = anthropic.Anthropic(api_key=api_key, timeout=self.timeout)
        return self._client

    def generate(
        self, prompt: str, max_output_tokens: int, *, system: str = ""
    ) -> GenerationResult:
        client = self._get_client()
        kwargs: dict[str, object] = {
            "model": self.model,
            "max_tokens": max_output_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system.strip():
            kwargs["system"] = system

        logger.debug("Calling Anthropic API model=%s", self.model)
        try:
            response = client.messages.create(**kwargs)  # type: ignore[arg-type]
        except anthropic.APIError as exc:
            raise GenerationError(f"Anthropic API failed: {exc}") from exc

        text = "".join(block.text for block in response.content if block.type == "text").strip()
        if not text:
            raise GenerationError("Anthropic API returned empty response")

        usage = response.usage
        input_tokens = getattr(usage, "input_tokens", 0) or 0
        output_tokens = getattr(usage, "output_tokens", 0) or 0
        return GenerationResult(
            text=text,
            model=self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=estimate_cost(self.model, input_tokens, output_tokens),
        )
