"""Decision oracle backend over the Anthropic Messages API."""

from __future__ import annotations

import logging
import os
import time
from typing import Any

import anthropic

from errors import MalformedAnswerError, OracleUnavailableError
from oracle import AnswerShape, DecisionOracle, Message, OracleReply, OracleUsage, log_usage

CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-opus-4-6")
CLAUDE_MAX_TOKENS = int(os.getenv("CLAUDE_MAX_TOKENS", "4096"))

LOGGER = logging.getLogger(__name__)


class AnthropicOracle(DecisionOracle):
    """Blocking Claude backend; the answer text is validated like a streamed one.

    Model names meant for other providers are replaced with CLAUDE_MODEL, so the
    decision functions can keep passing their usual model identifiers.
    """

    def __init__(
        self,
        client: anthropic.Anthropic | None = None,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int = CLAUDE_MAX_TOKENS,
    ) -> None:
        if client is None:
            api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
            if not api_key:
                raise RuntimeError("ANTHROPIC_API_KEY environment variable is required")
            client = anthropic.Anthropic(api_key=api_key)
        self._client = client
        self._model = model or CLAUDE_MODEL
        self._max_tokens = max_tokens

    def ask(self, messages: list[Message], shape: AnswerShape, model: str) -> OracleReply:
        claude_model = model if model.startswith("claude") else self._model

        # The system prompt goes through the dedicated system= parameter.
        system: str | None = None
        filtered: list[dict[str, Any]] = []
        for msg in messages:
            if msg["role"] == "system":
                system = msg["content"]
            else:
                filtered.append({"role": msg["role"], "content": msg["content"]})

        kwargs: dict[str, Any] = {
            "model": claude_model,
            "max_tokens": self._max_tokens,
            "messages": filtered,
        }
        if system:
            kwargs["system"] = system

        LOGGER.debug("Calling Claude model=%s max_tokens=%s shape=%s", claude_model, self._max_tokens, shape.name)
        start = time.monotonic()
        try:
            response = self._client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            raise OracleUnavailableError(f"Claude request failed for model={claude_model}: {exc}") from exc

        content = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        usage = None
        if getattr(response, "usage", None):
            usage = OracleUsage(
                prompt_tokens=response.usage.input_tokens or 0,
                completion_tokens=response.usage.output_tokens or 0,
                elapsed_seconds=time.monotonic() - start,
            )
        log_usage(claude_model, usage)

        try:
            value = shape.parse_text(content)
        except MalformedAnswerError as exc:
            raise MalformedAnswerError(str(exc), raw_text=content) from exc
        return OracleReply(value=value, raw_text=content, usage=usage)
