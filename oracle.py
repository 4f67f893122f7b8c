"""Decision oracle contract over OpenAI-compatible chat completion endpoints.

Every decision function sends one role-tagged conversation and declares the
shape of the answer it expects. A backend returns an OracleReply only when the
answer validates against that shape; otherwise it raises MalformedAnswerError.
Transport problems surface as OracleUnavailableError so callers can tell an
unreachable oracle from a confused one.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from dataclasses import dataclass
from json import JSONDecodeError
from typing import Any, Literal

import httpx
import openai
from openai import OpenAI
from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from errors import MalformedAnswerError, OracleUnavailableError

ORACLE_BACKEND = os.getenv("ORACLE_BACKEND", "streaming")
ORACLE_BASE_URL = os.getenv("ORACLE_BASE_URL", "https://api.centml.com/openai/v1")
ORACLE_TIMEOUT_SECONDS = float(os.getenv("ORACLE_TIMEOUT_SECONDS", "600"))

LOGGER = logging.getLogger(__name__)

Message = dict[str, str]

_THINK_END = "</think>"
_CODE_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*\s*\n?|\n?```\s*$")
_LEADING_INT_RE = re.compile(r"^\W*(\d+)(?!\d)")
_INT_RE = re.compile(r"(?<!\d)\d+(?!\d)")
_YES_RE = re.compile(r"^(yes|true)\b")
_NO_RE = re.compile(r"^(no|false)\b")


def build_conversation(system: str, user: str) -> list[Message]:
    """Return the two-message conversation every decision function starts from."""
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def strip_reasoning(text: str) -> str:
    """Drop an inline <think>...</think> block and surrounding code fences."""
    answer = text.split(_THINK_END)[-1].strip()
    return _CODE_FENCE_RE.sub("", answer).strip()


# ---------------------------------------------------------------------------
# Declared answer shapes
# ---------------------------------------------------------------------------


class AnswerShape:
    """Base class for the answer shapes a decision function can declare."""

    name = "answer"

    def annotation(self) -> Any:
        raise NotImplementedError

    def schema_model(self) -> type[BaseModel]:
        """Pydantic model with a single `answer` field, for strict structured output."""
        return create_model(
            f"{self.name.title().replace('_', '')}Answer",
            __config__=ConfigDict(extra="forbid"),
            answer=(self.annotation(), ...),
        )

    def response_format(self) -> dict[str, Any]:
        model = self.schema_model()
        return {
            "type": "json_schema",
            "json_schema": {
                "name": self.name,
                "schema": model.model_json_schema(),
                "strict": True,
            },
        }

    def parse_text(self, text: str) -> Any:
        raise NotImplementedError

    def parse_structured(self, payload: str) -> Any:
        """Validate a JSON payload against the schema model, else parse it as text."""
        try:
            return self.schema_model().model_validate_json(payload).answer
        except ValidationError:
            LOGGER.debug("Structured %s answer failed schema validation, parsing as text", self.name)
            return self.parse_text(payload)

    def _answer_from_json(self, text: str) -> Any:
        try:
            data = json.loads(text)
        except JSONDecodeError:
            return None
        return data.get("answer") if isinstance(data, dict) else None


class BooleanAnswer(AnswerShape):
    """A yes/no judgement."""

    name = "boolean"

    def annotation(self) -> Any:
        return bool

    def parse_text(self, text: str) -> bool:
        answer = strip_reasoning(text)
        from_json = self._answer_from_json(answer)
        if isinstance(from_json, bool):
            return from_json
        lowered = answer.lower().lstrip("*_ \"'")
        if _YES_RE.match(lowered):
            return True
        if _NO_RE.match(lowered):
            return False
        raise MalformedAnswerError(f"Expected a yes/no answer, got {answer[:80]!r}", raw_text=text)


class ChoiceAnswer(AnswerShape):
    """One integer out of a small fixed set, e.g. {1, 2}."""

    name = "choice"

    def __init__(self, choices: tuple[int, ...] = (1, 2)) -> None:
        if not choices:
            raise ValueError("ChoiceAnswer needs at least one choice")
        self.choices = tuple(sorted(set(choices)))

    def annotation(self) -> Any:
        return Literal[self.choices]

    def parse_text(self, text: str) -> int:
        answer = " ".join(strip_reasoning(text).split())
        from_json = self._answer_from_json(answer)
        if isinstance(from_json, int) and not isinstance(from_json, bool) and from_json in self.choices:
            return from_json
        match = _LEADING_INT_RE.match(answer)
        if match and int(match.group(1)) in self.choices:
            # "1 or 2" names more than one choice and is not a decision.
            mentioned = {int(token) for token in _INT_RE.findall(answer)} & set(self.choices)
            if mentioned == {int(match.group(1))}:
                return int(match.group(1))
        raise MalformedAnswerError(
            f"Expected one of {list(self.choices)}, got {answer[:80]!r}", raw_text=text
        )


class TextAnswer(AnswerShape):
    """Free text; only an empty answer is rejected."""

    name = "text"

    def annotation(self) -> Any:
        return str

    def parse_text(self, text: str) -> str:
        answer = strip_reasoning(text)
        if not answer:
            raise MalformedAnswerError("Expected a non-empty text answer", raw_text=text)
        return answer

    def parse_structured(self, payload: str) -> str:
        value = super().parse_structured(payload)
        if not isinstance(value, str) or not value.strip():
            raise MalformedAnswerError("Expected a non-empty text answer", raw_text=payload)
        return value.strip()


# ---------------------------------------------------------------------------
# Replies and usage
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OracleUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    elapsed_seconds: float = 0.0

    @property
    def tokens_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.completion_tokens / self.elapsed_seconds


@dataclass(frozen=True, slots=True)
class OracleReply:
    value: Any
    raw_text: str
    reasoning: str = ""
    usage: OracleUsage | None = None


def log_usage(model: str, usage: OracleUsage | None) -> None:
    if usage is None:
        return
    LOGGER.info(
        "Oracle usage: model=%s prompt_tokens=%s completion_tokens=%s elapsed=%.1fs tokens_per_second=%.1f",
        model,
        usage.prompt_tokens,
        usage.completion_tokens,
        usage.elapsed_seconds,
        usage.tokens_per_second,
    )


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class DecisionOracle:
    """Interface shared by every backend. Callers never branch on the backend."""

    def ask(self, messages: list[Message], shape: AnswerShape, model: str) -> OracleReply:
        raise NotImplementedError


class _OpenAICompatibleOracle(DecisionOracle):
    def __init__(
        self,
        client: OpenAI | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        if client is None:
            api_key = api_key or os.getenv("ORACLE_API_KEY") or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise RuntimeError("ORACLE_API_KEY (or OPENAI_API_KEY) environment variable is required")
            client = OpenAI(
                api_key=api_key,
                base_url=base_url or ORACLE_BASE_URL or None,
                timeout=timeout or ORACLE_TIMEOUT_SECONDS,
            )
        self._client = client


class StreamingOracle(_OpenAICompatibleOracle):
    """Streams the completion and accumulates every fragment before parsing."""

    def ask(self, messages: list[Message], shape: AnswerShape, model: str) -> OracleReply:
        LOGGER.debug("Streaming oracle request: model=%s shape=%s", model, shape.name)
        start = time.monotonic()
        content_parts: list[str] = []
        reasoning_parts: list[str] = []
        usage_chunk: Any = None

        try:
            stream = self._client.chat.completions.create(
                model=model,
                messages=messages,
                stream=True,
                stream_options={"include_usage": True},
            )
            for chunk in stream:
                if getattr(chunk, "usage", None):
                    usage_chunk = chunk.usage
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                content_parts.append(getattr(delta, "content", None) or "")
                reasoning_parts.append(getattr(delta, "reasoning_content", None) or "")
        except (openai.APIError, httpx.TransportError) as exc:
            raise OracleUnavailableError(f"Oracle request failed for model={model}: {exc}") from exc

        content = "".join(content_parts)
        reasoning = "".join(reasoning_parts)
        usage = None
        if usage_chunk is not None:
            usage = OracleUsage(
                prompt_tokens=usage_chunk.prompt_tokens or 0,
                completion_tokens=usage_chunk.completion_tokens or 0,
                elapsed_seconds=time.monotonic() - start,
            )
        log_usage(model, usage)
        if reasoning:
            LOGGER.debug("Oracle reasoning: %s", reasoning)

        try:
            value = shape.parse_text(content)
        except MalformedAnswerError as exc:
            raise MalformedAnswerError(str(exc), raw_text=content, reasoning=reasoning) from exc
        return OracleReply(value=value, raw_text=content, reasoning=reasoning, usage=usage)


class StructuredOracle(_OpenAICompatibleOracle):
    """Blocking request with a strict JSON-schema response format."""

    def ask(self, messages: list[Message], shape: AnswerShape, model: str) -> OracleReply:
        LOGGER.debug("Structured oracle request: model=%s shape=%s", model, shape.name)
        start = time.monotonic()
        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=messages,
                response_format=shape.response_format(),
            )
        except (openai.APIError, httpx.TransportError) as exc:
            raise OracleUnavailableError(f"Oracle request failed for model={model}: {exc}") from exc

        message = response.choices[0].message
        content = message.content or ""
        reasoning = getattr(message, "reasoning_content", None) or ""
        usage = None
        if getattr(response, "usage", None):
            usage = OracleUsage(
                prompt_tokens=response.usage.prompt_tokens or 0,
                completion_tokens=response.usage.completion_tokens or 0,
                elapsed_seconds=time.monotonic() - start,
            )
        log_usage(model, usage)

        if not content:
            raise MalformedAnswerError("Oracle returned an empty response", raw_text="", reasoning=reasoning)
        try:
            value = shape.parse_structured(content)
        except MalformedAnswerError as exc:
            raise MalformedAnswerError(str(exc), raw_text=content, reasoning=reasoning) from exc
        return OracleReply(value=value, raw_text=content, reasoning=reasoning, usage=usage)


def create_oracle(backend: str | None = None) -> DecisionOracle:
    """Build the backend named by ORACLE_BACKEND (streaming, structured or anthropic)."""
    backend = (backend or ORACLE_BACKEND).strip().lower()
    if backend == "streaming":
        return StreamingOracle()
    if backend == "structured":
        return StructuredOracle()
    if backend == "anthropic":
        from anthropic_client import AnthropicOracle  # noqa: PLC0415

        return AnthropicOracle()
    raise ValueError(f"Unknown ORACLE_BACKEND: {backend!r}")
