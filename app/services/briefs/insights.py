"""Generative insight step: prompt, model call, JSON extraction and defaults."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from openai import APIStatusError, APITimeoutError, OpenAI, OpenAIError
from pydantic.alias_generators import to_snake

from app.models.brief import BriefInsights
from app.observability.metrics import metrics
from app.services.briefs.errors import (
    InsightProviderError,
    MalformedModelOutputError,
    UpstreamDegradation,
)
from app.services.briefs.prompts import INSIGHT_KEYS, SYSTEM_PROMPT, render_user_prompt

if TYPE_CHECKING:
    from app.config import Settings

logger = logging.getLogger(__name__)


class ChatCompletionClient(Protocol):
    """Minimal contract for an OpenAI-compatible chat completion call."""

    def generate(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        ...


class OpenAIChatCompletionClient(ChatCompletionClient):
    """Thin wrapper around the OpenAI SDK pointed at any compatible endpoint."""

    def __init__(self, api_key: str, *, base_url: str | None = None, timeout: float = 45.0) -> None:
        if not api_key:
            raise ValueError("LLM_API_KEY is required to generate insights.")
        # Single-shot: the pipeline owns failure handling, so SDK retries are off.
        self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIChatCompletionClient":
        return cls(
            settings.llm_api_key or "",
            base_url=settings.llm_base_url,
            timeout=settings.llm_timeout_seconds,
        )

    def generate(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        response = self._client.chat.completions.create(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        return _extract_response_text(response)


def _extract_response_text(response: Any) -> str:
    """Pull the first choice's text out of a chat completion."""
    choices = getattr(response, "choices", None) or []
    if choices:
        content = getattr(choices[0].message, "content", "")
        if isinstance(content, list):
            content = "".join(part.get("text", "") for part in content if isinstance(part, dict))
        if isinstance(content, str) and content.strip():
            return content.strip()
    raise InsightProviderError("Model response did not include text output.", code="LLM_EMPTY_RESPONSE")


@dataclass(frozen=True)
class InsightConfig:
    """Configuration bundle for the insight generator."""

    model: str
    temperature: float
    max_tokens: int
    system_prompt: str = SYSTEM_PROMPT

    @classmethod
    def from_settings(cls, settings: Settings) -> "InsightConfig":
        return cls(
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )


class InsightGenerator:
    """Turns a dossier into the five outreach fields.

    The model call is the least reliable link in the pipeline, so ``generate``
    never raises: provider errors, timeouts and unparseable output all come back
    as placeholder insights.
    """

    def __init__(self, client: ChatCompletionClient | None, *, config: InsightConfig) -> None:
        self._client = client
        self._config = config

    def generate(self, dossier: str) -> BriefInsights:
        if self._client is None:
            logger.info("briefs.insights.skipped", extra={"reason": "not_configured"})
            metrics.increment("briefs.insights.degraded", tags={"reason": "not_configured"})
            return BriefInsights()

        start = time.perf_counter()
        try:
            raw_text = self._invoke(render_user_prompt(dossier))
            payload = extract_json_object(raw_text)
        except UpstreamDegradation as exc:
            logger.warning(
                "briefs.insights.degraded",
                extra={"code": exc.code, "model": self._config.model, "error": str(exc)},
            )
            metrics.increment("briefs.insights.degraded", tags={"reason": exc.code})
            return BriefInsights()
        finally:
            metrics.timing(
                "briefs.insights.latency_ms",
                (time.perf_counter() - start) * 1000,
                tags={"model": self._config.model},
            )

        insights, filled = merge_insights(payload)
        metrics.gauge("briefs.insights.fields_filled", filled, tags={"model": self._config.model})
        logger.info(
            "briefs.insights.generated",
            extra={"model": self._config.model, "fields": filled},
        )
        return insights

    def _invoke(self, user_prompt: str) -> str:
        try:
            return self._client.generate(
                system_prompt=self._config.system_prompt,
                user_prompt=user_prompt,
                model=self._config.model,
                temperature=self._config.temperature,
                max_tokens=self._config.max_tokens,
            )
        except InsightProviderError:
            raise
        except APITimeoutError as exc:
            raise InsightProviderError("Model request timed out.", code="LLM_TIMEOUT") from exc
        except APIStatusError as exc:
            message = getattr(exc, "message", str(exc))
            raise InsightProviderError(
                f"Model request failed: {message}", code=f"LLM_{exc.status_code}"
            ) from exc
        except OpenAIError as exc:
            raise InsightProviderError(f"Model request failed: {exc}", code="LLM_UPSTREAM") from exc
        except Exception as exc:  # pragma: no cover - defensive
            raise InsightProviderError(f"Unexpected model failure: {exc}", code="LLM_UPSTREAM") from exc


def merge_insights(payload: dict[str, Any]) -> tuple[BriefInsights, int]:
    """Overlay non-blank string fields from the model onto the placeholders.

    Returns the merged insights and how many fields the model supplied.
    """
    values: dict[str, str] = {}
    for key in INSIGHT_KEYS:
        field_name = to_snake(key)
        candidate = payload.get(key, payload.get(field_name))
        if isinstance(candidate, str) and candidate.strip():
            values[field_name] = candidate.strip()
    return BriefInsights(**values), len(values)


def extract_json_object(raw_text: str) -> dict[str, Any]:
    """Return the first balanced ``{...}`` substring that parses to a JSON object.

    Surrounding prose and markdown fences are ignored. Raises
    MalformedModelOutputError when no candidate parses.
    """
    text = raw_text or ""
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        if end is not None:
            try:
                parsed = json.loads(text[start : end + 1])
            except ValueError:
                parsed = None
            if isinstance(parsed, dict):
                return parsed
        start = text.find("{", start + 1)
    raise MalformedModelOutputError()


def _matching_brace(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None
