from __future__ import annotations

import httpx
import pytest
from openai import APITimeoutError

from app.models.brief import PLACEHOLDER_PITCH_ANGLE, PLACEHOLDER_SUMMARY, BriefInsights
from app.services.briefs import insights as insights_module
from app.services.briefs.errors import MalformedModelOutputError
from app.services.briefs.insights import (
    InsightConfig,
    InsightGenerator,
    extract_json_object,
    merge_insights,
)
from tests.helpers.metrics_stub import StubMetrics

CONFIG = InsightConfig(model="test-model", temperature=0.8, max_tokens=2000)


class StubChatClient:
    """Returns canned completions and records prompts."""

    def __init__(self, response: str | None = None, error: Exception | None = None) -> None:
        self._response = response
        self._error = error
        self.calls: list[dict[str, object]] = []

    def generate(self, **kwargs) -> str:
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return self._response or ""


@pytest.fixture
def stub_metrics(monkeypatch):
    stub = StubMetrics()
    monkeypatch.setattr(insights_module, "metrics", stub)
    return stub


def test_extract_json_tolerates_prose_and_fences():
    raw = (
        "Sure! Here is the brief:\n```json\n"
        '{"summary": "Acme is scaling {fast}", "signalTag": "Scaling"}\n'
        "```\nLet me know if you need more."
    )
    assert extract_json_object(raw) == {"summary": "Acme is scaling {fast}", "signalTag": "Scaling"}


def test_extract_json_skips_unparseable_candidates():
    raw = 'Template {not json} then {"summary": "ok"}'
    assert extract_json_object(raw) == {"summary": "ok"}


@pytest.mark.parametrize("raw", ["", "no braces here", "{broken", "[1, 2, 3]"])
def test_extract_json_raises_when_nothing_parses(raw):
    with pytest.raises(MalformedModelOutputError):
        extract_json_object(raw)


def test_merge_keeps_placeholders_for_missing_or_blank_fields():
    merged, filled = merge_insights(
        {"summary": "  Why now  ", "pitchAngle": "   ", "signal_tag": "Hiring SREs", "subjectLine": 42}
    )
    assert filled == 2
    assert merged.summary == "Why now"
    assert merged.signal_tag == "Hiring SREs"
    assert merged.pitch_angle == PLACEHOLDER_PITCH_ANGLE
    assert merged.subject_line == BriefInsights().subject_line


def test_generate_passes_dossier_and_config(stub_metrics):
    client = StubChatClient(
        '{"summary": "S", "pitchAngle": "P", "subjectLine": "L", "whatNotToPitch": "W", "signalTag": "T"}'
    )
    generator = InsightGenerator(client, config=CONFIG)

    result = generator.generate("COMPANY: Acme")

    assert result == BriefInsights(
        summary="S", pitch_angle="P", subject_line="L", what_not_to_pitch="W", signal_tag="T"
    )
    call = client.calls[0]
    assert call["model"] == "test-model"
    assert call["max_tokens"] == 2000
    assert "COMPANY: Acme" in call["user_prompt"]
    assert "pitchAngle" in call["user_prompt"]
    assert any(entry["metric"] == "briefs.insights.latency_ms" for entry in stub_metrics.timing_calls)
    assert stub_metrics.gauge_calls == [
        {"metric": "briefs.insights.fields_filled", "value": 5, "tags": {"model": "test-model"}}
    ]


def test_generate_degrades_on_timeout(stub_metrics):
    timeout = APITimeoutError(request=httpx.Request("POST", "https://llm.example/chat/completions"))
    generator = InsightGenerator(StubChatClient(error=timeout), config=CONFIG)

    result = generator.generate("dossier")

    assert result == BriefInsights()
    assert result.summary == PLACEHOLDER_SUMMARY
    degraded = [c for c in stub_metrics.increment_calls if c["metric"] == "briefs.insights.degraded"]
    assert degraded[0]["tags"] == {"reason": "LLM_TIMEOUT"}


def test_generate_degrades_on_malformed_output(stub_metrics):
    generator = InsightGenerator(StubChatClient("I cannot help with that."), config=CONFIG)

    assert generator.generate("dossier") == BriefInsights()
    degraded = [c for c in stub_metrics.increment_calls if c["metric"] == "briefs.insights.degraded"]
    assert degraded[0]["tags"] == {"reason": "MALFORMED_MODEL_OUTPUT"}


def test_generate_without_client_returns_placeholders(stub_metrics):
    assert InsightGenerator(None, config=CONFIG).generate("dossier") == BriefInsights()
    assert stub_metrics.increment_calls[0]["tags"] == {"reason": "not_configured"}
