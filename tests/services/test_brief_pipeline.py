from __future__ import annotations

import json

import pytest

from app.clients.builtwith import BuiltWithError
from app.clients.jsearch import JSearchTimeoutError
from app.clients.newsdata import NewsDataRateLimitError
from app.models.brief import (
    PLACEHOLDER_SIGNAL_TAG,
    PLACEHOLDER_SUMMARY,
    Brief,
    BriefRequest,
    Confidence,
)
from app.services.briefs import pipeline as pipeline_module
from app.services.briefs import signals as signals_module
from app.services.briefs.errors import BriefPersistenceError, BriefValidationError, InsightProviderError
from app.services.briefs.insights import InsightConfig, InsightGenerator
from app.services.briefs.pipeline import BriefPipeline
from app.services.briefs.repositories import InMemoryBriefRepository
from app.services.briefs.signals import JobSignalFetcher, NewsSignalFetcher, TechVerificationFetcher
from app.services.briefs.tech_heuristics import TechStackHeuristicEngine
from app.services.briefs.trends import NO_HIRING_ACTIVITY, NO_NEWS_COVERAGE
from tests.helpers.metrics_stub import StubMetrics
from tests.helpers.signal_stubs import StubJobsClient, StubNewsClient, StubTechClient

INSIGHT_JSON = json.dumps(
    {
        "summary": "Acme just raised a Series B and is hiring SREs.",
        "pitchAngle": "Lead with on-call load.",
        "subjectLine": "Your new SRE team",
        "whatNotToPitch": "Avoid cost-cutting angles.",
        "signalTag": "Scaling Platform Post-Series B",
    }
)


class StubChatClient:
    def __init__(self, response: str = INSIGHT_JSON, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    def generate(self, **kwargs) -> str:
        self.prompts.append(kwargs["user_prompt"])
        if self.error:
            raise self.error
        return self.response


class SpyHeuristics(TechStackHeuristicEngine):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def infer(self, *args, **kwargs):
        self.calls += 1
        return super().infer(*args, **kwargs)


class FailingRepository(InMemoryBriefRepository):
    def insert(self, brief: Brief) -> Brief:
        raise BriefPersistenceError("Failed to save brief.", code="500_INTERNAL")


@pytest.fixture(autouse=True)
def stub_metrics(monkeypatch):
    stub = StubMetrics()
    monkeypatch.setattr(pipeline_module, "metrics", stub)
    return stub


def _pipeline(
    *,
    news=None,
    jobs=None,
    tech=None,
    llm=None,
    repository=None,
    heuristics=None,
) -> BriefPipeline:
    return BriefPipeline(
        repository=repository or InMemoryBriefRepository(),
        news_fetcher=NewsSignalFetcher(news or StubNewsClient()),
        jobs_fetcher=JobSignalFetcher(jobs or StubJobsClient()),
        tech_fetcher=TechVerificationFetcher(tech or StubTechClient()),
        insight_generator=InsightGenerator(
            llm or StubChatClient(),
            config=InsightConfig(model="test-model", temperature=0.8, max_tokens=2000),
        ),
        heuristics=heuristics,
    )


def _news_payload():
    return [
        {
            "title": "Acme raised $40M in Series B funding",
            "link": "https://techcrunch.com/acme-series-b",
            "description": "The round will fund platform expansion.",
            "source_id": "techcrunch",
        }
    ]


def _jobs_payload():
    return [
        {
            "job_title": "Senior DevOps Engineer",
            "employer_name": "Acme",
            "job_city": "Austin",
            "job_country": "US",
            "job_description": "Run Kubernetes on AWS.",
        }
    ]


@pytest.mark.parametrize(
    "request_payload",
    [
        {"companyName": "", "userIntent": "pitch"},
        {"companyName": "Acme", "userIntent": "   "},
        {"userIntent": "pitch"},
        {"companyName": "Acme"},
    ],
)
def test_missing_required_fields_raise_before_any_side_effect(request_payload):
    news = StubNewsClient(_news_payload())
    repository = InMemoryBriefRepository()
    pipeline = _pipeline(news=news, repository=repository)

    with pytest.raises(BriefValidationError) as excinfo:
        pipeline.create_brief(BriefRequest.model_validate(request_payload))

    assert excinfo.value.code == "400_INVALID_REQUEST"
    assert news.queries == []
    assert repository.list_all() == []


def test_acme_scenario_with_every_upstream_failing(stub_metrics):
    pipeline = _pipeline(
        news=StubNewsClient(error=NewsDataRateLimitError()),
        jobs=StubJobsClient(error=JSearchTimeoutError()),
        tech=StubTechClient(error=BuiltWithError("down")),
        llm=StubChatClient(error=InsightProviderError("boom", code="LLM_UPSTREAM")),
    )

    brief = pipeline.create_brief(
        BriefRequest(company_name="Acme", user_intent="pitch devops tooling")
    )

    assert brief.id is not None
    assert brief.created_at is not None
    assert brief.news == []
    assert brief.job_signals == []
    assert brief.tech_stack_data
    assert all(item.confidence is Confidence.LOW for item in brief.tech_stack_data)
    assert brief.tech_stack == [item.name for item in brief.tech_stack_data]
    assert brief.summary == PLACEHOLDER_SUMMARY
    assert brief.signal_tag == PLACEHOLDER_SIGNAL_TAG
    assert brief.hiring_trends == NO_HIRING_ACTIVITY
    assert brief.news_trends == NO_NEWS_COVERAGE
    assert brief.intelligence_sources.verified_source_used is False
    assert brief.company_logo is None
    metrics_seen = [call["metric"] for call in stub_metrics.increment_calls]
    assert "briefs.tech.heuristic_used" in metrics_seen
    assert "briefs.persisted" in metrics_seen


def test_full_signal_run_uses_model_output_and_verified_stack():
    heuristics = SpyHeuristics()
    llm = StubChatClient()
    pipeline = _pipeline(
        news=StubNewsClient(_news_payload()),
        jobs=StubJobsClient(_jobs_payload()),
        tech=StubTechClient([{"Name": "Kubernetes", "Categories": [{"Name": "DevOps"}]}]),
        llm=llm,
        heuristics=heuristics,
    )

    brief = pipeline.create_brief(
        BriefRequest(company_name=" Acme ", website="https://www.acme.com", user_intent="pitch devops tooling")
    )

    assert heuristics.calls == 0
    assert brief.company_name == "Acme"
    assert brief.summary.startswith("Acme just raised")
    assert brief.tech_stack == ["Kubernetes"]
    assert brief.intelligence_sources.verified_source_used is True
    assert brief.intelligence_sources.news == 1
    assert brief.intelligence_sources.jobs == 1
    assert brief.company_logo == "https://logo.clearbit.com/acme.com"
    assert brief.hiring_trends.startswith("Active hiring:")
    assert brief.news_trends.endswith("positive sentiment")
    prompt = llm.prompts[0]
    assert "Acme raised $40M" in prompt
    assert "Senior DevOps Engineer" in prompt
    assert "verified by BuiltWith" in prompt


def test_heuristic_runs_when_verification_is_empty():
    heuristics = SpyHeuristics()
    pipeline = _pipeline(jobs=StubJobsClient(_jobs_payload()), heuristics=heuristics)

    brief = pipeline.create_brief(BriefRequest(company_name="Acme", user_intent="pitch"))

    assert heuristics.calls == 1
    assert {"Kubernetes", "AWS"} <= set(brief.tech_stack)
    assert not brief.intelligence_sources.verified_source_used


def test_persistence_failure_propagates(stub_metrics):
    pipeline = _pipeline(repository=FailingRepository())

    with pytest.raises(BriefPersistenceError):
        pipeline.create_brief(BriefRequest(company_name="Acme", user_intent="pitch"))

    errors = [call for call in stub_metrics.increment_calls if call["metric"] == "briefs.errors"]
    assert errors[0]["tags"] == {"code": "500_INTERNAL"}


def test_created_brief_is_listed_and_deletable():
    pipeline = _pipeline()
    brief = pipeline.create_brief(BriefRequest(company_name="Acme", user_intent="pitch"))

    assert [entry.id for entry in pipeline.list_briefs()] == [brief.id]
    assert pipeline.get_brief(str(brief.id)) == brief
    assert pipeline.delete_brief(brief.id) is True
    assert pipeline.get_brief(brief.id) is None


@pytest.mark.parametrize("failing_source", ["news", "jobs", "tech"])
def test_single_source_failure_keeps_other_signals(failing_source, monkeypatch):
    signal_metrics = StubMetrics()
    monkeypatch.setattr(signals_module, "metrics", signal_metrics)
    news = StubNewsClient(_news_payload())
    jobs = StubJobsClient(_jobs_payload())
    tech = StubTechClient([{"Name": "Kubernetes", "Categories": [{"Name": "DevOps"}]}])
    if failing_source == "news":
        news.error = NewsDataRateLimitError()
    elif failing_source == "jobs":
        jobs.error = JSearchTimeoutError()
    else:
        tech.error = BuiltWithError("down")
    heuristics = SpyHeuristics()
    pipeline = _pipeline(news=news, jobs=jobs, tech=tech, heuristics=heuristics)

    brief = pipeline.create_brief(
        BriefRequest(company_name="Acme", website="acme.com", user_intent="pitch devops tooling")
    )

    assert tech.domains == ["acme.com"]
    assert brief.id is not None
    assert (brief.news == []) is (failing_source == "news")
    assert (brief.job_signals == []) is (failing_source == "jobs")
    assert brief.intelligence_sources.news == len(brief.news)
    assert brief.intelligence_sources.jobs == len(brief.job_signals)
    assert brief.intelligence_sources.technologies == len(brief.tech_stack_data)
    assert brief.tech_stack == [item.name for item in brief.tech_stack_data]
    degraded = [
        call["tags"]["source"]
        for call in signal_metrics.increment_calls
        if call["metric"] == "briefs.signal.degraded"
    ]
    assert degraded == [failing_source]
    if failing_source == "tech":
        assert heuristics.calls == 1
        assert brief.tech_stack_data
        assert brief.intelligence_sources.verified_source_used is False
    else:
        assert heuristics.calls == 0
        assert brief.tech_stack == ["Kubernetes"]
        assert brief.intelligence_sources.verified_source_used is True
