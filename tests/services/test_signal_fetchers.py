from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from app.clients.builtwith import BuiltWithTimeoutError
from app.clients.jsearch import JSearchRateLimitError
from app.clients.newsdata import NewsDataSchemaError
from app.models.brief import Confidence
from app.services.briefs import signals as signals_module
from app.services.briefs.signals import (
    JobSignalFetcher,
    NewsSignalFetcher,
    TechVerificationFetcher,
    company_logo_url,
    favicon_url,
    resolve_domain,
)
from tests.helpers.metrics_stub import StubMetrics
from tests.helpers.signal_stubs import StubJobsClient, StubNewsClient, StubTechClient


@pytest.fixture(autouse=True)
def stub_metrics(monkeypatch):
    stub = StubMetrics()
    monkeypatch.setattr(signals_module, "metrics", stub)
    return stub


def test_news_fetcher_maps_articles_and_drops_invalid_entries():
    client = StubNewsClient(
        [
            {
                "title": "Acme raises $20M",
                "link": "https://techcrunch.com/acme",
                "description": "",
                "content": "c" * 400,
                "pubDate": "2025-03-01 08:30:00",
                "source_id": "techcrunch",
                "source_url": "https://techcrunch.com",
            },
            {"title": "Missing link"},
            {"title": "Second", "link": "https://example.org/x", "description": "Short"},
        ]
    )
    items = NewsSignalFetcher(client, limit=8).fetch("Acme")

    assert client.queries == ['"Acme"']
    assert [item.title for item in items] == ["Acme raises $20M", "Second"]
    first = items[0]
    assert first.description == "c" * 250 + "..."
    assert first.published_at == datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc)
    assert first.source == "techcrunch"
    assert first.source_favicon == favicon_url("https://techcrunch.com")
    assert items[1].source == "News Source"


def test_news_fetcher_respects_limit():
    client = StubNewsClient([{"title": f"t{i}", "link": f"https://e.com/{i}"} for i in range(10)])
    assert len(NewsSignalFetcher(client, limit=8).fetch("Acme")) == 8


def test_fetcher_degrades_to_empty_on_provider_error(stub_metrics):
    fetcher = NewsSignalFetcher(StubNewsClient(error=NewsDataSchemaError()))
    assert fetcher.fetch("Acme") == []
    assert stub_metrics.increment_calls[0]["metric"] == "briefs.signal.degraded"
    assert stub_metrics.increment_calls[0]["tags"] == {"source": "news", "code": "NEWSDATA_SCHEMA_ERR"}


def test_unconfigured_fetcher_returns_empty():
    assert JobSignalFetcher(None).fetch("Acme") == []


def test_job_fetcher_builds_location_and_salary():
    client = StubJobsClient(
        [
            {
                "job_title": "Platform Engineer",
                "employer_name": "Acme",
                "job_city": "Austin",
                "job_country": "US",
                "job_description": "d" * 600,
                "job_posted_at_datetime_utc": "2025-03-02T00:00:00.000Z",
                "job_salary_period": "YEAR",
                "job_min_salary": 150000,
                "job_max_salary": 190000,
            },
            {"job_title": "Recruiter", "job_city": None, "job_country": ""},
        ]
    )
    jobs = JobSignalFetcher(client).fetch("Acme")

    assert client.queries == ["Acme jobs"]
    assert jobs[0].location == "Austin, US"
    assert jobs[0].salary == "$150000-190000 YEAR"
    assert jobs[0].description == "d" * 500 + "..."
    assert jobs[1].location == "Remote, Global"
    assert jobs[1].salary is None
    assert jobs[1].posted_date is None


def test_job_fetcher_rate_limited():
    assert JobSignalFetcher(StubJobsClient(error=JSearchRateLimitError())).fetch("Acme") == []


def test_tech_fetcher_marks_verified_items():
    client = StubTechClient(
        [
            {"Name": "React", "Categories": [{"Name": "JavaScript Library"}], "FirstDetected": 1577836800000},
            {"Name": "Cloudflare"},
        ]
    )
    items = TechVerificationFetcher(client).fetch("Acme", "acme.com")

    assert client.domains == ["acme.com"]
    assert [item.name for item in items] == ["React", "Cloudflare"]
    assert all(item.verified and item.confidence is Confidence.HIGH for item in items)
    assert items[0].category == "JavaScript Library"
    assert items[0].first_detected == date(2020, 1, 1)
    assert items[1].category == "Other"


def test_tech_fetcher_skips_without_domain():
    client = StubTechClient([{"Name": "React"}])
    assert TechVerificationFetcher(client).fetch("Acme", None) == []
    assert client.domains == []


def test_tech_fetcher_timeout_degrades():
    fetcher = TechVerificationFetcher(StubTechClient(error=BuiltWithTimeoutError()))
    assert fetcher.fetch("Acme", "acme.com") == []


@pytest.mark.parametrize(
    ("website", "expected"),
    [
        ("https://www.Acme.com/about", "acme.com"),
        ("acme.io", "acme.io"),
        ("  ", None),
        (None, None),
    ],
)
def test_resolve_domain(website, expected):
    assert resolve_domain(website) == expected


def test_logo_and_favicon_urls():
    assert company_logo_url("acme.com") == "https://logo.clearbit.com/acme.com"
    assert company_logo_url(None) is None
    assert favicon_url(None).endswith("domain=news.com&sz=32")


def test_unreadable_salary_drops_salary_not_posting():
    client = StubJobsClient(
        [
            {"job_title": "Account Executive", "job_salary_period": "YEAR", "job_min_salary": "50k"},
            {"job_title": "SRE", "job_salary_period": "YEAR", "job_min_salary": "120,000", "job_max_salary": "n/a"},
        ]
    )
    jobs = JobSignalFetcher(client).fetch("Acme")

    assert [job.title for job in jobs] == ["Account Executive", "SRE"]
    assert jobs[0].salary is None
    assert jobs[1].salary == "$120000 YEAR"
