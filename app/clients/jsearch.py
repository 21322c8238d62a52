"""Client for the JSearch job listings API (RapidAPI)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from app.config import Settings


class JSearchError(RuntimeError):
    """Base error for JSearch client failures."""

    def __init__(self, message: str, code: str = "JSEARCH_ERROR") -> None:
        super().__init__(message)
        self.code = code


class JSearchRateLimitError(JSearchError):
    """Raised when JSearch responds with HTTP 429."""

    def __init__(self, message: str = "Rate limited by JSearch") -> None:
        super().__init__(message, code="JSEARCH_429")


class JSearchTimeoutError(JSearchError):
    """Raised when a JSearch request times out."""

    def __init__(self, message: str = "JSearch request timed out") -> None:
        super().__init__(message, code="JSEARCH_TIMEOUT")


class JSearchSchemaError(JSearchError):
    """Raised when the JSearch response schema does not match expectations."""

    def __init__(self, message: str = "Unexpected JSearch response schema") -> None:
        super().__init__(message, code="JSEARCH_SCHEMA_ERR")


class JSearchClient:
    """Minimal JSearch API client wrapper."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://jsearch.p.rapidapi.com",
        host: str = "jsearch.p.rapidapi.com",
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("JSEARCH_API_KEY is required to create a JSearchClient.")
        self._api_key = api_key
        self._host = host
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "JSearchClient":
        """Instantiate the client from application settings."""
        return cls(
            settings.jsearch_api_key or "",
            base_url=settings.jsearch_base_url,
            host=settings.jsearch_host,
            timeout=settings.fetch_timeout_seconds,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_http_client:
            self._http.close()

    def search_jobs(
        self,
        *,
        query: str,
        date_posted: str = "month",
        employment_types: str = "FULLTIME",
    ) -> list[dict[str, Any]]:
        """Return the first page of postings matching the query."""
        params = {
            "query": query,
            "page": 1,
            "num_pages": 1,
            "date_posted": date_posted,
            "employment_types": employment_types,
        }
        headers = {
            "X-RapidAPI-Key": self._api_key,
            "X-RapidAPI-Host": self._host,
        }

        try:
            response = self._http.get("/search", params=params, headers=headers)
        except httpx.TimeoutException as exc:  # pragma: no cover - network failures
            raise JSearchTimeoutError() from exc
        except httpx.HTTPError as exc:  # pragma: no cover - network failures
            raise JSearchError(f"HTTP error calling JSearch: {exc}") from exc

        if response.status_code == 429:
            raise JSearchRateLimitError()
        if response.status_code in (408, 504):
            raise JSearchTimeoutError()
        if response.status_code >= 400:
            detail = response.text[:200]
            try:
                detail_json = response.json()
                detail = detail_json.get("message") or detail
            except Exception:  # pragma: no cover - best effort decoding
                pass
            raise JSearchError(f"JSearch request failed: {response.status_code} - {detail}")

        try:
            data = response.json()
        except ValueError as exc:
            raise JSearchSchemaError("Failed to decode JSearch response JSON.") from exc

        postings = data.get("data") if isinstance(data, dict) else None
        if not isinstance(postings, list):
            raise JSearchSchemaError("`data` missing from JSearch response.")
        return [entry for entry in postings if isinstance(entry, dict)]

    def __enter__(self) -> "JSearchClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
