"""Client for interacting with the NewsData.io news search API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from app.config import Settings


class NewsDataError(RuntimeError):
    """Base error for NewsData client failures."""

    def __init__(self, message: str, code: str = "NEWSDATA_ERROR") -> None:
        super().__init__(message)
        self.code = code


class NewsDataRateLimitError(NewsDataError):
    """Raised when NewsData responds with HTTP 429."""

    def __init__(self, message: str = "Rate limited by NewsData") -> None:
        super().__init__(message, code="NEWSDATA_429")


class NewsDataTimeoutError(NewsDataError):
    """Raised when a NewsData request times out."""

    def __init__(self, message: str = "NewsData request timed out") -> None:
        super().__init__(message, code="NEWSDATA_TIMEOUT")


class NewsDataSchemaError(NewsDataError):
    """Raised when the NewsData response schema is not as expected."""

    def __init__(self, message: str = "Unexpected NewsData response schema") -> None:
        super().__init__(message, code="NEWSDATA_SCHEMA_ERR")


class NewsDataClient:
    """Minimal NewsData.io client."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://newsdata.io",
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("NEWSDATA_API_KEY is required to create a NewsDataClient.")
        self._api_key = api_key
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "NewsDataClient":
        """Instantiate the client from application settings."""
        return cls(
            settings.newsdata_api_key or "",
            base_url=settings.newsdata_base_url,
            timeout=settings.fetch_timeout_seconds,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_http_client:
            self._http.close()

    def search_news(
        self,
        *,
        query: str,
        size: int = 10,
        categories: tuple[str, ...] = ("business", "technology"),
        language: str = "en",
    ) -> list[dict[str, Any]]:
        """Search recent articles matching the query."""
        if size <= 0:
            raise ValueError("size must be a positive integer.")

        params = {
            "apikey": self._api_key,
            "q": query,
            "language": language,
            "size": size,
            "category": ",".join(categories),
            "prioritydomain": "top",
        }

        try:
            response = self._http.get("/api/1/news", params=params)
        except httpx.TimeoutException as exc:  # pragma: no cover - network failures
            raise NewsDataTimeoutError() from exc
        except httpx.HTTPError as exc:  # pragma: no cover - network failures
            raise NewsDataError(f"HTTP error calling NewsData: {exc}") from exc

        if response.status_code == 429:
            raise NewsDataRateLimitError()
        if response.status_code in (408, 504):
            raise NewsDataTimeoutError()
        if response.status_code >= 400:
            detail = response.text[:200]
            try:
                detail_json = response.json()
                results = detail_json.get("results")
                if isinstance(results, dict):
                    detail = results.get("message") or detail
            except Exception:  # pragma: no cover - best effort decoding
                pass
            raise NewsDataError(f"NewsData request failed: {response.status_code} - {detail}")

        try:
            data = response.json()
        except ValueError as exc:
            raise NewsDataSchemaError("Failed to decode NewsData response JSON.") from exc

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise NewsDataSchemaError("`results` missing from NewsData response.")
        return [entry for entry in results if isinstance(entry, dict)]

    def __enter__(self) -> "NewsDataClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
