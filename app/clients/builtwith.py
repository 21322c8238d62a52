"""Client for the BuiltWith technology profiling API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from app.config import Settings


class BuiltWithError(RuntimeError):
    """Base error for BuiltWith client failures."""

    def __init__(self, message: str, code: str = "BUILTWITH_ERROR") -> None:
        super().__init__(message)
        self.code = code


class BuiltWithRateLimitError(BuiltWithError):
    """Raised when BuiltWith responds with HTTP 429."""

    def __init__(self, message: str = "Rate limited by BuiltWith") -> None:
        super().__init__(message, code="BUILTWITH_429")


class BuiltWithTimeoutError(BuiltWithError):
    """Raised when a BuiltWith request times out."""

    def __init__(self, message: str = "BuiltWith request timed out") -> None:
        super().__init__(message, code="BUILTWITH_TIMEOUT")


class BuiltWithSchemaError(BuiltWithError):
    """Raised when the BuiltWith response schema is not as expected."""

    def __init__(self, message: str = "Unexpected BuiltWith response schema") -> None:
        super().__init__(message, code="BUILTWITH_SCHEMA_ERR")


class BuiltWithClient:
    """Minimal BuiltWith domain lookup client."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.builtwith.com",
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("BUILTWITH_API_KEY is required to create a BuiltWithClient.")
        self._api_key = api_key
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BuiltWithClient":
        """Instantiate the client from application settings."""
        return cls(
            settings.builtwith_api_key or "",
            base_url=settings.builtwith_base_url,
            timeout=settings.fetch_timeout_seconds,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_http_client:
            self._http.close()

    def lookup_technologies(self, *, domain: str) -> list[dict[str, Any]]:
        """Return technologies detected on the domain's first indexed path."""
        if not domain:
            raise ValueError("domain is required.")

        params = {"KEY": self._api_key, "LOOKUP": domain}
        try:
            response = self._http.get("/v21/api.json", params=params)
        except httpx.TimeoutException as exc:  # pragma: no cover - network failures
            raise BuiltWithTimeoutError() from exc
        except httpx.HTTPError as exc:  # pragma: no cover - network failures
            raise BuiltWithError(f"HTTP error calling BuiltWith: {exc}") from exc

        if response.status_code == 429:
            raise BuiltWithRateLimitError()
        if response.status_code in (408, 504):
            raise BuiltWithTimeoutError()
        if response.status_code >= 400:
            raise BuiltWithError(
                f"BuiltWith request failed: {response.status_code} - {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise BuiltWithSchemaError("Failed to decode BuiltWith response JSON.") from exc
        if not isinstance(data, dict):
            raise BuiltWithSchemaError("BuiltWith response must be a JSON object.")

        errors = data.get("Errors")
        if isinstance(errors, list) and errors:
            first = errors[0] if isinstance(errors[0], dict) else {}
            raise BuiltWithError(f"BuiltWith lookup failed: {first.get('Message', 'unknown error')}")

        return _first_path_technologies(data)

    def __enter__(self) -> "BuiltWithClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _first_path_technologies(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Walk Results[0].Result.Paths[0].Technologies, tolerating missing levels."""
    results = data.get("Results")
    if results is None:
        return []
    if not isinstance(results, list):
        raise BuiltWithSchemaError("`Results` must be a list.")
    if not results or not isinstance(results[0], dict):
        return []
    result = results[0].get("Result")
    if not isinstance(result, dict):
        return []
    paths = result.get("Paths") or []
    if not isinstance(paths, list):
        raise BuiltWithSchemaError("`Paths` must be a list.")
    if not paths or not isinstance(paths[0], dict):
        return []
    technologies = paths[0].get("Technologies") or []
    if not isinstance(technologies, list):
        raise BuiltWithSchemaError("`Technologies` must be a list.")
    return [entry for entry in technologies if isinstance(entry, dict)]
