from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from .config import NsApiSettings

logger = logging.getLogger(__name__)

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"

TRIPS_ENDPOINT = "reisinformatie-api/api/v3/trips"
DEPARTURES_ENDPOINT = "reisinformatie-api/api/v2/departures"
DISRUPTIONS_ENDPOINT = "reisinformatie-api/api/v3/disruptions"
PLACES_ENDPOINT = "places-api/v2/places"


class RemoteApiError(RuntimeError):
    """Raised when the NS API returns an error response."""

    def __init__(self, status_code: int, reason: str, url: str = "", detail: str | None = None) -> None:
        self.status_code = status_code
        self.reason = reason
        self.url = url
        message = f"NS API error: {status_code} {reason}".rstrip()
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class NsApiClient:
    """Async client for the NS API portal (reisinformatie and places APIs)."""

    def __init__(
        self,
        settings: NsApiSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            timeout=settings.timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            follow_redirects=True,
            transport=transport,
        )

    @property
    def settings(self) -> NsApiSettings:
        return self._settings

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "NsApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def build_url(self, endpoint: str, params: Optional[Mapping[str, Optional[str]]] = None) -> str:
        """Compose ``<base>/<endpoint>`` with every non-``None`` parameter in the query."""

        query = {key: value for key, value in (params or {}).items() if value is not None}
        url = httpx.URL(f"{self._settings.base_url.rstrip('/')}/{endpoint.lstrip('/')}")
        if query:
            url = url.copy_merge_params(query)
        return str(url)

    async def request(self, url: str, api_key: str) -> Any:
        """GET ``url`` with the subscription key and return the decoded JSON body."""

        logger.debug("GET %s", url)
        response = await self._client.get(url, headers={SUBSCRIPTION_KEY_HEADER: api_key})
        return self._json_or_error(response)

    async def get_json(
        self,
        endpoint: str,
        api_key: str,
        params: Optional[Mapping[str, Optional[str]]] = None,
    ) -> Any:
        return await self.request(self.build_url(endpoint, params), api_key)

    @staticmethod
    def _json_or_error(response: httpx.Response) -> Any:
        url = str(response.request.url)
        if not response.is_success:
            logger.warning(
                "NS API returned %s for %s: %s",
                response.status_code,
                url,
                response.text[:200],
            )
            raise RemoteApiError(response.status_code, response.reason_phrase, url)
        try:
            return response.json()
        except ValueError as exc:
            snippet = response.text[:200] or "<empty body>"
            content_type = response.headers.get("content-type", "unknown")
            raise RemoteApiError(
                response.status_code,
                response.reason_phrase,
                url,
                detail=f"non-JSON response, content-type {content_type}: {snippet}",
            ) from exc
