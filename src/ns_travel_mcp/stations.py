from __future__ import annotations

import logging
from typing import Any, Optional

from .ns_api import PLACES_ENDPOINT, NsApiClient, RemoteApiError

logger = logging.getLogger(__name__)

STATION_CODE_MAX_LENGTH = 4


class StationCodeResolver:
    """Turn a station name or short code into the code the NS API expects."""

    def __init__(self, client: NsApiClient) -> None:
        self._client = client

    async def resolve(self, identifier: str, api_key: str) -> Optional[str]:
        """Return the station code for ``identifier``, or ``None`` when nothing matches.

        Inputs of four characters or fewer are taken to be codes already and are
        returned uppercased without a lookup. The code is not checked for existence.
        """

        if len(identifier) <= STATION_CODE_MAX_LENGTH:
            return identifier.upper()

        url = self._client.build_url(
            PLACES_ENDPOINT,
            {"q": identifier, "type": "Station", "size": "1", "countryCode": "NL"},
        )
        try:
            payload = await self._client.request(url, api_key)
        except RemoteApiError as exc:
            logger.warning("Station lookup for %r failed: %s", identifier, exc)
            return None

        code = _first_station_code(payload)
        if code is None:
            logger.warning("No station found for %r", identifier)
        else:
            logger.info("Resolved station %r to %s", identifier, code)
        return code


def _first_station_code(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    groups = payload.get("payload")
    if not isinstance(groups, list) or not groups or not isinstance(groups[0], dict):
        return None

    first = groups[0]
    code = first.get("stationCode")
    if not code:
        locations = first.get("locations")
        if isinstance(locations, list) and locations and isinstance(locations[0], dict):
            code = locations[0].get("stationCode")
    return code if isinstance(code, str) and code else None
