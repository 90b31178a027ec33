from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Literal, Mapping, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import NsApiSettings
from .formatter import (
    format_departures,
    format_disruptions,
    format_stations,
    format_trips,
    parse_timestamp,
    to_payload,
)
from .models import Disruption
from .ns_api import (
    DEPARTURES_ENDPOINT,
    DISRUPTIONS_ENDPOINT,
    PLACES_ENDPOINT,
    TRIPS_ENDPOINT,
    NsApiClient,
)
from .stations import StationCodeResolver

logger = logging.getLogger(__name__)


class ToolCallError(RuntimeError):
    """Base class for failures reported back to the calling agent."""


class MissingCredential(ToolCallError):
    def __init__(self) -> None:
        super().__init__("NS API key required. Set NS_API_KEY environment variable")


class InvalidArgument(ToolCallError):
    """Raised when tool arguments fail their schema."""


class UnresolvedStation(ToolCallError):
    def __init__(self, identifiers: list[str]) -> None:
        self.identifiers = identifiers
        names = ", ".join(repr(identifier) for identifier in identifiers)
        super().__init__(f"Could not resolve station code for {names}. Please check station names.")


class MalformedRemoteResponse(ToolCallError):
    """The NS API answered, but without the structure we read from."""

    def __init__(self, message: str, raw_response: Any) -> None:
        self.raw_response = raw_response
        super().__init__(message)


class _ToolArgs(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True, frozen=True, populate_by_name=True)


def _check_iso_8601(value: Optional[str]) -> Optional[str]:
    if value is not None and parse_timestamp(value) is None:
        raise ValueError("must be an ISO-8601 date/time")
    return value


class PlanJourneyArgs(_ToolArgs):
    from_station: str = Field(alias="fromStation")
    to_station: str = Field(alias="toStation")
    date_time: Optional[str] = Field(default=None, alias="dateTime")
    search_for_arrival: bool = Field(default=False, alias="searchForArrival")
    earlier_journeys: int = Field(default=1, ge=0, le=5, alias="earlierJourneys")
    later_journeys: int = Field(default=1, ge=0, le=5, alias="laterJourneys")

    @field_validator("date_time")
    @classmethod
    def check_date_time(cls, value: Optional[str]) -> Optional[str]:
        return _check_iso_8601(value)


class LiveDeparturesArgs(_ToolArgs):
    station: str
    max_journeys: int = Field(default=10, ge=1, le=40, alias="maxJourneys")
    date_time: Optional[str] = Field(default=None, alias="dateTime")

    @field_validator("date_time")
    @classmethod
    def check_date_time(cls, value: Optional[str]) -> Optional[str]:
        return _check_iso_8601(value)


class DisruptionArgs(_ToolArgs):
    station: Optional[str] = None
    type: Optional[Literal["maintenance", "disruption"]] = None
    is_active: bool = Field(default=True, alias="isActive")


class StationSearchArgs(_ToolArgs):
    query: str
    max_results: int = Field(default=10, ge=1, le=50, alias="maxResults")
    country_filter: str = Field(default="NL", alias="countryFilter")


def render(result: Any) -> str:
    """Serialise a tool result the way it is sent back: pretty printed JSON."""

    return json.dumps(result, indent=2, ensure_ascii=False)


class TravelTools:
    """Runs the NS travel operations: validate, resolve, fetch, normalise, respond."""

    def __init__(
        self,
        client: NsApiClient,
        api_key: Optional[str],
        *,
        resolver: Optional[StationCodeResolver] = None,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._resolver = resolver or StationCodeResolver(client)
        self._operations: dict[str, Callable[..., Awaitable[str]]] = {
            "plan_journey": self.plan_journey,
            "get_live_departures": self.get_live_departures,
            "check_disruptions": self.check_disruptions,
            "search_stations": self.search_stations,
        }

    @classmethod
    def from_settings(
        cls,
        settings: NsApiSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "TravelTools":
        return cls(NsApiClient(settings, transport=transport), settings.api_key)

    @property
    def operation_names(self) -> list[str]:
        return list(self._operations)

    async def close(self) -> None:
        await self._client.close()

    async def call(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> str:
        """Dispatch a named operation with raw (unvalidated) arguments."""

        try:
            operation = self._operations[name]
        except KeyError:
            raise InvalidArgument(
                f"Unknown operation {name!r}; expected one of {', '.join(self._operations)}"
            ) from None
        return await operation(**dict(arguments or {}))

    async def plan_journey(self, **arguments: Any) -> str:
        args = _validate(PlanJourneyArgs, arguments)
        api_key = self._credential()
        logger.info("plan_journey %s -> %s", args.from_station, args.to_station)

        from_code, to_code = await asyncio.gather(
            self._resolver.resolve(args.from_station, api_key),
            self._resolver.resolve(args.to_station, api_key),
        )
        unresolved = [
            identifier
            for identifier, code in ((args.from_station, from_code), (args.to_station, to_code))
            if not code
        ]
        if unresolved:
            raise UnresolvedStation(unresolved)

        data = await self._client.get_json(
            TRIPS_ENDPOINT,
            api_key,
            {
                "fromStation": from_code,
                "toStation": to_code,
                "searchForArrival": _flag(args.search_for_arrival),
                "earlierJourneys": str(args.earlier_journeys),
                "laterJourneys": str(args.later_journeys),
                "dateTime": args.date_time,
            },
        )

        trips = data.get("trips") if isinstance(data, dict) else None
        formatted = format_trips(trips if isinstance(trips, list) else [])
        logger.info("plan_journey returned %d trips", len(formatted))
        return render(to_payload(formatted))

    async def get_live_departures(self, **arguments: Any) -> str:
        args = _validate(LiveDeparturesArgs, arguments)
        api_key = self._credential()
        logger.info("get_live_departures %s (max %d)", args.station, args.max_journeys)

        station_code = await self._resolver.resolve(args.station, api_key)
        if not station_code:
            raise UnresolvedStation([args.station])

        data = await self._client.get_json(
            DEPARTURES_ENDPOINT,
            api_key,
            {
                "station": station_code,
                "maxJourneys": str(args.max_journeys),
                "dateTime": args.date_time,
            },
        )

        try:
            departures = _departures_list(data, station_code)
        except MalformedRemoteResponse as exc:
            logger.warning("%s; returning raw response", exc)
            return render(
                {
                    "error": "No departures found",
                    "station": station_code,
                    "message": str(exc),
                    "rawResponse": exc.raw_response,
                }
            )

        formatted = format_departures(departures)
        logger.info("get_live_departures returned %d departures", len(formatted))
        return render(to_payload(formatted))

    async def check_disruptions(self, **arguments: Any) -> str:
        args = _validate(DisruptionArgs, arguments)
        api_key = self._credential()
        logger.info(
            "check_disruptions station=%s type=%s isActive=%s",
            args.station,
            args.type,
            args.is_active,
        )

        endpoint = DISRUPTIONS_ENDPOINT
        if args.station:
            station_code = await self._resolver.resolve(args.station, api_key)
            if station_code:
                endpoint = f"{DISRUPTIONS_ENDPOINT}/station/{station_code}"
            else:
                logger.info("Falling back to all disruptions for %r", args.station)

        data = await self._client.get_json(endpoint, api_key)
        disruptions = [Disruption.from_payload(item) for item in data] if isinstance(data, list) else []
        selected = [
            disruption
            for disruption in disruptions
            if (not args.type or (disruption.type or "").lower() == args.type)
            and (not args.is_active or disruption.is_active)
        ]

        formatted = format_disruptions(selected)
        logger.info("check_disruptions returned %d of %d", len(formatted), len(disruptions))
        return render(to_payload(formatted))

    async def search_stations(self, **arguments: Any) -> str:
        args = _validate(StationSearchArgs, arguments)
        api_key = self._credential()
        # countryFilter is part of the tool schema but the places API call is NL only.
        logger.info(
            "search_stations %r (max %d, countryFilter=%s)",
            args.query,
            args.max_results,
            args.country_filter,
        )

        data = await self._client.get_json(
            PLACES_ENDPOINT,
            api_key,
            {"q": args.query, "type": "stationV2", "size": str(args.max_results)},
        )

        formatted = format_stations(data.get("payload") if isinstance(data, dict) else None)
        logger.info("search_stations returned %d stations", len(formatted))
        return render(to_payload(formatted))

    def _credential(self) -> str:
        if not self._api_key:
            raise MissingCredential()
        return self._api_key


def _validate(model: type[_ToolArgs], arguments: Mapping[str, Any]) -> Any:
    try:
        return model.model_validate(arguments)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'arguments'}: {error['msg']}"
            for error in exc.errors()
        )
        raise InvalidArgument(f"Invalid arguments: {problems}") from None


def _departures_list(data: Any, station_code: str) -> list[Any]:
    payload = data.get("payload") if isinstance(data, dict) else None
    departures = payload.get("departures") if isinstance(payload, dict) else None
    if not isinstance(departures, list):
        raise MalformedRemoteResponse(
            f"No departures available for station {station_code}", raw_response=data
        )
    return departures


def _flag(value: bool) -> str:
    return "true" if value else "false"
