from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Self, Sequence

# Remote payloads are read field by field. Anything that is missing or has an
# unexpected JSON type becomes ``None`` (or an empty tuple) here, and the
# formatter decides the fallback value.


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _items(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def _flag(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    return value if isinstance(value, (int, float)) else None


@dataclass(frozen=True)
class Product:
    display_name: Optional[str]
    operator_name: Optional[str]

    @classmethod
    def from_payload(cls, data: Any) -> Self:
        data = _mapping(data)
        return cls(
            display_name=_text(data.get("displayName")),
            operator_name=_text(data.get("operatorName")),
        )


@dataclass(frozen=True)
class StopTime:
    """Origin or destination of a leg."""

    name: Optional[str]
    planned_date_time: Optional[str]
    actual_date_time: Optional[str]
    track: Optional[str]

    @classmethod
    def from_payload(cls, data: Any) -> Self:
        data = _mapping(data)
        return cls(
            name=_text(data.get("name")),
            planned_date_time=_text(data.get("plannedDateTime")),
            actual_date_time=_text(data.get("actualDateTime")),
            track=_text(data.get("track") or data.get("actualTrack") or data.get("plannedTrack")),
        )


@dataclass(frozen=True)
class Leg:
    origin: StopTime
    destination: StopTime
    product: Product
    cancelled: Optional[bool]
    crowd_forecast: Optional[str]

    @classmethod
    def from_payload(cls, data: Any) -> Self:
        data = _mapping(data)
        return cls(
            origin=StopTime.from_payload(data.get("origin")),
            destination=StopTime.from_payload(data.get("destination")),
            product=Product.from_payload(data.get("product")),
            cancelled=_flag(data.get("cancelled")),
            crowd_forecast=_text(data.get("crowdForecast")),
        )


@dataclass(frozen=True)
class Fare:
    price_in_cents: Optional[float]

    @classmethod
    def from_payload(cls, data: Any) -> Self:
        return cls(price_in_cents=_number(_mapping(data).get("priceInCents")))


@dataclass(frozen=True)
class Trip:
    legs: tuple[Leg, ...]
    fares: tuple[Fare, ...]
    optimal: Optional[bool]
    punctuality: Optional[float]

    @classmethod
    def from_payload(cls, data: Any) -> Self:
        data = _mapping(data)
        return cls(
            legs=tuple(Leg.from_payload(leg) for leg in _items(data.get("legs"))),
            fares=tuple(Fare.from_payload(fare) for fare in _items(data.get("fares"))),
            optimal=_flag(data.get("optimal")),
            punctuality=_number(data.get("punctuality")),
        )


@dataclass(frozen=True)
class Departure:
    direction: Optional[str]
    product: Product
    planned_date_time: Optional[str]
    actual_date_time: Optional[str]
    planned_track: Optional[str]
    actual_track: Optional[str]
    cancelled: Optional[bool]
    crowd_forecast: Optional[str]
    departure_status: Optional[str]

    @classmethod
    def from_payload(cls, data: Any) -> Self:
        data = _mapping(data)
        return cls(
            direction=_text(data.get("direction")),
            product=Product.from_payload(data.get("product")),
            planned_date_time=_text(data.get("plannedDateTime")),
            actual_date_time=_text(data.get("actualDateTime")),
            planned_track=_text(data.get("plannedTrack")),
            actual_track=_text(data.get("actualTrack")),
            cancelled=_flag(data.get("cancelled")),
            crowd_forecast=_text(data.get("crowdForecast")),
            departure_status=_text(data.get("departureStatus")),
        )


@dataclass(frozen=True)
class Disruption:
    id: Optional[str]
    type: Optional[str]
    title: Optional[str]
    topic: Optional[str]
    is_active: Optional[bool]
    body: Optional[str]
    lead: Optional[str]
    impact: Optional[str]
    start: Optional[str]
    end: Optional[str]
    expected_duration: Optional[str]
    additional_travel_time: Optional[str]
    section_stations: tuple[tuple[str, ...], ...]

    @classmethod
    def from_payload(cls, data: Any) -> Self:
        data = _mapping(data)
        free_text = _mapping(data.get("freeText"))
        sections = []
        for publication in _items(data.get("publicationSections")):
            stations = _items(_mapping(_mapping(publication).get("section")).get("stations"))
            names = (_text(_mapping(station).get("name")) for station in stations)
            sections.append(tuple(name for name in names if name is not None))

        return cls(
            id=_text(data.get("id")),
            type=_text(data.get("type")),
            title=_text(data.get("title")),
            topic=_text(data.get("topic")),
            is_active=_flag(data.get("isActive")),
            body=_text(free_text.get("body")),
            lead=_text(free_text.get("lead")),
            impact=_text(_mapping(data.get("impact")).get("description")),
            start=_text(data.get("start")),
            end=_text(data.get("end")),
            expected_duration=_text(_mapping(data.get("expectedDuration")).get("description")),
            additional_travel_time=_text(
                _mapping(data.get("summaryAdditionalTravelTime")).get("label")
            ),
            section_stations=tuple(sections),
        )


@dataclass(frozen=True)
class Place:
    name: Optional[str]
    station_code: Optional[str]
    type: Optional[str]
    lat: Optional[float]
    lng: Optional[float]

    @classmethod
    def from_payload(cls, data: Any) -> Self:
        data = _mapping(data)
        return cls(
            name=_text(data.get("name")),
            station_code=_text(data.get("stationCode")),
            type=_text(data.get("type")),
            lat=_number(data.get("lat")),
            lng=_number(data.get("lng")),
        )


def places_from_payload(payload: Any) -> list[Place]:
    """Read the locations of the first places group; later groups are ignored."""

    groups = _items(payload)
    if not groups:
        return []
    return [Place.from_payload(item) for item in _items(_mapping(groups[0]).get("locations"))]


@dataclass(frozen=True)
class FormattedLeg:
    origin: str
    destination: str
    transport: str
    departure_track: str
    arrival_track: str
    planned_departure: str
    actual_departure: str
    planned_arrival: str
    actual_arrival: str
    cancelled: bool
    crowd_forecast: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "from": self.origin,
            "to": self.destination,
            "transport": self.transport,
            "departureTrack": self.departure_track,
            "arrivalTrack": self.arrival_track,
            "plannedDeparture": self.planned_departure,
            "actualDeparture": self.actual_departure,
            "plannedArrival": self.planned_arrival,
            "actualArrival": self.actual_arrival,
            "cancelled": self.cancelled,
            "crowdForecast": self.crowd_forecast,
        }


@dataclass(frozen=True)
class FormattedTrip:
    planned_departure: str
    actual_departure: str
    planned_arrival: str
    actual_arrival: str
    duration: str
    transfers: int
    optimal: bool
    punctuality: float
    price: str
    legs: Sequence[FormattedLeg]

    def to_payload(self) -> dict[str, Any]:
        return {
            "plannedDeparture": self.planned_departure,
            "actualDeparture": self.actual_departure,
            "plannedArrival": self.planned_arrival,
            "actualArrival": self.actual_arrival,
            "duration": self.duration,
            "transfers": self.transfers,
            "optimal": self.optimal,
            "punctuality": self.punctuality,
            "price": self.price,
            "legs": [leg.to_payload() for leg in self.legs],
        }


@dataclass(frozen=True)
class FormattedDeparture:
    destination: str
    train_type: str
    planned_departure: str
    actual_departure: str
    delay: int
    track: str
    track_changed: bool
    cancelled: bool
    crowd_forecast: str
    operator: str
    status: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "destination": self.destination,
            "trainType": self.train_type,
            "plannedDeparture": self.planned_departure,
            "actualDeparture": self.actual_departure,
            "delay": self.delay,
            "track": self.track,
            "trackChanged": self.track_changed,
            "cancelled": self.cancelled,
            "crowdForecast": self.crowd_forecast,
            "operator": self.operator,
            "status": self.status,
        }


@dataclass(frozen=True)
class FormattedDisruption:
    id: str
    type: str
    title: str
    topic: str
    is_active: bool
    description: str
    impact: str
    start: str
    end: str
    expected_duration: str
    additional_travel_time: str
    affected_stations: Sequence[str]

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "topic": self.topic,
            "isActive": self.is_active,
            "description": self.description,
            "impact": self.impact,
            "start": self.start,
            "end": self.end,
            "expectedDuration": self.expected_duration,
            "additionalTravelTime": self.additional_travel_time,
            "affectedStations": list(self.affected_stations),
        }


@dataclass(frozen=True)
class FormattedStation:
    name: str
    code: str
    country: str
    type: str
    lat: float
    lng: float

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "code": self.code,
            "country": self.country,
            "type": self.type,
            "lat": self.lat,
            "lng": self.lng,
        }
