from __future__ import annotations

import datetime as dt
import math
from typing import Any, Iterable, Optional, Sequence

from .models import (
    Departure,
    Disruption,
    FormattedDeparture,
    FormattedDisruption,
    FormattedLeg,
    FormattedStation,
    FormattedTrip,
    Leg,
    Trip,
    places_from_payload,
)

PRICE_NOT_AVAILABLE = "Price not available"
NO_DESCRIPTION = "No description available"
UNKNOWN = "Unknown"


def format_trips(trips: Iterable[Trip | dict[str, Any]]) -> list[FormattedTrip]:
    """Condense NS trip advice into one record per journey option."""

    return [_format_trip(_coerce(trip, Trip)) for trip in trips]


def format_departures(departures: Iterable[Departure | dict[str, Any]]) -> list[FormattedDeparture]:
    """Flatten a departure board, deriving delay and platform change."""

    return [_format_departure(_coerce(item, Departure)) for item in departures]


def format_disruptions(
    disruptions: Iterable[Disruption | dict[str, Any]],
) -> list[FormattedDisruption]:
    return [_format_disruption(_coerce(item, Disruption)) for item in disruptions]


def format_stations(payload: Any) -> list[FormattedStation]:
    """Map the places API payload to station records.

    Only the first payload group is read; NS nests the stations of a
    ``stationV2`` search in ``payload[0].locations``.
    """

    return [
        FormattedStation(
            name=place.name or UNKNOWN,
            code=place.station_code or UNKNOWN,
            country="NL",
            type=place.type or "Station",
            lat=place.lat or 0,
            lng=place.lng or 0,
        )
        for place in places_from_payload(payload)
    ]


def calculate_duration(start: Optional[str], end: Optional[str]) -> str:
    """Render the time between two timestamps as ``"<hours>h <minutes>m"``."""

    start_time = parse_timestamp(start)
    end_time = parse_timestamp(end)
    if start_time is None or end_time is None:
        return ""

    hours, minutes = divmod(_whole_minutes(start_time, end_time), 60)
    return f"{hours}h {minutes}m"


def calculate_delay_minutes(planned: Optional[str], actual: Optional[str]) -> int:
    """Minutes between planned and actual time; negative when early."""

    planned_time = parse_timestamp(planned)
    actual_time = parse_timestamp(actual)
    if planned_time is None or actual_time is None:
        return 0
    return _whole_minutes(planned_time, actual_time)


def to_payload(records: Sequence[Any]) -> list[dict[str, Any]]:
    return [record.to_payload() for record in records]


def format_price(price_in_cents: Optional[float]) -> str:
    if not price_in_cents:
        return PRICE_NOT_AVAILABLE
    return f"€{price_in_cents / 100:.2f}"


def _format_trip(trip: Trip) -> FormattedTrip:
    first = trip.legs[0] if trip.legs else None
    last = trip.legs[-1] if trip.legs else None
    planned_departure = first.origin.planned_date_time if first else None
    planned_arrival = last.destination.planned_date_time if last else None

    return FormattedTrip(
        planned_departure=planned_departure or "",
        actual_departure=(first.origin.actual_date_time if first else None) or "",
        planned_arrival=planned_arrival or "",
        actual_arrival=(last.destination.actual_date_time if last else None) or "",
        duration=calculate_duration(planned_departure, planned_arrival),
        transfers=len(trip.legs) - 1,
        optimal=bool(trip.optimal),
        punctuality=trip.punctuality or 0,
        price=format_price(trip.fares[0].price_in_cents if trip.fares else None),
        legs=[_format_leg(leg) for leg in trip.legs],
    )


def _format_leg(leg: Leg) -> FormattedLeg:
    return FormattedLeg(
        origin=leg.origin.name or "",
        destination=leg.destination.name or "",
        transport=leg.product.display_name or "",
        departure_track=leg.origin.track or "",
        arrival_track=leg.destination.track or "",
        planned_departure=leg.origin.planned_date_time or "",
        actual_departure=leg.origin.actual_date_time or "",
        planned_arrival=leg.destination.planned_date_time or "",
        actual_arrival=leg.destination.actual_date_time or "",
        cancelled=bool(leg.cancelled),
        crowd_forecast=leg.crowd_forecast or "",
    )


def _format_departure(departure: Departure) -> FormattedDeparture:
    actual_track = departure.actual_track
    planned_track = departure.planned_track
    delay = (
        calculate_delay_minutes(departure.planned_date_time, departure.actual_date_time)
        if departure.actual_date_time
        else 0
    )

    return FormattedDeparture(
        destination=departure.direction or "",
        train_type=departure.product.display_name or "",
        planned_departure=departure.planned_date_time or "",
        actual_departure=departure.actual_date_time or "",
        delay=delay,
        track=actual_track or planned_track or "",
        # No actual track means no platform change has been announced.
        track_changed=bool(actual_track) and actual_track != planned_track,
        cancelled=bool(departure.cancelled),
        crowd_forecast=departure.crowd_forecast or "",
        operator=departure.product.operator_name or "",
        status=departure.departure_status or "",
    )


def _format_disruption(disruption: Disruption) -> FormattedDisruption:
    return FormattedDisruption(
        id=disruption.id or "",
        type=disruption.type or "",
        title=disruption.title or "",
        topic=disruption.topic or "",
        is_active=bool(disruption.is_active),
        description=disruption.body or disruption.lead or NO_DESCRIPTION,
        impact=disruption.impact or "",
        start=disruption.start or "",
        end=disruption.end or "",
        expected_duration=disruption.expected_duration or "",
        additional_travel_time=disruption.additional_travel_time or "",
        affected_stations=[name for section in disruption.section_stations for name in section],
    )


def _coerce(item, model):
    return item if isinstance(item, model) else model.from_payload(item)


def parse_timestamp(value: Optional[str]) -> Optional[dt.datetime]:
    if not value:
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = dt.datetime.strptime(text, "%Y-%m-%dT%H:%M:%S%z")
        except ValueError:
            return None

    # NS timestamps carry an offset; anything naive is read as UTC.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _whole_minutes(start: dt.datetime, end: dt.datetime) -> int:
    # Half minutes round up, also for negative differences.
    return math.floor((end - start).total_seconds() / 60 + 0.5)