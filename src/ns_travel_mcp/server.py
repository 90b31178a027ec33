import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any, Awaitable, Callable, Literal, Optional

import httpx
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from .config import ServerSettings
from .ns_api import RemoteApiError
from .tools import ToolCallError, TravelTools

logger = logging.getLogger(__name__)

SERVER_NAME = "NS Travel MCP Server"

INSTRUCTIONS = (
    "Dutch railway (NS) travel information: journey planning, live departures, "
    "disruptions and station search. Stations can be given by name or by code."
)


def build_server(settings: ServerSettings, tools: TravelTools) -> FastMCP:
    """Register the NS travel tools and the liveness route on a FastMCP server."""

    server = FastMCP(
        SERVER_NAME,
        instructions=INSTRUCTIONS,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )

    @server.custom_route("/", methods=["GET"])
    async def liveness(_request: Request) -> Response:
        return PlainTextResponse(f"{SERVER_NAME} is running")

    @server.tool()
    async def plan_journey(
        fromStation: Annotated[
            str,
            Field(description="Departure station name or code (e.g. 'Amsterdam Centraal' or 'asd')"),
        ],
        toStation: Annotated[
            str,
            Field(description="Destination station name or code (e.g. 'Utrecht Centraal' or 'ut')"),
        ],
        dateTime: Annotated[
            Optional[str],
            Field(description="Departure date and time in ISO format (optional, defaults to now)"),
        ] = None,
        searchForArrival: Annotated[
            bool, Field(description="Search for arrival time instead of departure time")
        ] = False,
        earlierJourneys: Annotated[
            int, Field(ge=0, le=5, description="Number of earlier journey options to include")
        ] = 1,
        laterJourneys: Annotated[
            int, Field(ge=0, le=5, description="Number of later journey options to include")
        ] = 1,
    ) -> str:
        """Plan a train journey between two Dutch stations.

        Returns the journey options with departure and arrival times, duration,
        number of transfers, price and the individual legs.
        """
        return await _invoke(
            tools.plan_journey,
            fromStation=fromStation,
            toStation=toStation,
            dateTime=dateTime,
            searchForArrival=searchForArrival,
            earlierJourneys=earlierJourneys,
            laterJourneys=laterJourneys,
        )

    @server.tool()
    async def get_live_departures(
        station: Annotated[
            str, Field(description="Station name or code (e.g. 'Amsterdam Centraal' or 'asd')")
        ],
        maxJourneys: Annotated[
            int, Field(ge=1, le=40, description="Maximum number of departures to return")
        ] = 10,
        dateTime: Annotated[
            Optional[str],
            Field(description="Date and time to get departures for (ISO format, optional)"),
        ] = None,
    ) -> str:
        """Get the live departure board of a station, including delays and track changes."""
        return await _invoke(
            tools.get_live_departures,
            station=station,
            maxJourneys=maxJourneys,
            dateTime=dateTime,
        )

    @server.tool()
    async def check_disruptions(
        station: Annotated[
            Optional[str], Field(description="Specific station to check disruptions for (optional)")
        ] = None,
        type: Annotated[
            Optional[Literal["maintenance", "disruption"]],
            Field(description="Type of disruption to filter (optional)"),
        ] = None,
        isActive: Annotated[
            bool, Field(description="Only show currently active disruptions")
        ] = True,
    ) -> str:
        """List disruptions and planned maintenance on the Dutch railway network."""
        return await _invoke(
            tools.check_disruptions,
            station=station,
            type=type,
            isActive=isActive,
        )

    @server.tool()
    async def search_stations(
        query: Annotated[str, Field(description="Station name or partial name to search for")],
        maxResults: Annotated[
            int, Field(ge=1, le=50, description="Maximum number of results to return")
        ] = 10,
        countryFilter: Annotated[
            str, Field(description="Filter by country code (default: 'NL' for Netherlands)")
        ] = "NL",
    ) -> str:
        """Search for stations by (partial) name and return their codes and coordinates."""
        return await _invoke(
            tools.search_stations,
            query=query,
            maxResults=maxResults,
            countryFilter=countryFilter,
        )

    return server


async def _invoke(operation: Callable[..., Awaitable[str]], **arguments: Any) -> str:
    try:
        return await operation(**{key: value for key, value in arguments.items() if value is not None})
    except (ToolCallError, RemoteApiError) as exc:
        logger.warning("Tool call failed: %s", exc)
        raise ToolError(str(exc)) from exc
    except httpx.HTTPError as exc:
        logger.warning("Network error talking to NS API: %s", exc)
        raise ToolError(f"network error contacting NS API: {exc}") from exc


def build_http_app(server: FastMCP, tools: TravelTools) -> Starlette:
    """Serve streamable HTTP on ``/mcp``, SSE on ``/sse`` and the liveness root."""

    streamable = server.streamable_http_app()
    sse = server.sse_app()

    routes = list(streamable.routes)
    paths = {route.path for route in routes}
    routes.extend(route for route in sse.routes if route.path not in paths)

    @asynccontextmanager
    async def lifespan(_app: Starlette):
        async with server.session_manager.run():
            try:
                yield
            finally:
                await tools.close()

    return Starlette(routes=routes, lifespan=lifespan)
