from __future__ import annotations

import asyncio
import logging
import sys

import uvicorn
from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from .config import ServerSettings
from .server import build_http_app, build_server
from .tools import TravelTools

logger = logging.getLogger(__name__)


def main() -> None:
    """Entry point for launching the NS travel MCP server."""

    load_dotenv()
    settings = ServerSettings.from_env()
    configure_logging(settings.log_level)

    if not settings.ns_api.api_key:
        logger.warning("NS_API_KEY is not set; every tool call will fail until it is configured")

    tools = TravelTools.from_settings(settings.ns_api)
    server = build_server(settings, tools)

    if settings.transport == "stdio":
        asyncio.run(_serve_stdio(server, tools))
        return

    logger.info("Serving on http://%s:%d (/mcp, /sse)", settings.host, settings.port)
    uvicorn.run(
        build_http_app(server, tools),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


def configure_logging(level: str) -> None:
    # stdout carries the protocol stream when running over stdio.
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )


async def _serve_stdio(server: FastMCP, tools: TravelTools) -> None:  # pragma: no cover - lifecycle
    try:
        await server.run_stdio_async()
    finally:
        await tools.close()
