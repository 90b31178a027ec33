from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Optional, Self

logger = logging.getLogger(__name__)

_API_KEY_PATTERN = re.compile(r"^[a-f0-9]{32}$", re.IGNORECASE)

TRANSPORTS = ("http", "stdio")


def looks_like_api_key(api_key: str) -> bool:
    """NS subscription keys are usually 32 character hex strings."""

    return bool(_API_KEY_PATTERN.match(api_key))


@dataclass(frozen=True)
class NsApiSettings:
    """Credentials and options for the NS API portal."""

    api_key: Optional[str] = None
    base_url: str = "https://gateway.apiportal.ns.nl"
    timeout: float = 10.0

    @classmethod
    def from_env(cls) -> Self:
        api_key = os.environ.get("NS_API_KEY") or None
        if api_key and not looks_like_api_key(api_key):
            logger.warning("NS_API_KEY does not look like a 32 character hex subscription key")

        base_url = os.environ.get("NS_API_BASE_URL", cls.base_url).rstrip("/")
        raw_timeout = os.environ.get("NS_API_TIMEOUT")
        try:
            timeout = float(raw_timeout) if raw_timeout else cls.timeout
        except ValueError:
            raise RuntimeError(f"NS_API_TIMEOUT must be a number, got {raw_timeout!r}") from None

        return cls(api_key=api_key, base_url=base_url, timeout=timeout)


@dataclass(frozen=True)
class ServerSettings:
    """Configuration options for the MCP server process."""

    ns_api: NsApiSettings = field(default_factory=NsApiSettings)
    host: str = "0.0.0.0"
    port: int = 8000
    transport: str = "http"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Self:
        """Create settings object from environment variables."""

        transport = os.environ.get("MCP_TRANSPORT", cls.transport).lower()
        if transport not in TRANSPORTS:
            raise RuntimeError(
                f"MCP_TRANSPORT must be one of {', '.join(TRANSPORTS)}, got {transport!r}"
            )

        raw_port = os.environ.get("MCP_PORT", str(cls.port))
        try:
            port = int(raw_port)
        except ValueError:
            raise RuntimeError(f"MCP_PORT must be an integer, got {raw_port!r}") from None

        return cls(
            ns_api=NsApiSettings.from_env(),
            host=os.environ.get("MCP_HOST", cls.host),
            port=port,
            transport=transport,
            log_level=os.environ.get("LOG_LEVEL", cls.log_level).upper(),
        )
