"""Runtime configuration for the Unfolded Circle Remote integration."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .const import (
    API_WS_PATH,
    CONF_HOST,
    CONF_LOCALES,
    CONF_PORT,
    CONF_RESET_FAILED_TRIGGERS,
    CONF_TOKEN,
    CONF_USE_SSL,
    CONF_USE_WEBSOCKET,
    DEFAULT_ENTITY_TYPES,
    DEFAULT_LOCALES,
    DEFAULT_PORT,
    DEFAULT_RESET_FAILED_TRIGGERS,
    DEFAULT_USE_SSL,
    DEFAULT_USE_WEBSOCKET,
)
from .exceptions import InvalidConfigError


def parse_locales(value: Any) -> tuple[str, ...]:
    """Parse a locale preference list from a comma separated string or a list."""
    if not value:
        return DEFAULT_LOCALES
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    locales = tuple(str(item).strip() for item in items if str(item).strip())
    return locales or DEFAULT_LOCALES


@dataclass(frozen=True)
class RemoteConfig:
    """Typed view of a config entry."""

    host: str
    token: str | None = None
    port: int = DEFAULT_PORT
    use_ssl: bool = DEFAULT_USE_SSL
    use_websocket: bool = DEFAULT_USE_WEBSOCKET
    locales: tuple[str, ...] = DEFAULT_LOCALES
    reset_failed_triggers: bool = DEFAULT_RESET_FAILED_TRIGGERS
    entity_types: tuple[str, ...] = field(default=DEFAULT_ENTITY_TYPES)

    @classmethod
    def from_entry(
        cls, data: Mapping[str, Any], options: Mapping[str, Any] | None = None
    ) -> RemoteConfig:
        """Build the config from config entry data and options.

        Raises:
            InvalidConfigError: host is missing, or the token is missing while
                the WebSocket API is selected (the socket refuses unauthenticated
                clients).
        """
        options = options or {}
        host = (data.get(CONF_HOST) or "").strip()
        if not host:
            raise InvalidConfigError("Missing host in configuration")

        # Strip a scheme the user may have pasted; use_ssl decides it
        for scheme in ("http://", "https://", "ws://", "wss://"):
            if host.startswith(scheme):
                host = host[len(scheme):]
        host = host.rstrip("/")

        token = (data.get(CONF_TOKEN) or "").strip() or None
        use_websocket = bool(data.get(CONF_USE_WEBSOCKET, DEFAULT_USE_WEBSOCKET))
        if use_websocket and not token:
            raise InvalidConfigError("Missing API key in configuration")

        return cls(
            host=host,
            token=token,
            port=int(data.get(CONF_PORT) or DEFAULT_PORT),
            use_ssl=bool(data.get(CONF_USE_SSL, DEFAULT_USE_SSL)),
            use_websocket=use_websocket,
            locales=parse_locales(options.get(CONF_LOCALES)),
            reset_failed_triggers=bool(
                options.get(CONF_RESET_FAILED_TRIGGERS, DEFAULT_RESET_FAILED_TRIGGERS)
            ),
        )

    @property
    def ws_url(self) -> str:
        """Return the WebSocket URL of the remote core API."""
        scheme = "wss" if self.use_ssl else "ws"
        return f"{scheme}://{self.host}:{self.port}{API_WS_PATH}"

    @property
    def rest_base(self) -> str:
        """Return the base URL for REST calls."""
        scheme = "https" if self.use_ssl else "http"
        return f"{scheme}://{self.host}:{self.port}"
