"""Config flow for Unfolded Circle Remote integration."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.config_entries import ConfigFlowResult
from homeassistant.core import callback
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .config import RemoteConfig
from .const import (
    API_KEY_HEADER,
    CONF_HOST,
    CONF_LOCALES,
    CONF_PORT,
    CONF_RESET_FAILED_TRIGGERS,
    CONF_TOKEN,
    CONF_USE_SSL,
    CONF_USE_WEBSOCKET,
    DEFAULT_LOCALES,
    DEFAULT_NAME,
    DEFAULT_PORT,
    DEFAULT_RESET_FAILED_TRIGGERS,
    DEFAULT_USE_SSL,
    DEFAULT_USE_WEBSOCKET,
    DOMAIN,
)
from .exceptions import InvalidConfigError, RemoteApiError
from .rest_api import RemoteRestAPI

_LOGGER = logging.getLogger(__name__)

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_HOST): str,
        vol.Optional(CONF_PORT, default=DEFAULT_PORT): int,
        vol.Optional(CONF_TOKEN, default=""): str,
        vol.Optional(CONF_USE_SSL, default=DEFAULT_USE_SSL): bool,
        vol.Optional(CONF_USE_WEBSOCKET, default=DEFAULT_USE_WEBSOCKET): bool,
    }
)


async def async_validate_connection(
    session: aiohttp.ClientSession, config: RemoteConfig
) -> str | None:
    """Try to reach the remote; returns an error key or None on success."""
    if not config.use_websocket:
        api = RemoteRestAPI(session, config.rest_base, config.token)
        try:
            await api.async_get_entities()
        except RemoteApiError as err:
            _LOGGER.warning("Could not load entities from %s: %s", config.rest_base, err)
            return "cannot_connect"
        return None

    try:
        async with asyncio.timeout(10):
            ws = await session.ws_connect(
                config.ws_url, headers={API_KEY_HEADER: config.token or ""}
            )
    except aiohttp.WSServerHandshakeError as err:
        _LOGGER.warning("WebSocket handshake with %s refused: %s", config.ws_url, err.status)
        return "invalid_auth" if err.status in (401, 403) else "cannot_connect"
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as err:
        _LOGGER.warning("Could not connect to %s: %s", config.ws_url, err)
        return "cannot_connect"
    await ws.close()
    return None


class UnfoldedCircleConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):  # type: ignore[call-arg]
    """Handle a config flow for Unfolded Circle Remote."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        """Return the options flow handler."""
        return UnfoldedCircleOptionsFlow()

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step."""
        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                config = RemoteConfig.from_entry(user_input)
            except InvalidConfigError as err:
                _LOGGER.debug("Invalid configuration: %s", err)
                errors["base"] = "missing_token" if user_input.get(CONF_HOST, "").strip() else "missing_host"
            else:
                await self.async_set_unique_id(f"{config.host}:{config.port}")
                self._abort_if_unique_id_configured()

                error = await async_validate_connection(
                    async_get_clientsession(self.hass, verify_ssl=False), config
                )
                if error is None:
                    data = {
                        CONF_HOST: config.host,
                        CONF_PORT: config.port,
                        CONF_TOKEN: config.token or "",
                        CONF_USE_SSL: config.use_ssl,
                        CONF_USE_WEBSOCKET: config.use_websocket,
                    }
                    return self.async_create_entry(
                        title=f"{DEFAULT_NAME} ({config.host})", data=data
                    )
                errors["base"] = error

        return self.async_show_form(
            step_id="user", data_schema=STEP_USER_DATA_SCHEMA, errors=errors
        )


class UnfoldedCircleOptionsFlow(config_entries.OptionsFlow):
    """Handle options: locale preference and failed-trigger handling."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Manage the options."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        options = self.config_entry.options
        schema = vol.Schema(
            {
                vol.Optional(
                    CONF_LOCALES,
                    default=options.get(CONF_LOCALES, ",".join(DEFAULT_LOCALES)),
                ): str,
                vol.Optional(
                    CONF_RESET_FAILED_TRIGGERS,
                    default=options.get(CONF_RESET_FAILED_TRIGGERS, DEFAULT_RESET_FAILED_TRIGGERS),
                ): bool,
            }
        )
        return self.async_show_form(step_id="init", data_schema=schema)
