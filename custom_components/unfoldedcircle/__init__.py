"""The Unfolded Circle Remote integration."""
from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .config import RemoteConfig
from .const import DOMAIN
from .coordinator import UnfoldedCircleCoordinator
from .dispatcher import ActionDispatcher
from .exceptions import InvalidConfigError
from .object_tree import ObjectTree
from .rest_api import RemoteRestAPI, RemoteRestLoader
from .sync import RemoteSync

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [
    Platform.BINARY_SENSOR,
    Platform.BUTTON,  # Activity start and entity actions
    Platform.SENSOR,
]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up an Unfolded Circle Remote from a config entry."""
    hass.data.setdefault(DOMAIN, {})

    try:
        config = RemoteConfig.from_entry(entry.data, entry.options)
    except InvalidConfigError as err:
        # Nothing is connected without host and token
        _LOGGER.error("%s. Please set it in the integration settings.", err)
        return False

    tree = ObjectTree()
    session = async_get_clientsession(hass, verify_ssl=False)
    coordinator = UnfoldedCircleCoordinator(hass, entry, tree)
    entry_data: dict = {"config": config, "tree": tree, "coordinator": coordinator}

    if config.use_websocket:
        entry_data["sync"] = RemoteSync(tree, session, config)
    else:
        api = RemoteRestAPI(session, config.rest_base, config.token)
        dispatcher = ActionDispatcher(tree, api)
        tree.set_write_handler(dispatcher.async_handle_state_change)
        entry_data["api"] = api
        entry_data["loader"] = RemoteRestLoader(tree, api, config.locales)

    hass.data[DOMAIN][entry.entry_id] = entry_data

    # Platforms pick up nodes as they are created, so set them up first
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    if config.use_websocket:
        _LOGGER.info("Connecting to Unfolded Circle Remote at %s", config.ws_url)
        await entry_data["sync"].async_start()
    else:
        await entry_data["loader"].async_load()

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry when options change."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        data = hass.data[DOMAIN].pop(entry.entry_id)
        if "sync" in data:
            await data["sync"].async_shutdown()
        else:
            data["tree"].set_write_handler(None)
        await data["coordinator"].async_shutdown()

    return unload_ok
