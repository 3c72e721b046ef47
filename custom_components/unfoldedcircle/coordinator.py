"""Data update coordinator for Unfolded Circle Remote."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import DOMAIN
from .object_tree import ObjectTree

_LOGGER = logging.getLogger(__name__)


class UnfoldedCircleCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Push the object tree of one remote to its entities.

    Nothing is polled. The sync core or the REST loader writes the tree, and
    every write lands here through the tree's change handler. Writes made in
    the same loop iteration are coalesced into a single update: new nodes are
    announced with ``signal_new_nodes`` first, then ``async_set_updated_data``
    refreshes the entities.
    """

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry, tree: ObjectTree) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=DOMAIN,
            update_interval=None,
        )
        self.tree = tree
        self.entry_id = entry.entry_id
        self._known_paths: set[str] = set()
        self._flush_handle: asyncio.Handle | None = None
        tree.set_change_handler(self._on_tree_change)

    @property
    def signal_new_nodes(self) -> str:
        """Return the dispatcher signal for newly created nodes."""
        return f"{DOMAIN}_{self.entry_id}_new_nodes"

    async def _async_update_data(self) -> dict[str, Any]:
        """Return the current node values; the tree is the source of truth."""
        return self.tree.snapshot()

    @callback
    def _on_tree_change(self) -> None:
        if self._flush_handle is None:
            self._flush_handle = self.hass.loop.call_soon(self._async_flush)

    @callback
    def _async_flush(self) -> None:
        self._flush_handle = None
        new_paths = [path for path, _ in self.tree.objects() if path not in self._known_paths]
        if new_paths:
            self._known_paths.update(new_paths)
            _LOGGER.debug("Announcing %d new nodes", len(new_paths))
            async_dispatcher_send(self.hass, self.signal_new_nodes, new_paths)
        self.async_set_updated_data(self.tree.snapshot())

    async def async_shutdown(self) -> None:
        """Detach from the tree and drop a pending update."""
        self.tree.set_change_handler(None)
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        await super().async_shutdown()
