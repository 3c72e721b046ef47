"""Support for Unfolded Circle Remote activity and action buttons."""
from __future__ import annotations

import logging

from homeassistant.components.button import ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import FIELD_START, ROLE_BUTTON
from .entity import UnfoldedCircleNodeEntity, async_setup_node_entities, is_state_node
from .object_tree import TreeObject

_LOGGER = logging.getLogger(__name__)


def is_button_node(path: str, obj: TreeObject) -> bool:
    """Write-only trigger nodes (``start`` and ``actions.*``)."""
    return (
        is_state_node(obj)
        and obj.common.get("role") == ROLE_BUTTON
        and bool(obj.common.get("write"))
    )


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up buttons from a config entry."""
    async_setup_node_entities(
        hass, entry, async_add_entities, is_button_node, UnfoldedCircleButton
    )


class UnfoldedCircleButton(UnfoldedCircleNodeEntity, ButtonEntity):
    """Momentary trigger node."""

    @property
    def icon(self) -> str:
        """Return the icon."""
        if self._path.endswith(f".{FIELD_START}"):
            return "mdi:play-circle-outline"
        return "mdi:gesture-tap-button"

    async def async_press(self) -> None:
        """Handle the button press - write the trigger as a user write."""
        value = True if self._obj.common.get("type") == "boolean" else ""
        _LOGGER.debug("Button %s pressed", self._path)
        await self._tree.async_set_state(self._path, value, ack=False)
