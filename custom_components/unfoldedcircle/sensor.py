"""Support for Unfolded Circle Remote sensors."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import ROLE_JSON
from .coordinator import UnfoldedCircleCoordinator
from .entity import UnfoldedCircleNodeEntity, async_setup_node_entities, is_state_node
from .object_tree import TreeObject

# Home Assistant rejects longer states
MAX_STATE_LENGTH = 255


def is_sensor_node(path: str, obj: TreeObject) -> bool:
    """Read-only, non-boolean nodes; JSON metadata is left out."""
    common = obj.common
    return (
        is_state_node(obj)
        and common.get("type") != "boolean"
        and common.get("role") != ROLE_JSON
        and bool(common.get("read"))
        and not common.get("write")
    )


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up sensors from a config entry."""
    async_setup_node_entities(
        hass, entry, async_add_entities, is_sensor_node, UnfoldedCircleSensor
    )


class UnfoldedCircleSensor(UnfoldedCircleNodeEntity, SensorEntity):
    """Read-only value node (state, attributes, last update, action errors)."""

    def __init__(
        self, coordinator: UnfoldedCircleCoordinator, path: str, obj: TreeObject
    ) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator, path, obj)
        if obj.common.get("role") == "info.timestamp":
            self._attr_device_class = SensorDeviceClass.TIMESTAMP

    @property
    def native_value(self) -> Any:
        """Return the node value."""
        state = self.tree_state
        if state is None:
            return None
        value = state.val
        if self.device_class == SensorDeviceClass.TIMESTAMP:
            try:
                return datetime.fromisoformat(str(value))
            except ValueError:
                return None
        if isinstance(value, str) and len(value) > MAX_STATE_LENGTH:
            return value[:MAX_STATE_LENGTH]
        return value
