"""Support for Unfolded Circle Remote binary sensors."""
from __future__ import annotations

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import FIELD_IS_ACTIVE, ROLE_CONNECTED
from .coordinator import UnfoldedCircleCoordinator
from .entity import UnfoldedCircleNodeEntity, async_setup_node_entities, is_state_node
from .object_tree import TreeObject


def is_binary_sensor_node(path: str, obj: TreeObject) -> bool:
    """Read-only boolean nodes such as ``is_active`` and ``info.connection``."""
    common = obj.common
    return (
        is_state_node(obj)
        and common.get("type") == "boolean"
        and bool(common.get("read"))
        and not common.get("write")
    )


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up binary sensors from a config entry."""
    async_setup_node_entities(
        hass, entry, async_add_entities, is_binary_sensor_node, UnfoldedCircleBinarySensor
    )


class UnfoldedCircleBinarySensor(UnfoldedCircleNodeEntity, BinarySensorEntity):
    """Boolean node, e.g. whether an activity is running."""

    def __init__(
        self, coordinator: UnfoldedCircleCoordinator, path: str, obj: TreeObject
    ) -> None:
        """Initialize the binary sensor."""
        super().__init__(coordinator, path, obj)
        if obj.common.get("role") == ROLE_CONNECTED:
            self._attr_device_class = BinarySensorDeviceClass.CONNECTIVITY
            self._attr_entity_category = EntityCategory.DIAGNOSTIC
        elif path.endswith(f".{FIELD_IS_ACTIVE}"):
            self._attr_device_class = BinarySensorDeviceClass.RUNNING

    @property
    def is_on(self) -> bool | None:
        """Return True if the node is set."""
        state = self.tree_state
        if state is None or state.val is None:
            return None
        return bool(state.val)
