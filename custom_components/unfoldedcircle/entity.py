"""Base entity for object tree nodes."""
from __future__ import annotations

from collections.abc import Callable
import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import Entity
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DEFAULT_NAME, DOMAIN, MANUFACTURER, MODEL
from .coordinator import UnfoldedCircleCoordinator
from .object_tree import OBJECT_TYPE_STATE, ObjectTree, TreeObject, TreeState

_LOGGER = logging.getLogger(__name__)


def device_channel(path: str) -> str | None:
    """Return the ``<folder>.<key>`` channel a node belongs to.

    Nodes directly below a top-level folder (``info.connection``) belong to
    the remote itself and return None.
    """
    parts = path.split(".")
    if len(parts) < 3:
        return None
    return ".".join(parts[:2])


def build_device_info(entry_id: str, tree: ObjectTree, path: str) -> DeviceInfo:
    """Build device info for the channel of ``path``."""
    channel = device_channel(path)
    if channel is None:
        return DeviceInfo(
            identifiers={(DOMAIN, entry_id)},
            name=DEFAULT_NAME,
            manufacturer=MANUFACTURER,
            model=MODEL,
        )
    channel_obj = tree.get_object(channel)
    name = channel_obj.common.get("name") if channel_obj else None
    return DeviceInfo(
        identifiers={(DOMAIN, f"{entry_id}_{channel}")},
        name=str(name or channel),
        manufacturer=MANUFACTURER,
        model=MODEL,
        via_device=(DOMAIN, entry_id),
    )


def is_state_node(obj: TreeObject) -> bool:
    """Return True for state nodes."""
    return obj.type == OBJECT_TYPE_STATE


@callback
def async_setup_node_entities(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
    matches: Callable[[str, TreeObject], bool],
    factory: Callable[[UnfoldedCircleCoordinator, str, TreeObject], Entity],
) -> None:
    """Add an entity for every matching node, now and when nodes appear later."""
    coordinator: UnfoldedCircleCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    tree = coordinator.tree
    added: set[str] = set()

    @callback
    def _async_add_nodes(paths: list[str]) -> None:
        entities = []
        for path in paths:
            obj = tree.get_object(path)
            if obj is None or path in added or not matches(path, obj):
                continue
            added.add(path)
            _LOGGER.debug("Adding entity for %s", path)
            entities.append(factory(coordinator, path, obj))
        if entities:
            async_add_entities(entities)

    _async_add_nodes([path for path, _ in tree.objects()])
    entry.async_on_unload(
        async_dispatcher_connect(hass, coordinator.signal_new_nodes, _async_add_nodes)
    )


class UnfoldedCircleNodeEntity(CoordinatorEntity[UnfoldedCircleCoordinator]):
    """Entity showing one object tree node."""

    _attr_has_entity_name = True

    def __init__(
        self, coordinator: UnfoldedCircleCoordinator, path: str, obj: TreeObject
    ) -> None:
        """Initialize the entity."""
        super().__init__(coordinator)
        self._tree = coordinator.tree
        self._path = path
        self._obj = obj
        self._attr_unique_id = f"{coordinator.entry_id}_{path}"
        self._attr_name = str(obj.common.get("name") or path.rsplit(".", 1)[-1])
        self._attr_device_info = build_device_info(coordinator.entry_id, self._tree, path)

    @property
    def tree_state(self) -> TreeState | None:
        """Return the node's current state."""
        return self._tree.get_state(self._path)
