from __future__ import annotations

from datetime import datetime

from homeassistant.components.binary_sensor import BinarySensorDeviceClass
from homeassistant.components.sensor import SensorDeviceClass

from custom_components.unfoldedcircle.binary_sensor import (
    UnfoldedCircleBinarySensor,
    is_binary_sensor_node,
)
from custom_components.unfoldedcircle.button import UnfoldedCircleButton, is_button_node
from custom_components.unfoldedcircle.const import DOMAIN
from custom_components.unfoldedcircle.coordinator import UnfoldedCircleCoordinator
from custom_components.unfoldedcircle.entity import build_device_info, device_channel
from custom_components.unfoldedcircle.object_tree import ObjectTree, TreeState
from custom_components.unfoldedcircle.protocol import RemoteEntity
from custom_components.unfoldedcircle.reconciler import EntityReconciler
from custom_components.unfoldedcircle.sensor import UnfoldedCircleSensor, is_sensor_node

from .common import ENTRY_ID, KITCHEN


async def _kitchen(tree: ObjectTree) -> None:
    await EntityReconciler(tree).async_reconcile(RemoteEntity.from_dict(KITCHEN))


def test_device_channel() -> None:
    assert device_channel("activities.kitchen.start") == "activities.kitchen"
    assert device_channel("lights.hall.actions.toggle") == "lights.hall"
    assert device_channel("info.connection") is None


async def test_device_info(tree: ObjectTree) -> None:
    await _kitchen(tree)

    hub = build_device_info(ENTRY_ID, tree, "info.connection")
    assert hub["identifiers"] == {(DOMAIN, ENTRY_ID)}

    device = build_device_info(ENTRY_ID, tree, "activities.kitchen.start")
    assert device["identifiers"] == {(DOMAIN, f"{ENTRY_ID}_activities.kitchen")}
    assert device["name"] == "Küche"
    assert device["via_device"] == (DOMAIN, ENTRY_ID)


async def test_nodes_map_to_platforms(tree: ObjectTree) -> None:
    await _kitchen(tree)
    is_active = tree.get_object("activities.kitchen.is_active")
    start = tree.get_object("activities.kitchen.start")

    assert is_binary_sensor_node("activities.kitchen.is_active", is_active)
    assert not is_button_node("activities.kitchen.is_active", is_active)
    assert not is_sensor_node("activities.kitchen.is_active", is_active)

    assert is_button_node("activities.kitchen.start", start)
    assert not is_binary_sensor_node("activities.kitchen.start", start)
    assert not is_sensor_node("activities.kitchen.start", start)

    assert not is_button_node("activities.kitchen", tree.get_object("activities.kitchen"))


async def test_json_nodes_are_not_sensors(tree: ObjectTree) -> None:
    await tree.async_set_object_not_exists(
        "meta.api",
        {"type": "state", "common": {"type": "string", "role": "json", "read": True, "write": False}},
    )
    await tree.async_set_object_not_exists(
        "lights.hall.state",
        {"type": "state", "common": {"type": "string", "role": "value", "read": True, "write": False}},
    )

    assert not is_sensor_node("meta.api", tree.get_object("meta.api"))
    assert is_sensor_node("lights.hall.state", tree.get_object("lights.hall.state"))


async def test_binary_sensor_follows_tree(
    coordinator: UnfoldedCircleCoordinator, tree: ObjectTree
) -> None:
    await _kitchen(tree)
    path = "activities.kitchen.is_active"
    sensor = UnfoldedCircleBinarySensor(coordinator, path, tree.get_object(path))

    assert sensor.unique_id == f"{ENTRY_ID}_{path}"
    assert sensor.device_class is BinarySensorDeviceClass.RUNNING
    assert sensor.is_on is False

    await EntityReconciler(tree).async_apply_state_change("uc.main.kitchen", "ON")
    assert sensor.is_on is True


async def test_connection_sensor_is_diagnostic(
    coordinator: UnfoldedCircleCoordinator, tree: ObjectTree
) -> None:
    await tree.async_set_object_not_exists(
        "info.connection",
        {
            "type": "state",
            "common": {"type": "boolean", "role": "indicator.connected", "read": True, "write": False},
        },
    )
    sensor = UnfoldedCircleBinarySensor(
        coordinator, "info.connection", tree.get_object("info.connection")
    )

    assert sensor.device_class is BinarySensorDeviceClass.CONNECTIVITY
    assert sensor.is_on is None


async def test_button_press_writes_trigger(
    coordinator: UnfoldedCircleCoordinator, tree: ObjectTree
) -> None:
    await _kitchen(tree)
    seen: list[tuple[str, TreeState]] = []

    async def handler(path: str, state: TreeState) -> None:
        seen.append((path, state))

    tree.set_write_handler(handler)
    path = "activities.kitchen.start"
    button = UnfoldedCircleButton(coordinator, path, tree.get_object(path))

    await button.async_press()

    assert button.icon == "mdi:play-circle-outline"
    assert len(seen) == 1
    assert seen[0][1].val is True
    assert seen[0][1].ack is False


async def test_action_button_writes_empty_string(
    coordinator: UnfoldedCircleCoordinator, tree: ObjectTree
) -> None:
    path = "lights.hall.actions.toggle"
    await tree.async_set_object_not_exists(
        path,
        {"type": "state", "common": {"type": "string", "role": "button", "read": False, "write": True}},
    )
    button = UnfoldedCircleButton(coordinator, path, tree.get_object(path))

    await button.async_press()

    assert button.icon == "mdi:gesture-tap-button"
    assert tree.get_state(path).val == ""


async def test_timestamp_sensor(
    coordinator: UnfoldedCircleCoordinator, tree: ObjectTree
) -> None:
    path = "lights.hall.lastUpdate"
    await tree.async_set_object_not_exists(
        path,
        {
            "type": "state",
            "common": {"type": "string", "role": "info.timestamp", "read": True, "write": False},
        },
    )
    sensor = UnfoldedCircleSensor(coordinator, path, tree.get_object(path))
    assert sensor.native_value is None

    await tree.async_set_state(path, "2024-05-01T10:00:00+00:00", ack=True)

    assert sensor.device_class is SensorDeviceClass.TIMESTAMP
    assert sensor.native_value == datetime.fromisoformat("2024-05-01T10:00:00+00:00")


async def test_long_sensor_values_are_truncated(
    coordinator: UnfoldedCircleCoordinator, tree: ObjectTree
) -> None:
    path = "lights.hall.actions.toggle_error"
    await tree.async_set_object_not_exists(
        path, {"type": "state", "common": {"type": "string", "read": True, "write": False}}
    )
    await tree.async_set_state(path, "x" * 400, ack=True)
    sensor = UnfoldedCircleSensor(coordinator, path, tree.get_object(path))

    assert len(sensor.native_value) == 255


async def test_attribute_booleans_have_no_device_class(
    coordinator: UnfoldedCircleCoordinator, tree: ObjectTree
) -> None:
    path = "media_players.tv.attributes.muted"
    await tree.async_set_object_not_exists(
        path, {"type": "state", "common": {"type": "boolean", "read": True, "write": False}}
    )
    await tree.async_set_state(path, True, ack=True)
    sensor = UnfoldedCircleBinarySensor(coordinator, path, tree.get_object(path))

    assert sensor.device_class is None
    assert sensor.is_on is True
