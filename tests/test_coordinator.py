from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from custom_components.unfoldedcircle.binary_sensor import (
    UnfoldedCircleBinarySensor,
    is_binary_sensor_node,
)
from custom_components.unfoldedcircle.const import DOMAIN
from custom_components.unfoldedcircle.coordinator import UnfoldedCircleCoordinator
from custom_components.unfoldedcircle.entity import async_setup_node_entities
from custom_components.unfoldedcircle.object_tree import ObjectTree
from custom_components.unfoldedcircle.protocol import RemoteEntity
from custom_components.unfoldedcircle.reconciler import EntityReconciler

from .common import KITCHEN, MOVIE


async def test_tree_writes_are_pushed_once_per_loop_iteration(
    coordinator: UnfoldedCircleCoordinator, tree: ObjectTree
) -> None:
    updates: list[dict] = []
    coordinator.async_add_listener(lambda: updates.append(dict(coordinator.data)))

    reconciler = EntityReconciler(tree)
    await reconciler.async_reconcile(RemoteEntity.from_dict(KITCHEN))
    await reconciler.async_reconcile(RemoteEntity.from_dict(MOVIE))
    await asyncio.sleep(0)

    assert updates == [
        {"activities.kitchen.is_active": False, "activities.movie.is_active": True}
    ]
    assert coordinator.update_interval is None

    await reconciler.async_apply_state_change("uc.main.kitchen", "ON")
    await asyncio.sleep(0)

    assert len(updates) == 2
    assert coordinator.data["activities.kitchen.is_active"] is True


async def test_new_nodes_are_announced_once(
    coordinator: UnfoldedCircleCoordinator,
    tree: ObjectTree,
    hass: HomeAssistant,
    dispatcher_send: MagicMock,
) -> None:
    reconciler = EntityReconciler(tree)
    await reconciler.async_reconcile(RemoteEntity.from_dict(KITCHEN))
    await asyncio.sleep(0)

    dispatcher_send.assert_called_once_with(
        hass,
        coordinator.signal_new_nodes,
        ["activities.kitchen", "activities.kitchen.is_active", "activities.kitchen.start"],
    )

    await reconciler.async_apply_state_change("uc.main.kitchen", "ON")
    await asyncio.sleep(0)
    assert dispatcher_send.call_count == 1

    await reconciler.async_reconcile(RemoteEntity.from_dict(MOVIE))
    await asyncio.sleep(0)
    assert dispatcher_send.call_count == 2
    assert dispatcher_send.call_args.args[2][0] == "activities.movie"


async def test_shutdown_detaches_from_tree(
    coordinator: UnfoldedCircleCoordinator, tree: ObjectTree
) -> None:
    await tree.async_set_state("a", 1)
    await coordinator.async_shutdown()
    await asyncio.sleep(0)

    assert coordinator.data is None

    await tree.async_set_state("a", 2)
    await asyncio.sleep(0)
    assert coordinator.data is None


async def test_platform_adds_entities_for_announced_nodes(
    coordinator: UnfoldedCircleCoordinator,
    tree: ObjectTree,
    hass: HomeAssistant,
    config_entry: ConfigEntry,
) -> None:
    hass.data[DOMAIN] = {config_entry.entry_id: {"coordinator": coordinator}}
    await tree.async_set_object_not_exists(
        "info.connection",
        {
            "type": "state",
            "common": {"type": "boolean", "role": "indicator.connected", "read": True, "write": False},
        },
    )
    add_entities = MagicMock()

    with patch(
        "custom_components.unfoldedcircle.entity.async_dispatcher_connect"
    ) as dispatcher_connect:
        async_setup_node_entities(
            hass,
            config_entry,
            add_entities,
            is_binary_sensor_node,
            UnfoldedCircleBinarySensor,
        )

    assert dispatcher_connect.call_args.args[1] == coordinator.signal_new_nodes
    assert [entity.unique_id for entity in add_entities.call_args.args[0]] == [
        "entry_info.connection"
    ]

    await EntityReconciler(tree).async_reconcile(RemoteEntity.from_dict(KITCHEN))
    add_nodes = dispatcher_connect.call_args.args[2]
    add_nodes(["activities.kitchen", "activities.kitchen.is_active", "activities.kitchen.start"])
    add_nodes(["activities.kitchen.is_active", "info.connection"])

    assert add_entities.call_count == 2
    (entity,) = add_entities.call_args.args[0]
    assert entity.unique_id == "entry_activities.kitchen.is_active"
    assert entity.coordinator is coordinator
