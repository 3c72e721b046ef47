"""Map remote entities onto object tree nodes."""
from __future__ import annotations

from collections.abc import Sequence
import logging
from typing import Any

from .const import (
    CATEGORY_FOLDERS,
    DEFAULT_LOCALES,
    FIELD_IS_ACTIVE,
    FIELD_START,
    ROLE_BUTTON,
    STATE_OFF,
    STATE_ON,
)
from .object_tree import OBJECT_TYPE_CHANNEL, OBJECT_TYPE_STATE, ObjectTree
from .protocol import RemoteEntity

_LOGGER = logging.getLogger(__name__)


def local_key(entity_id: str) -> str:
    """Return the last dot-separated segment of a remote entity id."""
    return entity_id.split(".")[-1]


def category_folder(entity_type: str) -> str:
    """Return the object tree folder for an entity type."""
    return CATEGORY_FOLDERS.get(entity_type, entity_type)


def channel_path(entity_type: str, key: str) -> str:
    """Return the channel path ``<folder>.<key>``."""
    return f"{category_folder(entity_type)}.{key}"


def display_name(name: Any, locales: Sequence[str], fallback: str) -> str:
    """Pick a display name from a plain or localized name.

    The first locale in ``locales`` with a non-empty value wins; the
    fallback is used when no locale matches.
    """
    if isinstance(name, str) and name:
        return name
    if isinstance(name, dict):
        for locale in locales:
            value = name.get(locale)
            if value:
                return str(value)
    return fallback


class EntityReconciler:
    """Create and update nodes for remote entities.

    For an entity ``uc.main.kitchen`` of type ``activity`` the tree gets:
    - ``activities.kitchen``: channel named after the entity
    - ``activities.kitchen.is_active``: read-only boolean
    - ``activities.kitchen.start``: write-only trigger
    """

    def __init__(self, tree: ObjectTree, locales: Sequence[str] = DEFAULT_LOCALES) -> None:
        """Initialize the reconciler."""
        self._tree = tree
        self._locales = tuple(locales)

    async def async_reconcile(self, entity: RemoteEntity) -> str:
        """Create or refresh the nodes of one entity and return its channel path."""
        key = local_key(entity.entity_id)
        name = display_name(entity.name, self._locales, key)
        base = channel_path(entity.entity_type, key)

        await self._tree.async_extend_object(
            base,
            {
                "type": OBJECT_TYPE_CHANNEL,
                "common": {"name": name},
                "native": {"entity_id": entity.entity_id, "entity_type": entity.entity_type},
            },
        )

        state_path = f"{base}.{FIELD_IS_ACTIVE}"
        await self._tree.async_set_object_not_exists(
            state_path,
            {
                "type": OBJECT_TYPE_STATE,
                "common": {
                    "name": "Active",
                    "type": "boolean",
                    "role": "indicator",
                    "read": True,
                    "write": False,
                },
            },
        )
        await self._tree.async_set_state(state_path, entity.state != STATE_OFF, ack=True)

        start_path = f"{base}.{FIELD_START}"
        self._tree.subscribe_states(start_path)
        await self._tree.async_set_object_not_exists(
            start_path,
            {
                "type": OBJECT_TYPE_STATE,
                "common": {
                    "name": "Start",
                    "type": "boolean",
                    "role": ROLE_BUTTON,
                    "read": False,
                    "write": True,
                },
            },
        )
        _LOGGER.debug("Reconciled %s %s as %s (%s)", entity.entity_type, entity.entity_id, base, name)
        return base

    async def async_apply_state_change(
        self, entity_id: str, new_state: Any, entity_type: str = "activity"
    ) -> bool:
        """Apply an incremental state change; returns True if a value was written.

        Only ON and OFF are applied. Transient states the remote reports while
        an activity is starting or stopping are ignored.
        """
        if new_state not in (STATE_ON, STATE_OFF):
            _LOGGER.debug("Ignoring state %s for %s", new_state, entity_id)
            return False
        key = local_key(entity_id)
        is_active = new_state == STATE_ON
        _LOGGER.info("Activity state changed: %s => is_active=%s", key, is_active)
        await self._tree.async_set_state(
            f"{channel_path(entity_type, key)}.{FIELD_IS_ACTIVE}", is_active, ack=True
        )
        return True
