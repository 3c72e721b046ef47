"""REST client and one-shot entity loader for the remote."""
from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import datetime, timezone
import json
import logging
import re
from typing import Any
from urllib.parse import quote

import aiohttp

from .const import (
    API_ENTITIES,
    DEFAULT_LOCALES,
    FIELD_ACTIONS,
    FIELD_LAST_UPDATE,
    PATH_API_META,
    PATH_CONNECTION,
    REST_TIMEOUT,
    ROLE_BUTTON,
    ROLE_CONNECTED,
    ROLE_JSON,
)
from .exceptions import RemoteApiError
from .object_tree import OBJECT_TYPE_CHANNEL, OBJECT_TYPE_STATE, ObjectTree
from .reconciler import category_folder, display_name

_LOGGER = logging.getLogger(__name__)

_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9_\-]")


def safe_id(value: str) -> str:
    """Replace characters not allowed in a path segment with ``_``."""
    return _UNSAFE_ID_CHARS.sub("_", value)


def value_type(value: Any) -> str:
    """Return the node type (boolean, number or string) for a value."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


def _state_value(value: Any) -> Any:
    """Return a value a string node can hold."""
    if isinstance(value, (bool, int, float, str)) or value is None:
        return value
    return json.dumps(value)


def original_entity_id(record: dict[str, Any]) -> str:
    """Return the id of an entity record."""
    for key in ("entity_id", "id", "key", "uuid", "_id"):
        if record.get(key):
            return str(record[key])
    return str(record.get("name"))


def action_names(record: dict[str, Any]) -> list[str]:
    """Return the action names an entity record advertises."""
    actions = record.get("actions")
    if not isinstance(actions, list):
        actions = record.get("available_actions")
    if not isinstance(actions, list):
        return []
    names = []
    for action in actions:
        if isinstance(action, str):
            names.append(action)
        elif isinstance(action, dict):
            names.append(str(action.get("name") or action.get("id") or json.dumps(action)))
    return names


class RemoteRestAPI:
    """Client for the remote's REST API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str,
        token: str | None = None,
        timeout: float = REST_TIMEOUT,
    ) -> None:
        """Initialize the client."""
        self._session = session
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def async_get_entities(self) -> list[dict[str, Any]]:
        """Fetch every entity record."""
        url = f"{self.base_url}{API_ENTITIES}"
        _LOGGER.debug("Fetching entities from %s", url)
        try:
            async with self._session.get(
                url, headers=self._headers, timeout=self._timeout
            ) as response:
                if response.status != 200:
                    raise RemoteApiError(f"Fetching entities failed with HTTP {response.status}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as err:
            raise RemoteApiError(f"Fetching entities failed: {err}") from err

        if not isinstance(data, list):
            raise RemoteApiError("Unexpected entities response (not an array)")
        return data

    async def async_execute_action(
        self, entity_id: str, action: str, body: dict[str, Any] | None = None
    ) -> int:
        """POST an action for an entity and return the HTTP status."""
        url = (
            f"{self.base_url}{API_ENTITIES}/{quote(entity_id, safe='')}"
            f"/actions/{quote(action, safe='')}"
        )
        _LOGGER.info("Calling action %s for entity %s -> %s", action, entity_id, url)
        try:
            async with self._session.post(
                url, json=body or {}, headers=self._headers, timeout=self._timeout
            ) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise RemoteApiError(
                        f"Action {action} failed with HTTP {response.status}: {text[:200]}"
                    )
                _LOGGER.debug("Action result status %s", response.status)
                return response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise RemoteApiError(f"Action {action} failed: {err}") from err


class RemoteRestLoader:
    """Create nodes for every entity of the remote, once.

    Entities are grouped by type into ``<folder>.<safe id>`` channels holding
    ``meta``, ``state``, ``attributes.*``, ``actions.*`` and ``lastUpdate``.
    There is no polling: the tree reflects the remote at startup, and action
    writes are dispatched by ``ActionDispatcher``.
    """

    def __init__(
        self,
        tree: ObjectTree,
        api: RemoteRestAPI,
        locales: Sequence[str] = DEFAULT_LOCALES,
    ) -> None:
        """Initialize the loader."""
        self._tree = tree
        self._api = api
        self._locales = tuple(locales)

    async def async_load(self) -> bool:
        """Load all entities; returns False if the remote could not be read."""
        _LOGGER.info("Loading all entities once from %s", self._api.base_url)
        await self._tree.async_set_object_not_exists(
            PATH_CONNECTION,
            {
                "type": OBJECT_TYPE_STATE,
                "common": {
                    "name": "Connected",
                    "type": "boolean",
                    "role": ROLE_CONNECTED,
                    "read": True,
                    "write": False,
                },
            },
        )
        await self._tree.async_set_state(PATH_CONNECTION, False, ack=True)
        await self._tree.async_set_object_not_exists(
            PATH_API_META,
            {
                "type": OBJECT_TYPE_STATE,
                "common": {
                    "name": "API metadata",
                    "type": "string",
                    "role": ROLE_JSON,
                    "read": True,
                    "write": False,
                },
            },
        )

        try:
            entities = await self._api.async_get_entities()
        except RemoteApiError as err:
            _LOGGER.error("Failed to load entities: %s", err)
            await self._tree.async_set_state(PATH_CONNECTION, False, ack=True)
            return False

        await self._tree.async_set_state(
            PATH_API_META,
            json.dumps(
                {"fetchedAt": datetime.now(timezone.utc).isoformat(), "count": len(entities)}
            ),
            ack=True,
        )
        await self.async_create_objects(entities)
        self._tree.subscribe_states(f"*.{FIELD_ACTIONS}.*")
        await self._tree.async_set_state(PATH_CONNECTION, True, ack=True)
        _LOGGER.info("All entities created (%d)", len(entities))
        return True

    async def async_create_objects(self, entities: list[dict[str, Any]]) -> None:
        """Create the nodes for a list of entity records, grouped by type."""
        groups: dict[str, list[dict[str, Any]]] = {}
        for record in entities:
            if not isinstance(record, dict):
                continue
            entity_type = str(record.get("entity_type") or record.get("type") or "unknown")
            groups.setdefault(entity_type, []).append(record)

        for entity_type, records in groups.items():
            folder = category_folder(entity_type)
            await self._tree.async_set_object_not_exists(
                folder, {"type": OBJECT_TYPE_CHANNEL, "common": {"name": entity_type}}
            )
            for record in records:
                await self._async_create_entity(folder, record)

    async def _async_create_entity(self, folder: str, record: dict[str, Any]) -> None:
        original_id = original_entity_id(record)
        base = f"{folder}.{safe_id(original_id)}"

        await self._tree.async_set_object_not_exists(
            base,
            {
                "type": OBJECT_TYPE_CHANNEL,
                "common": {"name": display_name(record.get("name"), self._locales, original_id)},
                "native": {"original_id": original_id},
            },
        )

        await self._async_set_value(base, "meta", json.dumps(record), "metadata", "string", ROLE_JSON)

        # Records carry the state either top level or as an attribute
        if "state" in record:
            state = record["state"]
            await self._async_set_value(base, "state", _state_value(state), "state", value_type(state), "value")

        attributes = record.get("attributes")
        if isinstance(attributes, dict):
            await self._tree.async_set_object_not_exists(
                f"{base}.attributes", {"type": OBJECT_TYPE_CHANNEL, "common": {"name": "attributes"}}
            )
            for name, value in attributes.items():
                await self._async_set_value(
                    f"{base}.attributes",
                    safe_id(str(name)),
                    _state_value(value),
                    str(name),
                    value_type(value),
                    "info",
                )

        actions = action_names(record)
        if actions:
            await self._tree.async_set_object_not_exists(
                f"{base}.{FIELD_ACTIONS}", {"type": OBJECT_TYPE_CHANNEL, "common": {"name": "actions"}}
            )
            for action in actions:
                # Write-only trigger, no initial value
                await self._tree.async_set_object_not_exists(
                    f"{base}.{FIELD_ACTIONS}.{safe_id(action)}",
                    {
                        "type": OBJECT_TYPE_STATE,
                        "common": {
                            "name": action,
                            "type": "string",
                            "role": ROLE_BUTTON,
                            "read": False,
                            "write": True,
                        },
                        "native": {"action": action},
                    },
                )

        await self._async_set_value(
            base,
            FIELD_LAST_UPDATE,
            datetime.now(timezone.utc).isoformat(),
            "last update",
            "string",
            "info.timestamp",
        )

    async def _async_set_value(
        self, base: str, field: str, value: Any, name: str, node_type: str, role: str
    ) -> None:
        path = f"{base}.{field}"
        await self._tree.async_set_object_not_exists(
            path,
            {
                "type": OBJECT_TYPE_STATE,
                "common": {"name": name, "type": node_type, "role": role, "read": True, "write": False},
            },
        )
        await self._tree.async_set_state(path, value, ack=True)
