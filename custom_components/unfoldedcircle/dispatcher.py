"""Turn writes to trigger nodes into commands for the remote."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
import json
import logging
from typing import TYPE_CHECKING, Any

from .const import (
    BUTTON_RESET_DELAY,
    CMD_ACTIVITY_START,
    ENTITY_ID_PREFIX,
    ERROR_SUFFIX,
    FIELD_ACTIONS,
    FIELD_IS_ACTIVE,
    FIELD_LAST_UPDATE,
    FIELD_START,
)
from .exceptions import RemoteApiError
from .object_tree import OBJECT_TYPE_STATE, ObjectTree, TreeState
from .protocol import ProtocolCodec

if TYPE_CHECKING:
    from .connection import RemoteConnection
    from .rest_api import RemoteRestAPI

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObjectPath:
    """A parsed ``<folder>.<key>.<field>`` path."""

    folder: str
    key: str
    field: str
    action: str | None = None

    @property
    def channel(self) -> str:
        """Return the ``<folder>.<key>`` channel path."""
        return f"{self.folder}.{self.key}"


def parse_object_path(path: str) -> ObjectPath | None:
    """Match a path against the known node suffixes.

    Known shapes are ``<folder>.<key>.is_active``, ``<folder>.<key>.start``
    and ``<folder>.<key>.actions.<name>``. Returns None for anything else.
    """
    parts = path.split(".")
    if any(not part for part in parts):
        return None
    if len(parts) == 3 and parts[2] in (FIELD_IS_ACTIVE, FIELD_START):
        return ObjectPath(parts[0], parts[1], parts[2])
    if len(parts) == 4 and parts[2] == FIELD_ACTIONS:
        return ObjectPath(parts[0], parts[1], FIELD_ACTIONS, parts[3])
    return None


class CommandDispatcher:
    """Send entity commands over the WebSocket for trigger writes.

    A trigger behaves like a momentary button: after the command is sent the
    node is set back to False (acknowledged) after a short delay so it can be
    pressed again. Commands are fire-and-forget: nothing is queued while the
    connection is down and nothing is retried.
    """

    def __init__(
        self,
        tree: ObjectTree,
        connection: RemoteConnection,
        codec: ProtocolCodec,
        *,
        entity_id_prefix: str = ENTITY_ID_PREFIX,
        reset_delay: float = BUTTON_RESET_DELAY,
        reset_failed_triggers: bool = False,
    ) -> None:
        """Initialize the dispatcher."""
        self._tree = tree
        self._connection = connection
        self._codec = codec
        self._entity_id_prefix = entity_id_prefix
        self._reset_delay = reset_delay
        self._reset_failed_triggers = reset_failed_triggers
        self._reset_handles: dict[str, asyncio.TimerHandle] = {}
        self._reset_tasks: set[asyncio.Task] = set()

    async def async_handle_state_change(self, path: str, state: TreeState | None) -> None:
        """Handle a write to a subscribed node."""
        _LOGGER.debug("State change: %s => %s", path, state)
        if state is None or state.ack:
            return

        parsed = parse_object_path(path)
        if parsed is None:
            _LOGGER.debug("Ignoring write to unrouted path %s", path)
            return

        if parsed.field == FIELD_START:
            if not state.val:
                return
            cmd_id = CMD_ACTIVITY_START
        elif parsed.field == FIELD_ACTIONS and parsed.action:
            cmd_id = parsed.action
        else:
            return

        entity_id = f"{self._entity_id_prefix}.{parsed.key}"
        if not self._connection.connected:
            _LOGGER.error("Cannot send %s for %s: not connected to the remote", cmd_id, entity_id)
            return

        _LOGGER.info("Sending %s for %s", cmd_id, entity_id)
        sent = await self._connection.async_send_json(
            self._codec.execute_command(entity_id, cmd_id)
        )
        if sent:
            _LOGGER.info("Command %s for '%s' sent", cmd_id, parsed.key)
        elif not self._reset_failed_triggers:
            return
        self._schedule_reset(path)

    def _schedule_reset(self, path: str) -> None:
        """Reset ``path`` to False after the reset delay, replacing a pending reset."""
        self.cancel_reset(path)
        loop = asyncio.get_running_loop()
        self._reset_handles[path] = loop.call_later(self._reset_delay, self._fire_reset, path)

    def _fire_reset(self, path: str) -> None:
        self._reset_handles.pop(path, None)
        task = asyncio.create_task(self._tree.async_set_state(path, False, ack=True))
        self._reset_tasks.add(task)
        task.add_done_callback(self._reset_tasks.discard)

    def cancel_reset(self, path: str) -> None:
        """Cancel a pending reset of ``path``."""
        handle = self._reset_handles.pop(path, None)
        if handle is not None:
            handle.cancel()

    @property
    def pending_resets(self) -> list[str]:
        """Return the paths with a reset still scheduled."""
        return list(self._reset_handles)

    def cancel_all(self) -> None:
        """Cancel every pending reset; the triggers keep their value."""
        for path in list(self._reset_handles):
            self.cancel_reset(path)

    async def async_shutdown(self) -> None:
        """Cancel every pending reset."""
        self.cancel_all()
        for task in list(self._reset_tasks):
            task.cancel()
        self._reset_tasks.clear()


def parse_action_body(value: Any) -> dict[str, Any]:
    """Build the POST body for an action write."""
    if isinstance(value, str) and value.strip():
        try:
            body = json.loads(value)
        except ValueError:
            return {"value": value}
        return body if isinstance(body, dict) else {"value": body}
    return {}


class ActionDispatcher:
    """POST writes to ``*.actions.*`` nodes to the REST API.

    On success the trigger is acknowledged with the written value and the
    entity's ``lastUpdate`` is refreshed. On failure the trigger stays
    unacknowledged so the user sees the action did not complete, and the
    error text is written to ``<trigger>_error``.
    """

    def __init__(self, tree: ObjectTree, api: RemoteRestAPI) -> None:
        """Initialize the dispatcher."""
        self._tree = tree
        self._api = api

    async def async_handle_state_change(self, path: str, state: TreeState | None) -> None:
        """Handle a write to a subscribed node."""
        if state is None or state.ack:
            return
        _LOGGER.debug("State change %s -> %s", path, state.val)

        parsed = parse_object_path(path)
        if parsed is None or parsed.field != FIELD_ACTIONS or parsed.action is None:
            return

        channel = self._tree.get_object(parsed.channel)
        original_id = (channel.native.get("original_id") if channel else None) or parsed.key
        node = self._tree.get_object(path)
        action = (node.native.get("action") if node else None) or parsed.action.replace("_", " ")
        body = parse_action_body(state.val)

        _LOGGER.info("Calling action %s for entity %s", action, original_id)
        try:
            await self._api.async_execute_action(original_id, action, body)
        except RemoteApiError as err:
            _LOGGER.error("Action call failed: %s", err)
            error_path = f"{path}{ERROR_SUFFIX}"
            await self._tree.async_set_object_not_exists(
                error_path,
                {
                    "type": OBJECT_TYPE_STATE,
                    "common": {
                        "name": "Last action error",
                        "type": "string",
                        "role": "text",
                        "read": True,
                        "write": False,
                    },
                },
            )
            await self._tree.async_set_state(error_path, str(err), ack=True)
            return

        await self._tree.async_set_state(path, state.val, ack=True)
        await self._tree.async_set_state(
            f"{parsed.channel}.{FIELD_LAST_UPDATE}",
            datetime.now(timezone.utc).isoformat(),
            ack=True,
        )
