"""Synchronization core for the WebSocket variant."""
from __future__ import annotations

import logging

import aiohttp

from .config import RemoteConfig
from .connection import ConnectionState, RemoteConnection
from .const import PATH_CONNECTION, RECONNECT_DELAY, ROLE_CONNECTED
from .dispatcher import CommandDispatcher
from .object_tree import OBJECT_TYPE_STATE, ObjectTree
from .protocol import EntityChange, EntitySnapshot, ProtocolCodec, event_channel
from .reconciler import EntityReconciler

_LOGGER = logging.getLogger(__name__)


class RemoteSync:
    """Keep the object tree in sync with the remote over one WebSocket.

    Flows:
    - connected: subscribe to entity events, then request the full entity list
    - entity list: reconcile every record (always a fresh snapshot)
    - entity change event: apply the new state
    - trigger write: hand over to the command dispatcher
    - disconnected: pending trigger resets are dropped and the connector
      reconnects on its own after a fixed delay

    Messages are processed one at a time in arrival order on the event loop.
    """

    def __init__(
        self,
        tree: ObjectTree,
        session: aiohttp.ClientSession,
        config: RemoteConfig,
        *,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        """Initialize the sync core."""
        self.tree = tree
        self.config = config
        self.codec = ProtocolCodec()
        self.connection = RemoteConnection(
            session,
            config.ws_url,
            config.token,
            reconnect_delay=reconnect_delay,
            on_connected=self._async_on_connected,
            on_disconnected=self._async_on_disconnected,
            on_message=self._async_on_message,
        )
        self.reconciler = EntityReconciler(tree, config.locales)
        self.dispatcher = CommandDispatcher(
            tree,
            self.connection,
            self.codec,
            reset_failed_triggers=config.reset_failed_triggers,
        )
        self._stopped = False

    @property
    def state(self) -> ConnectionState:
        """Return the connection state."""
        return self.connection.state

    async def async_start(self) -> None:
        """Create the connection indicator and connect."""
        await self.tree.async_set_object_not_exists(
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
        await self.tree.async_set_state(PATH_CONNECTION, False, ack=True)
        self.tree.set_write_handler(self.dispatcher.async_handle_state_change)
        await self.connection.async_connect()

    async def async_shutdown(self) -> None:
        """Stop for good: cancel timers and close the connection."""
        if self._stopped:
            return
        self._stopped = True
        self.tree.set_write_handler(None)
        await self.dispatcher.async_shutdown()
        await self.connection.async_disconnect()

    async def _async_on_connected(self) -> None:
        await self.tree.async_set_state(PATH_CONNECTION, True, ack=True)

        entity_types = self.config.entity_types
        _LOGGER.info("Subscribing to %s events on the remote", ", ".join(entity_types))
        await self.connection.async_send_json(
            self.codec.subscribe_events([event_channel(entity_type) for entity_type in entity_types])
        )
        _LOGGER.info("Requesting all %s entities from the remote", ", ".join(entity_types))
        await self.connection.async_send_json(self.codec.get_entities(entity_types))

    async def _async_on_disconnected(self) -> None:
        self.dispatcher.cancel_all()
        await self.tree.async_set_state(PATH_CONNECTION, False, ack=True)

    async def _async_on_message(self, raw: str) -> None:
        message = self.codec.decode(raw)
        if isinstance(message, EntitySnapshot):
            _LOGGER.debug("Received %d entities", len(message.entities))
            for entity in message.entities:
                await self.reconciler.async_reconcile(entity)
        elif isinstance(message, EntityChange):
            if message.entity_type not in self.config.entity_types:
                return
            await self.reconciler.async_apply_state_change(
                message.entity_id, message.new_state, message.entity_type
            )
