"""Message envelopes of the Unfolded Circle Remote core WebSocket API.

Outbound requests look like::

    {"kind": "req", "id": 1, "msg": "get_entities", "msg_data": {...}}

Inbound messages are either responses (``kind == "resp"``) to a request or
events (``kind == "event"``) for subscribed channels. Only the shapes the
integration acts on are decoded; anything else is ignored so newer firmware
can add messages without breaking us.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import itertools
import json
import logging
from typing import Any

from .const import (
    EVENT_CATEGORY_ENTITY,
    EVENT_TYPE_CHANGE,
    KIND_EVENT,
    KIND_REQUEST,
    KIND_RESPONSE,
    MSG_ENTITIES,
    MSG_ENTITY_CHANGE,
    MSG_EXECUTE_COMMAND,
    MSG_GET_ENTITIES,
    MSG_SUBSCRIBE_EVENTS,
    RESPONSE_OK,
)

_LOGGER = logging.getLogger(__name__)


@dataclass
class RemoteEntity:
    """An entity record as reported by the remote."""

    entity_id: str
    entity_type: str
    name: Any = None
    attributes: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteEntity | None:
        """Build an entity from a record, or None if it has no id."""
        entity_id = data.get("entity_id")
        if not entity_id:
            _LOGGER.debug("Skipping entity record without entity_id: %s", str(data)[:200])
            return None
        attributes = data.get("attributes")
        return cls(
            entity_id=str(entity_id),
            entity_type=str(data.get("entity_type") or data.get("type") or "unknown"),
            name=data.get("name"),
            attributes=attributes if isinstance(attributes, dict) else {},
            raw=data,
        )

    @property
    def state(self) -> Any:
        """Return the ``state`` attribute."""
        return self.attributes.get("state")


@dataclass
class EntitySnapshot:
    """Full entity list returned for a get_entities request."""

    entities: list[RemoteEntity]


@dataclass
class EntityChange:
    """Incremental state change of one entity."""

    entity_id: str
    entity_type: str
    new_state: Any


def event_channel(entity_type: str) -> str:
    """Return the event channel name for an entity type."""
    return f"entity_{entity_type}"


class ProtocolCodec:
    """Build request envelopes and decode inbound messages."""

    def __init__(self) -> None:
        """Initialize the codec."""
        self._ids = itertools.count(1)

    def request(self, msg: str, msg_data: dict[str, Any] | None = None) -> dict[str, Any]:
        """Build a request envelope with the next request id."""
        return {
            "kind": KIND_REQUEST,
            "id": next(self._ids),
            "msg": msg,
            "msg_data": msg_data or {},
        }

    def subscribe_events(self, channels: Iterable[str]) -> dict[str, Any]:
        """Build a subscribe_events request for the given channels."""
        return self.request(MSG_SUBSCRIBE_EVENTS, {"channels": list(channels)})

    def get_entities(self, entity_types: Iterable[str] | None = None) -> dict[str, Any]:
        """Build a get_entities request, optionally filtered by type."""
        msg_data: dict[str, Any] = {}
        if entity_types:
            msg_data["filter"] = {"entity_types": list(entity_types)}
        return self.request(MSG_GET_ENTITIES, msg_data)

    def execute_command(
        self, entity_id: str, cmd_id: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Build an execute_entity_command request."""
        msg_data: dict[str, Any] = {"entity_id": entity_id, "cmd_id": cmd_id}
        if params:
            msg_data["params"] = params
        return self.request(MSG_EXECUTE_COMMAND, msg_data)

    @staticmethod
    def encode(envelope: dict[str, Any]) -> str:
        """Serialize an envelope."""
        return json.dumps(envelope)

    def decode(self, raw: str | bytes) -> EntitySnapshot | EntityChange | None:
        """Decode an inbound frame.

        Returns None for malformed JSON (logged) and for every message shape
        the integration does not act on.
        """
        try:
            msg = json.loads(raw)
        except (TypeError, ValueError) as err:
            _LOGGER.warning("Failed to parse WebSocket message: %s", err)
            return None

        if not isinstance(msg, dict):
            return None
        _LOGGER.debug("Received WebSocket message: %s", msg.get("msg"))

        msg_data = msg.get("msg_data")
        if not isinstance(msg_data, dict):
            return None

        kind = msg.get("kind")
        if kind == KIND_RESPONSE:
            return self._decode_response(msg, msg_data)
        if kind == KIND_EVENT:
            return self._decode_event(msg, msg_data)
        return None

    @staticmethod
    def _decode_response(msg: dict[str, Any], msg_data: dict[str, Any]) -> EntitySnapshot | None:
        if msg.get("code") != RESPONSE_OK or msg.get("msg") != MSG_ENTITIES:
            return None
        records = msg_data.get("entities")
        if not isinstance(records, list):
            return None
        entities = []
        for record in records:
            if not isinstance(record, dict):
                continue
            entity = RemoteEntity.from_dict(record)
            if entity is not None:
                entities.append(entity)
        return EntitySnapshot(entities)

    @staticmethod
    def _decode_event(msg: dict[str, Any], msg_data: dict[str, Any]) -> EntityChange | None:
        if (
            msg.get("msg") != MSG_ENTITY_CHANGE
            or msg.get("cat") != EVENT_CATEGORY_ENTITY
            or msg_data.get("event_type") != EVENT_TYPE_CHANGE
        ):
            return None
        new_state = msg_data.get("new_state")
        entity_id = msg_data.get("entity_id")
        if not isinstance(new_state, dict) or not entity_id:
            return None
        attributes = new_state.get("attributes")
        if not isinstance(attributes, dict):
            return None
        return EntityChange(
            entity_id=str(entity_id),
            entity_type=str(msg_data.get("entity_type") or ""),
            new_state=attributes.get("state"),
        )
