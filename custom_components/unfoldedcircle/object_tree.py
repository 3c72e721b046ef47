"""Object tree mirroring the remote's entities.

The tree is a small key-value store of channel and state nodes addressed by
dot-separated paths (``activities.kitchen.is_active``). Every state write
carries an ``ack`` flag: acknowledged writes are confirmations coming from the
remote side, unacknowledged writes are genuine user input (e.g. a button press
in Home Assistant).

Consumers:
- The Home Assistant coordinator sets the change handler, called after every
  node creation and state write.
- The dispatchers register a single write handler that only receives changes
  for paths subscribed with ``subscribe_states``.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from fnmatch import fnmatchcase
import logging
from typing import Any

_LOGGER = logging.getLogger(__name__)

OBJECT_TYPE_CHANNEL = "channel"
OBJECT_TYPE_STATE = "state"


@dataclass
class TreeObject:
    """A channel or state node definition."""

    type: str
    common: dict[str, Any] = field(default_factory=dict)
    native: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> TreeObject:
        """Build a node from a ``{type, common, native}`` mapping."""
        return cls(
            type=obj.get("type", OBJECT_TYPE_STATE),
            common=copy.deepcopy(obj.get("common") or {}),
            native=copy.deepcopy(obj.get("native") or {}),
        )


@dataclass(frozen=True)
class TreeState:
    """Value of a state node."""

    val: Any
    ack: bool = False
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


ChangeHandler = Callable[[], None]
WriteHandler = Callable[[str, TreeState], Awaitable[None]]


class ObjectTree:
    """In-memory store of channel and state nodes."""

    def __init__(self) -> None:
        """Initialize an empty tree."""
        self._objects: dict[str, TreeObject] = {}
        self._states: dict[str, TreeState] = {}
        self._subscriptions: set[str] = set()
        self._change_handler: ChangeHandler | None = None
        self._write_handler: WriteHandler | None = None

    def get_object(self, path: str) -> TreeObject | None:
        """Return the node at ``path``."""
        return self._objects.get(path)

    def get_state(self, path: str) -> TreeState | None:
        """Return the current state of ``path``."""
        return self._states.get(path)


    def objects(self) -> Iterator[tuple[str, TreeObject]]:
        """Iterate over all nodes in creation order."""
        return iter(list(self._objects.items()))

    def snapshot(self) -> dict[str, Any]:
        """Return the current value of every state node."""
        return {path: state.val for path, state in self._states.items()}

    async def async_set_object_not_exists(self, path: str, obj: dict[str, Any]) -> bool:
        """Create the node if it is absent; an existing node is left untouched."""
        if path in self._objects:
            return False
        self._create(path, TreeObject.from_dict(obj))
        return True

    async def async_extend_object(self, path: str, obj: dict[str, Any]) -> TreeObject:
        """Create the node, or merge ``common`` and ``native`` into it."""
        existing = self._objects.get(path)
        if existing is None:
            node = TreeObject.from_dict(obj)
            self._create(path, node)
            return node
        existing.common.update(copy.deepcopy(obj.get("common") or {}))
        existing.native.update(copy.deepcopy(obj.get("native") or {}))
        self._notify_changed()
        return existing

    def _create(self, path: str, node: TreeObject) -> None:
        self._objects[path] = node
        _LOGGER.debug("Created %s object %s", node.type, path)
        self._notify_changed()

    async def async_set_state(self, path: str, val: Any, ack: bool = False) -> TreeState:
        """Store a state value and notify the handlers.

        The change handler sees every write. The write handler only sees
        changes for subscribed paths and is awaited before this call returns,
        so writes are handled one at a time in the order they were made.
        """
        if path not in self._objects:
            _LOGGER.debug("Setting state of unknown object %s", path)
        state = TreeState(val=val, ack=ack)
        self._states[path] = state
        self._notify_changed()

        if self._write_handler is not None and self.is_subscribed(path):
            try:
                await self._write_handler(path, state)
            except Exception as err:
                _LOGGER.error("Error handling state change of %s: %s", path, err, exc_info=True)
        return state

    def _notify_changed(self) -> None:
        if self._change_handler is None:
            return
        try:
            self._change_handler()
        except Exception as err:
            _LOGGER.error("Error in change handler: %s", err, exc_info=True)

    def subscribe_states(self, pattern: str) -> None:
        """Deliver changes of paths matching ``pattern`` to the write handler."""
        self._subscriptions.add(pattern)

    def unsubscribe_states(self, pattern: str) -> None:
        """Stop delivering changes for ``pattern``."""
        self._subscriptions.discard(pattern)

    def is_subscribed(self, path: str) -> bool:
        """Return True if ``path`` matches a subscribed pattern."""
        return any(
            pattern == path or fnmatchcase(path, pattern) for pattern in self._subscriptions
        )

    def set_write_handler(self, handler: WriteHandler | None) -> None:
        """Set the handler for subscribed state changes."""
        self._write_handler = handler

    def set_change_handler(self, handler: ChangeHandler | None) -> None:
        """Set the handler called after every node creation and state write."""
        self._change_handler = handler
