"""Test fixtures for the Unfolded Circle Remote integration."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Generator
from unittest.mock import MagicMock, patch

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer
import pytest
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from custom_components.unfoldedcircle.coordinator import UnfoldedCircleCoordinator
from custom_components.unfoldedcircle.object_tree import ObjectTree

from .common import ENTRY_ID, FakeRemote


@pytest.fixture
def tree() -> ObjectTree:
    """Return an empty object tree."""
    return ObjectTree()


@pytest.fixture
async def hass() -> HomeAssistant:
    """Return a mock Home Assistant instance running on the test loop."""
    hass = MagicMock(spec=HomeAssistant)
    hass.data = {}
    hass.loop = asyncio.get_running_loop()
    hass.config_entries = MagicMock()
    return hass


@pytest.fixture
def config_entry() -> ConfigEntry:
    """Return a mock config entry."""
    entry = MagicMock(spec=ConfigEntry)
    entry.entry_id = ENTRY_ID
    entry.data = {}
    entry.options = {}
    return entry


@pytest.fixture
def dispatcher_send() -> Generator[MagicMock, None, None]:
    """Capture new node announcements."""
    with patch(
        "custom_components.unfoldedcircle.coordinator.async_dispatcher_send"
    ) as send:
        yield send


@pytest.fixture
def coordinator(
    hass: HomeAssistant,
    config_entry: ConfigEntry,
    tree: ObjectTree,
    dispatcher_send: MagicMock,
) -> UnfoldedCircleCoordinator:
    """Return a coordinator attached to the tree."""
    return UnfoldedCircleCoordinator(hass, config_entry, tree)


@pytest.fixture
async def session() -> AsyncGenerator[aiohttp.ClientSession, None]:
    """Return an aiohttp client session."""
    async with aiohttp.ClientSession() as client_session:
        yield client_session


@pytest.fixture
async def remote() -> AsyncGenerator[FakeRemote, None]:
    """Run a fake remote WebSocket endpoint."""
    fake = FakeRemote()
    app = web.Application()
    app.router.add_get("/ws", fake.handler)
    server = TestServer(app)
    await server.start_server()
    fake.host = server.host
    fake.port = server.port
    fake.url = str(server.make_url("/ws"))
    yield fake
    await fake.close_clients()
    await server.close()
