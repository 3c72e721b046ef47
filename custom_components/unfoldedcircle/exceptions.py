"""Exceptions for the Unfolded Circle Remote integration."""
from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class UnfoldedCircleError(HomeAssistantError):
    """Base error for the Unfolded Circle Remote integration."""


class InvalidConfigError(UnfoldedCircleError):
    """Configuration is missing a required value."""


class RemoteApiError(UnfoldedCircleError):
    """The remote's REST API returned an error or an unexpected payload."""
