"""Constants for the Unfolded Circle Remote integration."""
from __future__ import annotations

DOMAIN = "unfoldedcircle"

CONF_HOST = "host"
CONF_PORT = "port"
CONF_TOKEN = "token"
CONF_USE_SSL = "use_ssl"
CONF_USE_WEBSOCKET = "use_websocket"
CONF_LOCALES = "locales"
CONF_RESET_FAILED_TRIGGERS = "reset_failed_triggers"

DEFAULT_NAME = "Unfolded Circle Remote"
DEFAULT_PORT = 80
DEFAULT_USE_SSL = False
DEFAULT_USE_WEBSOCKET = True
DEFAULT_LOCALES = ("de_DE", "en_US")
DEFAULT_RESET_FAILED_TRIGGERS = False
DEFAULT_ENTITY_TYPES = ("activity",)

MANUFACTURER = "Unfolded Circle"
MODEL = "Remote 3"

# Remote core API
API_WS_PATH = "/ws"
API_ENTITIES = "/api/v1/entities"
API_KEY_HEADER = "API-KEY"
REST_TIMEOUT = 8  # seconds

RECONNECT_DELAY = 5.0  # seconds
BUTTON_RESET_DELAY = 0.5  # seconds
HEARTBEAT_INTERVAL = 30.0  # seconds, a missing pong closes the socket

# Entity ids on the remote look like "uc.main.<key>"
ENTITY_ID_PREFIX = "uc.main"

STATE_ON = "ON"
STATE_OFF = "OFF"

# Envelope fields
KIND_REQUEST = "req"
KIND_RESPONSE = "resp"
KIND_EVENT = "event"
RESPONSE_OK = 200

MSG_SUBSCRIBE_EVENTS = "subscribe_events"
MSG_GET_ENTITIES = "get_entities"
MSG_EXECUTE_COMMAND = "execute_entity_command"
MSG_ENTITIES = "entities"
MSG_ENTITY_CHANGE = "entity_change"
EVENT_CATEGORY_ENTITY = "ENTITY"
EVENT_TYPE_CHANGE = "CHANGE"

CMD_ACTIVITY_START = "activity.start"

# Object tree fields
FIELD_IS_ACTIVE = "is_active"
FIELD_START = "start"
FIELD_ACTIONS = "actions"
FIELD_LAST_UPDATE = "lastUpdate"
ERROR_SUFFIX = "_error"

PATH_CONNECTION = "info.connection"
PATH_API_META = "meta.api"

ROLE_BUTTON = "button"
ROLE_JSON = "json"
ROLE_CONNECTED = "indicator.connected"

# Entity type -> object tree folder
CATEGORY_FOLDERS = {
    "activity": "activities",
    "macro": "macros",
    "media_player": "media_players",
    "remote": "remotes",
    "ir_emitter": "ir_emitters",
}
