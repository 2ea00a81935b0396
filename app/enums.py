import enum


class IntegrationStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    BETA = "BETA"
    DEPRECATED = "DEPRECATED"
    MAINTENANCE = "MAINTENANCE"


class AuthType(str, enum.Enum):
    API_KEY = "API_KEY"
    OAUTH = "OAUTH"
    WEBHOOK = "WEBHOOK"
    BASIC_AUTH = "BASIC_AUTH"


class ConnectionStatus(str, enum.Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    ERROR = "ERROR"


AUTH_TYPE_LABELS = {
    AuthType.API_KEY: "API Key",
    AuthType.OAUTH: "OAuth",
    AuthType.WEBHOOK: "Webhook",
    AuthType.BASIC_AUTH: "Basic Auth",
}

# Catalog entries in these states are listed but cannot be connected from the UI
UNCONNECTABLE_STATUSES = frozenset({IntegrationStatus.DEPRECATED, IntegrationStatus.MAINTENANCE})
