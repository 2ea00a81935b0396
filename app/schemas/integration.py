from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from uuid import UUID
from datetime import datetime
from typing import Optional, Any
from app.enums import AuthType, ConnectionStatus, IntegrationStatus
from app.schemas.config_schema import ConfigSchema

DEFAULT_ICON = "Settings"
KNOWN_ICONS = frozenset({"CreditCard", "Truck", "MessageSquare", "BarChart3", "Settings"})


def resolve_icon(name: Optional[str]) -> str:
    return name if name in KNOWN_ICONS else DEFAULT_ICON


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class IntegrationCreate(CamelModel):
    name: str
    description: Optional[str] = None
    category: str
    icon: Optional[str] = None
    status: IntegrationStatus = IntegrationStatus.AVAILABLE
    auth_type: AuthType
    config_schema: Optional[ConfigSchema] = None


class IntegrationUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    icon: Optional[str] = None
    status: Optional[IntegrationStatus] = None
    auth_type: Optional[AuthType] = None
    config_schema: Optional[ConfigSchema] = None


class IntegrationResponse(CamelModel):
    id: UUID
    name: str
    description: Optional[str] = None
    category: str
    icon: Optional[str] = None
    status: IntegrationStatus
    auth_type: AuthType
    config_schema: Optional[ConfigSchema] = None
    created_at: datetime
    updated_at: datetime


class UserIntegrationResponse(CamelModel):
    id: UUID
    user_id: str
    integration_id: UUID
    status: ConnectionStatus
    credentials: Optional[dict[str, Any]] = None
    configuration: Optional[dict[str, Any]] = None
    connected_at: Optional[datetime] = None
    disconnected_at: Optional[datetime] = None
    last_error: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserIntegrationWithIntegration(UserIntegrationResponse):
    integration: IntegrationResponse


class IntegrationDetailResponse(IntegrationResponse):
    user_integrations: list[UserIntegrationResponse] = []


class ConnectRequest(CamelModel):
    credentials: Optional[dict[str, Any]] = None
    configuration: Optional[dict[str, Any]] = None


class ConfigurationUpdate(CamelModel):
    configuration: dict[str, Any]


class AuthorizationResult(CamelModel):
    success: bool
    message: str = ""


class ConnectionTestResult(CamelModel):
    success: bool
    message: str = ""


class DeleteResponse(CamelModel):
    success: bool = True
