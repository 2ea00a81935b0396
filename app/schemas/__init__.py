from app.schemas.config_schema import (
    StringField,
    NumberField,
    BooleanField,
    ConfigField,
    ConfigSchema,
    apply_defaults,
    validate_configuration,
)
from app.schemas.integration import (
    IntegrationCreate,
    IntegrationUpdate,
    IntegrationResponse,
    IntegrationDetailResponse,
    UserIntegrationResponse,
    UserIntegrationWithIntegration,
    ConnectRequest,
    ConfigurationUpdate,
    AuthorizationResult,
    ConnectionTestResult,
    DeleteResponse,
)
