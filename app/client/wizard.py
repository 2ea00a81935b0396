"""
Connection wizard: auth -> config -> confirm.

The wizard keeps everything the user has entered while moving back and forth
between steps. Nothing is sent to the server until ``submit()`` on the
confirm step; a failed submit stays on confirm so the user can retry.
"""

import enum
import logging
import httpx
from typing import Any, Optional
from app.client.api import APIError
from app.client.state import Connection
from app.client.store import IntegrationStore
from app.enums import AuthType, ConnectionStatus, AUTH_TYPE_LABELS
from app.schemas.config_schema import StringField, apply_defaults, field_label, validate_configuration
from app.schemas.integration import IntegrationResponse
from app.services.external import ExternalAuthorizer, authorize_with_timeout, get_authorizer

logger = logging.getLogger(__name__)


class WizardStep(str, enum.Enum):
    AUTH = "auth"
    CONFIG = "config"
    CONFIRM = "confirm"
    CLOSED = "closed"


class WizardStateError(Exception):
    """An action was called on a step that does not offer it."""


CREDENTIAL_FIELDS = {
    AuthType.API_KEY: ["apiKey"],
    AuthType.BASIC_AUTH: ["username", "password"],
    AuthType.WEBHOOK: ["webhookUrl", "secret"],
    AuthType.OAUTH: [],
}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_credentials(auth_type: AuthType, credentials: dict[str, Any]) -> Optional[str]:
    if auth_type == AuthType.API_KEY and _blank(credentials.get("apiKey")):
        return "API Key is required"
    if auth_type == AuthType.BASIC_AUTH and (
        _blank(credentials.get("username")) or _blank(credentials.get("password"))
    ):
        return "Username and password are required"
    return None


class ConnectionWizard:
    def __init__(
        self,
        integration: IntegrationResponse,
        store: IntegrationStore,
        authorizer: Optional[ExternalAuthorizer] = None,
        existing: Optional[Connection] = None,
        timeout: float = 10.0,
    ):
        self.integration = integration
        self.store = store
        self.authorizer = authorizer or get_authorizer()
        self.timeout = timeout
        self.step = WizardStep.AUTH
        self.credentials: dict[str, Any] = {}
        # Reconnects start from the stored configuration
        self.configuration: dict[str, Any] = dict(existing.configuration or {}) if existing else {}
        self.error: Optional[str] = None
        self.is_loading = False

    @property
    def schema(self):
        return self.integration.config_schema or {}

    @property
    def requires_authorization(self) -> bool:
        return self.integration.auth_type == AuthType.OAUTH

    def credential_fields(self) -> list[str]:
        fields = list(CREDENTIAL_FIELDS[self.integration.auth_type])
        if self.integration.auth_type == AuthType.API_KEY and "webhookSecret" in self.schema:
            fields.append("webhookSecret")
        return fields

    def set_credential(self, name: str, value: Any) -> None:
        self.credentials[name] = value

    def set_config_value(self, name: str, value: Any) -> None:
        self.configuration[name] = value

    def _expect(self, step: WizardStep) -> None:
        if self.step != step:
            raise WizardStateError(f"Expected the {step.value} step, wizard is on {self.step.value}")

    def submit_auth(self) -> bool:
        self._expect(WizardStep.AUTH)
        if self.requires_authorization:
            raise WizardStateError(f"{self.integration.name} connects through authorize()")
        error = validate_credentials(self.integration.auth_type, self.credentials)
        if error:
            self.error = error
            return False
        self.error = None
        self.step = WizardStep.CONFIG
        return True

    async def authorize(self) -> bool:
        self._expect(WizardStep.AUTH)
        if not self.requires_authorization:
            raise WizardStateError(f"{self.integration.name} does not use OAuth")
        self.is_loading = True
        self.error = None
        try:
            result = await authorize_with_timeout(self.authorizer, self.integration, self.credentials, self.timeout)
        finally:
            self.is_loading = False
        if not result.success:
            self.error = result.message or "OAuth connection failed"
            return False
        self.step = WizardStep.CONFIG
        return True

    def submit_config(self) -> bool:
        self._expect(WizardStep.CONFIG)
        configuration = apply_defaults(self.schema, self.configuration)
        # A required setting may already have been given as a credential (e.g. apiKey)
        errors = validate_configuration(self.schema, {**self.credentials, **configuration})
        if errors:
            self.error = errors[0]
            return False
        self.configuration = configuration
        self.error = None
        self.step = WizardStep.CONFIRM
        return True

    def back(self) -> None:
        if self.step == WizardStep.CONFIRM:
            self.step = WizardStep.CONFIG
        elif self.step == WizardStep.CONFIG:
            self.step = WizardStep.AUTH
        self.error = None

    def summary(self) -> dict[str, Any]:
        """What the confirm step shows: auth method and settings, secrets masked."""
        settings = {}
        for name, value in self.configuration.items():
            field = self.schema.get(name)
            secret = isinstance(field, StringField) and field.secret
            settings[field_label(name)] = "••••••••" if secret and value else value
        return {
            "integration": self.integration.name,
            "authType": AUTH_TYPE_LABELS[self.integration.auth_type],
            "settings": settings,
        }

    async def submit(self) -> bool:
        self._expect(WizardStep.CONFIRM)
        self.is_loading = True
        self.error = None
        try:
            connection = await self.store.connect_integration(
                self.integration.id,
                credentials=self.credentials or None,
                configuration=self.configuration,
            )
        except APIError as e:
            self.error = e.message
            return False
        except httpx.HTTPError as e:
            self.error = str(e) or "Connection failed"
            return False
        finally:
            self.is_loading = False

        if connection.status == ConnectionStatus.ERROR:
            self.error = connection.last_error or "Connection failed"
            return False

        logger.info("Connected %s", self.integration.name)
        self.step = WizardStep.CLOSED
        return True
