import asyncio
from datetime import datetime, timezone
from uuid import UUID, uuid4

import httpx
import pytest

from app.client.api import MarketplaceAPI
from app.client.store import IntegrationStore
from app.client.wizard import ConnectionWizard, WizardStateError, WizardStep, validate_credentials
from app.config import get_settings
from app.enums import AuthType, ConnectionStatus
from app.schemas.integration import AuthorizationResult, IntegrationResponse, UserIntegrationResponse
from app.services.external import SimulatedAuthorizer

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_integration(auth_type, config_schema=None, name="Acme"):
    return IntegrationResponse(
        id=uuid4(),
        name=name,
        category="misc",
        status="AVAILABLE",
        auth_type=auth_type,
        config_schema=config_schema,
        created_at=NOW,
        updated_at=NOW,
    )


def run_wizard(app, integration_id, scenario, authorizer=None):
    async def run():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            api = MarketplaceAPI(http)
            store = IntegrationStore(api)
            integration = await api.get_integration(UUID(integration_id))
            wizard = ConnectionWizard(integration, store, authorizer=authorizer)
            return await scenario(wizard, store)

    return asyncio.run(run())


@pytest.mark.parametrize(
    "auth_type, credentials, error",
    [
        (AuthType.API_KEY, {}, "API Key is required"),
        (AuthType.API_KEY, {"apiKey": "  "}, "API Key is required"),
        (AuthType.API_KEY, {"apiKey": "sk"}, None),
        (AuthType.BASIC_AUTH, {"username": "u"}, "Username and password are required"),
        (AuthType.BASIC_AUTH, {"username": "u", "password": "p"}, None),
        (AuthType.WEBHOOK, {}, None),
    ],
)
def test_validate_credentials(auth_type, credentials, error) -> None:
    assert validate_credentials(auth_type, credentials) == error


def test_auth_step_blocks_until_credentials_valid() -> None:
    wizard = ConnectionWizard(make_integration(AuthType.BASIC_AUTH), store=None)
    wizard.set_credential("username", "admin")

    assert wizard.submit_auth() is False
    assert wizard.error == "Username and password are required"
    assert wizard.step == WizardStep.AUTH

    wizard.set_credential("password", "secret")
    assert wizard.submit_auth() is True
    assert wizard.error is None
    assert wizard.step == WizardStep.CONFIG


def test_webhook_needs_no_credentials() -> None:
    wizard = ConnectionWizard(make_integration(AuthType.WEBHOOK), store=None)
    assert wizard.submit_auth() is True


def test_credential_fields() -> None:
    stripe_like = make_integration(AuthType.API_KEY, {"webhookSecret": {"type": "string"}})
    assert ConnectionWizard(stripe_like, store=None).credential_fields() == ["apiKey", "webhookSecret"]
    assert ConnectionWizard(make_integration(AuthType.OAUTH), store=None).credential_fields() == []


def test_oauth_must_authorize(authorizer) -> None:
    wizard = ConnectionWizard(make_integration(AuthType.OAUTH), store=None, authorizer=authorizer)
    with pytest.raises(WizardStateError):
        wizard.submit_auth()

    assert asyncio.run(wizard.authorize()) is True
    assert wizard.step == WizardStep.CONFIG
    assert authorizer.calls == ["Acme"]


def test_oauth_failure_stays_on_auth(authorizer) -> None:
    authorizer.result = AuthorizationResult(success=False, message="User cancelled")
    wizard = ConnectionWizard(make_integration(AuthType.OAUTH), store=None, authorizer=authorizer)

    assert asyncio.run(wizard.authorize()) is False
    assert wizard.error == "User cancelled"
    assert wizard.step == WizardStep.AUTH
    assert wizard.is_loading is False


def test_oauth_timeout(authorizer) -> None:
    authorizer.delay = 1.0
    wizard = ConnectionWizard(make_integration(AuthType.OAUTH), store=None, authorizer=authorizer, timeout=0.05)

    assert asyncio.run(wizard.authorize()) is False
    assert wizard.error == "Authorization with Acme timed out"


def test_authorize_rejected_for_api_key() -> None:
    wizard = ConnectionWizard(make_integration(AuthType.API_KEY), store=None)
    with pytest.raises(WizardStateError):
        asyncio.run(wizard.authorize())


def test_config_step_validates_and_applies_defaults() -> None:
    schema = {
        "accountNumber": {"type": "string", "required": True},
        "notifications": {"type": "boolean", "default": True},
    }
    wizard = ConnectionWizard(make_integration(AuthType.WEBHOOK, schema), store=None)
    wizard.submit_auth()

    assert wizard.submit_config() is False
    assert wizard.error == "Account Number is required"
    assert wizard.step == WizardStep.CONFIG

    wizard.set_config_value("accountNumber", "123")
    assert wizard.submit_config() is True
    assert wizard.configuration == {"accountNumber": "123", "notifications": True}
    assert wizard.step == WizardStep.CONFIRM


def test_back_keeps_collected_input() -> None:
    wizard = ConnectionWizard(make_integration(AuthType.API_KEY), store=None)
    wizard.set_credential("apiKey", "sk")
    wizard.submit_auth()
    wizard.set_config_value("region", "eu")
    wizard.submit_config()

    wizard.back()
    assert wizard.step == WizardStep.CONFIG
    wizard.back()
    assert wizard.step == WizardStep.AUTH
    assert wizard.credentials == {"apiKey": "sk"}
    assert wizard.configuration == {"region": "eu"}


def test_actions_outside_their_step_are_rejected() -> None:
    wizard = ConnectionWizard(make_integration(AuthType.API_KEY), store=None)
    with pytest.raises(WizardStateError):
        wizard.submit_config()
    with pytest.raises(WizardStateError):
        asyncio.run(wizard.submit())


def test_summary_masks_secrets() -> None:
    schema = {
        "webhookSecret": {"type": "string", "secret": True},
        "region": {"type": "string"},
    }
    wizard = ConnectionWizard(make_integration(AuthType.API_KEY, schema), store=None)
    wizard.set_config_value("webhookSecret", "whsec_123")
    wizard.set_config_value("region", "eu")

    assert wizard.summary() == {
        "integration": "Acme",
        "authType": "API Key",
        "settings": {"Webhook Secret": "••••••••", "Region": "eu"},
    }


def test_reconnect_starts_from_existing_configuration() -> None:
    integration = make_integration(AuthType.API_KEY)
    existing = UserIntegrationResponse(
        id=uuid4(),
        user_id="default-user",
        integration_id=integration.id,
        status=ConnectionStatus.DISCONNECTED,
        configuration={"region": "eu"},
        created_at=NOW,
        updated_at=NOW,
    )
    wizard = ConnectionWizard(integration, store=None, existing=existing)
    assert wizard.configuration == {"region": "eu"}
    assert wizard.credentials == {}

    wizard.set_config_value("region", "us")
    assert existing.configuration == {"region": "eu"}


def test_stripe_wizard_end_to_end(overrides, seeded) -> None:
    async def scenario(wizard, store):
        assert wizard.submit_auth() is False
        wizard.set_credential("apiKey", "sk_test")
        assert wizard.submit_auth() is True
        wizard.set_config_value("webhookSecret", "whsec")
        assert wizard.submit_config() is True
        assert await wizard.submit() is True
        return wizard, store.state

    wizard, state = run_wizard(overrides, seeded["Stripe"], scenario)
    assert wizard.step == WizardStep.CLOSED
    assert wizard.error is None
    row = state.user_integration_by_id(UUID(seeded["Stripe"]))
    assert row.status == ConnectionStatus.CONNECTED
    assert row.credentials == {"apiKey": "sk_test"}
    assert row.configuration == {"webhookSecret": "whsec"}


def test_submit_with_server_side_authorization_failure(overrides, seeded, authorizer) -> None:
    authorizer.result = AuthorizationResult(success=False, message="Workspace not found")

    async def scenario(wizard, store):
        wizard.step = WizardStep.CONFIG
        wizard.set_config_value("channelId", "C1")
        wizard.submit_config()
        assert await wizard.submit() is False
        return wizard, store.state

    wizard, state = run_wizard(overrides, seeded["Slack"], scenario)
    assert wizard.step == WizardStep.CONFIRM
    assert wizard.error == "Workspace not found"
    assert state.user_integration_by_id(UUID(seeded["Slack"])).status == ConnectionStatus.ERROR


def test_submit_api_error_stays_on_confirm(overrides, seeded) -> None:
    async def scenario(wizard, store):
        wizard.set_credential("apiKey", "fx")
        wizard.submit_auth()
        wizard.set_config_value("accountNumber", "1")
        wizard.set_config_value("meterNumber", "2")
        wizard.submit_config()
        # Catalog entry removed after the wizard opened
        await store.api.client.delete(f"/api/integrations/{wizard.integration.id}")
        assert await wizard.submit() is False
        return wizard

    wizard = run_wizard(overrides, seeded["FedEx"], scenario)
    assert wizard.step == WizardStep.CONFIRM
    assert wizard.error == "Integration not found"
    assert wizard.is_loading is False


def test_default_authorizer_uses_configured_round_trip(monkeypatch) -> None:
    monkeypatch.setattr(get_settings(), "OAUTH_ROUND_TRIP_SECONDS", 0.25)
    wizard = ConnectionWizard(make_integration(AuthType.OAUTH), store=None)
    assert isinstance(wizard.authorizer, SimulatedAuthorizer)
    assert wizard.authorizer.delay == 0.25
