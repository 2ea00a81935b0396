import asyncio
from uuid import UUID, uuid4

import httpx
import pytest

from app.client.api import APIError, MarketplaceAPI
from app.client.store import IntegrationStore
from app.enums import ConnectionStatus
from app.schemas.integration import UserIntegrationWithIntegration


def run_with_store(app, scenario):
    async def run():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            return await scenario(IntegrationStore(MarketplaceAPI(http)))

    return asyncio.run(run())


def test_load_integrations(overrides, seeded) -> None:
    async def scenario(store):
        await store.load_integrations()
        return store.state

    state = run_with_store(overrides, scenario)
    assert len(state.integrations) == 6
    assert state.is_loading is False
    assert state.error is None


def test_load_integrations_with_filters(overrides, seeded) -> None:
    async def scenario(store):
        await store.load_integrations(category="payment")
        return store.state

    state = run_with_store(overrides, scenario)
    assert [i.name for i in state.integrations] == ["Stripe"]


def test_connect_merges_returned_row(overrides, seeded) -> None:
    stripe_id = UUID(seeded["Stripe"])

    async def scenario(store):
        await store.load_integrations()
        connection = await store.connect_integration(stripe_id, credentials={"apiKey": "sk"})
        return store.state, connection

    state, connection = run_with_store(overrides, scenario)
    assert connection.status == ConnectionStatus.CONNECTED
    assert state.is_connected(stripe_id)
    assert [i.name for i in state.filtered_integrations()][-1] == "Stripe"


def test_disconnect_keeps_cached_catalog_entry(overrides, seeded) -> None:
    stripe_id = UUID(seeded["Stripe"])

    async def scenario(store):
        await store.connect_integration(stripe_id, credentials={"apiKey": "sk"}, configuration={"mode": "test"})
        await store.load_user_integrations()
        await store.disconnect_integration(stripe_id)
        return store.state

    state = run_with_store(overrides, scenario)
    row = state.user_integration_by_id(stripe_id)
    assert isinstance(row, UserIntegrationWithIntegration)
    assert row.integration.name == "Stripe"
    assert row.status == ConnectionStatus.DISCONNECTED
    assert row.configuration == {"mode": "test"}
    assert not state.is_connected(stripe_id)


def test_update_config_and_test_connection(overrides, seeded, tester) -> None:
    fedex_id = UUID(seeded["FedEx"])

    async def scenario(store):
        await store.connect_integration(fedex_id, credentials={"apiKey": "fx"})
        await store.update_integration_config(fedex_id, {"accountNumber": "123"})
        result = await store.test_connection(fedex_id)
        return store.state, result

    state, result = run_with_store(overrides, scenario)
    assert state.user_integration_by_id(fedex_id).configuration == {"accountNumber": "123"}
    assert result.success is True
    assert tester.calls[0][2] == {"accountNumber": "123"}


def test_failed_action_records_error_and_raises(overrides, seeded) -> None:
    async def scenario(store):
        with pytest.raises(APIError) as exc_info:
            await store.disconnect_integration(uuid4())
        return store.state, exc_info.value

    state, error = run_with_store(overrides, scenario)
    assert error.status_code == 404
    assert error.message == "Integration not connected"
    assert state.error == "Integration not connected"
    assert state.is_loading is False
    assert state.user_integrations == ()


def test_next_action_clears_previous_error(overrides, seeded) -> None:
    async def scenario(store):
        with pytest.raises(APIError):
            await store.disconnect_integration(uuid4())
        await store.load_integrations()
        return store.state

    assert run_with_store(overrides, scenario).error is None


def test_load_failure_only_records_error() -> None:
    class BrokenAPI:
        async def list_integrations(self, category=None, search=None):
            raise APIError(500, "Internal server error")

    store = IntegrationStore(BrokenAPI())
    asyncio.run(store.load_integrations())
    assert store.state.error == "Internal server error"
    assert store.state.is_loading is False


def test_listeners_see_every_change() -> None:
    store = IntegrationStore(api=None)
    seen = []
    unsubscribe = store.subscribe(lambda state: seen.append(state.search_query))

    store.set_search_query("sl")
    store.set_search_query("sla")
    unsubscribe()
    store.set_search_query("slack")

    assert seen == ["sl", "sla"]
    assert store.state.search_query == "slack"


def test_selected_category() -> None:
    store = IntegrationStore(api=None)
    store.set_selected_category("shipping")
    assert store.state.selected_category == "shipping"


def test_mutation_is_not_started_when_dispatch_fails() -> None:
    class RecordingAPI:
        def __init__(self):
            self.calls = []

        def disconnect(self, integration_id):
            self.calls.append(integration_id)

            async def respond():
                raise AssertionError("request should not be sent")

            return respond()

    api = RecordingAPI()
    store = IntegrationStore(api)

    def failing_listener(state):
        raise RuntimeError("listener failed")

    store.subscribe(failing_listener)
    with pytest.raises(RuntimeError):
        asyncio.run(store.disconnect_integration(uuid4()))
    assert api.calls == []
