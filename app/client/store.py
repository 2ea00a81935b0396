import logging
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID
from app.client import state as reducers
from app.client.api import MarketplaceAPI
from app.client.state import MarketplaceState
from app.schemas.integration import ConnectionTestResult, UserIntegrationResponse

logger = logging.getLogger(__name__)

Listener = Callable[[MarketplaceState], None]


class IntegrationStore:
    """
    Holds the current ``MarketplaceState`` and runs the async actions against the API.

    Every mutation merges the row returned by the server into the cached list
    instead of refetching, so the cache reflects the last response only.
    """

    def __init__(self, api: MarketplaceAPI, state: Optional[MarketplaceState] = None):
        self.api = api
        self.state = state or MarketplaceState()
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, reducer: Callable[..., MarketplaceState], *args: Any, **kwargs: Any) -> MarketplaceState:
        self.state = reducer(self.state, *args, **kwargs)
        for listener in list(self._listeners):
            listener(self.state)
        return self.state

    def set_search_query(self, query: str) -> None:
        self.dispatch(reducers.set_search_query, query)

    def set_selected_category(self, category: str) -> None:
        self.dispatch(reducers.set_selected_category, category)

    def _start(self) -> None:
        self.dispatch(reducers.set_loading, True)
        self.dispatch(reducers.set_error, None)

    def _fail(self, action: str, error: Exception) -> None:
        message = getattr(error, "message", None) or str(error) or "Unknown error"
        logger.warning("%s failed: %s", action, message)
        self.dispatch(reducers.set_error, message)

    async def load_integrations(self, category: Optional[str] = None, search: Optional[str] = None) -> None:
        self._start()
        try:
            integrations = await self.api.list_integrations(category=category, search=search)
            self.dispatch(reducers.set_integrations, integrations)
        except Exception as e:
            self._fail("Loading integrations", e)
        finally:
            self.dispatch(reducers.set_loading, False)

    async def load_user_integrations(self) -> None:
        self._start()
        try:
            connections = await self.api.list_user_integrations()
            self.dispatch(reducers.set_user_integrations, connections)
        except Exception as e:
            self._fail("Loading connections", e)
        finally:
            self.dispatch(reducers.set_loading, False)

    async def _mutate(
        self, action: str, call: Callable[[], Awaitable[UserIntegrationResponse]]
    ) -> UserIntegrationResponse:
        self._start()
        try:
            connection = await call()
            self.dispatch(reducers.merge_user_integration, connection)
            return connection
        except Exception as e:
            self._fail(action, e)
            raise
        finally:
            self.dispatch(reducers.set_loading, False)

    async def connect_integration(
        self,
        integration_id: UUID,
        credentials: Optional[dict[str, Any]] = None,
        configuration: Optional[dict[str, Any]] = None,
    ) -> UserIntegrationResponse:
        return await self._mutate(
            "Connecting integration",
            lambda: self.api.connect(integration_id, credentials=credentials, configuration=configuration),
        )

    async def disconnect_integration(self, integration_id: UUID) -> UserIntegrationResponse:
        return await self._mutate("Disconnecting integration", lambda: self.api.disconnect(integration_id))

    async def update_integration_config(
        self, integration_id: UUID, configuration: dict[str, Any]
    ) -> UserIntegrationResponse:
        return await self._mutate(
            "Updating configuration",
            lambda: self.api.update_config(integration_id, configuration),
        )

    async def test_connection(self, integration_id: UUID) -> ConnectionTestResult:
        self._start()
        try:
            return await self.api.test_connection(integration_id)
        except Exception as e:
            self._fail("Testing connection", e)
            raise
        finally:
            self.dispatch(reducers.set_loading, False)
