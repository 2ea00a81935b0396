import logging
from typing import Any, Optional
from uuid import UUID
import httpx
from app.schemas.integration import (
    IntegrationResponse,
    IntegrationDetailResponse,
    UserIntegrationResponse,
    UserIntegrationWithIntegration,
    ConnectionTestResult,
)

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Non-2xx response from the marketplace API."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class MarketplaceAPI:
    """Thin async wrapper around the marketplace HTTP endpoints."""

    def __init__(self, client: httpx.AsyncClient, prefix: str = "/api"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, base_url: str, timeout: float = 30.0) -> "MarketplaceAPI":
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout))

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self.client.request(method, f"{self.prefix}{path}", **kwargs)
        if response.is_error:
            try:
                message = response.json().get("error") or response.reason_phrase
            except ValueError:
                message = response.text or response.reason_phrase
            logger.warning("%s %s failed with %s: %s", method, path, response.status_code, message)
            raise APIError(response.status_code, message)
        return response.json()

    async def list_integrations(
        self, category: Optional[str] = None, search: Optional[str] = None
    ) -> list[IntegrationResponse]:
        params = {}
        if category:
            params["category"] = category
        if search:
            params["search"] = search
        data = await self._request("GET", "/integrations", params=params)
        return [IntegrationResponse.model_validate(item) for item in data]

    async def get_integration(self, integration_id: UUID) -> IntegrationDetailResponse:
        data = await self._request("GET", f"/integrations/{integration_id}")
        return IntegrationDetailResponse.model_validate(data)

    async def connect(
        self,
        integration_id: UUID,
        credentials: Optional[dict[str, Any]] = None,
        configuration: Optional[dict[str, Any]] = None,
    ) -> UserIntegrationResponse:
        data = await self._request(
            "POST",
            f"/integrations/{integration_id}/connect",
            json={"credentials": credentials, "configuration": configuration},
        )
        return UserIntegrationResponse.model_validate(data)

    async def disconnect(self, integration_id: UUID) -> UserIntegrationResponse:
        data = await self._request("POST", f"/integrations/{integration_id}/disconnect")
        return UserIntegrationResponse.model_validate(data)

    async def update_config(self, integration_id: UUID, configuration: dict[str, Any]) -> UserIntegrationResponse:
        data = await self._request(
            "PUT",
            f"/integrations/{integration_id}/config",
            json={"configuration": configuration},
        )
        return UserIntegrationResponse.model_validate(data)

    async def test_connection(self, integration_id: UUID) -> ConnectionTestResult:
        data = await self._request("POST", f"/integrations/{integration_id}/test")
        return ConnectionTestResult.model_validate(data)

    async def list_user_integrations(self) -> list[UserIntegrationWithIntegration]:
        data = await self._request("GET", "/user/integrations")
        return [UserIntegrationWithIntegration.model_validate(item) for item in data]
