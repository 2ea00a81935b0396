"""
External collaborators of the connection lifecycle.

Real providers would perform an OAuth round trip or hit the provider's API to
check credentials. The simulated implementations wait for a fixed delay and
succeed; tests inject their own implementations through the FastAPI
dependencies at the bottom of this module.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from app.config import get_settings
from app.schemas.integration import AuthorizationResult, ConnectionTestResult

logger = logging.getLogger(__name__)


class ExternalAuthorizer(ABC):
    @abstractmethod
    async def authorize(self, integration: Any, credentials: Optional[dict]) -> AuthorizationResult:
        """Run the provider's authorization flow for ``integration``."""
        pass


class ConnectionTester(ABC):
    @abstractmethod
    async def test(
        self, integration: Any, credentials: Optional[dict], configuration: Optional[dict]
    ) -> ConnectionTestResult:
        """Check that the stored credentials and configuration work against the provider."""
        pass


class SimulatedAuthorizer(ExternalAuthorizer):
    def __init__(self, delay: float = 1.0):
        self.delay = delay

    async def authorize(self, integration: Any, credentials: Optional[dict]) -> AuthorizationResult:
        await asyncio.sleep(self.delay)
        return AuthorizationResult(success=True, message=f"Authorized with {integration.name}")


class SimulatedConnectionTester(ConnectionTester):
    def __init__(self, delay: float = 2.0):
        self.delay = delay

    async def test(
        self, integration: Any, credentials: Optional[dict], configuration: Optional[dict]
    ) -> ConnectionTestResult:
        await asyncio.sleep(self.delay)
        return ConnectionTestResult(
            success=True,
            message="Connection test successful! Integration is working properly.",
        )


async def authorize_with_timeout(
    authorizer: ExternalAuthorizer,
    integration: Any,
    credentials: Optional[dict],
    timeout: float,
) -> AuthorizationResult:
    try:
        return await asyncio.wait_for(authorizer.authorize(integration, credentials), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Authorization with %s timed out after %ss", integration.name, timeout)
        return AuthorizationResult(success=False, message=f"Authorization with {integration.name} timed out")
    except Exception as e:
        logger.exception("Authorization with %s failed", integration.name)
        return AuthorizationResult(success=False, message=f"Authorization with {integration.name} failed: {e}")


async def run_connection_test(
    tester: ConnectionTester,
    integration: Any,
    credentials: Optional[dict],
    configuration: Optional[dict],
    timeout: float,
) -> ConnectionTestResult:
    try:
        return await asyncio.wait_for(tester.test(integration, credentials, configuration), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Connection test for %s timed out after %ss", integration.name, timeout)
        return ConnectionTestResult(success=False, message="Connection test timed out")
    except Exception as e:
        logger.exception("Connection test for %s failed", integration.name)
        return ConnectionTestResult(success=False, message=f"Connection test failed: {e}")


def get_authorizer() -> ExternalAuthorizer:
    return SimulatedAuthorizer(delay=get_settings().OAUTH_ROUND_TRIP_SECONDS)


def get_connection_tester() -> ConnectionTester:
    return SimulatedConnectionTester(delay=get_settings().CONNECTION_TEST_SECONDS)
