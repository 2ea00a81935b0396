"""
Catalog and connection operations for the implicit marketplace user.

One ``ConnectionService`` is built per request around the request's session.
Every connect is a single ``INSERT ... ON CONFLICT DO UPDATE`` keyed on
``(user_id, integration_id)`` so concurrent connects can never produce two rows.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Optional
from uuid import UUID
from fastapi import Depends
from sqlalchemy import select, or_, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import Settings, get_settings
from app.database import get_db
from app.enums import AuthType, ConnectionStatus
from app.models import Integration, UserIntegration
from app.models.integration import utcnow
from app.schemas.config_schema import apply_defaults, parse_schema, validate_configuration
from app.schemas.integration import (
    IntegrationCreate,
    IntegrationUpdate,
    ConnectionTestResult,
)
from app.services.external import (
    ExternalAuthorizer,
    ConnectionTester,
    authorize_with_timeout,
    run_connection_test,
    get_authorizer,
    get_connection_tester,
)
from app.utils.auth import get_current_user_id
from app.utils.errors import NotFoundError, ConflictError, ConfigurationError

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# Rows in these states block deleting their catalog entry
_ACTIVE_STATUSES = (ConnectionStatus.CONNECTED, ConnectionStatus.CONNECTING)
_REQUIRED_COLUMNS = ("name", "category", "status", "auth_type")


class ConnectionService:
    def __init__(
        self,
        db: AsyncSession,
        user_id: str,
        authorizer: ExternalAuthorizer,
        tester: ConnectionTester,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.user_id = user_id
        self.authorizer = authorizer
        self.tester = tester
        self.settings = settings or get_settings()

    # ─── Catalog ──────────────────────────────────────────────────────────────

    async def list_catalog(self, category: Optional[str] = None, search: Optional[str] = None) -> list[Integration]:
        stmt = select(Integration)
        if category and category != "all":
            stmt = stmt.where(Integration.category == category)
        if search:
            term = search.lower()
            stmt = stmt.where(
                or_(
                    func.lower(Integration.name).contains(term, autoescape=True),
                    func.lower(Integration.description).contains(term, autoescape=True),
                )
            )
        result = await self.db.execute(stmt.order_by(Integration.name.asc()))
        return list(result.scalars().all())

    async def get_catalog_entry(self, integration_id: UUID) -> Integration:
        result = await self.db.execute(
            select(Integration)
            .where(Integration.id == integration_id)
            .execution_options(populate_existing=True)
        )
        integration = result.scalar_one_or_none()
        if not integration:
            raise NotFoundError("Integration not found")
        return integration

    def user_connections(self, integration: Integration) -> list[UserIntegration]:
        return [ui for ui in integration.user_integrations if ui.user_id == self.user_id]

    async def create_catalog_entry(self, payload: IntegrationCreate) -> Integration:
        data = payload.model_dump()
        data["config_schema"] = _dump_schema(payload)
        integration = Integration(**data)
        self.db.add(integration)
        await self.db.flush()
        logger.info("Created catalog entry %s (%s)", integration.name, integration.id)
        return integration

    async def update_catalog_entry(self, integration_id: UUID, payload: IntegrationUpdate) -> Integration:
        integration = await self.get_catalog_entry(integration_id)

        update_data = payload.model_dump(exclude_unset=True)
        if "config_schema" in update_data:
            update_data["config_schema"] = _dump_schema(payload)

        for key, value in update_data.items():
            if value is None and key in _REQUIRED_COLUMNS:
                continue
            setattr(integration, key, value)

        await self.db.flush()
        return integration

    async def delete_catalog_entry(self, integration_id: UUID) -> None:
        integration = await self.get_catalog_entry(integration_id)
        active = [ui for ui in integration.user_integrations if ui.status in _ACTIVE_STATUSES]
        if active:
            raise ConflictError(f"{integration.name} has active connections; disconnect them first")
        await self.db.delete(integration)
        await self.db.flush()
        logger.info("Deleted catalog entry %s (%s)", integration.name, integration.id)

    # ─── Connections ──────────────────────────────────────────────────────────

    async def connect(
        self,
        integration_id: UUID,
        credentials: Optional[dict[str, Any]] = None,
        configuration: Optional[dict[str, Any]] = None,
    ) -> UserIntegration:
        integration = await self.get_catalog_entry(integration_id)
        if configuration is not None:
            self._check_configuration(integration, configuration, credentials)

        needs_authorization = integration.auth_type == AuthType.OAUTH
        status = ConnectionStatus.CONNECTING if needs_authorization else ConnectionStatus.CONNECTED
        connection = await self._upsert_connection(integration.id, status, credentials, configuration)

        if needs_authorization:
            # Make CONNECTING visible to other requests during the round trip
            await self.db.commit()
            try:
                result = await authorize_with_timeout(
                    self.authorizer,
                    integration,
                    credentials,
                    timeout=self.settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
                )
            except asyncio.CancelledError:
                # The CONNECTING row is already committed; never leave it behind
                logger.warning("Connecting %s was interrupted", integration.name)
                self._mark_failed(connection, "Authorization interrupted")
                await asyncio.shield(self.db.commit())
                raise
            if result.success:
                connection.status = ConnectionStatus.CONNECTED
                connection.connected_at = utcnow()
            else:
                self._mark_failed(connection, result.message)
                logger.warning("Connecting %s failed: %s", integration.name, result.message)
            await self.db.flush()

        logger.info("Connection to %s is %s", integration.name, connection.status.value)
        return connection

    async def disconnect(self, integration_id: UUID) -> UserIntegration:
        connection = await self._get_connection(integration_id)
        connection.status = ConnectionStatus.DISCONNECTED
        connection.disconnected_at = utcnow()
        connection.credentials = None
        connection.last_error = None
        await self.db.flush()
        logger.info("Disconnected integration %s", integration_id)
        return connection

    async def update_configuration(self, integration_id: UUID, configuration: dict[str, Any]) -> UserIntegration:
        connection = await self._get_connection(integration_id)
        self._check_configuration(connection.integration, configuration, connection.credentials)
        connection.configuration = configuration
        await self.db.flush()
        return connection

    async def list_user_integrations(self) -> list[UserIntegration]:
        result = await self.db.execute(
            select(UserIntegration)
            .where(UserIntegration.user_id == self.user_id)
            .order_by(UserIntegration.connected_at.desc().nullslast(), UserIntegration.created_at.desc())
        )
        return list(result.scalars().all())

    async def test_connection(self, integration_id: UUID) -> ConnectionTestResult:
        connection = await self._get_connection(integration_id)
        return await run_connection_test(
            self.tester,
            connection.integration,
            connection.credentials,
            connection.configuration,
            timeout=self.settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
        )

    # ─── Helpers ──────────────────────────────────────────────────────────────

    async def _get_connection(self, integration_id: UUID) -> UserIntegration:
        result = await self.db.execute(
            select(UserIntegration).where(
                UserIntegration.user_id == self.user_id,
                UserIntegration.integration_id == integration_id,
            )
            .execution_options(populate_existing=True)
        )
        connection = result.scalar_one_or_none()
        if not connection:
            raise NotFoundError("Integration not connected")
        return connection

    @staticmethod
    def _mark_failed(connection: UserIntegration, message: str) -> None:
        connection.status = ConnectionStatus.ERROR
        connection.credentials = None
        connection.connected_at = None
        connection.last_error = message

    def _check_configuration(
        self,
        integration: Integration,
        configuration: dict[str, Any],
        credentials: Optional[dict[str, Any]],
    ) -> None:
        if not self.settings.VALIDATE_CONFIGURATION:
            return
        schema = parse_schema(integration.config_schema)
        # Required settings may be supplied as credentials (e.g. apiKey)
        values = {**(credentials or {}), **apply_defaults(schema, configuration)}
        errors = validate_configuration(schema, values)
        if errors:
            raise ConfigurationError(errors)

    async def _upsert_connection(
        self,
        integration_id: UUID,
        status: ConnectionStatus,
        credentials: Optional[dict[str, Any]],
        configuration: Optional[dict[str, Any]],
    ) -> UserIntegration:
        dialect = self.db.bind.dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Upsert is not supported on {dialect}")

        now = utcnow()
        connected_at: Optional[datetime] = now if status == ConnectionStatus.CONNECTED else None
        stmt = insert(UserIntegration).values(
            id=uuid.uuid4(),
            user_id=self.user_id,
            integration_id=integration_id,
            status=status,
            credentials=credentials,
            configuration=configuration,
            connected_at=connected_at,
            disconnected_at=None,
            last_error=None,
            created_at=now,
            updated_at=now,
        )

        # Reconnecting without a configuration keeps the stored one
        changes: dict[str, Any] = {
            "status": status,
            "credentials": credentials,
            "disconnected_at": None,
            "last_error": None,
            "updated_at": now,
        }
        if configuration is not None:
            changes["configuration"] = configuration
        if connected_at is not None:
            changes["connected_at"] = connected_at

        await self.db.execute(
            stmt.on_conflict_do_update(index_elements=["user_id", "integration_id"], set_=changes)
        )

        result = await self.db.execute(
            select(UserIntegration)
            .where(
                UserIntegration.user_id == self.user_id,
                UserIntegration.integration_id == integration_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()


def _dump_schema(payload: IntegrationCreate | IntegrationUpdate) -> Optional[dict[str, Any]]:
    if payload.config_schema is None:
        return None
    return {name: field.model_dump(exclude_none=True) for name, field in payload.config_schema.items()}


async def get_connection_service(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    authorizer: ExternalAuthorizer = Depends(get_authorizer),
    tester: ConnectionTester = Depends(get_connection_tester),
) -> ConnectionService:
    return ConnectionService(db, user_id, authorizer, tester)
