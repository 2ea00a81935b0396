from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from app.schemas.integration import (
    IntegrationCreate,
    IntegrationUpdate,
    IntegrationResponse,
    IntegrationDetailResponse,
    UserIntegrationResponse,
    ConnectRequest,
    ConfigurationUpdate,
    ConnectionTestResult,
    DeleteResponse,
)
from app.services.connections import ConnectionService, get_connection_service

router = APIRouter(prefix="/integrations", tags=["integrations"])


@router.get("", response_model=list[IntegrationResponse])
async def list_integrations(
    category: Optional[str] = None,
    search: Optional[str] = None,
    service: ConnectionService = Depends(get_connection_service),
):
    integrations = await service.list_catalog(category=category, search=search)
    return [IntegrationResponse.model_validate(i) for i in integrations]


@router.post("", response_model=IntegrationResponse, status_code=status.HTTP_201_CREATED)
async def create_integration(
    payload: IntegrationCreate,
    service: ConnectionService = Depends(get_connection_service),
):
    integration = await service.create_catalog_entry(payload)
    return IntegrationResponse.model_validate(integration)


@router.get("/{integration_id}", response_model=IntegrationDetailResponse)
async def get_integration(
    integration_id: UUID,
    service: ConnectionService = Depends(get_connection_service),
):
    integration = await service.get_catalog_entry(integration_id)
    connections = [UserIntegrationResponse.model_validate(ui) for ui in service.user_connections(integration)]
    return IntegrationDetailResponse.model_validate(integration).model_copy(
        update={"user_integrations": connections}
    )


@router.put("/{integration_id}", response_model=IntegrationResponse)
async def update_integration(
    integration_id: UUID,
    payload: IntegrationUpdate,
    service: ConnectionService = Depends(get_connection_service),
):
    integration = await service.update_catalog_entry(integration_id, payload)
    return IntegrationResponse.model_validate(integration)


@router.delete("/{integration_id}", response_model=DeleteResponse)
async def delete_integration(
    integration_id: UUID,
    service: ConnectionService = Depends(get_connection_service),
):
    await service.delete_catalog_entry(integration_id)
    return DeleteResponse(success=True)


@router.post("/{integration_id}/connect", response_model=UserIntegrationResponse)
async def connect_integration(
    integration_id: UUID,
    payload: Optional[ConnectRequest] = None,
    service: ConnectionService = Depends(get_connection_service),
):
    payload = payload or ConnectRequest()
    connection = await service.connect(
        integration_id,
        credentials=payload.credentials,
        configuration=payload.configuration,
    )
    return UserIntegrationResponse.model_validate(connection)


@router.post("/{integration_id}/disconnect", response_model=UserIntegrationResponse)
async def disconnect_integration(
    integration_id: UUID,
    service: ConnectionService = Depends(get_connection_service),
):
    connection = await service.disconnect(integration_id)
    return UserIntegrationResponse.model_validate(connection)


@router.put("/{integration_id}/config", response_model=UserIntegrationResponse)
async def update_integration_config(
    integration_id: UUID,
    payload: ConfigurationUpdate,
    service: ConnectionService = Depends(get_connection_service),
):
    connection = await service.update_configuration(integration_id, payload.configuration)
    return UserIntegrationResponse.model_validate(connection)


@router.post("/{integration_id}/test", response_model=ConnectionTestResult)
async def test_integration_connection(
    integration_id: UUID,
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.test_connection(integration_id)
