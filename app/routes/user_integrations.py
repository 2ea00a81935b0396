from fastapi import APIRouter, Depends
from app.schemas.integration import UserIntegrationWithIntegration
from app.services.connections import ConnectionService, get_connection_service

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/integrations", response_model=list[UserIntegrationWithIntegration])
async def list_user_integrations(service: ConnectionService = Depends(get_connection_service)):
    connections = await service.list_user_integrations()
    return [UserIntegrationWithIntegration.model_validate(ui) for ui in connections]
