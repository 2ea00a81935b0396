"""
Client-side mirror of the catalog and the user's connections.

``MarketplaceState`` is immutable. The reducer functions below each return a
new state; derived views are plain methods recomputed on every call, since the
lists involved are small.
"""

from pathlib import Path
from typing import Any, Optional, Union
from uuid import UUID
from pydantic import ConfigDict
from app.enums import ConnectionStatus, UNCONNECTABLE_STATUSES
from app.schemas.integration import (
    CamelModel,
    IntegrationResponse,
    UserIntegrationResponse,
    UserIntegrationWithIntegration,
    resolve_icon,
)

ALL_CATEGORIES = "all"

Connection = Union[UserIntegrationWithIntegration, UserIntegrationResponse]


class MarketplaceState(CamelModel):
    model_config = ConfigDict(frozen=True)

    integrations: tuple[IntegrationResponse, ...] = ()
    user_integrations: tuple[Connection, ...] = ()
    is_loading: bool = False
    error: Optional[str] = None
    search_query: str = ""
    selected_category: str = ALL_CATEGORIES

    # ─── Derived views ────────────────────────────────────────────────────────

    def filtered_integrations(self) -> list[IntegrationResponse]:
        query = self.search_query.lower()
        result = []
        for integration in self.integrations:
            matches_search = (
                not query
                or query in integration.name.lower()
                or query in (integration.description or "").lower()
            )
            matches_category = (
                self.selected_category == ALL_CATEGORIES or integration.category == self.selected_category
            )
            if matches_search and matches_category:
                result.append(integration)
        return result

    def connected_integrations(self) -> list[Connection]:
        return [ui for ui in self.user_integrations if ui.status == ConnectionStatus.CONNECTED]

    def integration_by_id(self, integration_id: UUID) -> Optional[IntegrationResponse]:
        return next((i for i in self.integrations if i.id == integration_id), None)

    def user_integration_by_id(self, integration_id: UUID) -> Optional[Connection]:
        return next((ui for ui in self.user_integrations if ui.integration_id == integration_id), None)

    def is_connected(self, integration_id: UUID) -> bool:
        connection = self.user_integration_by_id(integration_id)
        return connection is not None and connection.status == ConnectionStatus.CONNECTED

    def connectable(self, integration_id: UUID) -> bool:
        integration = self.integration_by_id(integration_id)
        return integration is not None and integration.status not in UNCONNECTABLE_STATUSES

    def categories(self) -> list[str]:
        return sorted({i.category for i in self.integrations})

    def icon_for(self, integration_id: UUID) -> str:
        integration = self.integration_by_id(integration_id)
        return resolve_icon(integration.icon if integration else None)


# ─── Reducers ────────────────────────────────────────────────────────────────

def set_integrations(state: MarketplaceState, integrations: list[IntegrationResponse]) -> MarketplaceState:
    return state.model_copy(update={"integrations": tuple(integrations)})


def add_integration(state: MarketplaceState, integration: IntegrationResponse) -> MarketplaceState:
    return state.model_copy(update={"integrations": state.integrations + (integration,)})


def set_user_integrations(state: MarketplaceState, user_integrations: list[Connection]) -> MarketplaceState:
    return state.model_copy(update={"user_integrations": tuple(user_integrations)})


def merge_user_integration(state: MarketplaceState, connection: Connection) -> MarketplaceState:
    """Replace the row for the same integration, or append it if the cache has none."""
    merged = []
    replaced = False
    for existing in state.user_integrations:
        if existing.integration_id != connection.integration_id:
            merged.append(existing)
            continue
        # Mutation responses do not embed the catalog entry; keep the cached one
        if isinstance(existing, UserIntegrationWithIntegration) and not isinstance(
            connection, UserIntegrationWithIntegration
        ):
            connection = UserIntegrationWithIntegration(
                **connection.model_dump(), integration=existing.integration
            )
        merged.append(connection)
        replaced = True
    if not replaced:
        merged.append(connection)
    return state.model_copy(update={"user_integrations": tuple(merged)})


def update_user_integration(state: MarketplaceState, integration_id: UUID, **changes: Any) -> MarketplaceState:
    updated = tuple(
        ui.model_copy(update=changes) if ui.integration_id == integration_id else ui
        for ui in state.user_integrations
    )
    return state.model_copy(update={"user_integrations": updated})


def remove_user_integration(state: MarketplaceState, integration_id: UUID) -> MarketplaceState:
    remaining = tuple(ui for ui in state.user_integrations if ui.integration_id != integration_id)
    return state.model_copy(update={"user_integrations": remaining})


def set_loading(state: MarketplaceState, is_loading: bool) -> MarketplaceState:
    return state.model_copy(update={"is_loading": is_loading})


def set_error(state: MarketplaceState, error: Optional[str]) -> MarketplaceState:
    return state.model_copy(update={"error": error})


def set_search_query(state: MarketplaceState, search_query: str) -> MarketplaceState:
    return state.model_copy(update={"search_query": search_query})


def set_selected_category(state: MarketplaceState, category: str) -> MarketplaceState:
    return state.model_copy(update={"selected_category": category})


# ─── Persistence ─────────────────────────────────────────────────────────────

class PersistedState(CamelModel):
    """The part of the state that survives restarts; the catalog is always refetched."""

    user_integrations: list[Connection] = []
    search_query: str = ""
    selected_category: str = ALL_CATEGORIES


def save_state(state: MarketplaceState, path: Union[str, Path]) -> None:
    persisted = PersistedState(
        user_integrations=list(state.user_integrations),
        search_query=state.search_query,
        selected_category=state.selected_category,
    )
    Path(path).write_text(persisted.model_dump_json(by_alias=True))


def load_state(path: Union[str, Path]) -> MarketplaceState:
    path = Path(path)
    if not path.exists():
        return MarketplaceState()
    persisted = PersistedState.model_validate_json(path.read_text())
    return MarketplaceState(
        user_integrations=tuple(persisted.user_integrations),
        search_query=persisted.search_query,
        selected_category=persisted.selected_category,
    )
