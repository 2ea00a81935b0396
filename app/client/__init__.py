from app.client.api import APIError, MarketplaceAPI
from app.client.state import MarketplaceState, load_state, save_state
from app.client.store import IntegrationStore
from app.client.wizard import ConnectionWizard, WizardStep, WizardStateError

__all__ = [
    "APIError",
    "MarketplaceAPI",
    "MarketplaceState",
    "load_state",
    "save_state",
    "IntegrationStore",
    "ConnectionWizard",
    "WizardStep",
    "WizardStateError",
]
