from app.models.integration import Integration
from app.models.user_integration import UserIntegration

__all__ = [
    "Integration",
    "UserIntegration",
]
