"""
Seed the integration catalog.

    python -m app.seed

Entries are matched by name, so running the seed again only adds what is missing.
"""

import asyncio
import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.enums import AuthType, IntegrationStatus
from app.models import Integration

logger = logging.getLogger(__name__)

CATALOG_SEED = [
    {
        "name": "Stripe",
        "description": "Accept payments online with Stripe's powerful payment processing platform",
        "category": "payment",
        "icon": "CreditCard",
        "status": IntegrationStatus.AVAILABLE,
        "auth_type": AuthType.API_KEY,
        "config_schema": {
            "apiKey": {"type": "string", "required": True, "secret": True},
            "webhookSecret": {"type": "string", "required": False, "secret": True},
        },
    },
    {
        "name": "FedEx",
        "description": "Connect to FedEx shipping services for real-time rates and label generation",
        "category": "shipping",
        "icon": "Truck",
        "status": IntegrationStatus.AVAILABLE,
        "auth_type": AuthType.API_KEY,
        "config_schema": {
            "apiKey": {"type": "string", "required": True, "secret": True},
            "accountNumber": {"type": "string", "required": True},
            "meterNumber": {"type": "string", "required": True},
        },
    },
    {
        "name": "Slack",
        "description": "Integrate with Slack for team communication and notifications",
        "category": "communication",
        "icon": "MessageSquare",
        "status": IntegrationStatus.AVAILABLE,
        "auth_type": AuthType.OAUTH,
        "config_schema": {
            "channelId": {"type": "string", "required": True},
            "notifications": {"type": "boolean", "default": True},
        },
    },
    {
        "name": "Google Analytics",
        "description": "Track user behavior and analyze website performance with Google Analytics",
        "category": "analytics",
        "icon": "BarChart3",
        "status": IntegrationStatus.BETA,
        "auth_type": AuthType.OAUTH,
        "config_schema": {
            "trackingId": {"type": "string", "required": True},
            "enableEcommerce": {"type": "boolean", "default": False},
        },
    },
    {
        "name": "Salesforce",
        "description": "Connect your CRM with Salesforce for seamless customer management",
        "category": "erp",
        "icon": "Settings",
        "status": IntegrationStatus.AVAILABLE,
        "auth_type": AuthType.OAUTH,
        "config_schema": {
            "instanceUrl": {"type": "string", "required": True},
            "syncContacts": {"type": "boolean", "default": True},
            "syncLeads": {"type": "boolean", "default": True},
        },
    },
    {
        "name": "Mailchimp",
        "description": "Email marketing automation and audience management with Mailchimp",
        "category": "marketing",
        "icon": "MessageSquare",
        "status": IntegrationStatus.AVAILABLE,
        "auth_type": AuthType.API_KEY,
        "config_schema": {
            "apiKey": {"type": "string", "required": True, "secret": True},
            "listId": {"type": "string", "required": True},
            "doubleOptIn": {"type": "boolean", "default": True},
        },
    },
]


async def seed_catalog(db: AsyncSession) -> int:
    """Insert missing catalog entries and return how many were added."""
    result = await db.execute(select(Integration.name))
    existing = set(result.scalars().all())

    added = 0
    for entry in CATALOG_SEED:
        if entry["name"] in existing:
            continue
        db.add(Integration(**entry))
        added += 1

    await db.flush()
    logger.info("Seeded %d catalog entries (%d already present)", added, len(CATALOG_SEED) - added)
    return added


async def main() -> None:
    from app.database import async_session, init_db

    await init_db()
    async with async_session() as db:
        await seed_catalog(db)
        await db.commit()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    asyncio.run(main())
